"""Registries a package can be published to."""

from __future__ import annotations

import re
import shlex
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urlparse

from shipcat.core.log import logger
from shipcat.core.result import CommandResult
from shipcat.execution.context import ExecutionContext, LocalContext
from shipcat.publish.credentials import PublishCredentials
from shipcat.state import Package, PublishOutcome, PublishResult

# Output of a publish the registry rejected because the version exists
NPM_DUPLICATE = re.compile(
    r"EPUBLISHCONFLICT"
    r"|cannot publish over the previously published versions"
    r"|You cannot publish over",
    re.IGNORECASE,
)
CRATES_DUPLICATE = re.compile(r"already uploaded|already exists", re.IGNORECASE)

# Characters of output quoted in a failure reason
REASON_LIMIT = 2000


class Registry(ABC):
    """One publish target. publish() makes a single attempt."""

    name: str
    duplicate_pattern: re.Pattern

    def __init__(self, context: ExecutionContext):
        self.context = context

    @abstractmethod
    def publish(
        self, package: Package, credentials: PublishCredentials
    ) -> PublishResult:
        ...

    def classify(self, package: Package, result: CommandResult) -> PublishResult:
        """Map a publish command's result onto an outcome."""
        if result.success:
            outcome, reason = PublishOutcome.SUCCESS, None
        elif self.duplicate_pattern.search(result.output):
            outcome = PublishOutcome.ALREADY_PUBLISHED
            reason = f"{package.version} is already published"
        else:
            outcome = PublishOutcome.FAILURE
            tail = result.output.strip()[-REASON_LIMIT:]
            reason = f"exited with {result.returncode}: {tail}"
        return PublishResult(
            package_name=package.name,
            registry=self.name,
            outcome=outcome,
            reason=reason,
        )

    def _missing(self, package: Package, variable: str) -> PublishResult:
        return PublishResult(
            package_name=package.name,
            registry=self.name,
            outcome=PublishOutcome.FAILURE,
            reason=f"no credential: {variable} is not set",
        )


class NpmRegistry(Registry):
    """npm publish from an assembled package directory.

    The token travels in NPM_TOKEN; the temporary .npmrc only refers
    to ${NPM_TOKEN}, so it never reaches the disk.
    """

    name = "npm"
    duplicate_pattern = NPM_DUPLICATE

    def __init__(
        self,
        context: ExecutionContext,
        url: str = "https://registry.npmjs.org/",
        access: str = "public",
        dry_run: bool = False,
    ):
        super().__init__(context)
        self.url = url
        self.access = access
        self.dry_run = dry_run

    def command(self, package: Package) -> str:
        parts = ["npm", "publish", str(package.directory), "--access", self.access]
        if self.dry_run:
            parts.append("--dry-run")
        return " ".join(shlex.quote(p) for p in parts)

    def npmrc(self) -> str:
        parsed = urlparse(self.url)
        path = parsed.path if parsed.path.endswith("/") else parsed.path + "/"
        return f"//{parsed.netloc}{path}:_authToken=${{NPM_TOKEN}}\n"

    def publish(
        self, package: Package, credentials: PublishCredentials
    ) -> PublishResult:
        if credentials.npm_token is None:
            return self._missing(package, "NPM_TOKEN")

        with tempfile.TemporaryDirectory(prefix="shipcat-npm-") as tmp:
            npmrc = Path(tmp) / ".npmrc"
            npmrc.write_text(self.npmrc())
            env = {
                "NPM_TOKEN": credentials.npm_token.get_secret_value(),
                "NPM_CONFIG_USERCONFIG": str(npmrc),
            }
            logger.info("Publishing {package}", package=package.name)
            result = self.context.run(
                self.command(package), env=env, step=f"publish-{package.name}"
            )
        return self.classify(package, result)


class CrateRegistry(Registry):
    """Publishes the library crates with the workspace publish command."""

    name = "crates"
    duplicate_pattern = CRATES_DUPLICATE

    def __init__(
        self,
        context: ExecutionContext,
        command: str = "cargo workspaces publish --from-git -y",
    ):
        super().__init__(context)
        self.command = command

    def publish(
        self, package: Package, credentials: PublishCredentials
    ) -> PublishResult:
        if credentials.crates_token is None:
            return self._missing(package, "CRATES_IO_TOKEN")

        env = {
            "CARGO_REGISTRY_TOKEN": credentials.crates_token.get_secret_value(),
        }
        logger.info("Publishing crate {package}", package=package.name)
        result = self.context.run(
            self.command, env=env, step=f"publish-{package.name}"
        )
        return self.classify(package, result)


def default_registries(config) -> dict[str, Registry]:
    """npm and crates registries running on the host."""
    workdir = config.project.workdir
    log_dir = config.resolve_path(config.build.log_dir) / "publish"
    context = LocalContext(workdir, log_dir=log_dir, name="publish")
    publish = config.publish
    return {
        NpmRegistry.name: NpmRegistry(
            context,
            url=publish.npm_registry,
            access=publish.access,
            dry_run=publish.dry_run,
        ),
        CrateRegistry.name: CrateRegistry(context, command=publish.crate.command),
    }
