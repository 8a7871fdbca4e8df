"""Publisher: push assembled packages to their registries."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence

from shipcat.core.errors import PublishError
from shipcat.core.log import logger
from shipcat.publish.credentials import PublishCredentials
from shipcat.publish.registry import Registry
from shipcat.state import Package, PackageKind, PublishResult

# Publish order; the aggregator goes last among npm packages so its
# optional dependencies already exist when it appears
ORDER = {
    PackageKind.TARGET: 0,
    PackageKind.BYTECODE: 1,
    PackageKind.CLI: 2,
    PackageKind.AGGREGATOR: 3,
    PackageKind.CRATE: 4,
}


def publish_order(packages: Sequence[Package]) -> list[Package]:
    return sorted(
        packages, key=lambda p: (ORDER[p.kind], p.target_id or "", p.name)
    )


def crate_package(config) -> Package:
    """The library crate, published from the project workdir."""
    crate = config.publish.crate
    return Package(
        name=crate.name or config.build.cli_binary,
        version=config.project.version,
        kind=PackageKind.CRATE,
        registry="crates",
        directory=config.project.workdir,
    )


class Publisher:
    """Publishes packages one at a time, each with a single attempt."""

    def __init__(self, registries: Mapping[str, Registry], fail_fast: bool = True):
        self.registries = registries
        self.fail_fast = fail_fast

    def publish_all(
        self,
        packages: Sequence[Package],
        credentials: PublishCredentials,
    ) -> list[PublishResult]:
        """Publish in release order and return one result per attempt.

        With fail_fast, packages after the first failure are never
        attempted and have no result. Deciding whether the release
        failed is left to the caller.

        Raises:
            PublishError: If the queue names a package twice for the
                same registry, or a registry that is not configured
        """
        queue = publish_order(packages)
        self._check(queue)

        results: list[PublishResult] = []
        for package in queue:
            registry = self.registries[package.registry]
            with logger.span("publish {package}", package=package.name):
                result = registry.publish(package, credentials)
            results.append(result)

            if result.ok:
                logger.info(
                    "{package}: {outcome}",
                    package=package.name,
                    outcome=result.outcome.value,
                )
                continue

            logger.error(
                "{package} failed: {reason}",
                package=package.name,
                reason=result.reason,
            )
            if self.fail_fast:
                skipped = len(queue) - len(results)
                if skipped:
                    logger.warn(
                        "Stopping; {count} packages not attempted",
                        count=skipped,
                    )
                break
        return results

    def _check(self, queue: list[Package]) -> None:
        unknown = sorted({p.registry for p in queue} - set(self.registries))
        if unknown:
            raise PublishError(f"no registry configured for: {', '.join(unknown)}")

        counts = Counter((p.registry, p.name) for p in queue)
        duplicates = sorted(
            f"{name} ({registry})"
            for (registry, name), n in counts.items() if n > 1
        )
        if duplicates:
            raise PublishError(
                f"packages queued more than once: {', '.join(duplicates)}"
            )
