"""Execution contexts: where a build job's commands run.

The build executor only talks to the ExecutionContext protocol, so a
job can run on the host, inside a container image, or against a fake
in tests.
"""

from __future__ import annotations

import os
import re
import shlex
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from shipcat.core.log import logger
from shipcat.core.result import CommandResult
from shipcat.core.runner import Runner

CONTAINER_WORKDIR = "/build"


@runtime_checkable
class ExecutionContext(Protocol):
    """Run shell commands for one job and report their outcome.

    `workdir` is the host path of the job's working directory; files
    the commands create there are visible to the host.
    """

    name: str
    workdir: Path

    def run(
        self,
        command: str,
        env: dict[str, str] | None = None,
        step: str = "command",
    ) -> CommandResult:
        ...

    def close(self) -> None:
        ...


class LocalContext:
    """Runs commands as host processes through invoke."""

    def __init__(
        self,
        workdir: Path,
        log_dir: Path | None = None,
        timeout: int | None = None,
        name: str = "host",
    ):
        self.name = name
        self.workdir = workdir
        self.log_dir = log_dir
        self.timeout = timeout
        self.runner = Runner()

    def _log_file(self, step: str) -> Path | None:
        if self.log_dir is None:
            return None
        return self.log_dir / f"{step}.log"

    def _execute(
        self,
        command: str,
        env: dict[str, str] | None,
        step: str,
    ) -> CommandResult:
        timestamp = datetime.now()
        log_file = self._log_file(step)
        logger.debug(
            "Running {step} in {context}",
            step=step,
            context=self.name,
            command=command,
        )
        result = self.runner.execute(
            command,
            cwd=self.workdir,
            timeout=self.timeout,
            log_file=log_file,
            log_level="spew",
            check=False,
            env=env,
        )
        return CommandResult(
            step=step,
            command=command,
            success=(result.exited == 0),
            returncode=result.exited,
            stdout=result.stdout,
            stderr=result.stderr,
            log_file=log_file,
            timestamp=timestamp,
        )

    def run(
        self,
        command: str,
        env: dict[str, str] | None = None,
        step: str = "command",
    ) -> CommandResult:
        return self._execute(command, env, step)

    def close(self) -> None:
        """Nothing to release for host processes."""


class ContainerContext(LocalContext):
    """Runs a job's commands in one long-lived container of `image`.

    The container is started on the first run() and every step is
    an `exec` into it, so whatever the setup commands install stays
    there for the later steps. close() removes it.

    The workdir is bind-mounted at /build. Environment variables are
    forwarded by name (`-e NAME`) so their values stay out of the
    command line.
    """

    def __init__(
        self,
        image: str,
        workdir: Path,
        log_dir: Path | None = None,
        timeout: int | None = None,
        engine: str = "docker",
        container_name: str | None = None,
    ):
        super().__init__(workdir, log_dir, timeout, name=image)
        self.image = image
        self.engine = engine
        self.container_name = container_name or f"shipcat-{os.getpid()}"
        self.started = False

    def start_command(self) -> str:
        """Engine invocation that starts the idle job container."""
        parts = [
            self.engine, "run", "-d",
            "--name", self.container_name,
            "-v", f"{self.workdir.resolve()}:{CONTAINER_WORKDIR}",
            "-w", CONTAINER_WORKDIR,
            self.image, "sleep", "infinity",
        ]
        return " ".join(shlex.quote(p) for p in parts)

    def wrap(self, command: str, env: dict[str, str] | None = None) -> str:
        """Engine invocation that runs one command in the container."""
        parts = [self.engine, "exec", "-w", CONTAINER_WORKDIR]
        for key in sorted(env or {}):
            parts.extend(["-e", key])
        parts.extend([self.container_name, "sh", "-c", command])
        return " ".join(shlex.quote(p) for p in parts)

    def run(
        self,
        command: str,
        env: dict[str, str] | None = None,
        step: str = "command",
    ) -> CommandResult:
        if not self.started:
            started = self._execute(self.start_command(), None, "container")
            if not started.success:
                return started.model_copy(update={"step": step})
            self.started = True
            logger.debug(
                "Started container {container}",
                container=self.container_name,
                image=self.image,
            )

        result = self._execute(self.wrap(command, env), env, step)
        # Report the command as written, not the engine wrapper
        return result.model_copy(update={"command": command})

    def close(self) -> None:
        """Remove the job container if it was started."""
        if not self.started:
            return
        command = " ".join(
            shlex.quote(p)
            for p in (self.engine, "rm", "-f", self.container_name)
        )
        result = self.runner.execute(command, check=False)
        self.started = False
        if result.exited != 0:
            logger.warn(
                "Could not remove container {container}: {error}",
                container=self.container_name,
                error=result.stderr.strip(),
            )


def container_name(target_id: str) -> str:
    """Engine-safe container name for one job."""
    safe = re.sub(r"[^a-zA-Z0-9_.-]", "-", target_id)
    return f"shipcat-{safe}-{os.getpid()}"


def create_context(descriptor, config) -> ExecutionContext:
    """Pick the execution context for a target descriptor.

    Args:
        descriptor: TargetDescriptor of the job
        config: Loaded Config
    """
    workdir = config.project.workdir
    log_dir = config.resolve_path(config.build.log_dir) / descriptor.id
    if descriptor.container_image:
        return ContainerContext(
            descriptor.container_image,
            workdir,
            log_dir=log_dir,
            timeout=config.build.timeout,
            engine=config.build.container_engine,
            container_name=container_name(descriptor.id),
        )
    return LocalContext(
        workdir, log_dir=log_dir, timeout=config.build.timeout
    )
