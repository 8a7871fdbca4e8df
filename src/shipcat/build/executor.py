"""Build executor: compile, strip and store one target."""

from __future__ import annotations

import shlex
from collections.abc import Callable
from pathlib import Path

from shipcat.core.errors import BuildError
from shipcat.core.log import logger
from shipcat.core.result import CommandResult
from shipcat.execution.context import ExecutionContext, create_context
from shipcat.matrix.platform import describe_platform
from shipcat.state import ArtifactKind, BuildJob, binding_name

# Lines of command output quoted in a BuildError
OUTPUT_TAIL = 20


class BuildExecutor:
    """Runs build jobs.

    One executor serves the whole matrix; every run() call gets its
    own execution context, so jobs can run in parallel threads.
    """

    def __init__(
        self,
        config,
        collector,
        context_factory: Callable[..., ExecutionContext] | None = None,
    ):
        """
        Args:
            config: Loaded Config
            collector: ArtifactCollector receiving the outputs
            context_factory: (descriptor, config) -> ExecutionContext
        """
        self.config = config
        self.collector = collector
        self.context_factory = context_factory or create_context

    def run(self, job: BuildJob) -> BuildJob:
        """Build one job; never raises for build failures.

        The job ends succeeded or failed and is always reported to the
        collector as terminal.
        """
        target_id = job.target_id
        job.start()
        context = None
        try:
            with logger.span("build {target}", target=target_id):
                context = self.context_factory(job.descriptor, self.config)
                native, executable = self._build(job, context)
                self._store(job, native, executable)
            job.succeed()
            logger.info("Target {target} built", target=target_id)
        except Exception as e:
            job.fail(str(e))
            logger.error(
                "Target {target} failed: {error}",
                target=target_id,
                error=str(e),
            )
        finally:
            if context is not None:
                context.close()
            self.collector.mark_terminal(job)
        return job

    # ------------------------------------------------------------
    # steps
    # ------------------------------------------------------------

    def _build(
        self, job: BuildJob, context: ExecutionContext
    ) -> tuple[Path, Path]:
        descriptor = job.descriptor
        commands = self.config.build.commands
        values = self._template_values(job)

        for i, command in enumerate(descriptor.setup_commands, start=1):
            self._step(job, context, f"setup-{i}", command)

        self._step(
            job, context, "toolchain",
            self._format(job, commands["toolchain"], values),
        )

        native_env = {
            self.config.build.target_env_var: descriptor.triple,
            **descriptor.env,
        }
        self._step(
            job, context, "native",
            self._format(job, commands["native"], values),
            env=native_env,
        )
        native = self._find_native(job, context, values)

        self._step(
            job, context, "cli",
            self._format(job, commands["cli"], values),
            env=dict(descriptor.env),
        )
        executable = context.workdir / self._format(
            job, self.config.build.cli_path, values
        )
        if not executable.is_file():
            raise BuildError(
                job.target_id, "cli", f"executable not found at {executable}"
            )

        if descriptor.strip_tool:
            files = " ".join(
                shlex.quote(str(p.relative_to(context.workdir)))
                for p in (native, executable)
            )
            self._step(
                job, context, "strip",
                self._format(
                    job, commands["strip"],
                    {**values, "strip_tool": descriptor.strip_tool,
                     "files": files},
                ),
                env=dict(descriptor.env),
            )
        else:
            logger.debug("No strip tool for {target}", target=job.target_id)

        return native, executable

    def _step(
        self,
        job: BuildJob,
        context: ExecutionContext,
        step: str,
        command: str,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        result = context.run(command, env=env or None, step=step)
        if not result.success:
            tail = "\n".join(result.output.splitlines()[-OUTPUT_TAIL:])
            where = f" (log: {result.log_file})" if result.log_file else ""
            raise BuildError(
                job.target_id,
                step,
                f"'{command}' exited with {result.returncode}{where}\n{tail}",
            )
        return result

    def _find_native(
        self, job: BuildJob, context: ExecutionContext, values: dict
    ) -> Path:
        pattern = self._format(job, self.config.build.native_glob, values)
        matches = sorted(p for p in context.workdir.glob(pattern) if p.is_file())
        if not matches:
            raise BuildError(
                job.target_id, "native", f"no native binding matches '{pattern}'"
            )
        if len(matches) > 1:
            names = ", ".join(p.name for p in matches)
            raise BuildError(
                job.target_id,
                "native",
                f"'{pattern}' is ambiguous: {names}",
            )
        return matches[0]

    def _store(self, job: BuildJob, native: Path, executable: Path) -> None:
        target_id = job.target_id
        native_ref = self.collector.store(
            target_id,
            ArtifactKind.NATIVE_BINDING,
            native.read_bytes(),
            filename=binding_name(target_id) + native.suffix,
        )
        executable_ref = self.collector.store(
            target_id,
            ArtifactKind.EXECUTABLE,
            executable.read_bytes(),
            filename=executable.name,
        )
        job.produced_artifacts.update((native_ref, executable_ref))

    # ------------------------------------------------------------
    # templates
    # ------------------------------------------------------------

    def _template_values(self, job: BuildJob) -> dict[str, str]:
        descriptor = job.descriptor
        platform = describe_platform(descriptor.triple)
        return {
            "triple": descriptor.triple,
            "target_id": descriptor.id,
            "platform": platform.suffix,
            "binary": self.config.build.cli_binary + platform.executable_extension,
        }

    def _format(self, job: BuildJob, template: str, values: dict) -> str:
        try:
            return template.format(**values)
        except (KeyError, IndexError) as e:
            raise BuildError(
                job.target_id, "config", f"bad placeholder {e} in '{template}'"
            ) from e
