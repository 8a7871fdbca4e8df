"""Portable-bytecode build, run once outside the target matrix."""

from __future__ import annotations

from pathlib import Path

from shipcat.core.errors import BuildError
from shipcat.core.log import logger
from shipcat.execution.context import ExecutionContext, LocalContext

BYTECODE_ID = "wasm"


class BytecodeBuilder:
    """Runs the bytecode setup and build commands on the host."""

    def __init__(self, config, context: ExecutionContext | None = None):
        self.config = config
        self.context = context or LocalContext(
            config.project.workdir,
            log_dir=config.resolve_path(config.build.log_dir) / BYTECODE_ID,
            timeout=config.build.timeout,
        )

    def build(self) -> Path:
        """Build and return the output directory.

        Raises:
            BuildError: If a command fails or the output is empty
        """
        bytecode = self.config.bytecode
        with logger.span("build bytecode"):
            for i, command in enumerate(bytecode.setup_commands, start=1):
                self._run(f"setup-{i}", command)
            self._run("build", bytecode.command)

        output_dir = self.context.workdir / bytecode.output_dir
        if not output_dir.is_dir() or not any(output_dir.iterdir()):
            raise BuildError(
                BYTECODE_ID, "build", f"no bytecode output in {output_dir}"
            )
        logger.info("Bytecode built", output=str(output_dir))
        return output_dir

    def _run(self, step: str, command: str) -> None:
        result = self.context.run(command, step=step)
        if not result.success:
            raise BuildError(
                BYTECODE_ID,
                step,
                f"'{command}' exited with {result.returncode}",
            )
