"""Result types for command execution."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class CommandResult(BaseModel):
    """Result of one command run in an execution context."""

    step: str
    command: str
    success: bool
    returncode: int
    stdout: str = ""
    stderr: str = ""
    log_file: Path | None = None
    timestamp: datetime

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return self.stdout + self.stderr
