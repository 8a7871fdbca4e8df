"""CLI command modules for shipcat."""

from shipcat.command.matrix import MatrixCommand
from shipcat.command.release import ReleaseCommand

__all__ = ["MatrixCommand", "ReleaseCommand"]
