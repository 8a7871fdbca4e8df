"""Per-target and bytecode builds."""

from shipcat.build.bytecode import BytecodeBuilder
from shipcat.build.executor import BuildExecutor

__all__ = ["BuildExecutor", "BytecodeBuilder"]
