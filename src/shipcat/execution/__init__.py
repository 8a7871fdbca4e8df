"""Execution contexts for build commands."""

from shipcat.execution.context import (
    ContainerContext,
    ExecutionContext,
    LocalContext,
    create_context,
)

__all__ = [
    "ContainerContext",
    "ExecutionContext",
    "LocalContext",
    "create_context",
]
