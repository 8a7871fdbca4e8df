"""Package - an assembled, publishable unit."""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class PackageKind(str, Enum):
    TARGET = "target"
    AGGREGATOR = "aggregator"
    CLI = "cli"
    BYTECODE = "bytecode"
    CRATE = "crate"


class Package(BaseModel):
    """One distributable package.

    target_id is only set for per-target packages. manifest is the
    exact metadata written next to the payload.
    """

    name: str
    version: str
    kind: PackageKind
    registry: str
    directory: Path
    target_id: str | None = None
    payload_locations: tuple[Path, ...] = ()
    manifest: dict[str, Any] = Field(default_factory=dict)
