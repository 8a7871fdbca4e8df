"""ArtifactRef - a file produced by a build job."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ArtifactKind(str, Enum):
    NATIVE_BINDING = "native_binding"
    EXECUTABLE = "executable"


def binding_name(target_id: str) -> str:
    """Deterministic artifact name of a target's native binding."""
    return f"bindings-{target_id}"


class ArtifactRef(BaseModel):
    """Reference to a stored artifact.

    Written once by the owning build job, read-only afterwards.
    """

    model_config = ConfigDict(frozen=True)

    target_id: str
    kind: ArtifactKind
    name: str
    storage_location: Path
