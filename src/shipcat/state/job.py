"""BuildJob - one execution of a target descriptor."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from shipcat.state.artifact import ArtifactRef
from shipcat.state.target import TargetDescriptor


class JobStatus(str, Enum):
    """Lifecycle of a build job; succeeded and failed are terminal."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class BuildJob(BaseModel):
    """A build job bound to one TargetDescriptor."""

    descriptor: TargetDescriptor
    status: JobStatus = JobStatus.PENDING
    produced_artifacts: set[ArtifactRef] = Field(default_factory=set)
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def target_id(self) -> str:
        return self.descriptor.id

    def start(self) -> None:
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()

    def succeed(self) -> None:
        self.status = JobStatus.SUCCEEDED
        self.finished_at = datetime.now()

    def fail(self, error: str) -> None:
        self.status = JobStatus.FAILED
        self.error = error
        self.finished_at = datetime.now()
