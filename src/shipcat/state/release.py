"""ReleaseRun - everything one orchestrator invocation produced."""

from __future__ import annotations

from pydantic import BaseModel, Field

from shipcat.state.job import BuildJob, JobStatus
from shipcat.state.package import Package
from shipcat.state.publish import PublishResult
from shipcat.state.target import TargetDescriptor


class ReleaseRun(BaseModel):
    """Aggregate of a release invocation; discarded when it ends."""

    matrix: tuple[TargetDescriptor, ...] = ()
    jobs: list[BuildJob] = Field(default_factory=list)
    packages: list[Package] = Field(default_factory=list)
    results: list[PublishResult] = Field(default_factory=list)
    publish_skipped: bool = False

    @property
    def succeeded_jobs(self) -> list[BuildJob]:
        return [j for j in self.jobs if j.status == JobStatus.SUCCEEDED]

    @property
    def failed_jobs(self) -> list[BuildJob]:
        return [j for j in self.jobs if j.status == JobStatus.FAILED]

    @property
    def failures(self) -> list[PublishResult]:
        return [r for r in self.results if not r.ok]

    @property
    def successful(self) -> bool:
        """Every job built, and every package published unless the
        publish stage was skipped."""
        return (
            bool(self.jobs)
            and not self.failed_jobs
            and bool(self.packages)
            and (self.publish_skipped or bool(self.results))
            and not self.failures
        )
