"""Release data model.

TargetDescriptor -> BuildJob -> ArtifactRef -> Package -> PublishResult,
all held together by one ReleaseRun.
"""

from shipcat.state.artifact import ArtifactKind, ArtifactRef, binding_name
from shipcat.state.job import BuildJob, JobStatus
from shipcat.state.package import Package, PackageKind
from shipcat.state.publish import PublishOutcome, PublishResult
from shipcat.state.release import ReleaseRun
from shipcat.state.target import TargetDescriptor

__all__ = [
    "ArtifactKind",
    "ArtifactRef",
    "binding_name",
    "BuildJob",
    "JobStatus",
    "Package",
    "PackageKind",
    "PublishOutcome",
    "PublishResult",
    "ReleaseRun",
    "TargetDescriptor",
]
