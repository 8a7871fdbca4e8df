"""Error taxonomy for a release run.

Every error that ends a release derives from ReleaseError so the
release command can turn it into a non-zero exit code. None of them
are retried.
"""


class ReleaseError(Exception):
    """Base exception for shipcat."""
    pass


class ConfigurationError(ReleaseError):
    """Duplicate or malformed target descriptors and similar
    problems found before any job starts."""
    pass


class BuildError(ReleaseError):
    """A toolchain, compile or strip step failed.

    Raised inside a single build job and recorded on that job; it
    never cancels sibling jobs.
    """

    def __init__(self, target_id: str, step: str, message: str):
        self.target_id = target_id
        self.step = step
        super().__init__(f"[{target_id}] {step}: {message}")


class CollectionError(ReleaseError):
    """A required artifact never materialized, or was written twice."""
    pass


class AssemblyError(ReleaseError):
    """A declared package is missing one of its artifacts."""
    pass


class PublishError(ReleaseError):
    """One or more packages could not be published."""
    pass


__all__ = [
    "ReleaseError",
    "ConfigurationError",
    "BuildError",
    "CollectionError",
    "AssemblyError",
    "PublishError",
]
