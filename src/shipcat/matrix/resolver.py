"""Expand a declarative matrix into independent build jobs."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from shipcat.core.errors import ConfigurationError
from shipcat.core.log import logger
from shipcat.matrix.platform import describe_platform
from shipcat.state import BuildJob, TargetDescriptor


def validate_descriptor(descriptor: TargetDescriptor) -> list[str]:
    """Return the problems with one descriptor (empty when valid)."""
    problems = []
    if not descriptor.triple:
        problems.append(f"target '{descriptor.id}': empty triple")
    else:
        try:
            describe_platform(descriptor.triple)
        except ValueError as e:
            problems.append(f"target '{descriptor.id}': {e}")

    for command in descriptor.setup_commands:
        if not command.strip():
            problems.append(f"target '{descriptor.id}': blank setup command")

    if descriptor.strip_tool is not None and not descriptor.strip_tool.strip():
        problems.append(f"target '{descriptor.id}': blank strip tool")
    return problems


def resolve_matrix(descriptors: Iterable[TargetDescriptor]) -> list[BuildJob]:
    """Create one pending BuildJob per descriptor.

    All descriptors are checked before anything is returned, so a bad
    matrix never starts a single job.

    Raises:
        ConfigurationError: On duplicate ids, malformed descriptors
            or an empty matrix
    """
    descriptors = list(descriptors)
    if not descriptors:
        raise ConfigurationError("build matrix is empty")

    problems = []
    counts = Counter(d.id for d in descriptors)
    duplicates = sorted(tid for tid, n in counts.items() if n > 1)
    if duplicates:
        problems.append(f"duplicate target ids: {', '.join(duplicates)}")

    for descriptor in descriptors:
        problems.extend(validate_descriptor(descriptor))

    if problems:
        raise ConfigurationError(
            "invalid build matrix:\n  " + "\n  ".join(problems)
        )

    jobs = [BuildJob(descriptor=d) for d in descriptors]
    logger.debug(
        "Resolved build matrix",
        targets=[job.target_id for job in jobs],
    )
    return jobs
