"""Target matrix resolution."""

from shipcat.matrix.platform import Platform, describe_platform
from shipcat.matrix.resolver import resolve_matrix

__all__ = ["Platform", "describe_platform", "resolve_matrix"]
