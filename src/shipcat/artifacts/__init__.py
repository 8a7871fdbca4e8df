"""Artifact store shared by build jobs."""

from shipcat.artifacts.collector import ArtifactCollector

__all__ = ["ArtifactCollector"]
