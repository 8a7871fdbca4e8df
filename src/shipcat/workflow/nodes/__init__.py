"""Workflow nodes for the release graph."""

from shipcat.workflow.nodes.assemble_packages import AssemblePackages
from shipcat.workflow.nodes.collect_artifacts import CollectArtifacts
from shipcat.workflow.nodes.publish_packages import PublishPackages
from shipcat.workflow.nodes.resolve_matrix import ResolveMatrix
from shipcat.workflow.nodes.start_builds import StartBuilds

__all__ = [
    "ResolveMatrix",
    "StartBuilds",
    "CollectArtifacts",
    "AssemblePackages",
    "PublishPackages",
]
