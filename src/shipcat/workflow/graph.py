"""Graph workflow definition."""

from pydantic_graph import Graph

from shipcat.core.config import State
from shipcat.core.log import logger


def create_workflow():
    """Create the release workflow graph.

    ResolveMatrix → StartBuilds → CollectArtifacts →
        AssemblePackages → [PublishPackages or end]

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Import nodes (lazy to avoid circular imports)
    from shipcat.workflow.nodes.assemble_packages import AssemblePackages
    from shipcat.workflow.nodes.collect_artifacts import CollectArtifacts
    from shipcat.workflow.nodes.publish_packages import PublishPackages
    from shipcat.workflow.nodes.resolve_matrix import ResolveMatrix
    from shipcat.workflow.nodes.start_builds import StartBuilds

    workflow = Graph(
        nodes=(
            ResolveMatrix,
            StartBuilds,
            CollectArtifacts,
            AssemblePackages,
            PublishPackages,
        ),
        state_type=State,
    )

    return workflow
