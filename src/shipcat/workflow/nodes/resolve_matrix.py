"""ResolveMatrix node - validate targets and create one job each."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from shipcat.core.config import State
from shipcat.core.log import logger


@dataclass
class ResolveMatrix(BaseNode[State]):
    """Expand the configured matrix into pending build jobs."""

    async def run(self, ctx: GraphRunContext[State]) -> "StartBuilds":
        """Resolve the matrix and set up the artifact store.

        Raises:
            ConfigurationError: Before any job starts, if the matrix
                is empty or invalid
        """
        from shipcat.artifacts import ArtifactCollector
        from shipcat.matrix import resolve_matrix
        from shipcat.state import ReleaseRun

        config = ctx.state.config
        release = ctx.state.runtime.release

        jobs = resolve_matrix(config.matrix)
        release.run = ReleaseRun(matrix=tuple(config.matrix), jobs=jobs)

        release.collector = ArtifactCollector(
            config.resolve_path(config.artifacts.root)
        )
        release.collector.register(jobs)
        release.status = "resolved"

        logger.info(
            "Releasing {name} {version} for {count} targets",
            name=config.project.name,
            version=config.project.version,
            count=len(jobs),
        )

        from shipcat.workflow.nodes.start_builds import StartBuilds
        return StartBuilds()
