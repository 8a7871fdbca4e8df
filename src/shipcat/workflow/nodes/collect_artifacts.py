"""CollectArtifacts node - the fan-in barrier."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from shipcat.core.config import State
from shipcat.core.log import logger


@dataclass
class CollectArtifacts(BaseNode[State]):
    """Wait for every build, then hand the artifacts on."""

    async def run(self, ctx: GraphRunContext[State]) -> "AssemblePackages":
        """
        Raises:
            CollectionError: If any target failed to build
            BuildError: If the bytecode build failed
        """
        release = ctx.state.runtime.release
        tasks = list(release.build_tasks)
        if release.bytecode_task is not None:
            tasks.append(release.bytecode_task)

        try:
            refs = await asyncio.to_thread(release.collector.fetch_all)
        finally:
            # Let every job finish even when the barrier fails
            await asyncio.gather(*tasks, return_exceptions=True)

        bytecode_dir = None
        if release.bytecode_task is not None:
            bytecode_dir = release.bytecode_task.result()

        release.status = "collected"
        logger.info(
            "All {count} targets built",
            count=len(release.run.succeeded_jobs),
        )

        from shipcat.workflow.nodes.assemble_packages import AssemblePackages
        return AssemblePackages(refs=refs, bytecode_dir=bytecode_dir)
