"""StartBuilds node - launch every build job concurrently."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from shipcat.core.config import State
from shipcat.core.log import logger


@dataclass
class StartBuilds(BaseNode[State]):
    """Start one worker-thread task per job, plus the bytecode build.

    Jobs share nothing but the collector; a failed job never cancels
    its siblings.
    """

    async def run(self, ctx: GraphRunContext[State]) -> "CollectArtifacts":
        from shipcat.build import BuildExecutor, BytecodeBuilder

        config = ctx.state.config
        release = ctx.state.runtime.release

        executor = BuildExecutor(
            config,
            release.collector,
            context_factory=release.context_factory,
        )

        limit = config.build.max_parallel
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def build(job):
            if semaphore is None:
                return await asyncio.to_thread(executor.run, job)
            async with semaphore:
                return await asyncio.to_thread(executor.run, job)

        release.build_tasks = [
            asyncio.create_task(build(job), name=f"build-{job.target_id}")
            for job in release.run.jobs
        ]

        if config.bytecode.enabled:
            builder = BytecodeBuilder(config, context=release.bytecode_context)
            release.bytecode_task = asyncio.create_task(
                asyncio.to_thread(builder.build), name="build-bytecode"
            )

        release.status = "building"
        logger.info(
            "Started {count} build jobs",
            count=len(release.build_tasks),
            max_parallel=limit,
        )

        from shipcat.workflow.nodes.collect_artifacts import CollectArtifacts
        return CollectArtifacts()
