"""AssemblePackages node - lay out the npm packages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_graph import BaseNode, End, GraphRunContext

from shipcat.core.config import State
from shipcat.core.log import logger
from shipcat.state import ArtifactRef, ReleaseRun


@dataclass
class AssemblePackages(BaseNode[State, None, ReleaseRun]):
    """Assemble packages from the collected artifacts.

    Ends the release here when publishing is skipped.
    """

    refs: frozenset[ArtifactRef]
    bytecode_dir: Path | None = None

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "PublishPackages | End[ReleaseRun]":
        from shipcat.packaging import PackageAssembler

        config = ctx.state.config
        release = ctx.state.runtime.release

        assembler = PackageAssembler(config)
        release.run.packages = assembler.assemble(
            self.refs, release.run.matrix, self.bytecode_dir
        )
        release.status = "assembled"

        if release.skip_publish or not config.publish.enabled:
            logger.info("Publishing skipped")
            release.run.publish_skipped = True
            return End(release.run)

        from shipcat.workflow.nodes.publish_packages import PublishPackages
        return PublishPackages()
