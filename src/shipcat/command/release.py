"""Release command - build, assemble and publish every target."""

from pydantic import BaseModel, ConfigDict, Field

from shipcat.core.errors import ReleaseError
from shipcat.core.log import logger


class ReleaseCommand(BaseModel):
    """Build every target in the matrix, assemble the npm packages and
    publish them together with the library crate.

    Exits non-zero if any target fails to build or any package fails
    to publish. Nothing is retried; packages that were already
    published stay published.
    """

    skip_publish: bool = Field(
        default=False,
        alias="skip-publish",
        description="Stop after assembling packages (nothing is published)",
    )

    model_config = ConfigDict(populate_by_name=True)

    async def run_workflow(self, state: "State") -> int:
        """Run the release workflow.

        Args:
            state: State instance

        Returns:
            Exit code (0=success)
        """
        from shipcat.workflow.graph import create_workflow
        from shipcat.workflow.nodes.resolve_matrix import ResolveMatrix

        release = state.runtime.release
        release.skip_publish = self.skip_publish

        workflow = create_workflow()
        try:
            async with workflow.iter(ResolveMatrix(), state=state) as run:
                async for node in run:
                    if hasattr(node, 'data'):
                        release.run = node.data
        except ReleaseError as e:
            release.status = "failed"
            logger.error("Release failed: {error}", error=str(e))
            self._summarize(release.run)
            return 1

        self._summarize(release.run)
        logger.info("Release complete")
        return 0

    def _summarize(self, run) -> None:
        for job in run.jobs:
            logger.info(
                "{target}: {status}",
                target=job.target_id,
                status=job.status.value,
            )
        for result in run.results:
            logger.info(
                "{package} ({registry}): {outcome}",
                package=result.package_name,
                registry=result.registry,
                outcome=result.outcome.value,
            )
