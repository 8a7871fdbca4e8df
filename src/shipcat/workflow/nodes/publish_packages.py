"""PublishPackages node - push every package to its registry."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from shipcat.core.config import State
from shipcat.core.errors import PublishError
from shipcat.core.log import logger
from shipcat.state import ReleaseRun


@dataclass
class PublishPackages(BaseNode[State, None, ReleaseRun]):
    """Publish npm packages and the crate, then end the release."""

    async def run(self, ctx: GraphRunContext[State]) -> End[ReleaseRun]:
        """
        Raises:
            PublishError: If any package failed; results of the
                attempted packages stay on the release run
        """
        from shipcat.publish import (
            PublishCredentials,
            Publisher,
            crate_package,
            default_registries,
        )

        config = ctx.state.config
        release = ctx.state.runtime.release
        run = release.run

        if config.publish.crate.enabled:
            run.packages.append(crate_package(config))

        # Credentials are read now and dropped once publishing ends
        credentials = release.credentials or PublishCredentials()
        registries = release.registries or default_registries(config)
        publisher = Publisher(registries, fail_fast=config.publish.fail_fast)
        try:
            run.results = publisher.publish_all(run.packages, credentials)
        finally:
            release.credentials = None

        if run.failures:
            names = ", ".join(r.package_name for r in run.failures)
            raise PublishError(
                f"{len(run.failures)} of {len(run.packages)} packages "
                f"failed to publish: {names}"
            )

        release.status = "published"
        logger.info("Published {count} packages", count=len(run.results))
        return End(run)
