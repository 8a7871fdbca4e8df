"""Matrix command - validate and print the resolved build matrix."""

from pydantic import BaseModel

from shipcat.core.errors import ConfigurationError
from shipcat.core.log import logger


class MatrixCommand(BaseModel):
    """Validate the configured target matrix and print one line per
    target: id, npm platform, where it builds and whether it is
    stripped. Nothing is built.
    """

    async def run_workflow(self, state: "State") -> int:
        from shipcat.matrix import describe_platform, resolve_matrix

        try:
            jobs = resolve_matrix(state.config.matrix)
        except ConfigurationError as e:
            logger.error("Invalid matrix: {error}", error=str(e))
            return 1

        for job in jobs:
            descriptor = job.descriptor
            platform = describe_platform(descriptor.triple)
            print(
                f"{descriptor.id:<32} {platform.suffix:<24} "
                f"{descriptor.container_image or 'host':<48} "
                f"{descriptor.strip_tool or '-'}"
            )
        return 0
