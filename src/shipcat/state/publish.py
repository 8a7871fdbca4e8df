"""PublishResult - outcome of publishing one package."""

from enum import Enum

from pydantic import BaseModel


class PublishOutcome(str, Enum):
    SUCCESS = "success"
    # The registry already holds this version; safe on a re-run
    ALREADY_PUBLISHED = "already_published"
    FAILURE = "failure"


class PublishResult(BaseModel):
    package_name: str
    registry: str
    outcome: PublishOutcome
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome != PublishOutcome.FAILURE
