"""Registry credentials, scoped to the publish stage."""

from __future__ import annotations

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class PublishCredentials(BaseSettings):
    """Tokens handed to each registry call as an env override.

    Loaded from NPM_TOKEN and CRATES_IO_TOKEN (environment or .env)
    when publishing starts; SecretStr keeps them out of reprs and
    log records.
    """

    npm_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("npm_token", "NPM_TOKEN"),
        description="npm automation token",
    )
    crates_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("crates_token", "CRATES_IO_TOKEN"),
        description="crates.io API token",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
