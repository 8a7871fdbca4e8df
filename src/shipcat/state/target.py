"""TargetDescriptor - one entry of the build matrix."""

from __future__ import annotations

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class TargetDescriptor(BaseModel):
    """Immutable description of one build target.

    Identity is `id`, which defaults to the target triple. The YAML
    keys of the older workflow matrix (`target`, `image`, `strip`,
    `setup`) are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(
        default="",
        description="Unique target id (defaults to the triple)",
    )
    os: str = Field(
        default="",
        description="Host OS label the target builds on (e.g. ubuntu-latest)",
    )
    triple: str = Field(
        validation_alias=AliasChoices("triple", "target"),
        description="Target triple, e.g. x86_64-unknown-linux-gnu",
    )
    strip_tool: str | None = Field(
        default=None,
        validation_alias=AliasChoices("strip_tool", "strip"),
        description="Strip command; stripping is skipped when unset",
    )
    container_image: str | None = Field(
        default=None,
        validation_alias=AliasChoices("container_image", "image"),
        description="Container image to build in instead of the host",
    )
    setup_commands: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("setup_commands", "setup"),
        description="Commands run verbatim, in order, before the build",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment overrides for this target's build steps",
    )

    @field_validator("setup_commands", mode="before")
    @classmethod
    def _single_setup_command(cls, value):
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, value):
        # YAML turns `JEMALLOC_SYS_WITH_LG_PAGE: 14` into an int
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @model_validator(mode="after")
    def _default_id(self) -> TargetDescriptor:
        if not self.id:
            object.__setattr__(self, "id", self.triple)
        return self

    def __hash__(self) -> int:
        return hash(self.id)
