"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from shipcat.core.base import BaseConfig, BaseState
from shipcat.core.log import Logger
from shipcat.core.yaml_settings import YamlWithIncludesSettingsSource
from shipcat.state import ReleaseRun, TargetDescriptor

# Modules available to {module.attr} templates in YAML files,
# e.g. {platformdirs.user_state_dir}, {os.getcwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class ProjectConfig(BaseConfig):
    """The project being released."""

    name: str = Field(
        description=(
            "Base npm package name; per-target packages are "
            "<name>-<target id> (e.g. '@parcel/css')"
        )
    )
    version: str = Field(description="Version shared by every package")
    workdir: Path = Field(
        default_factory=Path.cwd,
        description="Source checkout the build commands run in",
    )


class BuildConfig(BaseConfig):
    """Per-target build commands.

    Command templates may use {triple}, {target_id}, {platform},
    {binary}, {strip_tool} and {files}.
    """

    commands: dict[str, str] = Field(
        default_factory=lambda: {
            "toolchain": "rustup target add {triple}",
            "native": "yarn build-release",
            "cli": "cargo build --release --features cli --target {triple}",
            "strip": "{strip_tool} {files}",
        },
        description="Templates for the toolchain, native, cli and strip steps",
    )
    target_env_var: str = Field(
        default="RUST_TARGET",
        description="Variable that tells the native build which triple to build",
    )
    native_glob: str = Field(
        default="*.{platform}.node",
        description="Glob (relative to workdir) matching the built native binding",
    )
    cli_binary: str = Field(
        description="Bare executable name of the CLI (no extension)"
    )
    cli_path: str = Field(
        default="target/{triple}/release/{binary}",
        description="Where the CLI build leaves the executable",
    )
    log_dir: Path = Field(
        default=Path("build-logs"),
        description="Per-target step logs (supports {config.*} templates)",
    )
    timeout: int | None = Field(
        default=None,
        description="Per-command timeout in seconds (unset waits forever)",
    )
    max_parallel: int | None = Field(
        default=None,
        description="Upper bound on concurrently running build jobs",
    )
    container_engine: str = Field(
        default="docker",
        description="Engine used for targets with a container image",
    )


class BytecodeConfig(BaseConfig):
    """The single portable-bytecode build outside the matrix."""

    enabled: bool = Field(default=True)
    setup_commands: list[str] = Field(
        default_factory=list,
        description="Run in order before the build (e.g. install wasm-pack)",
    )
    command: str = Field(
        default="yarn wasm-browser:build-release",
        description="Bytecode build command",
    )
    output_dir: Path = Field(
        default=Path("node/pkg"),
        description="Build output, relative to the project workdir",
    )


class ArtifactsConfig(BaseConfig):
    """Artifact store layout."""

    root: Path = Field(
        default=Path("artifacts"),
        description="Flat directory keyed by target id",
    )


class PackagingConfig(BaseConfig):
    """Assembled package layout."""

    output_dir: Path = Field(
        default=Path("npm"),
        description="Directory the packages are assembled into",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra manifest fields (license, repository, ...)",
    )


class CrateConfig(BaseConfig):
    """Library crate publishing."""

    enabled: bool = Field(default=True)
    name: str | None = Field(
        default=None,
        description="Crate name used in results (defaults to the cli binary)",
    )
    command: str = Field(
        default="cargo workspaces publish --from-git -y",
        description="Workspace publish command, run in the project workdir",
    )


class PublishConfig(BaseConfig):
    """Registry publishing."""

    enabled: bool = Field(default=True)
    fail_fast: bool = Field(
        default=True,
        description=(
            "Stop at the first failed publish; when false every package "
            "is attempted and failures are reported together"
        ),
    )
    dry_run: bool = Field(
        default=False, description="Pass --dry-run to npm publish"
    )
    access: str = Field(default="public", description="npm publish --access")
    npm_registry: str = Field(
        default="https://registry.npmjs.org/",
        description="Registry URL written into the temporary .npmrc",
    )
    crate: CrateConfig = Field(default_factory=CrateConfig)


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    project: ProjectConfig
    matrix: list[TargetDescriptor] = Field(
        default_factory=list,
        description="Build targets",
    )
    build: BuildConfig
    bytecode: BytecodeConfig = Field(default_factory=BytecodeConfig)
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)
    packaging: PackagingConfig = Field(default_factory=PackagingConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)

    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'spew', 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "shipcat"
        ),
        description="Root directory for log files",
    )

    model_config = ConfigDict(populate_by_name=True)

    def resolve_path(self, path: Path) -> Path:
        """Anchor a relative path at the project workdir."""
        return path if path.is_absolute() else self.project.workdir / path

    @property
    def run_name(self) -> str:
        """Filesystem-safe name of this release (`name-version`)."""
        base = self.project.name.lstrip("@").replace("/", "-")
        return f"{base}-{self.project.version}"

    @model_validator(mode='after')
    def _setup_logger(self) -> Config:
        """Initialize the global logger singleton once config loads."""
        from shipcat.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger()
        # --log-level drives the console; other sinks keep their own
        self.logger.console.level = self.log_level

        setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            console=self.logger.console,
            otlp=self.logger.otlp,
            file=self.logger.file,
            logfire=self.logger.logfire,
            level=self.logger.level,
        )
        return self

    def close(self):
        """Close the global logger, then the other children."""
        from shipcat.core.log import logger
        if logger is not None:
            logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================

class ReleaseState(BaseState):
    """Release workflow runtime state.

    The injectable collaborators (context_factory, registries,
    credentials) default to the real implementations when left unset.
    """

    status: str = Field(
        default="pending",
        description=(
            "pending, resolved, building, collected, assembled, "
            "published, failed"
        ),
    )
    run: ReleaseRun = Field(default_factory=ReleaseRun)
    skip_publish: bool = False

    collector: Any = Field(default=None, description="ArtifactCollector")
    build_tasks: list = Field(default_factory=list)
    bytecode_task: Any = None

    context_factory: Any = Field(
        default=None,
        description="Callable (descriptor, config) -> ExecutionContext",
    )
    bytecode_context: Any = Field(
        default=None,
        description="ExecutionContext for the bytecode build (host if unset)",
    )
    registries: Any = Field(
        default=None,
        description="Mapping of registry name -> Registry",
    )
    credentials: Any = Field(
        default=None,
        description="PublishCredentials; read from env at publish time if unset",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """All runtime state, grouped by workflow."""

    release: ReleaseState = Field(default_factory=ReleaseState)


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state: configuration plus runtime.

    This is the state object that flows through the workflow graph.
    Being a BaseSettings, it loads from YAML, .env, environment
    variables and CLI arguments, and validates on load.
    """

    config: Config = Field(
        description="Application configuration (from YAML/env/CLI)"
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge "
            "(--include on CLI or include: in YAML)"
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="shipcat.yaml",
        env_file=".env",
        env_prefix="SHIPCAT_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority (highest first): init args, YAML, .env, env, secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Replace {config.*} and {module.*} templates in every string
        and Path field.

            "{config.project.workdir}/artifacts" -> "/src/app/artifacts"
        """
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            # Matrix entries are immutable and used verbatim
            if obj.model_config.get("frozen"):
                return
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Resolve {dotted.path} templates against state or
        TEMPLATE_NAMESPACE; unknown names stay as they are so build
        command placeholders like {triple} survive."""
        def replace_template(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj('shipcat', appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        if "{" not in value:
            return value
        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
