"""Pytest configuration and fixtures for shipcat tests."""

import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from shipcat.core.log import ConsoleSink, setup_logger
from shipcat.core.result import CommandResult
from shipcat.matrix.platform import describe_platform
from shipcat.state import PublishOutcome, PublishResult, TargetDescriptor


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level, nothing sent to logfire.dev."""
    test_log_root = Path(tempfile.gettempdir()) / "shipcat-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


class FakeContext:
    """Execution context that fakes a toolchain.

    The native and cli steps leave files where the real builds would;
    strip overwrites them; build (bytecode) fills node/pkg. Steps
    listed in `failures` exit 1 without touching anything.
    """

    def __init__(self, workdir, target_id="wasm", triple=None,
                 binary="acme_css", failures=()):
        self.name = f"fake-{target_id}"
        self.workdir = workdir
        self.target_id = target_id
        self.triple = triple
        self.binary = binary
        self.failures = set(failures)
        self.calls = []
        self.closed = False

    def run(self, command, env=None, step="command"):
        self.calls.append((step, command, dict(env or {})))
        if step in self.failures:
            return self._result(step, command, 1, stderr=f"{step} broke\n")

        if step == "native":
            self.native_path.write_bytes(f"native {self.target_id}".encode())
        elif step == "cli":
            self.executable_path.parent.mkdir(parents=True, exist_ok=True)
            self.executable_path.write_bytes(f"cli {self.target_id}".encode())
        elif step == "strip":
            for path in (self.native_path, self.executable_path):
                path.write_bytes(b"stripped " + path.read_bytes())
        elif step == "build":
            pkg = self.workdir / "node" / "pkg"
            pkg.mkdir(parents=True, exist_ok=True)
            (pkg / "acme_css_bg.wasm").write_bytes(b"\0asm")
            (pkg / "acme_css.js").write_text("export {};\n")
            (pkg / "package.json").write_text(
                '{"name": "acme-css", "module": "acme_css.js"}\n'
            )
        return self._result(step, command, 0, stdout=f"{step} ok\n")

    def close(self):
        self.closed = True

    @property
    def steps(self):
        return [step for step, _, _ in self.calls]

    @property
    def native_path(self):
        suffix = describe_platform(self.triple).suffix
        return self.workdir / f"acme.{suffix}.node"

    @property
    def executable_path(self):
        ext = describe_platform(self.triple).executable_extension
        return (
            self.workdir / "target" / self.triple / "release"
            / f"{self.binary}{ext}"
        )

    def _result(self, step, command, code, stdout="", stderr=""):
        return CommandResult(
            step=step,
            command=command,
            success=(code == 0),
            returncode=code,
            stdout=stdout,
            stderr=stderr,
            timestamp=datetime.now(),
        )


class FakeContextFactory:
    """context_factory for BuildExecutor; keeps every context it made."""

    def __init__(self, failures=None):
        # target id -> steps that fail
        self.failures = failures or {}
        self.contexts = {}

    def __call__(self, descriptor, config):
        context = FakeContext(
            config.project.workdir,
            target_id=descriptor.id,
            triple=descriptor.triple,
            binary=config.build.cli_binary,
            failures=self.failures.get(descriptor.id, ()),
        )
        self.contexts[descriptor.id] = context
        return context


class FakeRegistry:
    """Registry that records publish order and returns canned outcomes."""

    def __init__(self, name, outcomes=None):
        self.name = name
        self.outcomes = outcomes or {}
        self.published = []

    def publish(self, package, credentials):
        self.published.append(package.name)
        outcome = self.outcomes.get(package.name, PublishOutcome.SUCCESS)
        return PublishResult(
            package_name=package.name,
            registry=self.name,
            outcome=outcome,
            reason=None if outcome == PublishOutcome.SUCCESS else "rejected",
        )


LINUX = TargetDescriptor(
    id="linux-x64-gnu",
    triple="x86_64-unknown-linux-gnu",
    strip_tool="strip",
)
WINDOWS = TargetDescriptor(
    id="win32-x64-msvc",
    triple="x86_64-pc-windows-msvc",
)


@pytest.fixture
def targets():
    """A stripped Linux target and an unstripped Windows one."""
    return [LINUX, WINDOWS]


@pytest.fixture
def make_config(tmp_path):
    """Build a Config rooted at tmp_path; keyword sections override."""
    from shipcat.core.config import (
        BuildConfig,
        BytecodeConfig,
        Config,
        ProjectConfig,
    )
    from shipcat.core.log import FileSink, Logger

    def _make(**overrides):
        sections = {
            "logger": Logger(
                console=ConsoleSink(level="debug"),
                file=FileSink(enabled=False),
            ),
            "project": ProjectConfig(
                name="@acme/css", version="1.2.3", workdir=tmp_path
            ),
            "build": BuildConfig(cli_binary="acme_css"),
            "bytecode": BytecodeConfig(),
            "matrix": [LINUX, WINDOWS],
            "log_root": tmp_path / "logs",
        }
        sections.update(overrides)
        return Config(**sections)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def argv(monkeypatch):
    """Keep pytest's arguments away from the settings CLI parser."""
    monkeypatch.setattr(sys, "argv", ["shipcat"])


@pytest.fixture
def fake_factory():
    return FakeContextFactory()


@pytest.fixture
def fake_context_cls():
    return FakeContext


@pytest.fixture
def fake_registry_cls():
    return FakeRegistry


@pytest.fixture
def fake_factory_cls():
    return FakeContextFactory
