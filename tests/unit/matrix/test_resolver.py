"""Tests for matrix resolution and triple parsing."""

import pytest

from shipcat.core.errors import ConfigurationError
from shipcat.matrix import describe_platform, resolve_matrix
from shipcat.state import JobStatus, TargetDescriptor


def test_one_pending_job_per_target(targets):
    """Every descriptor becomes one pending job, in matrix order."""
    jobs = resolve_matrix(targets)

    assert [job.target_id for job in jobs] == ["linux-x64-gnu", "win32-x64-msvc"]
    assert all(job.status == JobStatus.PENDING for job in jobs)
    assert all(not job.produced_artifacts for job in jobs)
    assert jobs[0].descriptor is targets[0]


def test_id_defaults_to_triple():
    descriptor = TargetDescriptor(triple="aarch64-apple-darwin")
    assert descriptor.id == "aarch64-apple-darwin"


def test_duplicate_ids_rejected():
    """Two entries with one id fail before any job is created."""
    targets = [
        TargetDescriptor(id="linux", triple="x86_64-unknown-linux-gnu"),
        TargetDescriptor(id="linux", triple="x86_64-unknown-linux-musl"),
    ]
    with pytest.raises(ConfigurationError, match="duplicate target ids: linux"):
        resolve_matrix(targets)


def test_empty_matrix_rejected():
    with pytest.raises(ConfigurationError, match="empty"):
        resolve_matrix([])


def test_all_problems_reported_together():
    targets = [
        TargetDescriptor(triple="not-a-triple"),
        TargetDescriptor(triple="x86_64-apple-darwin", strip_tool="  "),
        TargetDescriptor(triple="x86_64-unknown-linux-gnu", setup_commands=[""]),
    ]
    with pytest.raises(ConfigurationError) as exc:
        resolve_matrix(targets)

    message = str(exc.value)
    assert "not-a-triple" in message
    assert "blank strip tool" in message
    assert "blank setup command" in message


def test_workflow_matrix_keys_accepted():
    """The keys of a CI workflow matrix load as aliases."""
    descriptor = TargetDescriptor.model_validate({
        "os": "macos-latest",
        "target": "aarch64-apple-darwin",
        "strip": "strip -x",
        "setup": "npm install --global yarn@1",
        "image": "ghcr.io/napi-rs/napi-rs/nodejs-rust:lts-debian",
        "env": {"JEMALLOC_SYS_WITH_LG_PAGE": 14},
    })

    assert descriptor.triple == "aarch64-apple-darwin"
    assert descriptor.strip_tool == "strip -x"
    assert descriptor.setup_commands == ("npm install --global yarn@1",)
    assert descriptor.container_image.endswith("lts-debian")
    assert descriptor.env == {"JEMALLOC_SYS_WITH_LG_PAGE": "14"}


def test_descriptor_is_immutable():
    descriptor = TargetDescriptor(triple="x86_64-apple-darwin")
    with pytest.raises(ValueError):
        descriptor.triple = "aarch64-apple-darwin"


@pytest.mark.parametrize(
    "triple,suffix,libc",
    [
        ("x86_64-unknown-linux-gnu", "linux-x64-gnu", "glibc"),
        ("aarch64-unknown-linux-musl", "linux-arm64-musl", "musl"),
        ("armv7-unknown-linux-gnueabihf", "linux-arm-gnueabihf", "glibc"),
        ("aarch64-apple-darwin", "darwin-arm64", None),
        ("x86_64-pc-windows-msvc", "win32-x64-msvc", None),
    ],
)
def test_platform_of_triple(triple, suffix, libc):
    platform = describe_platform(triple)
    assert platform.suffix == suffix
    assert platform.libc == libc


def test_windows_executables_get_exe():
    assert describe_platform("x86_64-pc-windows-msvc").executable_extension == ".exe"
    assert describe_platform("x86_64-apple-darwin").executable_extension == ""


def test_unknown_architecture():
    with pytest.raises(ValueError, match="unknown architecture"):
        describe_platform("mips-unknown-linux-gnu")
