"""Tests for package assembly."""

import json

import pytest

from shipcat.artifacts import ArtifactCollector
from shipcat.core.errors import AssemblyError
from shipcat.packaging import PackageAssembler
from shipcat.state import ArtifactKind, PackageKind


@pytest.fixture
def refs(tmp_path, targets):
    collector = ArtifactCollector(tmp_path / "artifacts")
    refs = set()
    for target in targets:
        exe = "acme_css.exe" if "windows" in target.triple else "acme_css"
        refs.add(collector.store(
            target.id, ArtifactKind.NATIVE_BINDING,
            f"native {target.id}".encode(),
            filename=f"bindings-{target.id}.node",
        ))
        refs.add(collector.store(
            target.id, ArtifactKind.EXECUTABLE,
            f"cli {target.id}".encode(),
            filename=exe,
        ))
    return frozenset(refs)


@pytest.fixture
def bytecode_dir(tmp_path):
    pkg = tmp_path / "node" / "pkg"
    pkg.mkdir(parents=True)
    (pkg / "acme_css_bg.wasm").write_bytes(b"\0asm")
    (pkg / "package.json").write_text('{"name": "acme-css", "module": "acme_css.js"}')
    return pkg


def by_kind(packages):
    result = {}
    for package in packages:
        result.setdefault(package.kind, []).append(package)
    return result


def test_package_set(config, refs, targets, bytecode_dir):
    packages = PackageAssembler(config).assemble(refs, targets, bytecode_dir)

    assert [p.name for p in packages] == [
        "@acme/css-linux-x64-gnu",
        "@acme/css-win32-x64-msvc",
        "@acme/css-cli",
        "@acme/css-wasm",
        "@acme/css",
    ]
    assert all(p.version == "1.2.3" for p in packages)
    assert all(p.registry == "npm" for p in packages)


def test_target_manifest(config, refs, targets, bytecode_dir):
    packages = by_kind(PackageAssembler(config).assemble(refs, targets, bytecode_dir))
    linux = packages[PackageKind.TARGET][0]

    manifest = json.loads((linux.directory / "package.json").read_text())
    assert manifest == {
        "name": "@acme/css-linux-x64-gnu",
        "version": "1.2.3",
        "os": ["linux"],
        "cpu": ["x64"],
        "libc": ["glibc"],
        "main": "bindings-linux-x64-gnu.node",
        "files": ["bindings-linux-x64-gnu.node"],
    }
    assert (linux.directory / "bindings-linux-x64-gnu.node").read_bytes() == (
        b"native linux-x64-gnu"
    )
    assert linux.target_id == "linux-x64-gnu"


def test_aggregator_lists_every_target(config, refs, targets, bytecode_dir):
    packages = by_kind(PackageAssembler(config).assemble(refs, targets, bytecode_dir))
    [aggregator] = packages[PackageKind.AGGREGATOR]

    assert aggregator.manifest["optionalDependencies"] == {
        "@acme/css-linux-x64-gnu": "1.2.3",
        "@acme/css-win32-x64-msvc": "1.2.3",
    }
    assert not aggregator.payload_locations
    assert sorted(p.name for p in aggregator.directory.iterdir()) == ["package.json"]


def test_cli_package_holds_every_executable(config, refs, targets, bytecode_dir):
    packages = by_kind(PackageAssembler(config).assemble(refs, targets, bytecode_dir))
    [cli] = packages[PackageKind.CLI]

    assert (cli.directory / "bin" / "linux-x64-gnu" / "acme_css").read_bytes() == (
        b"cli linux-x64-gnu"
    )
    assert (cli.directory / "bin" / "win32-x64-msvc" / "acme_css.exe").is_file()


def test_cli_package_exposes_command(config, refs, targets, bytecode_dir):
    packages = by_kind(PackageAssembler(config).assemble(refs, targets, bytecode_dir))
    [cli] = packages[PackageKind.CLI]

    assert cli.manifest["bin"] == {"acme_css": "bin/acme_css.js"}
    launcher = (cli.directory / "bin" / "acme_css.js").read_text()
    assert launcher.startswith("#!/usr/bin/env node")
    assert '"path": "linux-x64-gnu/acme_css"' in launcher
    assert '"libc": "glibc"' in launcher
    assert '"path": "win32-x64-msvc/acme_css.exe"' in launcher


def test_bytecode_package_keeps_toolchain_fields(config, refs, targets, bytecode_dir):
    packages = by_kind(PackageAssembler(config).assemble(refs, targets, bytecode_dir))
    [wasm] = packages[PackageKind.BYTECODE]

    assert wasm.manifest["name"] == "@acme/css-wasm"
    assert wasm.manifest["module"] == "acme_css.js"
    assert wasm.manifest["files"] == ["acme_css_bg.wasm"]


def test_metadata_merged(make_config, refs, targets):
    from shipcat.core.config import PackagingConfig

    config = make_config(packaging=PackagingConfig(metadata={"license": "MPL-2.0"}))
    packages = PackageAssembler(config).assemble(refs, targets)

    assert all(p.manifest["license"] == "MPL-2.0" for p in packages)
    assert PackageKind.BYTECODE not in by_kind(packages)


def test_manifests_are_deterministic(config, refs, targets, bytecode_dir):
    """Assembling the same inputs twice gives byte-identical manifests."""
    assembler = PackageAssembler(config)

    first = {
        p.name: (p.directory / "package.json").read_bytes()
        for p in assembler.assemble(refs, targets, bytecode_dir)
    }
    second = {
        p.name: (p.directory / "package.json").read_bytes()
        for p in assembler.assemble(refs, targets, bytecode_dir)
    }

    assert first == second


def test_missing_artifact_is_an_error(config, refs, targets):
    refs = frozenset(
        r for r in refs
        if not (r.target_id == "win32-x64-msvc" and r.kind == ArtifactKind.EXECUTABLE)
    )
    with pytest.raises(AssemblyError, match="win32-x64-msvc: executable"):
        PackageAssembler(config).assemble(refs, targets)
