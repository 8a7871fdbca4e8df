"""Package assembler: turn collected artifacts into npm packages."""

from __future__ import annotations

import json
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from shipcat.core.errors import AssemblyError
from shipcat.core.log import logger
from shipcat.matrix.platform import describe_platform
from shipcat.state import (
    ArtifactKind,
    ArtifactRef,
    Package,
    PackageKind,
    TargetDescriptor,
)

NPM_REGISTRY = "npm"
MANIFEST = "package.json"

# Node entry point of the CLI package: runs the executable built for
# the current platform. __BINARIES__ is replaced with a JSON list.
LAUNCHER = """#!/usr/bin/env node
const { spawnSync } = require('child_process');
const path = require('path');

const binaries = __BINARIES__;

function libc() {
  if (process.platform !== 'linux') return null;
  const report = process.report.getReport();
  const header = (typeof report === 'string' ? JSON.parse(report) : report).header;
  return header.glibcVersionRuntime ? 'glibc' : 'musl';
}

const match = binaries.find(
  (b) => b.os === process.platform && b.cpu === process.arch &&
    (!b.libc || b.libc === libc())
);
if (!match) {
  console.error(`no executable for ${process.platform}-${process.arch}`);
  process.exit(1);
}
const result = spawnSync(
  path.join(__dirname, match.path), process.argv.slice(2), { stdio: 'inherit' }
);
process.exit(result.status === null ? 1 : result.status);
"""


def write_manifest(directory: Path, manifest: dict[str, Any]) -> Path:
    """Write package.json with sorted keys so equal input gives equal bytes."""
    path = directory / MANIFEST
    path.write_text(json.dumps(manifest, sort_keys=True, indent=2) + "\n")
    return path


def _fresh_dir(path: Path) -> Path:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


class PackageAssembler:
    """Lays out the per-target, aggregator, CLI and bytecode packages.

    Layout under packaging.output_dir:

        targets/<target_id>/   one per target, holds the native binding
        main/                  aggregator, metadata only
        cli/bin/<target_id>/   every executable
        wasm/                  bytecode build output
    """

    def __init__(self, config):
        self.config = config
        self.name = config.project.name
        self.version = config.project.version
        self.output_dir = config.resolve_path(config.packaging.output_dir)

    def assemble(
        self,
        refs: Iterable[ArtifactRef],
        targets: Sequence[TargetDescriptor],
        bytecode_dir: Path | None = None,
    ) -> list[Package]:
        """Assemble every package of the release.

        Args:
            refs: Collected artifacts (the result of fetch_all)
            targets: Declared matrix; every entry needs both artifacts
            bytecode_dir: Bytecode build output, or None to skip that package

        Raises:
            AssemblyError: If a declared target lacks an artifact
        """
        by_target = self._index(refs, targets)

        with logger.span("assemble packages"):
            per_target = [
                self._target_package(target, by_target[target.id])
                for target in sorted(targets, key=lambda t: t.id)
            ]
            packages = list(per_target)
            packages.append(self._cli_package(targets, by_target))
            if bytecode_dir is not None:
                packages.append(self._bytecode_package(bytecode_dir))
            packages.append(self._aggregator_package(per_target))

        logger.info(
            "Assembled {count} packages in {output}",
            count=len(packages),
            output=str(self.output_dir),
        )
        return packages

    def _index(
        self,
        refs: Iterable[ArtifactRef],
        targets: Sequence[TargetDescriptor],
    ) -> dict[str, dict[ArtifactKind, ArtifactRef]]:
        by_target: dict[str, dict[ArtifactKind, ArtifactRef]] = {
            t.id: {} for t in targets
        }
        for ref in refs:
            if ref.target_id not in by_target:
                logger.warn(
                    "Ignoring artifact {name} of undeclared target {target}",
                    name=ref.name,
                    target=ref.target_id,
                )
                continue
            by_target[ref.target_id][ref.kind] = ref

        missing = [
            f"{tid}: {kind.value}"
            for tid, kinds in sorted(by_target.items())
            for kind in ArtifactKind
            if kind not in kinds
        ]
        if missing:
            raise AssemblyError(
                "missing artifacts:\n  " + "\n  ".join(missing)
            )
        return by_target

    def _manifest(self, name: str, **fields: Any) -> dict[str, Any]:
        return {
            **self.config.packaging.metadata,
            "name": name,
            "version": self.version,
            **fields,
        }

    def _target_package(
        self,
        target: TargetDescriptor,
        artifacts: dict[ArtifactKind, ArtifactRef],
    ) -> Package:
        binding = artifacts[ArtifactKind.NATIVE_BINDING]
        platform = describe_platform(target.triple)
        directory = _fresh_dir(self.output_dir / "targets" / target.id)

        filename = binding.storage_location.name
        payload = directory / filename
        shutil.copyfile(binding.storage_location, payload)

        fields: dict[str, Any] = {
            "os": [platform.os],
            "cpu": [platform.cpu],
            "main": filename,
            "files": [filename],
        }
        if platform.libc:
            fields["libc"] = [platform.libc]

        name = f"{self.name}-{target.id}"
        manifest = self._manifest(name, **fields)
        write_manifest(directory, manifest)
        return Package(
            name=name,
            version=self.version,
            kind=PackageKind.TARGET,
            registry=NPM_REGISTRY,
            directory=directory,
            target_id=target.id,
            payload_locations=(payload,),
            manifest=manifest,
        )

    def _aggregator_package(self, per_target: list[Package]) -> Package:
        directory = _fresh_dir(self.output_dir / "main")
        manifest = self._manifest(
            self.name,
            optionalDependencies={p.name: self.version for p in per_target},
        )
        write_manifest(directory, manifest)
        return Package(
            name=self.name,
            version=self.version,
            kind=PackageKind.AGGREGATOR,
            registry=NPM_REGISTRY,
            directory=directory,
            manifest=manifest,
        )

    def _cli_package(
        self,
        targets: Sequence[TargetDescriptor],
        by_target: dict[str, dict[ArtifactKind, ArtifactRef]],
    ) -> Package:
        directory = _fresh_dir(self.output_dir / "cli")
        payloads = []
        binaries = []
        for target in sorted(targets, key=lambda t: t.id):
            executable = by_target[target.id][ArtifactKind.EXECUTABLE]
            dest = directory / "bin" / target.id / executable.name
            dest.parent.mkdir(parents=True)
            shutil.copyfile(executable.storage_location, dest)
            dest.chmod(0o755)
            payloads.append(dest)

            platform = describe_platform(target.triple)
            binaries.append({
                "os": platform.os,
                "cpu": platform.cpu,
                "libc": platform.libc,
                "path": f"{target.id}/{executable.name}",
            })

        command = self.config.build.cli_binary
        launcher = directory / "bin" / f"{command}.js"
        launcher.parent.mkdir(exist_ok=True)
        launcher.write_text(
            LAUNCHER.replace(
                "__BINARIES__", json.dumps(binaries, sort_keys=True, indent=2)
            )
        )
        launcher.chmod(0o755)

        name = f"{self.name}-cli"
        manifest = self._manifest(
            name, files=["bin"], bin={command: f"bin/{command}.js"}
        )
        write_manifest(directory, manifest)
        return Package(
            name=name,
            version=self.version,
            kind=PackageKind.CLI,
            registry=NPM_REGISTRY,
            directory=directory,
            payload_locations=tuple(payloads),
            manifest=manifest,
        )

    def _bytecode_package(self, bytecode_dir: Path) -> Package:
        if not bytecode_dir.is_dir():
            raise AssemblyError(f"bytecode output {bytecode_dir} is missing")

        directory = self.output_dir / "wasm"
        if directory.exists():
            shutil.rmtree(directory)
        shutil.copytree(bytecode_dir, directory)

        # Keep fields the bytecode toolchain wrote (module, types, ...)
        existing: dict[str, Any] = {}
        generated = directory / MANIFEST
        if generated.is_file():
            existing = json.loads(generated.read_text())
            generated.unlink()

        payloads = sorted(p for p in directory.rglob("*") if p.is_file())
        name = f"{self.name}-wasm"
        manifest = {
            **existing,
            **self._manifest(
                name,
                files=[p.relative_to(directory).as_posix() for p in payloads],
            ),
        }
        write_manifest(directory, manifest)
        return Package(
            name=name,
            version=self.version,
            kind=PackageKind.BYTECODE,
            registry=NPM_REGISTRY,
            directory=directory,
            payload_locations=tuple(payloads),
            manifest=manifest,
        )
