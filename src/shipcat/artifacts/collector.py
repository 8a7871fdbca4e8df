"""Artifact collector: the store shared by all build jobs."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path

from shipcat.core.errors import CollectionError
from shipcat.core.log import logger
from shipcat.state import (
    ArtifactKind,
    ArtifactRef,
    BuildJob,
    JobStatus,
    binding_name,
)


class ArtifactCollector:
    """Append-only artifact store keyed by target id.

    Layout: <root>/<target_id>/<file>. Build jobs store() from worker
    threads and report completion with mark_terminal(); fetch_all()
    is the fan-in barrier the later stages wait on.
    """

    def __init__(self, root: Path):
        self.root = root
        self._refs: dict[tuple[str, ArtifactKind], ArtifactRef] = {}
        self._jobs: dict[str, BuildJob] = {}
        self._cond = threading.Condition()

    def register(self, jobs: Iterable[BuildJob]) -> None:
        """Declare the jobs the release depends on."""
        with self._cond:
            for job in jobs:
                self._jobs[job.target_id] = job

    def store(
        self,
        target_id: str,
        kind: ArtifactKind,
        data: bytes,
        filename: str | None = None,
    ) -> ArtifactRef:
        """Write one artifact and return its reference.

        Native bindings are named bindings-<target_id>; executables
        keep their bare file name.

        Raises:
            CollectionError: If this target already stored an artifact
                of this kind
        """
        if kind == ArtifactKind.NATIVE_BINDING:
            name = binding_name(target_id)
        else:
            name = filename
        if not name:
            raise CollectionError(
                f"[{target_id}] {kind.value} needs a file name"
            )
        filename = filename or name

        with self._cond:
            if (target_id, kind) in self._refs:
                raise CollectionError(
                    f"[{target_id}] {kind.value} artifact already stored"
                )
            location = self.root / target_id / filename
            location.parent.mkdir(parents=True, exist_ok=True)
            location.write_bytes(data)
            ref = ArtifactRef(
                target_id=target_id,
                kind=kind,
                name=name,
                storage_location=location,
            )
            self._refs[(target_id, kind)] = ref

        logger.debug(
            "Stored {name}", name=name, target=target_id, size=len(data)
        )
        return ref

    def mark_terminal(self, job: BuildJob) -> None:
        """Wake fetch_all() once a job has finished either way."""
        with self._cond:
            self._jobs[job.target_id] = job
            self._cond.notify_all()

    def _all_terminal(self) -> bool:
        return all(job.status.terminal for job in self._jobs.values())

    def fetch_all(self, timeout: float | None = None) -> frozenset[ArtifactRef]:
        """Wait for every registered job, then return their artifacts.

        Fails closed: if any job failed nothing is returned.

        Raises:
            CollectionError: If a job failed, or timeout expired first
        """
        with self._cond:
            if not self._cond.wait_for(self._all_terminal, timeout=timeout):
                pending = sorted(
                    tid for tid, job in self._jobs.items()
                    if not job.status.terminal
                )
                raise CollectionError(
                    f"timed out waiting for: {', '.join(pending)}"
                )

            failed = {
                tid: job.error for tid, job in sorted(self._jobs.items())
                if job.status != JobStatus.SUCCEEDED
            }
            if failed:
                details = "\n  ".join(
                    f"{tid}: {error}" for tid, error in failed.items()
                )
                raise CollectionError(
                    f"{len(failed)} of {len(self._jobs)} build jobs failed:"
                    f"\n  {details}"
                )

            refs = frozenset(
                ref for (tid, _), ref in self._refs.items()
                if tid in self._jobs
            )

        logger.info("Collected {count} artifacts", count=len(refs))
        return refs

    def refs_for(self, target_id: str) -> list[ArtifactRef]:
        """Artifacts stored so far for one target."""
        with self._cond:
            return sorted(
                (ref for (tid, _), ref in self._refs.items() if tid == target_id),
                key=lambda ref: ref.kind.value,
            )
