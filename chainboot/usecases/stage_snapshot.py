"""Stage I tail: extract an acquired archive and mark it verified."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Callable

from chainboot.domain.errors import BootstrapIOError, FormatError
from chainboot.domain.layout import REQUIRED_ENTRIES, DataDirLayout
from chainboot.domain.network import NetworkParams
from chainboot.domain.ports import ArchivePort, BlockHashFn
from chainboot.utils.fs import path_exists, remove_path

from .verify_snapshot import (
    archive_digest,
    double_sha256,
    verify_completeness,
    verify_container,
    verify_network_identity,
)

log = logging.getLogger("chainboot.stage")

ProgressFn = Callable[[str, int], None]


def _noop(*_: object, **__: object) -> None:
    """Default no-op progress callback."""


@dataclass
class StageSnapshot:
    """Extract ``archive`` into the staging area and write the verified marker.

    A failure after extraction started leaves the partial staging directory in
    place. It has no marker, so it is never trusted for installation.
    """

    extractor: ArchivePort
    layout: DataDirLayout
    network: NetworkParams
    block_hash: BlockHashFn = double_sha256
    on_progress: ProgressFn = _noop
    manual_download_url: str = ""

    def __call__(self, archive: Path) -> str:
        if not archive.exists():
            raise BootstrapIOError(f"Path does not exist {archive}")

        try:
            verify_container(archive)
        except FormatError as exc:
            if self.manual_download_url:
                raise FormatError(
                    exc.message,
                    f"Try to download bootstrap file manually: {self.manual_download_url}.",
                ) from exc
            raise

        staging = self.layout.staging_dir
        self.on_progress(f"Unzipping {archive}...", 0)
        if path_exists(staging):
            log.warning("Removing previous staging directory %s", staging)
            remove_path(staging)
        try:
            staging.mkdir(parents=True)
        except OSError as exc:
            raise BootstrapIOError(f"Failed to create directory {staging}", str(exc)) from exc

        log.info("Extracting %s into %s", archive, staging)
        self.extractor.extract(archive, staging)

        self.on_progress(f"Verifying {archive}...", 100)
        # The identity check reads the primary entry, so that one is checked first;
        # a foreign genesis record then wins over any other missing entry.
        verify_completeness(staging, REQUIRED_ENTRIES[:1])
        verify_network_identity(staging, self.network, self.block_hash)
        verify_completeness(staging, REQUIRED_ENTRIES)

        digest = archive_digest(archive)
        marker = self.layout.marker_path
        try:
            marker.write_text(digest, encoding="ascii")
        except OSError as exc:
            raise BootstrapIOError(f"Failed to create file {marker}", str(exc)) from exc
        log.info("Snapshot staged and verified (sha256=%s)", digest)
        return digest


def read_marker(layout: DataDirLayout) -> str:
    """Return the digest stored in the verified marker, or ``""`` when absent."""
    marker = layout.marker_path
    if not marker.is_file():
        return ""
    try:
        return marker.read_text(encoding="ascii").strip()
    except OSError as exc:
        raise BootstrapIOError(f"Failed to open path {marker}", str(exc)) from exc


__all__ = ["StageSnapshot", "read_marker"]
