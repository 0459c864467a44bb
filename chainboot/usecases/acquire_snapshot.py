"""Use cases that obtain a local snapshot archive for stage I."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import time
from typing import Callable, Optional

from chainboot.domain.errors import (
    BootstrapError,
    BootstrapIOError,
    CancelledError,
    ConfigurationError,
    TransportError,
)
from chainboot.domain.layout import DataDirLayout
from chainboot.domain.ports import DownloadPort
from chainboot.utils.fs import human_readable_size, path_exists, remove_path, rename_path

log = logging.getLogger("chainboot.acquire")

ProgressFn = Callable[[str, int], None]
THROUGHPUT_SAMPLE_S = 5.0


def _noop(*_: object, **__: object) -> None:
    """Default no-op progress callback."""


@dataclass
class ThroughputMeter:
    """Sample instantaneous throughput roughly every ``interval_s`` seconds."""

    interval_s: float = THROUGHPUT_SAMPLE_S
    clock: Callable[[], float] = time.monotonic
    bytes_per_s: int = 0
    _mark_time: float = field(default=0.0, init=False)
    _mark_bytes: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._mark_time = self.clock()

    def update(self, received: int) -> int:
        now = self.clock()
        elapsed = now - self._mark_time
        if elapsed > self.interval_s:
            self.bytes_per_s = int((received - self._mark_bytes) / elapsed)
            self._mark_bytes = received
            self._mark_time = now
        return self.bytes_per_s


def download_percent(total: int, received: int, previous: int) -> int:
    """Return completion percentage, keeping ``previous`` while total is unknown."""
    if received > 0 and total > 0 and total >= received:
        return int(100 * received / total)
    return previous


@dataclass
class AcquireFromCloud:
    """Download the configured bootstrap archive into the data directory.

    The body is streamed into ``bootstrap.zip.tmp`` and renamed to
    ``bootstrap.zip`` only after a complete, successful transfer. Any failure or
    cancel removes the temporary file.
    """

    downloader: DownloadPort
    layout: DataDirLayout
    url: str
    is_cancelled: Callable[[], bool]
    on_progress: ProgressFn = _noop
    clock: Callable[[], float] = time.monotonic

    def __call__(self) -> Path:
        if not self.url:
            raise ConfigurationError(
                "Bootstrap URL is empty",
                "Configure a bootstrap URL for this network or use file mode.",
            )

        archive = self.layout.archive_path
        tmp_path = self.layout.archive_tmp_path
        for stale in (archive, tmp_path):
            if path_exists(stale):
                log.warning("Removing leftover download %s", stale)
                remove_path(stale)

        self.on_progress(f"Downloading {self.url}", 0)
        meter = ThroughputMeter(clock=self.clock)
        percent = 0

        def _progress(total: int, received: int) -> bool:
            nonlocal percent
            if self.is_cancelled():
                return False
            speed = meter.update(received)
            percent = download_percent(total, received, percent)
            self.on_progress(
                f"Downloading {human_readable_size(received)} ({human_readable_size(speed)}/s)",
                percent,
            )
            return True

        log.info("Downloading bootstrap archive %s -> %s", self.url, tmp_path)
        try:
            self.downloader.download_to_file(self.url, tmp_path, _progress)
        except CancelledError:
            self._discard(tmp_path)
            log.info("Bootstrap download cancelled, removed %s", tmp_path)
            raise
        except BootstrapError:
            self._discard(tmp_path)
            raise
        except Exception as exc:
            self._discard(tmp_path)
            raise TransportError(f"Download {self.url} failed with error: {exc}") from exc

        rename_path(tmp_path, archive)
        log.info("Bootstrap archive downloaded to %s", archive)
        return archive

    @staticmethod
    def _discard(tmp_path: Path) -> None:
        try:
            remove_path(tmp_path)
        except BootstrapIOError:
            log.exception("Failed to remove partial download %s", tmp_path)


@dataclass
class AcquireFromFile:
    """Accept a caller-supplied archive path; nothing is copied."""

    path: Optional[Path]

    def __call__(self) -> Path:
        if self.path is None or not str(self.path).strip():
            raise ConfigurationError(
                "Bootstrap file path is not selected",
                "Select a bootstrap .zip archive before starting.",
            )
        path = Path(self.path).expanduser()
        if not path.exists():
            raise BootstrapIOError(f"Path does not exist {path}")
        return path


__all__ = [
    "AcquireFromCloud",
    "AcquireFromFile",
    "THROUGHPUT_SAMPLE_S",
    "ThroughputMeter",
    "download_percent",
]
