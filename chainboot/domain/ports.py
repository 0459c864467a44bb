from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol

# (total_bytes, received_bytes) -> keep going; total is 0 while unknown.
TransferProgressFn = Callable[[int, int], bool]

# Digest primitive for the 80-byte block header; returns the raw 32-byte hash.
BlockHashFn = Callable[[bytes], bytes]


# ---- Ports (Hexagonal boundaries) ----
class DownloadPort(Protocol):
    """Stream a remote snapshot archive into a local file."""

    def download_to_file(
        self, url: str, target: Path, progress: TransferProgressFn
    ) -> None: ...  # raises TransportError / CancelledError


class ArchivePort(Protocol):
    """Unpack a snapshot archive into an existing directory."""

    def extract(self, archive: Path, destination: Path) -> None: ...  # raises FormatError
