"""ZIP implementation of ``ArchivePort`` with path-traversal protection."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
import shutil
import zipfile

from chainboot.domain.errors import BootstrapIOError, FormatError

log = logging.getLogger("chainboot.zip_archive")


class ZipArchiveExtractor:
    """Extract snapshot archives without letting entries escape the destination."""

    def extract(self, archive: Path, destination: Path) -> None:
        """Extract ZIP safely and prevent path traversal or symlink escapes."""
        destination_root = destination.resolve()
        extracted = 0
        try:
            with zipfile.ZipFile(archive, "r") as bundle:
                for entry in bundle.infolist():
                    name = entry.filename.replace("\\", "/")
                    if not name:
                        continue
                    pure = PurePosixPath(name)
                    if pure.is_absolute() or any(part == ".." for part in pure.parts):
                        raise FormatError("Unsafe ZIP entry path detected", name)
                    mode = (entry.external_attr >> 16) & 0o170000
                    if mode == 0o120000:
                        raise FormatError("ZIP archive contains symlink entry", name)
                    target_path = destination / pure.as_posix()
                    resolved_target = target_path.resolve()
                    if destination_root not in (resolved_target, *resolved_target.parents):
                        raise FormatError("ZIP entry escaped extraction directory", name)
                    if entry.is_dir():
                        resolved_target.mkdir(parents=True, exist_ok=True)
                        continue
                    resolved_target.parent.mkdir(parents=True, exist_ok=True)
                    with bundle.open(entry, "r") as source, resolved_target.open("wb") as handle:
                        shutil.copyfileobj(source, handle)
                    extracted += 1
        except zipfile.BadZipFile as exc:
            raise FormatError(
                f"File {archive} is not a valid .zip archive",
                f"Could not open ZIP archive: {exc}",
            ) from exc
        except OSError as exc:
            raise BootstrapIOError(
                f"Zip extract from {archive} to {destination} failed with error: {exc}"
            ) from exc
        log.debug("Extracted %d files from %s into %s", extracted, archive, destination)


__all__ = ["ZipArchiveExtractor"]
