"""Filesystem helpers shared by the bootstrap use cases."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
import shutil

from chainboot.domain.errors import BootstrapIOError


def path_exists(path: Path) -> bool:
    """Return whether ``path`` exists, counting dangling symlinks as present."""
    return os.path.lexists(path)


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree; return whether anything was removed."""
    if not path_exists(path):
        return False
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        raise BootstrapIOError(f"Failed to remove {path}", str(exc)) from exc
    return True


def rename_path(source: Path, target: Path) -> None:
    """Rename ``source`` to ``target`` on the same filesystem."""
    try:
        os.replace(source, target)
    except OSError as exc:
        raise BootstrapIOError(f"Failed to rename {source} to {target}", str(exc)) from exc


def free_space_bytes(path: Path) -> int:
    """Return bytes available to the current user on the filesystem of ``path``."""
    return shutil.disk_usage(path).free


def compute_file_sha256(path: Path) -> str:
    """Compute SHA256 hash for one file."""
    digest = hashlib.sha256()
    try:
        with path.open("rb") as handle:
            while True:
                chunk = handle.read(1024 * 1024)
                if not chunk:
                    break
                digest.update(chunk)
    except OSError as exc:
        raise BootstrapIOError(f"Failed to open path {path}", str(exc)) from exc
    return digest.hexdigest()


def human_readable_size(size: float) -> str:
    """Format a byte count with binary units, e.g. ``12.3 MiB``."""
    units = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")
    value = float(max(0, size))
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if index == 0:
        return f"{int(value)} B"
    return f"{value:.1f} {units[index]}"


__all__ = [
    "compute_file_sha256",
    "free_space_bytes",
    "human_readable_size",
    "path_exists",
    "remove_path",
    "rename_path",
]
