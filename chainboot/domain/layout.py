"""Fixed on-disk names used by the bootstrap workflow inside a data directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

ARCHIVE_NAME = "bootstrap.zip"
STAGING_DIR_NAME = "bootstrap"
MARKER_NAME = "verified"
TMP_SUFFIX = ".tmp"
BACKUP_SUFFIX = ".bak"
REQUIRED_ENTRIES: Tuple[str, ...] = ("blocks", "chainstate")
FIRST_BLOCK_FILE = "blk00000.dat"
DEFAULT_CONFIG_NAME = "chainboot.conf"
CACHED_PEER_FILES: Tuple[str, ...] = ("peers.dat", "banlist.dat")
EXCLUDED_CONFIG_DIRECTIVE = "addnode"


@dataclass(frozen=True)
class DataDirLayout:
    """Resolve every bootstrap path relative to one node data directory."""

    data_dir: Path
    config_name: str = DEFAULT_CONFIG_NAME
    live_config_override: Optional[Path] = None

    @property
    def archive_path(self) -> Path:
        return self.data_dir / ARCHIVE_NAME

    @property
    def archive_tmp_path(self) -> Path:
        return self.data_dir / f"{ARCHIVE_NAME}{TMP_SUFFIX}"

    @property
    def staging_dir(self) -> Path:
        return self.data_dir / STAGING_DIR_NAME

    @property
    def marker_path(self) -> Path:
        return self.staging_dir / MARKER_NAME

    @property
    def live_config_path(self) -> Path:
        if self.live_config_override is not None:
            return Path(self.live_config_override)
        return self.data_dir / self.config_name

    @property
    def staged_config_path(self) -> Path:
        return self.staging_dir / self.config_name

    def live_entry(self, name: str) -> Path:
        return self.data_dir / name

    def staged_entry(self, name: str) -> Path:
        return self.staging_dir / name

    def cached_peer_files(self) -> Tuple[Path, ...]:
        return tuple(self.data_dir / name for name in CACHED_PEER_FILES)


def backup_path(path: Path) -> Path:
    """Return the one-generation ``<name>.bak`` sibling of ``path``."""
    return path.with_name(f"{path.name}{BACKUP_SUFFIX}")


__all__ = [
    "ARCHIVE_NAME",
    "BACKUP_SUFFIX",
    "CACHED_PEER_FILES",
    "DEFAULT_CONFIG_NAME",
    "DataDirLayout",
    "EXCLUDED_CONFIG_DIRECTIVE",
    "FIRST_BLOCK_FILE",
    "MARKER_NAME",
    "REQUIRED_ENTRIES",
    "STAGING_DIR_NAME",
    "TMP_SUFFIX",
    "backup_path",
]
