"""Stage II: swap staged entries into the live data directory."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Sequence

from chainboot.domain.errors import BootstrapIOError
from chainboot.domain.install_plan import EntryAction, EntryObservation, next_action
from chainboot.domain.layout import REQUIRED_ENTRIES, DataDirLayout, backup_path
from chainboot.utils.fs import path_exists, remove_path, rename_path

from .merge_config import MergeConfig

log = logging.getLogger("chainboot.install")

ProgressFn = Callable[[str, int], None]


def _noop(*_: object, **__: object) -> None:
    """Default no-op progress callback."""


@dataclass
class InstallSnapshot:
    """Install the staged snapshot; return whether the config was merged.

    Each entry is driven by re-observing the disk and applying the next guarded
    action, so running this again after a crash converges to the same layout.
    A failing entry aborts the remaining ones without rollback.
    """

    layout: DataDirLayout
    merge_config: MergeConfig = field(default_factory=MergeConfig)
    required_entries: Sequence[str] = REQUIRED_ENTRIES
    on_progress: ProgressFn = _noop

    def __call__(self) -> bool:
        staging = self.layout.staging_dir
        if not staging.is_dir():
            raise BootstrapIOError(f"Path does not exist {staging}")

        total = len(self.required_entries)
        for index, name in enumerate(self.required_entries):
            self.on_progress(f"Installing {name}...", int(100 * index / max(total, 1)))
            self.install_entry(name)

        merged = self.merge_config(self.layout.live_config_path, self.layout.staged_config_path)

        for cached in self.layout.cached_peer_files():
            if remove_path(cached):
                log.info("Removed cached peer file %s", cached)

        remove_path(staging)
        remove_path(self.layout.archive_path)
        self.on_progress("Bootstrap installed", 100)
        log.info("Snapshot installed into %s (config merged=%s)", self.layout.data_dir, merged)
        return merged

    def observe(self, name: str) -> EntryObservation:
        live = self.layout.live_entry(name)
        return EntryObservation(
            live=path_exists(live),
            staged=path_exists(self.layout.staged_entry(name)),
            backup=path_exists(backup_path(live)),
        )

    def install_entry(self, name: str) -> EntryObservation:
        observation = self.observe(name)
        action = next_action(observation)
        while action is not None:
            self._perform(name, action)
            updated = self.observe(name)
            if updated == observation:
                raise BootstrapIOError(f"Install step {action} for {name} made no progress")
            observation = updated
            action = next_action(observation)
        log.debug("Entry %s settled in state %s", name, observation.state)
        return observation

    def _perform(self, name: str, action: EntryAction) -> None:
        live = self.layout.live_entry(name)
        backup = backup_path(live)
        log.info("Install %s: %s", name, action)
        if action == "remove_backup":
            remove_path(backup)
        elif action == "backup_live":
            rename_path(live, backup)
        elif action == "promote_staged":
            rename_path(self.layout.staged_entry(name), live)


__all__ = ["InstallSnapshot"]
