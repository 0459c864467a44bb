"""Fold a staged node configuration file into the live one."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import shutil
from typing import List, Sequence

from chainboot.domain.errors import BootstrapIOError
from chainboot.domain.layout import EXCLUDED_CONFIG_DIRECTIVE, backup_path
from chainboot.utils.fs import path_exists, remove_path

log = logging.getLogger("chainboot.merge_config")

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def _read_lines(path: Path) -> List[str]:
    """Split on ``\\n`` only; ``\\r`` and other control characters stay in the line."""
    try:
        with path.open("r", encoding=_ENCODING, errors=_ERRORS, newline="") as handle:
            text = handle.read()
    except OSError as exc:
        raise BootstrapIOError(f"Failed to open path {path}", str(exc)) from exc
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def _write_lines(path: Path, lines: Sequence[str]) -> None:
    text = "".join(f"{line}\n" for line in lines)
    with path.open("w", encoding=_ENCODING, errors=_ERRORS, newline="") as handle:
        handle.write(text)


@dataclass
class MergeConfig:
    """Merge ``staged`` into ``live``; return whether the live file changed.

    Lines are copied as text, keys are not parsed or deduplicated. Every live
    line mentioning ``excluded_directive`` is dropped so that peer hints from
    the snapshot replace the old ones.
    """

    excluded_directive: str = EXCLUDED_CONFIG_DIRECTIVE

    @staticmethod
    def merge_lines(
        live_lines: Sequence[str],
        staged_lines: Sequence[str],
        excluded: str = EXCLUDED_CONFIG_DIRECTIVE,
    ) -> List[str]:
        kept = [line for line in live_lines if excluded not in line]
        return kept + list(staged_lines)

    def __call__(self, live: Path, staged: Path) -> bool:
        if not staged.is_file():
            log.debug("No staged config at %s, nothing to merge", staged)
            return False

        if not path_exists(live):
            try:
                shutil.copyfile(staged, live)
            except OSError as exc:
                raise BootstrapIOError(f"Failed to copy {staged} to {live}", str(exc)) from exc
            log.info("Copied staged config to %s", live)
            return True

        merged = self.merge_lines(
            _read_lines(live), _read_lines(staged), self.excluded_directive
        )
        backup = backup_path(live)
        remove_path(backup)
        try:
            shutil.copy2(live, backup)
        except OSError as exc:
            raise BootstrapIOError(f"Failed to copy {live} to {backup}", str(exc)) from exc

        try:
            _write_lines(live, merged)
        except OSError as exc:
            log.error("Writing merged config %s failed, restoring backup", live)
            try:
                shutil.copy2(backup, live)
            except OSError:
                log.exception("Failed to restore %s from %s", live, backup)
            raise BootstrapIOError(f"Failed to write {live}", str(exc)) from exc
        log.info("Merged staged config into %s (%d lines)", live, len(merged))
        return True


__all__ = ["MergeConfig"]
