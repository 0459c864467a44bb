"""Typed run-state objects for the bootstrap orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple

BootstrapMode = Literal["cloud", "file"]
BootstrapStage = Literal["stage_one", "stage_two"]

BOOTSTRAP_MODES: Tuple[str, ...] = ("cloud", "file")

# (ok, message) returned by every public command instead of raising.
CommandResult = Tuple[bool, str]


def coerce_mode(value: Any) -> BootstrapMode:
    """Normalize a mode value and reject unknown modes."""
    text = str(value or "").strip().lower()
    if text not in BOOTSTRAP_MODES:
        raise ValueError(f"Unsupported bootstrap mode: {value!r}")
    return text  # type: ignore[return-value]


@dataclass
class RunState:
    """Mutable per-run state, reset at the start of every run."""

    progress: int = 0
    status_text: str = ""
    cancel_requested: bool = False
    config_merged: bool = False
    last_error: str = ""
    stage: Optional[BootstrapStage] = None

    def reset(self, stage: BootstrapStage) -> None:
        self.progress = 0
        self.status_text = ""
        self.cancel_requested = False
        self.config_merged = False
        self.last_error = ""
        self.stage = stage


@dataclass(frozen=True)
class BootstrapStatus:
    """Read-only snapshot of orchestrator state for front-ends."""

    mode: BootstrapMode
    file_path: str
    running: bool
    stage: Optional[BootstrapStage]
    progress: int
    status_text: str
    cancelled: bool
    config_merged: bool
    install_prepared: bool
    last_error: str

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable snapshot."""
        return {
            "mode": self.mode,
            "file_path": self.file_path,
            "running": self.running,
            "stage": self.stage,
            "progress": self.progress,
            "status_text": self.status_text,
            "cancelled": self.cancelled,
            "config_merged": self.config_merged,
            "install_prepared": self.install_prepared,
            "last_error": self.last_error,
        }


__all__ = [
    "BOOTSTRAP_MODES",
    "BootstrapMode",
    "BootstrapStage",
    "BootstrapStatus",
    "CommandResult",
    "RunState",
    "coerce_mode",
]
