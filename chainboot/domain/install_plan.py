"""Per-entry swap state machine used when installing a staged snapshot.

Every live-data-set entry moves through the same guarded sequence::

    LIVE_AND_STAGED --remove_backup?--> LIVE_AND_STAGED (no backup)
    LIVE_AND_STAGED --backup_live-----> BACKUP_AND_STAGED
    BACKUP_AND_STAGED --promote_staged--> LIVE_ONLY_NEW

The state is derived only from what exists on disk, so a crash between any two
actions is resumed by observing the entry again and asking for the next action.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional, Tuple

EntryState = Literal[
    "empty",
    "live_only",
    "staged_only",
    "live_and_staged",
    "backup_and_staged",
    "live_only_new",
]
EntryAction = Literal["remove_backup", "backup_live", "promote_staged"]

TERMINAL_STATES = {"empty", "live_only", "live_only_new"}


@dataclass(frozen=True)
class EntryObservation:
    """Presence of the live, staged and backup copies of one entry."""

    live: bool
    staged: bool
    backup: bool

    @property
    def state(self) -> EntryState:
        return classify_entry(self)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


def classify_entry(observation: EntryObservation) -> EntryState:
    """Map raw presence flags to a named swap state."""
    if observation.staged:
        if observation.live:
            return "live_and_staged"
        if observation.backup:
            return "backup_and_staged"
        return "staged_only"
    if observation.live:
        return "live_only_new" if observation.backup else "live_only"
    return "empty"


def next_action(observation: EntryObservation) -> Optional[EntryAction]:
    """Return the single guarded action that applies now, or ``None`` when settled."""
    state = observation.state
    if state == "live_and_staged":
        # Never hold more than one backup generation.
        return "remove_backup" if observation.backup else "backup_live"
    if state in ("backup_and_staged", "staged_only"):
        return "promote_staged"
    return None


def apply_action(observation: EntryObservation, action: EntryAction) -> EntryObservation:
    """Return the observation expected after ``action`` succeeds."""
    if action == "remove_backup":
        return replace(observation, backup=False)
    if action == "backup_live":
        return replace(observation, live=False, backup=True)
    if action == "promote_staged":
        return replace(observation, live=True, staged=False)
    raise ValueError(f"Unknown install action: {action}")


def plan_entry_actions(observation: EntryObservation) -> Tuple[EntryAction, ...]:
    """Return the remaining actions that take ``observation`` to a settled state."""
    actions = []
    current = observation
    action = next_action(current)
    while action is not None:
        actions.append(action)
        current = apply_action(current, action)
        action = next_action(current)
    return tuple(actions)


__all__ = [
    "EntryAction",
    "EntryObservation",
    "EntryState",
    "TERMINAL_STATES",
    "apply_action",
    "classify_entry",
    "next_action",
    "plan_entry_actions",
]
