from __future__ import annotations

import itertools

import pytest

from chainboot.domain.install_plan import (
    EntryObservation,
    apply_action,
    classify_entry,
    next_action,
    plan_entry_actions,
)

ALL_OBSERVATIONS = [
    EntryObservation(live=live, staged=staged, backup=backup)
    for live, staged, backup in itertools.product((False, True), repeat=3)
]


@pytest.mark.parametrize(
    "observation, expected",
    [
        (EntryObservation(live=True, staged=False, backup=False), "live_only"),
        (EntryObservation(live=True, staged=True, backup=False), "live_and_staged"),
        (EntryObservation(live=True, staged=True, backup=True), "live_and_staged"),
        (EntryObservation(live=False, staged=True, backup=True), "backup_and_staged"),
        (EntryObservation(live=True, staged=False, backup=True), "live_only_new"),
        (EntryObservation(live=False, staged=True, backup=False), "staged_only"),
        (EntryObservation(live=False, staged=False, backup=False), "empty"),
    ],
)
def test_classify_entry_states(observation: EntryObservation, expected: str) -> None:
    assert classify_entry(observation) == expected


def test_full_sequence_discards_old_backup_first() -> None:
    start = EntryObservation(live=True, staged=True, backup=True)
    assert plan_entry_actions(start) == ("remove_backup", "backup_live", "promote_staged")


def test_fresh_data_dir_only_promotes() -> None:
    assert plan_entry_actions(EntryObservation(live=False, staged=True, backup=False)) == (
        "promote_staged",
    )


def test_live_only_is_never_moved_aside() -> None:
    assert next_action(EntryObservation(live=True, staged=False, backup=False)) is None


@pytest.mark.parametrize("observation", ALL_OBSERVATIONS)
def test_running_plan_twice_matches_running_once(observation: EntryObservation) -> None:
    once = observation
    for action in plan_entry_actions(once):
        once = apply_action(once, action)
    twice = once
    for action in plan_entry_actions(twice):
        twice = apply_action(twice, action)
    assert twice == once
    assert once.is_terminal


@pytest.mark.parametrize("observation", ALL_OBSERVATIONS)
def test_resuming_after_any_step_converges(observation: EntryObservation) -> None:
    actions = plan_entry_actions(observation)
    final = observation
    for action in actions:
        final = apply_action(final, action)
    for crash_after in range(len(actions)):
        resumed = observation
        for action in actions[:crash_after]:
            resumed = apply_action(resumed, action)
        for action in plan_entry_actions(resumed):
            resumed = apply_action(resumed, action)
        assert resumed == final
