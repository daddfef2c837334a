from __future__ import annotations

import itertools

import pytest

from src.avatar.config import DEFAULT_PRIORITY
from src.avatar.priority import priority_of, resolve_state

STATES = list(DEFAULT_PRIORITY)


@pytest.mark.parametrize(
    ("voice", "keys", "mouse", "expected"),
    [
        ("idle", "idle", "idle", "idle"),
        ("talk", "idle", "idle", "talk"),
        ("idle", "wasd", "idle", "wasd"),
        ("idle", "idle", "mouse", "mouse"),
        ("scream", "idle", "idle", "scream"),
        ("talk", "wasd", "idle", "wasd"),
        ("talk", "idle", "mouse", "mouse"),
        ("talk", "wasd", "mouse", "mouse"),
        ("scream", "wasd", "mouse", "scream"),
        ("idle", "wasd", "mouse", "mouse"),
    ],
)
def test_resolve_default_table(voice: str, keys: str, mouse: str, expected: str) -> None:
    assert resolve_state((voice, keys, mouse), DEFAULT_PRIORITY) == expected


def test_resolve_matches_strict_argmax_for_all_combinations() -> None:
    for combo in itertools.product(STATES, repeat=3):
        best = max(DEFAULT_PRIORITY[s] for s in combo)
        # 동점이면 평가 순서상 첫 번째
        expected = next(s for s in combo if DEFAULT_PRIORITY[s] == best)
        assert resolve_state(combo, DEFAULT_PRIORITY) == expected


def test_equal_priority_keeps_first_in_evaluation_order() -> None:
    table = {"idle": 0, "talk": 2, "wasd": 2, "mouse": 2}
    assert resolve_state(("talk", "wasd", "mouse"), table) == "talk"
    assert resolve_state(("idle", "wasd", "mouse"), table) == "wasd"
    assert resolve_state(("idle", "idle", "mouse"), table) == "mouse"


def test_unknown_state_counts_as_zero() -> None:
    assert priority_of("dance", DEFAULT_PRIORITY) == 0
    assert resolve_state(("dance", "talk", "idle"), DEFAULT_PRIORITY) == "talk"
    # idle 과 동점이면 먼저 나온 쪽
    assert resolve_state(("idle", "dance", "idle"), DEFAULT_PRIORITY) == "idle"
