"""우선순위 테이블로 세 채널 상태 중 하나를 고름."""

from __future__ import annotations

from typing import Iterable, Mapping

from src.avatar.models import IDLE


def priority_of(state: str, priority: Mapping[str, int]) -> int:
    """테이블에 없는 상태는 0 (idle 과 같음)."""
    return priority.get(state, 0)


def resolve_state(candidates: Iterable[str], priority: Mapping[str, int]) -> str:
    """
    후보를 [voice, keys, mouse] 순서로 보면서 우선순위가 '더 큰' 것만 채택.
    동점이면 먼저 본 상태가 유지됨.
    """
    best = IDLE
    best_pri = -1
    for state in candidates:
        pri = priority_of(state, priority)
        if pri > best_pri:
            best_pri = pri
            best = state
    return best
