"""
입력 채널별 상태 추적 (voice / keys / mouse).

각 채널은 원하는 상태(state) 하나만 가지며, 바뀔 때마다 on_change() 로 엔진에 재계산을 요청함.
핸들러 1회 호출당 on_change 는 정확히 1번.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Callable, Hashable

from src.avatar.models import IDLE, MOUSE, MOUSE_BUTTONS, MOVEMENT_KEYS, WASD
from src.avatar.timers import DecayTimer, Scheduler, TimerSlots

logger = logging.getLogger(__name__)


class VoiceChannel:
    """마이크: talk/scream 은 임계값 넘을 때마다 들어오고, 조용해지면 linger 후 idle."""

    name = "voice"

    def __init__(self, scheduler: Scheduler, linger_ms: int, on_change: Callable[[], None]):
        self.state = IDLE
        self._on_change = on_change
        self._timer = DecayTimer(scheduler, linger_ms, self._decay, name="voice")

    def set_state(self, state: str) -> None:
        self.state = state
        self._on_change()
        self._timer.arm()

    def _decay(self) -> None:
        self.state = IDLE
        self._on_change()

    def cancel(self) -> None:
        self._timer.cancel()


class KeysChannel:
    """
    이동 키(WASD). 네 키 모두 'wasd' 상태 하나로 묶음.
    뗀 키는 바로 빼지 않고 키별 linger 만료 시 held 에서 제거 → 다른 키가 눌려 있으면 wasd 유지.
    """

    name = "keys"

    def __init__(
        self,
        scheduler: Scheduler,
        linger_ms: int,
        on_change: Callable[[], None],
        accepted: AbstractSet[str] = MOVEMENT_KEYS,
    ):
        self.state = IDLE
        self.held: set[str] = set()
        self.accepted = frozenset(accepted)
        self._on_change = on_change
        self._timers = TimerSlots(scheduler, linger_ms, self._decay, name="key")

    def trigger(self, code: str) -> bool:
        if code not in self.accepted:
            return False
        self.held.add(code)
        self._timers.cancel(code)
        self.state = WASD
        self._on_change()
        return True

    def release(self, code: str) -> bool:
        if code not in self.accepted:
            return False
        self._timers.arm(code)
        return True

    def _decay(self, code: Hashable) -> None:
        self.held.discard(code)
        self.state = WASD if self.held else IDLE
        self._on_change()

    def cancel(self) -> None:
        self._timers.cancel_all()


class MouseChannel:
    """왼쪽/옆 버튼 클릭 → 'mouse'. 떼면 linger 타이머만 다시 걸고 상태는 만료 때 idle."""

    name = "mouse"

    def __init__(
        self,
        scheduler: Scheduler,
        linger_ms: int,
        on_change: Callable[[], None],
        accepted: AbstractSet[int] = MOUSE_BUTTONS,
    ):
        self.state = IDLE
        self.accepted = frozenset(accepted)
        self._on_change = on_change
        self._timer = DecayTimer(scheduler, linger_ms, self._decay, name="mouse")

    def _accepts(self, button: object) -> bool:
        # bool 은 int 의 하위 타입이라 False == 0 으로 통과하는 것 방지
        return isinstance(button, int) and not isinstance(button, bool) and button in self.accepted

    def trigger(self, button: int) -> bool:
        if not self._accepts(button):
            return False
        self.state = MOUSE
        self._on_change()
        self._timer.arm()
        return True

    def release(self, button: int) -> bool:
        if not self._accepts(button):
            return False
        self._timer.arm()
        return True

    def _decay(self) -> None:
        self.state = IDLE
        self._on_change()

    def cancel(self) -> None:
        self._timer.cancel()
