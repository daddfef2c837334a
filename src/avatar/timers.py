"""
채널별 linger(감쇠) 타이머.

스케줄러는 asyncio 이벤트 루프처럼 call_later(delay, callback) → handle(.cancel()) 를 제공하면 됨.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Hashable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class DecayTimer:
    """대기 중인 카운트다운은 최대 1개. arm() 은 이전 것을 취소하고 처음부터 다시 셈."""

    def __init__(self, scheduler: Scheduler, delay_ms: int, on_expire: Callable[[], None], name: str = ""):
        self._scheduler = scheduler
        self.delay_ms = delay_ms
        self._on_expire = on_expire
        self.name = name
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        self.cancel()
        self._handle = self._scheduler.call_later(self.delay_ms / 1000.0, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        logger.debug("decay 만료: %s", self.name)
        self._on_expire()


class TimerSlots:
    """식별자(키 코드 등)마다 DecayTimer 하나. 만료 콜백에 식별자를 넘김."""

    def __init__(self, scheduler: Scheduler, delay_ms: int, on_expire: Callable[[Hashable], None], name: str = ""):
        self._scheduler = scheduler
        self.delay_ms = delay_ms
        self._on_expire = on_expire
        self.name = name
        self._slots: Dict[Hashable, DecayTimer] = {}

    def _slot(self, key: Hashable) -> DecayTimer:
        timer = self._slots.get(key)
        if timer is None:
            timer = DecayTimer(
                self._scheduler,
                self.delay_ms,
                lambda: self._on_expire(key),
                name=f"{self.name}:{key}",
            )
            self._slots[key] = timer
        return timer

    def arm(self, key: Hashable) -> None:
        self._slot(key).arm()

    def cancel(self, key: Hashable) -> None:
        timer = self._slots.get(key)
        if timer is not None:
            timer.cancel()

    def pending(self, key: Hashable) -> bool:
        timer = self._slots.get(key)
        return timer is not None and timer.pending

    def cancel_all(self) -> None:
        for timer in self._slots.values():
            timer.cancel()
