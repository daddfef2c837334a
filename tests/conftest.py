from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable

import pytest

from src.avatar.config import OverlayConfig
from src.avatar.engine import AvatarEngine


class _Handle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """call_later 만 흉내내는 수동 시계. advance() 로 시간을 진행시켜 만료 콜백을 순서대로 실행."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, _Handle]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _Handle:
        handle = _Handle(self.now + delay, callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, when)
            handle.callback(*handle.args)
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def config() -> OverlayConfig:
    return OverlayConfig().validate()


@pytest.fixture
def engine(config: OverlayConfig, scheduler: ManualScheduler) -> AvatarEngine:
    eng = AvatarEngine(config, scheduler=scheduler)
    eng.start()
    return eng
