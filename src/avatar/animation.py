"""
스프라이트 표시/프레임 애니메이션.

프레임이 2개 이상인 상태는 상태별 간격으로 순환, 1개면 정지 이미지.
동시에 돌아가는 순환은 최대 1개.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from src.avatar.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

FrameSink = Callable[[str], None]


class SpriteAnimator:
    def __init__(
        self,
        scheduler: Scheduler,
        sprites: Mapping[str, tuple[str, ...]],
        interval_ms: Callable[[str], int],
        on_frame: Optional[FrameSink] = None,
    ):
        self._scheduler = scheduler
        self._sprites = sprites
        self._interval_ms = interval_ms
        self._on_frame = on_frame
        self._handle: Optional[TimerHandle] = None
        self._frames: tuple[str, ...] = ()
        self._delay = 0.0
        self.state: Optional[str] = None
        self.frame_index = 0
        self.current_frame: Optional[str] = None

    @property
    def animating(self) -> bool:
        return self._handle is not None

    def show(self, state: str) -> None:
        """새 상태 표시. 호출 측(엔진)이 상태가 바뀌었을 때만 부름."""
        frames = self._sprites.get(state) or ()
        self.state = state
        if len(frames) >= 2:
            self._start(frames, self._interval_ms(state))
            return
        self.stop()
        if frames:
            self._emit(frames[0])
        else:
            logger.warning("스프라이트 없음: %s", state)

    def _start(self, frames: tuple[str, ...], interval_ms: int) -> None:
        self.stop()
        self._frames = frames
        self._delay = interval_ms / 1000.0
        self.frame_index = 0
        self._emit(frames[0])
        self._handle = self._scheduler.call_later(self._delay, self._tick)

    def _tick(self) -> None:
        self.frame_index = (self.frame_index + 1) % len(self._frames)
        self._emit(self._frames[self.frame_index])
        self._handle = self._scheduler.call_later(self._delay, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.frame_index = 0

    def _emit(self, frame: str) -> None:
        self.current_frame = frame
        if self._on_frame is not None:
            self._on_frame(frame)
