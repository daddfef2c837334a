"""
아바타 상태 엔진.

voice / keys / mouse 세 채널이 각자 원하는 상태를 들고 있고, 채널이 바뀔 때마다
우선순위 테이블로 하나를 골라(resolve) 스프라이트를 갱신한다.
asyncio 이벤트 루프 하나에서만 호출할 것 (다른 스레드에서는 loop.call_soon_threadsafe 경유).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from src.avatar.animation import FrameSink, SpriteAnimator
from src.avatar.channels import KeysChannel, MouseChannel, VoiceChannel
from src.avatar.config import OverlayConfig
from src.avatar.models import IDLE, EngineSnapshot
from src.avatar.priority import resolve_state
from src.avatar.timers import Scheduler

logger = logging.getLogger(__name__)

StateListener = Callable[[str, str], None]


class AvatarEngine:
    def __init__(
        self,
        config: OverlayConfig,
        scheduler: Optional[Scheduler] = None,
        on_frame: Optional[FrameSink] = None,
    ):
        self.config = config
        self._scheduler = scheduler if scheduler is not None else asyncio.get_running_loop()
        self._priority = config.priority
        self._listeners: list[StateListener] = []
        self._resolved = IDLE
        self.mic_level = 0.0

        linger = config.lingering
        self._voice = VoiceChannel(self._scheduler, linger.voice_ms, self._resolve)
        self._keys = KeysChannel(self._scheduler, linger.key_ms, self._resolve)
        self._mouse = MouseChannel(self._scheduler, linger.mouse_ms, self._resolve)
        self._animator = SpriteAnimator(
            self._scheduler, config.sprites, config.frame_interval_ms, on_frame=on_frame
        )

    # ---- 조회 ----
    @property
    def resolved_state(self) -> str:
        return self._resolved

    @property
    def active_states(self) -> dict[str, str]:
        return {"voice": self._voice.state, "keys": self._keys.state, "mouse": self._mouse.state}

    @property
    def held_keys(self) -> list[str]:
        return sorted(self._keys.held)

    @property
    def current_frame(self) -> Optional[str]:
        return self._animator.current_frame

    @property
    def frame_index(self) -> int:
        return self._animator.frame_index

    @property
    def animating(self) -> bool:
        return self._animator.animating

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            state=self._resolved,
            voice=self._voice.state,
            keys=self._keys.state,
            mouse=self._mouse.state,
            held_keys=self.held_keys,
            frame=self._animator.current_frame,
            frame_index=self._animator.frame_index,
            mic_level=self.mic_level,
        )

    def add_listener(self, listener: StateListener) -> None:
        """resolved 상태가 바뀔 때 listener(old, new) 호출."""
        self._listeners.append(listener)

    # ---- 수명 ----
    def start(self) -> None:
        """현재 상태(처음엔 idle) 스프라이트 표시. idle 이 애니메이션이면 순환 시작."""
        self._animator.show(self._resolved)
        logger.info("아바타 엔진 시작. 스프라이트: %s", ", ".join(self.config.sprites))

    def stop(self) -> None:
        self._voice.cancel()
        self._keys.cancel()
        self._mouse.cancel()
        self._animator.stop()

    # ---- 입력 ----
    def set_voice_state(self, state: str) -> None:
        if state not in self._priority:
            logger.warning("알 수 없는 voice 상태 무시: %s", state)
            return
        self._voice.set_state(state)

    def set_mic_level(self, level: float) -> None:
        self.mic_level = level

    def trigger_key(self, code: str) -> bool:
        return self._keys.trigger(code)

    def release_key(self, code: str) -> bool:
        return self._keys.release(code)

    def trigger_mouse(self, button: int) -> bool:
        return self._mouse.trigger(button)

    def release_mouse(self, button: int) -> bool:
        return self._mouse.release(button)

    # ---- 재계산 ----
    def _resolve(self) -> None:
        best = resolve_state(
            (self._voice.state, self._keys.state, self._mouse.state), self._priority
        )
        if best == self._resolved:
            return
        old, self._resolved = self._resolved, best
        logger.debug("상태 변경: %s → %s", old, best)
        self._animator.show(best)
        for listener in list(self._listeners):
            try:
                listener(old, best)
            except Exception as e:
                logger.error("상태 listener 오류: %s", e, exc_info=True)
