"""디버그 HUD 텍스트: 현재 상태, 채널별 상태, 눌린 키, 마이크 레벨."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.avatar.config import MicConfig
from src.avatar.engine import AvatarEngine
from src.avatar.models import EngineSnapshot

logger = logging.getLogger(__name__)


def format_readout(snap: EngineSnapshot, mic: MicConfig) -> str:
    bar = "|" * round(snap.mic_level / 3)
    return (
        f"state:  {snap.state}\n"
        f"voice:  {snap.voice}\n"
        f"keys:   {snap.keys}  held: [{', '.join(snap.held_keys)}]\n"
        f"mouse:  {snap.mouse}\n"
        f"mic:    {snap.mic_level:.1f} {bar}\n"
        f"thresholds: talk={mic.talk_threshold:g}  scream={mic.scream_threshold:g}"
    )


class DebugReadout:
    """debug 켜졌을 때 interval 마다 텍스트 갱신. 상태가 바뀌면 즉시 갱신."""

    def __init__(self, engine: AvatarEngine, interval_ms: Optional[int] = None):
        self.engine = engine
        self.interval = (interval_ms or engine.config.debug_interval_ms) / 1000.0
        self.text = ""
        engine.add_listener(self._on_state_change)

    def refresh(self) -> str:
        self.text = format_readout(self.engine.snapshot(), self.engine.config.mic)
        return self.text

    def _on_state_change(self, old: str, new: str) -> None:
        self.refresh()

    async def run(self) -> None:
        logger.info("디버그 HUD 갱신 시작 (%.0fms)", self.interval * 1000)
        while True:
            self.refresh()
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
