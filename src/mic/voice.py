"""음량 → talk/scream 판정. 임계값 미만이면 아무것도 안 함 (voice linger 가 idle 로 되돌림)."""

from __future__ import annotations

import logging
from typing import Optional

from src.avatar.config import MicConfig
from src.avatar.engine import AvatarEngine
from src.avatar.models import SCREAM, TALK

logger = logging.getLogger(__name__)


def classify_level(level: float, mic: MicConfig) -> Optional[str]:
    if level >= mic.scream_threshold:
        return SCREAM
    if level >= mic.talk_threshold:
        return TALK
    return None


class VoiceDetector:
    def __init__(self, engine: AvatarEngine, mic: Optional[MicConfig] = None):
        self.engine = engine
        self.mic = mic or engine.config.mic

    def on_level(self, level: float) -> Optional[str]:
        self.engine.set_mic_level(level)
        state = classify_level(level, self.mic)
        if state is not None:
            self.engine.set_voice_state(state)
        return state
