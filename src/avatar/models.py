"""아바타 엔진 공통 상수·스냅샷 모델."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

IDLE = "idle"
TALK = "talk"
SCREAM = "scream"
WASD = "wasd"
MOUSE = "mouse"
# 채널이 만들어낼 수 있는 상태 (설정에 스프라이트 필수)
BUILTIN_STATES = (IDLE, TALK, SCREAM, WASD, MOUSE)

# 평가 순서 = 동점 처리 순서 (먼저 본 상태가 이김)
CHANNELS = ("voice", "keys", "mouse")

MOVEMENT_KEYS = frozenset({"KeyW", "KeyA", "KeyS", "KeyD"})
# 0 = 왼쪽 클릭, 4 = 옆(앞으로) 버튼
MOUSE_BUTTONS = frozenset({0, 4})


@dataclass
class EngineSnapshot:
    """엔진 상태 읽기 전용 사본 (/api/state, 디버그 표시용)."""
    state: str
    voice: str
    keys: str
    mouse: str
    held_keys: list[str] = field(default_factory=list)
    frame: Optional[str] = None
    frame_index: int = 0
    mic_level: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "channels": {"voice": self.voice, "keys": self.keys, "mouse": self.mouse},
            "held_keys": list(self.held_keys),
            "frame": self.frame,
            "frame_index": self.frame_index,
            "mic_level": round(self.mic_level, 1),
        }
