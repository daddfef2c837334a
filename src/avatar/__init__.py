"""
반응형 아바타 오버레이 엔진.

- 마이크(talk/scream), 이동 키(WASD), 마우스 클릭 세 입력을 우선순위로 합쳐 스프라이트 하나를 고름.
- AvatarEngine 인스턴스 하나가 채널 상태·타이머·애니메이션을 모두 소유.
"""

from src.avatar.config import ConfigError, OverlayConfig, apply_env_overrides, load_overlay_config
from src.avatar.engine import AvatarEngine
from src.avatar.priority import priority_of, resolve_state

__all__ = [
    "AvatarEngine",
    "ConfigError",
    "OverlayConfig",
    "apply_env_overrides",
    "load_overlay_config",
    "priority_of",
    "resolve_state",
]
