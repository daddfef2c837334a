"""
오버레이 설정: config/overlay.json 로드 + 환경 변수(.env) 덮어쓰기 + 검증.

- 스프라이트: 단일 경로(정지) 또는 경로 리스트(애니메이션 프레임)
- 로드 후에는 불변 (frozen dataclass + MappingProxyType)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from src.avatar.models import BUILTIN_STATES, IDLE

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "config" / "overlay.json"

DEFAULT_FRAME_MS = 250

DEFAULT_SPRITES: dict[str, Any] = {
    "idle": ["idle_tongue_in.png", "idle_tongue_out.png"],
    "talk": ["talk_1.png", "talk_2.png"],
    "scream": "scream.png",
    "wasd": ["wasd_1.png", "wasd_2.png"],
    "mouse": "mouse_click.png",
}
DEFAULT_ANIMATION_MS = {"idle": 600, "talk": 200, "wasd": 250}
DEFAULT_PRIORITY = {"idle": 0, "talk": 1, "wasd": 2, "mouse": 3, "scream": 4}


class ConfigError(ValueError):
    """설정 값이 잘못되어 오버레이를 시작할 수 없음."""


@dataclass(frozen=True)
class MicConfig:
    talk_threshold: float = 15.0  # 0~255 스케일
    scream_threshold: float = 150.0
    smoothing: float = 0.85  # 0~1, 높을수록 덜 튐
    fft_size: int = 256  # 2의 거듭제곱
    sample_rate: int = 44100
    device: Optional[str] = None


@dataclass(frozen=True)
class LingerConfig:
    """입력이 끝난 뒤 스프라이트가 남아 있는 시간 (ms)."""
    voice_ms: int = 250
    key_ms: int = 150
    mouse_ms: int = 150


@dataclass(frozen=True)
class DisplayConfig:
    width: str = "256px"
    height: str = "256px"
    bottom: str = "20px"
    left: str = "20px"


def _freeze_sprites(raw: Mapping[str, Any]) -> Mapping[str, tuple[str, ...]]:
    out: dict[str, tuple[str, ...]] = {}
    for state, value in raw.items():
        if isinstance(value, str):
            out[str(state)] = (value,)
        elif isinstance(value, (list, tuple)):
            out[str(state)] = tuple(str(v) for v in value)
        else:
            raise ConfigError(f"sprites.{state}: 문자열 또는 리스트여야 합니다 (현재: {type(value).__name__})")
    return MappingProxyType(out)


@dataclass(frozen=True)
class OverlayConfig:
    sprites: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: _freeze_sprites(DEFAULT_SPRITES))
    animation_ms: Mapping[str, int] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_ANIMATION_MS)))
    priority: Mapping[str, int] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_PRIORITY)))
    mic: MicConfig = field(default_factory=MicConfig)
    lingering: LingerConfig = field(default_factory=LingerConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    relay_url: str = "ws://localhost:9001"
    relay_reconnect_ms: int = 3000
    debug: bool = False
    debug_interval_ms: int = 100
    asset_dir: Path = _PROJECT_ROOT / "sprites"
    host: str = "127.0.0.1"
    port: int = 8765

    def frame_interval_ms(self, state: str) -> int:
        return int(self.animation_ms.get(state, DEFAULT_FRAME_MS))

    def validate(self) -> "OverlayConfig":
        """설정 검증. 문제가 있으면 ConfigError. priority 에 없는 스프라이트 상태는 0으로 채운 새 설정 반환."""
        if IDLE not in self.sprites:
            raise ConfigError("sprites.idle 이 필요합니다")
        for state, frames in self.sprites.items():
            if not frames:
                raise ConfigError(f"sprites.{state}: 프레임이 비어 있습니다")
        # 엔진 채널이 만들어내는 상태는 스프라이트가 반드시 있어야 함
        for state in BUILTIN_STATES:
            if state not in self.sprites:
                raise ConfigError(f"sprites.{state} 이 필요합니다 (엔진 기본 상태)")
        for state, value in self.priority.items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"priority.{state}: 정수여야 합니다 (현재: {value!r})")
            if state not in self.sprites:
                raise ConfigError(f"priority.{state}: 해당 상태의 스프라이트가 없습니다")
        for state, ms in self.animation_ms.items():
            if ms <= 0:
                raise ConfigError(f"animation.{state}: 0보다 커야 합니다")

        mic = self.mic
        if mic.talk_threshold <= 0:
            raise ConfigError("mic.talk_threshold 는 0보다 커야 합니다")
        if mic.scream_threshold <= mic.talk_threshold:
            raise ConfigError("mic.scream_threshold 는 talk_threshold 보다 커야 합니다")
        if not 0 <= mic.smoothing < 1:
            raise ConfigError("mic.smoothing 은 0 이상 1 미만이어야 합니다")
        if mic.fft_size < 32 or mic.fft_size & (mic.fft_size - 1):
            raise ConfigError(f"mic.fft_size 는 32 이상 2의 거듭제곱이어야 합니다 (현재: {mic.fft_size})")

        linger = self.lingering
        if min(linger.voice_ms, linger.key_ms, linger.mouse_ms) <= 0:
            raise ConfigError("lingering 값은 모두 0보다 커야 합니다")
        if not self.relay_url.startswith(("ws://", "wss://")):
            raise ConfigError(f"relay_url 은 ws:// 또는 wss:// 로 시작해야 합니다 (현재: {self.relay_url})")
        if self.relay_reconnect_ms <= 0 or self.debug_interval_ms <= 0:
            raise ConfigError("relay_reconnect_ms, debug_interval_ms 는 0보다 커야 합니다")

        missing = [s for s in self.sprites if s not in self.priority]
        if not missing:
            return self
        for state in missing:
            logger.warning("priority 에 '%s' 없음: 0 으로 처리", state)
        table = dict(self.priority)
        table.update({s: 0 for s in missing})
        return replace(self, priority=MappingProxyType(table))


def _resolve_path(value: Union[str, Path]) -> Path:
    p = Path(value)
    return p if p.is_absolute() else _PROJECT_ROOT / p


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key}: 정수여야 합니다 (현재: {value!r})")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key}: 정수여야 합니다 (현재: {value!r})") from e


def config_from_dict(data: Mapping[str, Any]) -> OverlayConfig:
    """JSON dict → OverlayConfig. 빠진 키는 기본값."""
    kwargs: dict[str, Any] = {}
    if "sprites" in data:
        kwargs["sprites"] = _freeze_sprites(data["sprites"])
    if "animation" in data:
        kwargs["animation_ms"] = MappingProxyType(
            {str(k): _as_int(v, f"animation.{k}") for k, v in data["animation"].items()}
        )
    if "priority" in data:
        kwargs["priority"] = MappingProxyType(dict(data["priority"]))
    try:
        if "mic" in data:
            kwargs["mic"] = MicConfig(**data["mic"])
        if "lingering" in data:
            kwargs["lingering"] = LingerConfig(**data["lingering"])
        if "display" in data:
            kwargs["display"] = DisplayConfig(**data["display"])
    except TypeError as e:
        raise ConfigError(f"알 수 없는 설정 키: {e}") from e
    for key in ("relay_url", "host"):
        if key in data:
            kwargs[key] = str(data[key])
    for key in ("relay_reconnect_ms", "debug_interval_ms", "port"):
        if key in data:
            kwargs[key] = _as_int(data[key], key)
    if "debug" in data:
        kwargs["debug"] = bool(data["debug"])
    if "asset_dir" in data:
        kwargs["asset_dir"] = _resolve_path(data["asset_dir"])
    return OverlayConfig(**kwargs)


def load_overlay_config(path: Optional[Union[Path, str]] = None) -> OverlayConfig:
    """overlay.json 로드. 파일이 없으면 기본 설정."""
    p = Path(path) if path else DEFAULT_CONFIG_PATH
    if not p.exists():
        logger.info("설정 파일 없음, 기본값 사용: %s", p)
        return OverlayConfig()
    try:
        with open(p, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{p}: JSON 파싱 실패: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{p}: 최상위는 객체여야 합니다")
    return config_from_dict(data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def apply_env_overrides(config: OverlayConfig, env: Optional[Mapping[str, str]] = None) -> OverlayConfig:
    """RELAY_URL, OVERLAY_HOST, OVERLAY_PORT, OVERLAY_DEBUG, MIC_DEVICE 가 있으면 덮어씀."""
    env = os.environ if env is None else env
    changes: dict[str, Any] = {}
    if env.get("RELAY_URL"):
        changes["relay_url"] = env["RELAY_URL"].strip()
    if env.get("OVERLAY_HOST"):
        changes["host"] = env["OVERLAY_HOST"].strip()
    if env.get("OVERLAY_PORT"):
        try:
            changes["port"] = int(env["OVERLAY_PORT"])
        except ValueError as e:
            raise ConfigError(f"OVERLAY_PORT 가 숫자가 아닙니다: {env['OVERLAY_PORT']!r}") from e
    if env.get("OVERLAY_DEBUG"):
        changes["debug"] = _env_flag(env["OVERLAY_DEBUG"])
    if env.get("MIC_DEVICE"):
        changes["mic"] = replace(config.mic, device=env["MIC_DEVICE"].strip())
    return replace(config, **changes) if changes else config


def missing_sprite_files(config: OverlayConfig) -> list[str]:
    """asset_dir 기준으로 존재하지 않는 프레임 파일 목록."""
    missing = []
    for frames in config.sprites.values():
        for frame in frames:
            if not (config.asset_dir / frame).is_file():
                missing.append(frame)
    return missing
