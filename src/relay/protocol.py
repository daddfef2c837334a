"""
입력 relay 메시지 형식.

{ "type": "key"|"mouse", "action": "down"|"up", "code": "KeyW", "button": 0 }
알 수 없는 type/action 조합은 조용히 무시.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Union

from src.avatar.engine import AvatarEngine

logger = logging.getLogger(__name__)


def parse_relay_message(raw: Union[str, bytes]) -> Optional[dict[str, Any]]:
    """JSON 텍스트 → dict. 파싱 실패·객체 아님이면 경고 후 None."""
    try:
        msg = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("잘못된 relay 메시지: %r", raw[:200])
        return None
    if not isinstance(msg, dict):
        logger.warning("relay 메시지가 객체가 아님: %r", raw[:200])
        return None
    return msg


def dispatch_relay_event(engine: AvatarEngine, msg: Mapping[str, Any]) -> bool:
    """메시지를 엔진 입력으로 전달. 채널 입력으로 받아들여졌으면 True."""
    kind = msg.get("type")
    action = msg.get("action")
    if kind == "key":
        code = msg.get("code")
        if not isinstance(code, str):
            return False
        if action == "down":
            return engine.trigger_key(code)
        if action == "up":
            return engine.release_key(code)
    elif kind == "mouse":
        button = msg.get("button")
        if action == "down":
            return engine.trigger_mouse(button)
        if action == "up":
            return engine.release_mouse(button)
    logger.debug("처리하지 않는 relay 메시지: %s", msg)
    return False
