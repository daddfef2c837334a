"""
입력 relay 모듈: 전역 키/마우스 이벤트를 WebSocket 으로 받아 엔진에 전달.
"""

from .client import RelayClient
from .protocol import dispatch_relay_event, parse_relay_message

__all__ = ["RelayClient", "dispatch_relay_event", "parse_relay_message"]
