"""
입력 relay WebSocket 클라이언트.

OBS 브라우저 소스는 전역 키/마우스를 못 받으므로, 별도 relay 프로세스가 보낸 이벤트를 받아 엔진에 전달.
연결이 끊기면 고정 지연 후 무한 재연결 (최대 횟수 없음).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException

from src.avatar.engine import AvatarEngine
from src.relay.protocol import dispatch_relay_event, parse_relay_message

logger = logging.getLogger(__name__)


class RelayClient:
    def __init__(
        self,
        engine: AvatarEngine,
        url: Optional[str] = None,
        reconnect_delay: Optional[float] = None,
    ):
        """
        Args:
            engine: 이벤트를 넘길 아바타 엔진
            url: relay 주소 (기본: config.relay_url)
            reconnect_delay: 재연결 지연 (초, 기본: config.relay_reconnect_ms)
        """
        self.engine = engine
        self.url = url or engine.config.relay_url
        if reconnect_delay is None:
            reconnect_delay = engine.config.relay_reconnect_ms / 1000.0
        self.reconnect_delay = reconnect_delay

        self.is_connected = False
        self.connect_count = 0
        self.reconnect_attempts = 0
        self._ws: Optional[ClientConnection] = None
        self._running = False
        self._stop_requested = False

    def handle_message(self, raw: Union[str, bytes]) -> bool:
        msg = parse_relay_message(raw)
        if msg is None:
            return False
        return dispatch_relay_event(self.engine, msg)

    async def _session(self) -> None:
        async with connect(self.url) as ws:
            # 핸드셰이크 중에 stop() 이 불렸으면 수신 루프에 들어가지 않고 닫음
            if not self._running:
                return
            self._ws = ws
            self.is_connected = True
            self.connect_count += 1
            self.reconnect_attempts = 0
            logger.info("input relay 연결됨: %s", self.url)
            async for raw in ws:
                self.handle_message(raw)

    async def run(self) -> None:
        """연결 → 수신 루프. stop() 전까지 끊기면 reconnect_delay 후 재시도."""
        if self._stop_requested:
            return
        self._running = True
        while self._running:
            try:
                await self._session()
                if self._running:
                    logger.info("input relay 연결 종료, 재연결 대기")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning("input relay 연결 실패/끊김 (%s): %s", self.url, e)
            finally:
                self._ws = None
                self.is_connected = False
            if not self._running:
                break
            self.reconnect_attempts += 1
            logger.info("input relay 재연결 시도 #%d (%.1f초 후)", self.reconnect_attempts, self.reconnect_delay)
            try:
                await asyncio.sleep(self.reconnect_delay)
            except asyncio.CancelledError:
                break

    async def stop(self) -> None:
        """수신 루프 종료. run() 시작 전에 불려도 이후 run() 은 바로 반환."""
        self._stop_requested = True
        self._running = False
        if self._ws is not None:
            await self._ws.close()
