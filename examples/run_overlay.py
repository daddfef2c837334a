"""
아바타 오버레이 실행: 마이크(talk/scream) + input relay(WASD/마우스) → 스프라이트 → OBS 브라우저 소스.

실행: python examples/run_overlay.py  (프로젝트 루트에서)
설정: config/overlay.json (스프라이트·임계값·linger·우선순위), .env 로 일부 덮어쓰기
  RELAY_URL=ws://localhost:9001  OVERLAY_PORT=8765  OVERLAY_DEBUG=1  MIC_DEVICE=...
OBS: 브라우저 소스 추가 → URL http://127.0.0.1:8765/?obs=1
전역 키/마우스는 별도 relay 프로세스가 RELAY_URL 로 보내줘야 함 (없어도 마이크만으로 동작, 자동 재연결).
마이크 임계값 맞추기: OVERLAY_DEBUG=1 로 실행 후 HUD 의 mic 값 확인.
"""

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn
from dotenv import load_dotenv

from src.avatar import AvatarEngine, ConfigError, apply_env_overrides, load_overlay_config
from src.avatar.config import missing_sprite_files
from src.avatar.diagnostics import DebugReadout
from src.mic import LoudnessSampler, VoiceDetector
from src.overlay import create_app
from src.relay import RelayClient
from src.utils import setup_logging

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logger = logging.getLogger(__name__)


async def main() -> None:
    try:
        config = apply_env_overrides(load_overlay_config()).validate()
    except ConfigError as e:
        logger.error("설정 오류: %s", e)
        raise SystemExit(1)

    missing = missing_sprite_files(config)
    if missing:
        logger.warning("스프라이트 파일 없음 (%d개): %s", len(missing), ", ".join(missing))

    engine = AvatarEngine(config)
    engine.start()

    detector = VoiceDetector(engine)
    sampler = LoudnessSampler(config.mic, detector.on_level)
    if not sampler.start():
        logger.warning("마이크 없이 진행: 키/마우스 입력만 반영됩니다.")

    relay = RelayClient(engine)
    readout = DebugReadout(engine) if config.debug else None
    app = create_app(engine, config, readout)

    tasks = [asyncio.create_task(relay.run(), name="input-relay")]
    if readout is not None:
        tasks.append(asyncio.create_task(readout.run(), name="debug-hud"))

    server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=config.port, log_config=None, log_level="info")
    )
    logger.warning("오버레이: http://%s:%d/?obs=1  (relay: %s)", config.host, config.port, config.relay_url)
    try:
        await server.serve()
    finally:
        await relay.stop()
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        sampler.stop()
        engine.stop()
        logger.info("오버레이 종료")


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
