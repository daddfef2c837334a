"""
input relay 연결 확인용: 서버 없이 엔진만 띄우고, relay 이벤트가 어떤 상태로 바뀌는지 출력.

실행: python examples/relay_monitor_example.py [ws://localhost:9001]
relay 에서 W/A/S/D, 마우스 왼쪽/옆 버튼을 눌러보면 state 가 바뀌는 것이 보여야 함.
"""

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

from src.avatar import AvatarEngine, apply_env_overrides, load_overlay_config
from src.relay import RelayClient

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def main(url=None):
    config = apply_env_overrides(load_overlay_config()).validate()
    engine = AvatarEngine(config)

    def on_change(old: str, new: str) -> None:
        logger.info("state %s → %s  channels=%s held=%s", old, new, engine.active_states, engine.held_keys)

    engine.add_listener(on_change)
    engine.start()
    client = RelayClient(engine, url=url)
    print(f"relay 연결: {client.url} (Ctrl+C 종료)")
    try:
        await client.run()
    finally:
        await client.stop()
        engine.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
    except KeyboardInterrupt:
        print("종료")
