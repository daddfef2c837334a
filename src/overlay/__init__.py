"""
방송 오버레이: 아바타 스프라이트를 OBS 브라우저 소스로 노출.

- create_app(engine): 엔진 상태를 /api/state 로 반환, / 는 오버레이 HTML.
- OBS에서 브라우저 소스 URL을 http://127.0.0.1:8765/?obs=1 로 설정.
"""

from src.overlay.server import create_app

__all__ = ["create_app"]
