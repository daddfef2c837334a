"""
방송 오버레이용 로컬 HTTP 서버. / 아바타 HTML, /api/state JSON, /api/input 입력 주입.
엔진은 같은 프로세스·같은 이벤트 루프에서 돌아야 함 (examples/run_overlay.py). 핸들러는 전부 async (스레드풀에서 엔진 건드리지 않게).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, StrictStr

from src.avatar.config import OverlayConfig
from src.avatar.diagnostics import DebugReadout
from src.avatar.engine import AvatarEngine
from src.relay.protocol import dispatch_relay_event

logger = logging.getLogger(__name__)

SPRITE_URL_PREFIX = "/sprites"


class InputEvent(BaseModel):
    """relay 와 같은 형식의 입력 이벤트 (테스트·브라우저 직접 입력용).

    code/button 은 변환 없이 그대로 dispatch_relay_event 로 넘김 ("0" 을 0 으로 바꾸지 않음).
    """
    type: StrictStr
    action: StrictStr
    code: Any = None
    button: Any = None


def sprite_url(frame: Optional[str]) -> Optional[str]:
    if not frame:
        return None
    return f"{SPRITE_URL_PREFIX}/{frame.lstrip('/')}"


def create_app(
    engine: AvatarEngine,
    config: Optional[OverlayConfig] = None,
    readout: Optional[DebugReadout] = None,
) -> FastAPI:
    config = config or engine.config
    app = FastAPI(title="Avatar Overlay", docs_url=None, redoc_url=None)
    if config.asset_dir.is_dir():
        app.mount(SPRITE_URL_PREFIX, StaticFiles(directory=str(config.asset_dir)), name="sprites")
    else:
        logger.warning("스프라이트 폴더 없음: %s", config.asset_dir)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
    )

    @app.get("/api/state")
    async def get_state():
        """현재 상태·채널별 상태·눌린 키·프레임 URL. debug 켜져 있으면 HUD 텍스트 포함."""
        data = engine.snapshot().to_dict()
        data["frame_url"] = sprite_url(data["frame"])
        data["debug"] = (readout.text or readout.refresh()) if (config.debug and readout) else None
        return JSONResponse(data)

    @app.get("/api/config")
    async def get_config():
        """오버레이 페이지용: 표시 크기/위치, 프리로드할 프레임 URL."""
        frames = {state: [sprite_url(f) for f in fs] for state, fs in config.sprites.items()}
        d = config.display
        return JSONResponse({
            "display": {"width": d.width, "height": d.height, "bottom": d.bottom, "left": d.left},
            "sprites": frames,
            "debug": config.debug,
        })

    @app.post("/api/input")
    async def post_input(event: InputEvent):
        """relay 메시지와 동일하게 처리. 받아들여지지 않은 이벤트는 ok=false."""
        ok = dispatch_relay_event(engine, event.model_dump())
        return JSONResponse({"ok": ok, "state": engine.resolved_state})

    @app.get("/", response_class=HTMLResponse)
    async def overlay_page():
        """OBS 브라우저 소스 URL. OBS 에서는 ?obs=1 (페이지 자체 키/마우스 입력 끔)."""
        return HTMLResponse(OVERLAY_HTML)

    return app


OVERLAY_HTML = """<!DOCTYPE html>
<html lang="ko">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Avatar Overlay</title>
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    html, body { background: transparent; overflow: hidden; width: 100vw; height: 100vh; }
    #avatar {
      position: fixed;
      width: 256px;
      height: 256px;
      bottom: 20px;
      left: 20px;
      object-fit: contain;
      image-rendering: auto;
    }
    #debug {
      display: none;
      position: fixed;
      top: 10px;
      left: 10px;
      padding: 8px 10px;
      font: 12px/1.4 monospace;
      color: #d1fae5;
      background: rgba(0, 0, 0, 0.7);
      border-radius: 6px;
      white-space: pre;
    }
  </style>
</head>
<body>
  <img id="avatar" alt="">
  <pre id="debug"></pre>
  <script>
    var base = window.location.origin || (window.location.protocol + "//" + window.location.host);
    var obsMode = new URLSearchParams(window.location.search).has("obs");
    var avatar = document.getElementById("avatar");
    var debug = document.getElementById("debug");
    var lastFrame = null;

    // 프레임 전부 미리 로드 (전환 즉시)
    fetch(base + "/api/config").then(function(r) { return r.json(); }).then(function(cfg) {
      var d = cfg.display || {};
      ["width", "height", "bottom", "left"].forEach(function(k) { if (d[k]) avatar.style[k] = d[k]; });
      Object.keys(cfg.sprites || {}).forEach(function(state) {
        cfg.sprites[state].forEach(function(src) { var img = new Image(); img.src = src; });
      });
    }).catch(function(err) { console.error(err); });

    function render() {
      fetch(base + "/api/state", { cache: "no-store" })
        .then(function(r) { return r.json(); })
        .then(function(s) {
          if (s.frame_url && s.frame_url !== lastFrame) {
            lastFrame = s.frame_url;
            avatar.src = s.frame_url;
          }
          if (s.debug) {
            debug.style.display = "block";
            debug.textContent = s.debug;
          } else {
            debug.style.display = "none";
          }
        })
        .catch(function() {});
    }

    function send(evt) {
      fetch(base + "/api/input", {
        method: "POST",
        headers: { "Content-Type": "application/json" },
        body: JSON.stringify(evt)
      }).catch(function() {});
    }

    // 일반 브라우저 탭에서 테스트할 때만 페이지 자체 입력 사용
    if (!obsMode) {
      window.addEventListener("keydown", function(e) {
        if (e.repeat) return;
        send({ type: "key", action: "down", code: e.code });
      });
      window.addEventListener("keyup", function(e) { send({ type: "key", action: "up", code: e.code }); });
      window.addEventListener("mousedown", function(e) { send({ type: "mouse", action: "down", button: e.button }); });
      window.addEventListener("mouseup", function(e) { send({ type: "mouse", action: "up", button: e.button }); });
      window.addEventListener("auxclick", function(e) {
        if (e.button === 4) send({ type: "mouse", action: "down", button: 4 });
      });
      window.addEventListener("contextmenu", function(e) { e.preventDefault(); });
    }

    setInterval(render, 50);
    render();
  </script>
</body>
</html>
"""
