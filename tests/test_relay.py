from __future__ import annotations

import asyncio
import json
import socket

import pytest
from websockets.asyncio.server import serve

from src.avatar.engine import AvatarEngine
from src.relay.client import RelayClient
from src.relay.protocol import dispatch_relay_event, parse_relay_message


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_parse_rejects_non_json_and_non_objects() -> None:
    assert parse_relay_message("not json") is None
    assert parse_relay_message("[1, 2]") is None
    assert parse_relay_message('"key"') is None
    assert parse_relay_message('{"type": "key"}') == {"type": "key"}


def test_key_message_matches_direct_trigger(config, scheduler) -> None:
    via_relay = AvatarEngine(config, scheduler=scheduler)
    direct = AvatarEngine(config, scheduler=scheduler)
    assert dispatch_relay_event(via_relay, {"type": "key", "action": "down", "code": "KeyA"})
    direct.trigger_key("KeyA")
    assert via_relay.active_states == direct.active_states == {"voice": "idle", "keys": "wasd", "mouse": "idle"}
    assert via_relay.held_keys == direct.held_keys == ["KeyA"]


def test_unrecognized_messages_cause_no_transition(engine: AvatarEngine) -> None:
    for msg in (
        {"type": "key", "action": "down", "code": "KeyZ"},
        {"type": "key", "action": "down", "code": 17},
        {"type": "key", "action": "press", "code": "KeyW"},
        {"type": "mouse", "action": "down", "button": 1},
        {"type": "mouse", "action": "down", "button": "0"},
        {"type": "gamepad", "action": "down", "button": 0},
        {},
    ):
        assert not dispatch_relay_event(engine, msg)
    assert engine.active_states == {"voice": "idle", "keys": "idle", "mouse": "idle"}


def test_mouse_up_message_rearms_decay(engine: AvatarEngine, scheduler) -> None:
    client = RelayClient(engine, url="ws://127.0.0.1:1", reconnect_delay=0.01)
    assert client.handle_message(json.dumps({"type": "mouse", "action": "down", "button": 0}))
    scheduler.advance(0.1)
    assert client.handle_message(b'{"type": "mouse", "action": "up", "button": 0}')
    scheduler.advance(0.1)
    assert engine.resolved_state == "mouse"
    scheduler.advance(0.05)
    assert engine.resolved_state == "idle"


def test_malformed_message_is_dropped(engine: AvatarEngine) -> None:
    client = RelayClient(engine, url="ws://127.0.0.1:1")
    assert not client.handle_message("{{{")
    assert engine.resolved_state == "idle"


def test_defaults_come_from_config(engine: AvatarEngine) -> None:
    client = RelayClient(engine)
    assert client.url == "ws://localhost:9001"
    assert client.reconnect_delay == 3.0


@pytest.mark.asyncio
async def test_client_reconnects_after_drop_and_resumes(config) -> None:
    engine = AvatarEngine(config)
    loop = asyncio.get_running_loop()
    connected_at: list[float] = []

    async def handler(ws) -> None:
        connected_at.append(loop.time())
        if len(connected_at) == 1:
            await ws.close()
            return
        await ws.send(json.dumps({"type": "key", "action": "down", "code": "KeyW"}))
        await ws.send("garbage")
        await ws.send(json.dumps({"type": "mouse", "action": "down", "button": 4}))
        await ws.wait_closed()

    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        client = RelayClient(engine, url=f"ws://127.0.0.1:{port}", reconnect_delay=0.2)
        task = asyncio.create_task(client.run())
        try:
            for _ in range(200):
                if engine.active_states["mouse"] == "mouse":
                    break
                await asyncio.sleep(0.01)
            state_seen = engine.resolved_state
            held_seen = engine.held_keys
        finally:
            await client.stop()
            await asyncio.wait_for(task, timeout=2.0)
            engine.stop()

    assert len(connected_at) == 2
    assert connected_at[1] - connected_at[0] >= 0.2 * 0.9
    assert client.connect_count == 2
    assert held_seen == ["KeyW"]
    assert state_seen == "mouse"


@pytest.mark.asyncio
async def test_client_keeps_retrying_when_relay_is_down(config) -> None:
    engine = AvatarEngine(config)
    client = RelayClient(engine, url=f"ws://127.0.0.1:{_free_port()}", reconnect_delay=0.02)
    task = asyncio.create_task(client.run())
    try:
        for _ in range(200):
            if client.reconnect_attempts >= 3:
                break
            await asyncio.sleep(0.01)
    finally:
        await client.stop()
        await asyncio.wait_for(task, timeout=2.0)
    assert client.reconnect_attempts >= 3
    assert client.connect_count == 0
    assert not client.is_connected
    assert engine.resolved_state == "idle"


@pytest.mark.asyncio
async def test_stop_during_handshake_ends_run(config) -> None:
    engine = AvatarEngine(config)

    async def handler(ws) -> None:
        await ws.send(json.dumps({"type": "key", "action": "down", "code": "KeyW"}))
        await ws.wait_closed()

    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        client = RelayClient(engine, url=f"ws://127.0.0.1:{port}", reconnect_delay=0.05)
        task = asyncio.create_task(client.run())
        await asyncio.sleep(0)
        await client.stop()
        await asyncio.wait_for(task, timeout=1.0)

    assert task.done()
    assert not client.is_connected
    assert client.connect_count == 0
    assert engine.held_keys == []
    engine.stop()


@pytest.mark.asyncio
async def test_stop_before_run_starts_returns_immediately(config) -> None:
    engine = AvatarEngine(config)
    client = RelayClient(engine, url=f"ws://127.0.0.1:{_free_port()}", reconnect_delay=0.05)
    task = asyncio.create_task(client.run())
    await client.stop()
    await asyncio.wait_for(task, timeout=1.0)
    assert client.reconnect_attempts == 0
    assert not client.is_connected
