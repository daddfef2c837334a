from __future__ import annotations

from src.avatar.engine import AvatarEngine


def test_starts_idle_with_idle_animation(engine: AvatarEngine) -> None:
    assert engine.resolved_state == "idle"
    assert engine.active_states == {"voice": "idle", "keys": "idle", "mouse": "idle"}
    assert engine.current_frame == "idle_tongue_in.png"
    assert engine.animating


def test_trigger_key_sets_wasd_immediately(engine: AvatarEngine) -> None:
    assert engine.trigger_key("KeyW")
    assert engine.resolved_state == "wasd"
    assert engine.held_keys == ["KeyW"]
    assert engine.current_frame == "wasd_1.png"


def test_unknown_key_and_button_are_ignored(engine: AvatarEngine, scheduler) -> None:
    assert not engine.trigger_key("KeyQ")
    assert not engine.release_key("Space")
    assert not engine.trigger_mouse(2)
    assert not engine.release_mouse(1)
    assert not engine.trigger_mouse(False)
    assert engine.active_states == {"voice": "idle", "keys": "idle", "mouse": "idle"}
    assert engine.held_keys == []


def test_key_release_keeps_wasd_while_other_key_held(engine: AvatarEngine, scheduler) -> None:
    engine.trigger_key("KeyD")
    engine.trigger_key("KeyA")
    engine.release_key("KeyA")
    # 뗀 직후에는 held 에 그대로 남아 있음
    assert engine.held_keys == ["KeyA", "KeyD"]
    scheduler.advance(0.15)
    assert engine.held_keys == ["KeyD"]
    assert engine.active_states["keys"] == "wasd"
    assert engine.resolved_state == "wasd"

    engine.release_key("KeyD")
    scheduler.advance(0.149)
    assert engine.resolved_state == "wasd"
    scheduler.advance(0.001)
    assert engine.held_keys == []
    assert engine.active_states["keys"] == "idle"
    assert engine.resolved_state == "idle"


def test_retrigger_before_decay_cancels_key_timer(engine: AvatarEngine, scheduler) -> None:
    engine.trigger_key("KeyW")
    engine.release_key("KeyW")
    scheduler.advance(0.1)
    engine.trigger_key("KeyW")
    scheduler.advance(1.0)
    assert engine.held_keys == ["KeyW"]
    assert engine.resolved_state == "wasd"


def test_mouse_decays_exactly_at_linger_after_trigger(engine: AvatarEngine, scheduler) -> None:
    engine.trigger_mouse(0)
    assert engine.resolved_state == "mouse"
    scheduler.advance(0.149)
    assert engine.active_states["mouse"] == "mouse"
    scheduler.advance(0.001)
    assert engine.active_states["mouse"] == "idle"
    assert engine.resolved_state == "idle"


def test_mouse_release_rearms_decay_from_release(engine: AvatarEngine, scheduler) -> None:
    engine.trigger_mouse(4)
    scheduler.advance(0.1)
    engine.release_mouse(4)
    assert engine.active_states["mouse"] == "mouse"
    scheduler.advance(0.1)
    assert engine.resolved_state == "mouse"
    scheduler.advance(0.05)
    assert engine.resolved_state == "idle"


def test_voice_decays_to_idle_after_last_sample(engine: AvatarEngine, scheduler) -> None:
    engine.set_voice_state("talk")
    assert engine.resolved_state == "talk"
    scheduler.advance(0.2)
    engine.set_voice_state("talk")
    scheduler.advance(0.2)
    assert engine.resolved_state == "talk"
    scheduler.advance(0.05)
    assert engine.active_states["voice"] == "idle"
    assert engine.resolved_state == "idle"


def test_unknown_voice_state_is_rejected(engine: AvatarEngine, scheduler) -> None:
    engine.set_voice_state("dance")
    assert engine.active_states["voice"] == "idle"
    assert scheduler.pending == 1  # idle 애니메이션 tick 만


def test_priority_arbitration_across_channels(engine: AvatarEngine, scheduler) -> None:
    engine.set_voice_state("talk")
    engine.trigger_key("KeyS")
    assert engine.resolved_state == "wasd"
    engine.trigger_mouse(0)
    assert engine.resolved_state == "mouse"
    engine.set_voice_state("scream")
    assert engine.resolved_state == "scream"
    # voice 가 먼저 만료되면 mouse 는 이미 만료, keys 는 계속 눌려 있음
    scheduler.advance(0.25)
    assert engine.active_states == {"voice": "idle", "keys": "wasd", "mouse": "idle"}
    assert engine.resolved_state == "wasd"


def test_listener_called_only_on_change(engine: AvatarEngine) -> None:
    changes = []
    engine.add_listener(lambda old, new: changes.append((old, new)))
    engine.trigger_key("KeyW")
    engine.trigger_key("KeyA")
    engine.set_voice_state("talk")  # wasd 가 여전히 이김
    assert changes == [("idle", "wasd")]


def test_redundant_resolution_does_not_restart_animation(engine: AvatarEngine, scheduler) -> None:
    engine.trigger_key("KeyW")
    scheduler.advance(0.25)
    assert engine.frame_index == 1
    assert engine.current_frame == "wasd_2.png"
    engine.trigger_key("KeyA")
    engine.set_voice_state("talk")
    assert engine.frame_index == 1
    scheduler.advance(0.25)
    assert engine.frame_index == 0
    assert engine.current_frame == "wasd_1.png"


def test_static_sprite_stops_animation(engine: AvatarEngine, scheduler) -> None:
    engine.trigger_mouse(0)
    assert engine.current_frame == "mouse_click.png"
    assert not engine.animating
    scheduler.advance(0.1)
    assert engine.current_frame == "mouse_click.png"


def test_return_to_idle_restarts_idle_cycle_at_first_frame(engine: AvatarEngine, scheduler) -> None:
    scheduler.advance(0.6)
    assert engine.current_frame == "idle_tongue_out.png"
    engine.trigger_mouse(0)
    scheduler.advance(0.15)
    assert engine.resolved_state == "idle"
    assert engine.frame_index == 0
    assert engine.current_frame == "idle_tongue_in.png"


def test_stop_cancels_every_timer(engine: AvatarEngine, scheduler) -> None:
    engine.set_voice_state("talk")
    engine.trigger_key("KeyW")
    engine.release_key("KeyW")
    engine.trigger_mouse(0)
    engine.stop()
    assert scheduler.pending == 0
    assert not engine.animating


def test_engines_are_independent(config, scheduler) -> None:
    a = AvatarEngine(config, scheduler=scheduler)
    b = AvatarEngine(config, scheduler=scheduler)
    a.trigger_key("KeyW")
    assert a.resolved_state == "wasd"
    assert b.resolved_state == "idle"


def test_frames_reported_to_sink(config, scheduler) -> None:
    frames = []
    eng = AvatarEngine(config, scheduler=scheduler, on_frame=frames.append)
    eng.start()
    eng.set_voice_state("scream")
    assert frames == ["idle_tongue_in.png", "scream.png"]
