import numpy as np
import pytest

from barrage.config import GameConfig, GameMode, LevelConfig, ShieldKind, WeaponKind
from barrage.game.match import Game
from barrage.game.turns import TurnState
from barrage.settings import settings
from barrage.sim.tank import Controller


def _game(mode=GameMode.LOCAL, seed=1, level_seed=12345):
    return Game(LevelConfig(seed=level_seed), GameConfig(mode=mode), rng=np.random.default_rng(seed))


def _play_until(game, predicate, frames=3000):
    seen = []
    for _ in range(frames):
        events = game.update(1 / 60)
        seen.extend(events)
        if any(predicate(e) for e in events):
            break
    return seen


def test_spawn_layout():
    game = _game()
    left, right = game.tanks
    assert left.x == pytest.approx(160.0)
    assert right.x == pytest.approx(640.0)
    assert (left.facing, right.facing) == (1, -1)
    assert all(t.is_supported(game.terrain) for t in game.tanks)
    assert all(t.controller == Controller.HUMAN for t in game.tanks)
    assert game.turns.state == TurnState.WAITING_FOR_INPUT
    assert game.outcome() is None


def test_same_seed_same_field():
    a, b = _game(), _game()
    np.testing.assert_array_equal(a.terrain.cells, b.terrain.cells)
    assert a.environment == b.environment


def test_fire_then_hand_over():
    game = _game()
    game.adjust_angle(5.0)
    assert game.active_tank.angle == 50.0

    assert game.fire()
    assert not game.fire()
    # Aim is locked while the shot is in the air.
    game.adjust_angle(10.0)
    assert game.active_tank.angle == 50.0

    events = _play_until(game, lambda e: e["type"] == "turn")
    (fire,) = [e for e in events if e["type"] == "fire"]
    assert fire["tank"] == 0 and fire["weapon"] == "standard" and fire["projectiles"] == 1
    assert any(e["type"] in ("explosion", "out_of_bounds", "shield_hit") for e in events)
    assert events[-1] == {"type": "turn", "tank": 1, "number": 2}
    assert game.turns.current == 1


def test_weapon_and_shield_selection():
    game = _game()
    assert game.select_weapon("salvo")
    assert game.active_tank.weapon == WeaponKind.SALVO
    with pytest.raises(ValueError):
        game.select_weapon("laser")
    assert game.activate_shield(ShieldKind.MULTI_USE)
    assert game.active_tank.shield_active
    assert not game.activate_shield("single_use")


def test_fire_needs_ammo():
    game = _game()
    game.select_weapon(WeaponKind.HAZELNUT)
    game.active_tank.ammo[WeaponKind.HAZELNUT] = 0
    assert not game.fire()
    assert game.turns.state == TurnState.WAITING_FOR_INPUT


def test_solo_ai_takes_its_turn():
    game = _game(mode=GameMode.SOLO)
    assert game.tanks[1].controller == Controller.AI
    assert game.fire()
    _play_until(game, lambda e: e["type"] == "turn")
    assert game.turns.is_ai_turn()

    # The computer's tank ignores the keyboard.
    before = game.active_tank.angle
    game.adjust_angle(20.0)
    assert game.active_tank.angle == before
    assert not game.select_weapon("salvo")

    events = _play_until(game, lambda e: e["type"] == "fire")
    assert events[-1]["type"] == "fire"
    assert events[-1]["tank"] == 1


def test_ai_learns_from_its_own_shots():
    game = _game(mode=GameMode.DEMO)
    _play_until(game, lambda e: e["type"] == "turn")
    assert len(game.ai[0].memory) == 1


def test_demo_matches_are_reproducible():
    def stream():
        game = _game(mode=GameMode.DEMO, seed=7)
        out = []
        for _ in range(600):
            out.extend(game.update(1 / 60))
        return out

    assert stream() == stream()


def test_preview_starts_at_muzzle():
    game = _game()
    path = game.preview(max_points=50)
    assert path[0] == pytest.approx(game.active_tank.muzzle())
    assert 1 < len(path) <= 52


def test_kill_ends_the_game():
    game = _game()
    shooter, target = game.tanks
    target.health = 1
    shooter.aim(45.0, 0.0)
    # A zero-power shot drops straight out of the barrel onto the target.
    mx, my = shooter.muzzle()
    target.x, target.y = mx, my + 30.0
    assert game.fire()

    events = _play_until(game, lambda e: e["type"] == "game_over")
    assert {"type": "game_over", "winner": 0} in events
    outcome = game.outcome()
    assert outcome is not None and outcome.winner == 0 and not outcome.draw
    assert game.update(1 / 60) == []


def test_default_config_reads_settings(monkeypatch):
    monkeypatch.setattr(settings, "TURN_SWITCH_DELAY_S", 0.5)
    monkeypatch.setattr(settings, "SIM_SPEED", 30.0)
    game = Game(LevelConfig(seed=12345), rng=np.random.default_rng(1))
    assert game.config.turn_switch_delay_s == 0.5
    assert game.config.sim_speed == 30.0
    assert game.sim.sim_speed == 30.0
    assert game.config.mode == GameMode.SOLO
