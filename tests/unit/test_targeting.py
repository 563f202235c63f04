import logging
import math

import numpy as np
import pytest

from barrage.agents.targeting import (
    DIFFICULTY_PROFILES,
    AimFeedback,
    AimResult,
    AimTask,
    Difficulty,
    TargetingAI,
)
from barrage.config import WeaponKind
from barrage.sim.sim import Sim
from barrage.sim.tank import muzzle_point, world_angle
from barrage.weapons import create_fire_plan


@pytest.fixture
def duel(make_tank):
    return make_tank(0, 200.0, facing=1), make_tank(1, 600.0, facing=-1)


def _last(iterator):
    out = None
    for out in iterator:
        pass
    return out


def test_hard_search_finds_a_hit_on_flat_ground(duel, flat_terrain, calm):
    attacker, defender = duel
    ai = TargetingAI(Difficulty.HARD, rng=np.random.default_rng(0))
    best = _last(ai.search(attacker, defender, flat_terrain, calm))
    assert best is not None
    assert best.miss == 0.0
    assert 5.0 <= best.angle <= 85.0
    assert 20.0 <= best.power <= 100.0


def test_search_works_facing_left(duel, flat_terrain, calm):
    attacker, defender = duel
    ai = TargetingAI(Difficulty.HARD, rng=np.random.default_rng(0))
    best = _last(ai.search(defender, attacker, flat_terrain, calm))
    assert best.miss <= 40.0


def test_easier_profiles_stop_sooner(duel, flat_terrain, calm):
    attacker, defender = duel
    counts = {}
    for level in Difficulty:
        ai = TargetingAI(level, rng=np.random.default_rng(0))
        _last(ai.search(attacker, defender, flat_terrain, calm))
        counts[level] = ai.evaluated
    assert counts[Difficulty.EASY] <= counts[Difficulty.HARD]


def test_search_yields_non_increasing_miss(duel, flat_terrain, calm):
    attacker, defender = duel
    ai = TargetingAI(Difficulty.MEDIUM, rng=np.random.default_rng(0))
    misses = [r.miss for r in ai.search(attacker, defender, flat_terrain, calm)]
    assert misses
    assert all(b <= a for a, b in zip(misses, misses[1:]))


def test_decide_is_clamped_and_seeded(duel, flat_terrain, calm):
    attacker, defender = duel
    a = TargetingAI(Difficulty.EASY, rng=np.random.default_rng(3)).decide(attacker, defender, flat_terrain, calm)
    b = TargetingAI(Difficulty.EASY, rng=np.random.default_rng(3)).decide(attacker, defender, flat_terrain, calm)
    assert a == b
    angle, power = a
    assert -90.0 <= angle <= 90.0
    assert 20.0 <= power <= 100.0


def test_finalize_stays_in_range():
    ai = TargetingAI(Difficulty.EASY, rng=np.random.default_rng(9))
    for _ in range(200):
        angle, power = ai.finalize(AimResult(88.0, 95.0, 0.0, 0.0, 0.0))
        assert angle <= 90.0 and power <= 100.0
        angle, power = ai.finalize(AimResult(-85.0, 21.0, 0.0, 0.0, 0.0))
        assert angle >= -90.0 and power >= 20.0


def test_finalize_noise_scales_with_difficulty():
    prof = DIFFICULTY_PROFILES[Difficulty.HARD]
    ai = TargetingAI(Difficulty.HARD, rng=np.random.default_rng(1))
    for _ in range(100):
        angle, power = ai.finalize(AimResult(45.0, 60.0, 0.0, 0.0, 0.0))
        assert abs(angle - 45.0) <= prof.angle_deviation
        assert abs(power - 60.0) <= prof.power_deviation


def test_fallback_is_a_lob(duel, calm):
    attacker, defender = duel
    ai = TargetingAI()
    aim = ai.fallback_aim(attacker, defender, calm, WeaponKind.STANDARD)
    assert aim.angle == 45.0
    assert 20.0 <= aim.power <= 100.0
    assert math.isinf(aim.miss)


def test_learning_shifts_aim_against_bias(make_tank):
    ai = TargetingAI()
    defender = make_tank(1, 600.0)
    assert ai.aim_point(defender) == (600.0, 490.0)

    for _ in range(3):
        ai.record_shot_result(AimFeedback(660.0, 500.0, 600.0, 490.0))
    assert ai.aim_point(defender) == (570.0, 490.0)

    # Small biases are ignored.
    ai.memory.clear()
    ai.record_shot_result(AimFeedback(610.0, 500.0, 600.0, 490.0))
    assert ai.aim_point(defender) == (600.0, 490.0)

    # So are wild misses.
    ai.memory.clear()
    ai.record_shot_result(AimFeedback(900.0, 500.0, 600.0, 490.0))
    assert ai.aim_point(defender) == (600.0, 490.0)


def test_memory_keeps_last_five():
    ai = TargetingAI()
    for i in range(8):
        ai.record_shot_result(AimFeedback(float(i), 0.0, 0.0, 0.0))
    assert [f.impact_x for f in ai.memory] == [3.0, 4.0, 5.0, 6.0, 7.0]


def test_aim_task_calls_back_once(duel, flat_terrain, calm):
    attacker, defender = duel
    calls = []
    ai = TargetingAI(Difficulty.MEDIUM, rng=np.random.default_rng(0))
    task = ai.begin(attacker, defender, flat_terrain, calm, lambda a, p: calls.append((a, p)), timeout_s=60.0)

    for _ in range(500):
        task.step(1 / 60, budget=16)
        if task.done:
            break
    assert task.done
    assert len(calls) == 1
    assert calls[0] == task.result

    task.step(1 / 60, budget=16)
    assert len(calls) == 1


def test_aim_task_times_out_with_best_guess(duel, flat_terrain, calm, caplog):
    attacker, defender = duel
    calls = []
    ai = TargetingAI(Difficulty.HARD, rng=np.random.default_rng(0))
    task = ai.begin(attacker, defender, flat_terrain, calm, lambda a, p: calls.append((a, p)), timeout_s=0.01)

    with caplog.at_level(logging.WARNING, logger="barrage.ai"):
        task.step(0.02, budget=1)
    assert task.done
    assert ai.evaluated == 1
    assert len(calls) == 1
    assert "timed out" in caplog.text


def test_aim_task_uses_fallback_without_candidates():
    calls = []
    ai = TargetingAI(Difficulty.HARD, rng=np.random.default_rng(0))
    fallback = AimResult(45.0, 50.0, math.inf, 0.0, 0.0)
    task = AimTask(ai, iter([]), lambda a, p: calls.append((a, p)), fallback, think_delay_s=0.0, timeout_s=1.0)
    task.step(0.016, budget=4)
    (angle, power), = calls
    assert abs(angle - 45.0) <= 3.0
    assert abs(power - 50.0) <= 5.0


def test_cancelled_task_never_fires(duel, flat_terrain, calm):
    attacker, defender = duel
    calls = []
    task = TargetingAI().begin(attacker, defender, flat_terrain, calm, lambda a, p: calls.append((a, p)))
    task.step(0.016, budget=1)
    task.cancel()
    for _ in range(10):
        task.step(1.0, budget=64)
    assert calls == []


def test_hazelnut_aim_lands_fragments_on_target(make_tank, flat_terrain, calm):
    attacker = make_tank(0, 150.0, facing=1)
    defender = make_tank(1, 650.0, facing=-1)
    ai = TargetingAI(Difficulty.HARD, rng=np.random.default_rng(0))
    best = _last(ai.search(attacker, defender, flat_terrain, calm, weapon=WeaponKind.HAZELNUT))
    assert best.miss == 0.0

    sim = Sim(flat_terrain, calm, [attacker, defender], np.random.default_rng(0))
    origin = muzzle_point(attacker.x, attacker.y, attacker.facing, best.angle)
    plan = create_fire_plan(WeaponKind.HAZELNUT, origin, world_angle(attacker.facing, best.angle), best.power, 0)
    sim.queue_plan(plan)
    events = []
    for _ in range(3000):
        events.extend(sim.tick(1.0))
        if sim.idle:
            break

    assert any(e["type"] == "split" for e in events)
    booms = [e["pos"][0] for e in events if e["type"] == "explosion"]
    assert min(abs(x - defender.x) for x in booms) <= 40.0
    assert defender.health < 100
