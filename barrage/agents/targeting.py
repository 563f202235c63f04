from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np

from ..config import WeaponKind
from ..constants import AI_LEARN_WINDOW, AI_MEMORY, BASE_LAUNCH_SPEED
from ..sim.projectile import launch
from ..sim.tank import muzzle_point, world_angle
from ..sim.trace import trace_impact
from ..weapons import WEAPONS

if TYPE_CHECKING:
    from ..gen.biomes import EnvironmentEffects
    from ..sim.tank import Tank
    from ..sim.world import TerrainField

logger = logging.getLogger("barrage.ai")

ELEVATION_MIN = 5.0
ELEVATION_MAX = 85.0
POWER_MIN = 20.0
POWER_MAX = 100.0
FALLBACK_ELEVATION = 45.0

# Misses further than this are not used for learning.
LEARN_MAX_MISS = 200.0
LEARN_MIN_MISS = 20.0


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class DifficultyProfile:
    angle_deviation: float  # +- degrees added after the search
    power_deviation: float  # +- power added after the search
    elevation_step: float  # spacing of the coarse elevation sweep
    power_iterations: int  # bisection steps on power per elevation
    refine_rounds: int
    tolerance: float  # stop searching once the best miss is this close


DIFFICULTY_PROFILES: Mapping[Difficulty, DifficultyProfile] = MappingProxyType(
    {
        Difficulty.EASY: DifficultyProfile(15.0, 20.0, 15.0, 4, 0, 50.0),
        Difficulty.MEDIUM: DifficultyProfile(8.0, 10.0, 10.0, 6, 1, 25.0),
        Difficulty.HARD: DifficultyProfile(3.0, 5.0, 5.0, 8, 2, 0.0),
    }
)


@dataclass(frozen=True)
class AimResult:
    angle: float  # turret elevation
    power: float
    miss: float  # 0 when the simulated path crosses the target's hitbox
    impact_x: float
    impact_y: float


@dataclass(frozen=True)
class AimFeedback:
    impact_x: float
    impact_y: float
    target_x: float
    target_y: float

    @property
    def dx(self) -> float:
        return self.impact_x - self.target_x


def _clamp(v: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, v))


class TargetingAI:
    """
    Computer gunner that solves the inverse ballistics problem by simulation.

    Behavior:
    - Sweep turret elevations; at each one, bisect power on the simulated
      impact (overshoot lowers power, undershoot raises it).
    - Refine around the best candidate with shrinking angle/power nudges.
    - Aim at the defender shifted against the average recent miss.
    - Add difficulty-scaled noise to the final angle and power.
    - Always return a clamped, fireable aim; fall back to a distance-based
      45 degree lob when nothing was evaluated.

    `search` is a generator so a scheduler can spread the work over frames;
    `begin` wraps it in an AimTask that reports through a callback.
    """

    def __init__(
        self,
        difficulty: Difficulty = Difficulty.MEDIUM,
        rng: np.random.Generator | None = None,
        dt: float = 1.0,
        max_steps: int = 600,
    ):
        self.difficulty = Difficulty(difficulty)
        self.profile = DIFFICULTY_PROFILES[self.difficulty]
        self.rng = rng if rng is not None else np.random.default_rng()
        self.dt = float(dt)
        self.max_steps = int(max_steps)
        self.memory: deque[AimFeedback] = deque(maxlen=AI_MEMORY)
        self.evaluated = 0

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def record_shot_result(self, feedback: AimFeedback) -> None:
        self.memory.append(feedback)
        logger.debug(f"AI shot landed {feedback.dx:+.1f}px from target")

    def aim_point(self, defender: Tank) -> tuple[float, float]:
        recent = [f for f in list(self.memory)[-AI_LEARN_WINDOW:] if abs(f.dx) < LEARN_MAX_MISS]
        if not recent:
            return defender.x, defender.y
        bias = sum(f.dx for f in recent) / len(recent)
        if abs(bias) <= LEARN_MIN_MISS:
            return defender.x, defender.y
        return defender.x - 0.5 * bias, defender.y

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def evaluate(
        self,
        attacker: Tank,
        target: tuple[float, float],
        terrain: TerrainField,
        env: EnvironmentEffects,
        weapon: WeaponKind,
        angle: float,
        power: float,
    ) -> AimResult:
        spec = WEAPONS[weapon]
        mx, my = muzzle_point(attacker.x, attacker.y, attacker.facing, angle)
        heading = world_angle(attacker.facing, angle)
        shot = launch(mx, my, heading, power, attacker.tank_id, weapon, spec.speed_multiplier, spec.drag_multiplier)
        tr = trace_impact(shot, env, terrain, dt=self.dt, max_steps=self.max_steps, target=target)
        self.evaluated += 1
        return AimResult(angle, power, tr.miss, tr.x, tr.y)

    def search(
        self,
        attacker: Tank,
        defender: Tank,
        terrain: TerrainField,
        env: EnvironmentEffects,
        weapon: WeaponKind | None = None,
    ) -> Iterator[AimResult]:
        """Yield the best aim found so far after every simulated candidate."""
        weapon = attacker.weapon if weapon is None else weapon
        prof = self.profile
        target = self.aim_point(defender)
        toward = 1.0 if target[0] >= attacker.x else -1.0
        best: AimResult | None = None

        def better(r: AimResult) -> AimResult:
            return r if best is None or r.miss < best.miss else best

        def done() -> bool:
            return best is not None and best.miss <= prof.tolerance

        elevations = np.arange(ELEVATION_MIN, ELEVATION_MAX + 1e-6, prof.elevation_step)
        for angle in elevations:
            lo, hi = POWER_MIN, POWER_MAX
            for _ in range(prof.power_iterations):
                power = (lo + hi) / 2.0
                r = self.evaluate(attacker, target, terrain, env, weapon, float(angle), power)
                best = better(r)
                yield best
                if done():
                    return
                if (r.impact_x - target[0]) * toward > 0:
                    hi = power
                else:
                    lo = power

        assert best is not None
        da = prof.elevation_step / 2.0
        dp = (POWER_MAX - POWER_MIN) / 2 ** (prof.power_iterations + 1)
        for _ in range(prof.refine_rounds):
            centre = best
            for sa in (-1.0, 0.0, 1.0):
                for sp in (-1.0, 0.0, 1.0):
                    if sa == 0.0 and sp == 0.0:
                        continue
                    angle = _clamp(centre.angle + sa * da, ELEVATION_MIN, ELEVATION_MAX)
                    power = _clamp(centre.power + sp * dp, POWER_MIN, POWER_MAX)
                    best = better(self.evaluate(attacker, target, terrain, env, weapon, angle, power))
                    yield best
                    if done():
                        return
            da /= 2.0
            dp /= 2.0

    def fallback_aim(self, attacker: Tank, defender: Tank, env: EnvironmentEffects, weapon: WeaponKind) -> AimResult:
        """45 degree lob with power from the drag-free range equation, padded for drag."""
        dist = abs(defender.x - attacker.x)
        speed = math.sqrt(max(dist, 1.0) * max(env.gravity, 1e-3)) * 1.15
        power = speed / (BASE_LAUNCH_SPEED * WEAPONS[weapon].speed_multiplier) * 100.0
        power = _clamp(power, POWER_MIN, POWER_MAX)
        return AimResult(FALLBACK_ELEVATION, power, math.inf, defender.x, defender.y)

    def finalize(self, best: AimResult) -> tuple[float, float]:
        """Apply difficulty noise and clamp to a valid aim."""
        prof = self.profile
        angle = best.angle + float(self.rng.uniform(-prof.angle_deviation, prof.angle_deviation))
        power = best.power + float(self.rng.uniform(-prof.power_deviation, prof.power_deviation))
        return _clamp(angle, -90.0, 90.0), _clamp(power, POWER_MIN, POWER_MAX)

    def decide(
        self,
        attacker: Tank,
        defender: Tank,
        terrain: TerrainField,
        env: EnvironmentEffects,
        weapon: WeaponKind | None = None,
    ) -> tuple[float, float]:
        """Run the whole search synchronously and return (elevation, power)."""
        weapon = attacker.weapon if weapon is None else weapon
        best = None
        for best in self.search(attacker, defender, terrain, env, weapon):
            pass
        if best is None:
            best = self.fallback_aim(attacker, defender, env, weapon)
        logger.debug(f"AI aim {best.angle:.1f}deg power {best.power:.1f} miss {best.miss:.1f}")
        return self.finalize(best)

    def begin(
        self,
        attacker: Tank,
        defender: Tank,
        terrain: TerrainField,
        env: EnvironmentEffects,
        callback: Callable[[float, float], None],
        weapon: WeaponKind | None = None,
        think_delay_s: float = 0.05,
        timeout_s: float = 2.0,
    ) -> AimTask:
        weapon = attacker.weapon if weapon is None else weapon
        return AimTask(
            self,
            self.search(attacker, defender, terrain, env, weapon),
            callback,
            fallback=self.fallback_aim(attacker, defender, env, weapon),
            think_delay_s=think_delay_s,
            timeout_s=timeout_s,
        )


class AimTask:
    """
    Deferred AI decision, advanced a slice at a time from the frame loop.

    The callback fires exactly once: after the search finishes and the think
    delay has passed, or when the timeout hits with whatever was found.
    """

    def __init__(
        self,
        ai: TargetingAI,
        search: Iterator[AimResult],
        callback: Callable[[float, float], None],
        fallback: AimResult,
        think_delay_s: float,
        timeout_s: float,
    ):
        self.ai = ai
        self._search = search
        self._callback = callback
        self._fallback = fallback
        self.think_delay_s = think_delay_s
        self.timeout_s = timeout_s

        self.elapsed_s = 0.0
        self.best: AimResult | None = None
        self.result: tuple[float, float] | None = None
        self.done = False
        self._exhausted = False

    def step(self, dt_s: float, budget: int) -> None:
        if self.done:
            return
        self.elapsed_s += dt_s

        if not self._exhausted:
            for _ in range(max(1, budget)):
                try:
                    self.best = next(self._search)
                except StopIteration:
                    self._exhausted = True
                    break

        timed_out = not self._exhausted and self.elapsed_s >= self.timeout_s
        if timed_out:
            logger.warning(f"AI decision timed out after {self.elapsed_s:.2f}s, firing best guess")
            self._search.close()
        elif not (self._exhausted and self.elapsed_s >= self.think_delay_s):
            return

        best = self.best
        if best is None:
            logger.warning("AI search produced no candidate, using fallback aim")
            best = self._fallback
        self.result = self.ai.finalize(best)
        self.done = True
        self._callback(*self.result)

    def cancel(self) -> None:
        self.done = True
        self._search.close()
