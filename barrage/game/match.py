from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from ..agents.targeting import AimFeedback, AimTask, Difficulty, TargetingAI
from ..config import GameConfig, GameMode, LevelConfig, ShieldKind, TerrainConfig, WeaponKind
from ..constants import TANK_SPAWN_FRACTIONS
from ..gen.biomes import describe
from ..gen.levels import round_environment
from ..sim.sim import Sim
from ..sim.tank import Controller, Tank
from ..sim.trace import trace_impact
from ..sim.world import TerrainField
from ..weapons import create_fire_plan, weapon_spec
from .turns import TurnScheduler, TurnState

logger = logging.getLogger("barrage.game")

_AI_PLAYERS: dict[GameMode, set[int]] = {
    GameMode.SOLO: {1},
    GameMode.LOCAL: set(),
    GameMode.DEMO: {0, 1},
}


@dataclass(frozen=True)
class MatchOutcome:
    winner: int | None  # tank index, None for a draw
    turns: int

    @property
    def draw(self) -> bool:
        return self.winner is None


@dataclass
class _ShotRecord:
    shooter: int
    target_x: float
    target_y: float
    impact: tuple[float, float] | None = None


class Game:
    """
    One match: terrain, two tanks, projectiles and the turn flow.

    The host calls `update(frame_s)` once per rendered frame and forwards
    input through the adjust/select/fire methods. Everything the renderer or
    audio layer may care about comes back as event dicts from `update`.
    """

    def __init__(
        self,
        level: LevelConfig,
        config: GameConfig | None = None,
        rng: np.random.Generator | None = None,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ):
        self.config = config or GameConfig.from_settings()
        self.level = level
        self.rng = rng if rng is not None else np.random.default_rng(level.seed)

        self.environment = round_environment(level, self.rng)
        seed = level.seed if level.seed is not None else int(self.rng.integers(0, 1_000_000))
        self.terrain = TerrainField.generate(
            TerrainConfig(
                width=self.config.width,
                height=self.config.height,
                shape=level.shape,
                roughness=level.roughness,
                seed=float(seed),
                min_surface_frac=self.config.min_surface_frac,
                max_surface_frac=self.config.max_surface_frac,
            )
        )

        ai_players = _AI_PLAYERS[self.config.mode]
        self.tanks: list[Tank] = []
        for i, frac in enumerate(TANK_SPAWN_FRACTIONS):
            tank = Tank(
                tank_id=i,
                x=self.config.width * frac,
                y=0.0,
                facing=1 if frac < 0.5 else -1,
                controller=Controller.AI if i in ai_players else Controller.HUMAN,
            )
            tank.settle(self.terrain)
            self.tanks.append(tank)

        self.sim = Sim(self.terrain, self.environment, self.tanks, self.rng, sim_speed=self.config.sim_speed)
        self.ai: dict[int, TargetingAI] = {i: TargetingAI(difficulty, self.rng) for i in ai_players}
        self.turns = TurnScheduler(
            self.tanks,
            ai_players=ai_players,
            switch_delay_s=self.config.turn_switch_delay_s,
            ai_budget=self.config.ai_candidates_per_tick,
            on_ai_turn=self._start_ai_turn,
        )
        self._shot: _ShotRecord | None = None
        self._pending_events: list[dict] = []

        logger.info(
            f"Round start: {level.biome.value}/{level.shape.value} seed={seed} "
            f"mode={self.config.mode.value} ({describe(self.environment)})"
        )
        self.turns.start()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    @property
    def active_tank(self) -> Tank:
        return self.turns.active_tank

    def _accepts_input(self) -> bool:
        return self.turns.can_fire() and not self.turns.is_ai_turn()

    def adjust_angle(self, delta: float) -> float:
        tank = self.active_tank
        if self._accepts_input():
            tank.adjust_angle(delta)
        return tank.angle

    def adjust_power(self, delta: float) -> float:
        tank = self.active_tank
        if self._accepts_input():
            tank.adjust_power(delta)
        return tank.power

    def select_weapon(self, kind: WeaponKind | str) -> bool:
        if not self._accepts_input():
            return False
        return self.active_tank.select_weapon(weapon_spec(kind).kind)

    def activate_shield(self, kind: ShieldKind | str) -> bool:
        if not self._accepts_input():
            return False
        return self.active_tank.activate_shield(ShieldKind(kind))

    def fire(self) -> bool:
        """Fire the active tank's weapon. Ignored unless the turn is open for input."""
        tank = self.active_tank
        if not tank.has_ammo() or not self.turns.begin_fire():
            return False
        tank.consume_ammo()
        plan = create_fire_plan(tank.weapon, tank.muzzle(), tank.world_angle(), tank.power, tank.tank_id)
        self.sim.queue_plan(plan)
        self.turns.projectiles_launched()

        defender = self._opponent(self.turns.current)
        self._shot = _ShotRecord(
            shooter=self.turns.current,
            target_x=defender.x if defender else math.nan,
            target_y=defender.y if defender else math.nan,
        )
        self._pending_events.append(
            {
                "type": "fire",
                "tank": tank.tank_id,
                "weapon": tank.weapon.value,
                "angle": tank.angle,
                "power": tank.power,
                "projectiles": len(plan),
                "play_sound": plan.play_sound,
                "clear_preview": plan.clear_preview,
            }
        )
        return True

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------

    def update(self, frame_s: float) -> list[dict]:
        """Advance the match by one rendered frame of `frame_s` seconds."""
        events, self._pending_events = self._pending_events, []
        if self.turns.game_over:
            return events

        sim_dt = max(0.0, frame_s) * self.config.sim_speed
        if sim_dt > 0.0:
            n = max(1, math.ceil(sim_dt / self.config.max_tick_dt))
            for _ in range(n):
                tick_events = self.sim.tick(sim_dt / n)
                self._note_impacts(tick_events)
                events.extend(tick_events)
                if any(e["type"] == "kill" for e in tick_events) and self.turns.check_game_over():
                    events.append(self._game_over_event())
                    return events

        if self.turns.state in (TurnState.FIRING, TurnState.RESOLVING_PROJECTILES) and self.sim.idle:
            self._finish_shot()
            self.turns.projectiles_resolved()
            if self.turns.game_over:
                events.append(self._game_over_event())
                return events

        previous = self.turns.current
        self.turns.update(frame_s)
        if self.turns.current != previous:
            events.append({"type": "turn", "tank": self.turns.current, "number": self.turns.turn_number})
        events.extend(self._drain_pending())
        return events

    def _drain_pending(self) -> list[dict]:
        events, self._pending_events = self._pending_events, []
        return events

    def _note_impacts(self, events: list[dict]) -> None:
        if self._shot is None or self._shot.impact is not None:
            return
        for e in events:
            if e["type"] in ("explosion", "shield_hit", "out_of_bounds"):
                self._shot.impact = (float(e["pos"][0]), float(e["pos"][1]))
                return

    def _finish_shot(self) -> None:
        shot, self._shot = self._shot, None
        if shot is None or shot.impact is None or shot.shooter not in self.ai:
            return
        if math.isnan(shot.target_x):
            return
        self.ai[shot.shooter].record_shot_result(
            AimFeedback(shot.impact[0], shot.impact[1], shot.target_x, shot.target_y)
        )

    def _game_over_event(self) -> dict:
        return {"type": "game_over", "winner": self.turns.winner}

    # ------------------------------------------------------------------
    # Computer turns
    # ------------------------------------------------------------------

    def _opponent(self, index: int) -> Tank | None:
        me = self.tanks[index]
        others = [t for t in self.tanks if t is not me and t.alive]
        if not others:
            return None
        return min(others, key=lambda t: abs(t.x - me.x))

    def _start_ai_turn(self, index: int) -> AimTask | None:
        attacker = self.tanks[index]
        defender = self._opponent(index)
        if defender is None:
            return None
        if not attacker.has_ammo():
            attacker.select_weapon(WeaponKind.STANDARD)

        def on_decision(angle: float, power: float) -> None:
            attacker.aim(angle, power)
            if not self.fire():
                logger.warning(f"AI tank {index} could not fire in state {self.turns.state.value}")

        return self.ai[index].begin(
            attacker,
            defender,
            self.terrain,
            self.environment,
            on_decision,
            think_delay_s=self.config.ai_think_delay_s,
            timeout_s=self.config.ai_timeout_s,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def preview(self, max_points: int = 120) -> list[tuple[float, float]]:
        """Predicted flight path for the active tank's current aim, ignoring tanks."""
        tank = self.active_tank
        plan = create_fire_plan(tank.weapon, tank.muzzle(), tank.world_angle(), tank.power, tank.tank_id)
        first = plan.spawns[0][0].build()
        tr = trace_impact(first, self.environment, self.terrain, max_steps=max_points, record_path=True)
        return tr.path

    def outcome(self) -> MatchOutcome | None:
        if not self.turns.game_over:
            return None
        return MatchOutcome(winner=self.turns.winner, turns=self.turns.turn_number)
