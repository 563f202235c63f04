from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from ..constants import SIM_UNITS_PER_SECOND, SPLASH_PAD
from ..weapons import (
    WEAPONS,
    FirePlan,
    SpawnSpec,
    create_split_plan,
    rebound,
    should_bounce,
    should_split,
)
from .collision import Collision, HitKind, resolve_all
from .projectile import Projectile, advance

if TYPE_CHECKING:
    from ..gen.biomes import EnvironmentEffects
    from .tank import Tank
    from .world import TerrainField

logger = logging.getLogger("barrage.sim")


def splash_damage(max_damage: int, radius: float, dist: float) -> int:
    """Full damage inside SPLASH_PAD, falling off linearly to zero at radius + SPLASH_PAD."""
    if dist > radius + SPLASH_PAD:
        return 0
    falloff = max(0.0, dist - SPLASH_PAD) / radius if radius > 0 else 0.0
    return max(0, math.floor(max_damage * (1.0 - falloff)))


class Sim:
    """
    Projectile tick loop for one match.

    Owns the live projectile list and the queue of delayed spawns. Each tick
    every projectile is advanced, all of them are collision-checked against
    the terrain as it stood at the start of resolution, and only then are
    craters carved and damage applied, in projectile order.
    """

    def __init__(
        self,
        terrain: TerrainField,
        environment: EnvironmentEffects,
        tanks: list[Tank],
        rng: np.random.Generator,
        sim_speed: float = SIM_UNITS_PER_SECOND,
    ):
        self.terrain = terrain
        self.environment = environment
        self.tanks = tanks
        self.rng = rng
        self.sim_speed = float(sim_speed)

        self.clock = 0.0
        self.projectiles: list[Projectile] = []
        self._pending: list[tuple[float, int, SpawnSpec]] = []
        self._spawn_seq = 0
        self._in_flight = False

    @property
    def idle(self) -> bool:
        return not self.projectiles and not self._pending

    def queue_plan(self, plan: FirePlan) -> None:
        for spec, delay_s in plan.spawns:
            due = self.clock + max(0.0, delay_s) * self.sim_speed
            self._pending.append((due, self._spawn_seq, spec))
            self._spawn_seq += 1
        self._pending.sort(key=lambda item: (item[0], item[1]))

    def _release_due(self) -> list[dict]:
        events: list[dict] = []
        while self._pending and self._pending[0][0] <= self.clock + 1e-9:
            _, _, spec = self._pending.pop(0)
            self.projectiles.append(spec.build())
        if self.projectiles and not self._in_flight:
            self._in_flight = True
            events.append({"type": "flight_start"})
        return events

    def tick(self, dt: float) -> list[dict]:
        events: list[dict] = []
        self.clock += dt
        events.extend(self._release_due())

        moved = [advance(p, dt, self.environment) for p in self.projectiles]
        hits = resolve_all(moved, self.tanks, self.terrain)

        survivors: list[Projectile] = []
        modified: set[int] = set()
        for p, hit in zip(moved, hits, strict=True):
            if hit is None:
                if should_split(p):
                    events.extend(self._split(p))
                else:
                    survivors.append(p)
                continue
            if hit.kind == HitKind.TERRAIN and should_bounce(p):
                survivors.append(self._bounce(hit))
                events.append(
                    {
                        "type": "bounce",
                        "weapon": p.weapon.value,
                        "owner": p.owner_id,
                        "pos": [hit.x, hit.y],
                        "bounces": p.bounces + 1,
                    }
                )
                continue
            events.extend(self._apply_hit(hit, modified))

        self.projectiles = survivors

        for tank in self.tanks:
            changed = tank.update_ground(self.terrain, dt, self.environment.gravity)
            if changed is not None:
                events.append({"type": "tank_ground", "tank": tank.tank_id, "state": changed.value})

        if modified:
            events.append({"type": "terrain", "columns": sorted(modified)})

        if self._in_flight and self.idle:
            self._in_flight = False
            events.append({"type": "flight_stop"})
        return events

    # ------------------------------------------------------------------
    # Mid-flight behaviours
    # ------------------------------------------------------------------

    def _split(self, p: Projectile) -> list[dict]:
        plan = create_split_plan(p, p.owner_id, self.rng)
        self.queue_plan(plan)
        logger.debug(f"Split by {p.owner_id} at ({p.x:.1f}, {p.y:.1f}) into {len(plan)} fragments")
        return [{"type": "split", "owner": p.owner_id, "pos": [p.x, p.y], "fragments": len(plan)}]

    def _bounce(self, hit: Collision) -> Projectile:
        normal = self.terrain.surface_normal_angle(hit.x)
        return rebound(hit.projectile, normal, hit.free_x, hit.free_y)

    # ------------------------------------------------------------------
    # Impacts
    # ------------------------------------------------------------------

    def _apply_hit(self, hit: Collision, modified: set[int]) -> list[dict]:
        p = hit.projectile
        if hit.kind == HitKind.OUT_OF_BOUNDS:
            return [{"type": "out_of_bounds", "weapon": p.weapon.value, "owner": p.owner_id, "pos": [hit.x, hit.y]}]
        tank = hit.tank
        if hit.kind == HitKind.SHIELD and tank is not None and tank.alive and tank.shield_active:
            return self._shield_hit(hit)
        # A ring hit on a shield that an earlier shell this tick brought down explodes in place.
        return self._explode(hit, modified)

    def _shield_hit(self, hit: Collision) -> list[dict]:
        p = hit.projectile
        tank = hit.tank
        assert tank is not None and tank.shield is not None
        damage = WEAPONS[p.weapon].explosion_damage
        was_active = tank.shield.active
        was_alive = tank.alive
        remainder = tank.shield.take_damage(damage)
        lost = tank.apply_damage(remainder)
        events: list[dict] = [
            {
                "type": "shield_hit",
                "weapon": p.weapon.value,
                "owner": p.owner_id,
                "target": tank.tank_id,
                "pos": [hit.x, hit.y],
                "absorbed": damage - remainder,
                "damage": lost,
            }
        ]
        if was_active and not tank.shield.active:
            events.append({"type": "shield_destroyed", "target": tank.tank_id})
        events.extend(self._check_kill(tank, p.owner_id, was_alive))
        return events

    def _explode(self, hit: Collision, modified: set[int]) -> list[dict]:
        p = hit.projectile
        spec = WEAPONS[p.weapon]
        events: list[dict] = []

        for tank in self.tanks:
            if not tank.alive:
                continue
            dist = math.hypot(tank.x - hit.x, tank.y - hit.y)
            amount = splash_damage(spec.explosion_damage, spec.explosion_radius, dist)
            if amount <= 0:
                continue
            shield_up = tank.shield_active
            was_alive = tank.alive
            lost = tank.take_damage(amount)
            events.append(
                {
                    "type": "projectile_hit",
                    "weapon": p.weapon.value,
                    "owner": p.owner_id,
                    "target": tank.tank_id,
                    "pos": [hit.x, hit.y],
                    "damage": lost,
                    "direct": tank is hit.tank,
                }
            )
            if shield_up and not tank.shield_active:
                events.append({"type": "shield_destroyed", "target": tank.tank_id})
            events.extend(self._check_kill(tank, p.owner_id, was_alive))

        cols = self.terrain.carve(hit.x, hit.y, spec.explosion_radius, spec.explosion_shape, spec.shape_ratio)
        modified |= cols

        events.append(
            {
                "type": "explosion",
                "weapon": p.weapon.value,
                "owner": p.owner_id,
                "pos": [hit.x, hit.y],
                "radius": spec.explosion_radius,
                "hit": hit.kind.value,
            }
        )
        return events

    def _check_kill(self, tank: Tank, shooter_id: int, was_alive: bool) -> list[dict]:
        if tank.alive or not was_alive:
            return []
        logger.info(f"Tank {tank.tank_id} destroyed by {shooter_id}")
        return [{"type": "kill", "shooter": shooter_id, "target": tank.tank_id}]
