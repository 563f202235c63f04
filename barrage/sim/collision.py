from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from ..constants import MIN_PATH_SAMPLES, TANK_HITBOX_RADIUS

if TYPE_CHECKING:
    from .projectile import Projectile
    from .tank import Tank
    from .world import TerrainField


class HitKind(Enum):
    SHIELD = "shield"
    TANK = "tank"
    TERRAIN = "terrain"
    OUT_OF_BOUNDS = "out_of_bounds"


@dataclass(frozen=True)
class Collision:
    projectile: Projectile
    kind: HitKind
    x: float
    y: float
    tank: Tank | None = None
    # Last sample before contact, where a bounce restarts from.
    free_x: float = 0.0
    free_y: float = 0.0


def sample_path(p: Projectile) -> tuple[np.ndarray, np.ndarray]:
    """
    Points along the swept segment prev -> current, both ends included.

    At least MIN_PATH_SAMPLES intervals, or one per pixel travelled. A very
    fast shot can still step over a one-cell sliver between samples.
    """
    dist = math.hypot(p.x - p.prev_x, p.y - p.prev_y)
    steps = max(MIN_PATH_SAMPLES, math.ceil(dist))
    t = np.linspace(0.0, 1.0, steps + 1)
    xs = p.prev_x + (p.x - p.prev_x) * t
    ys = p.prev_y + (p.y - p.prev_y) * t
    return xs, ys


def _at(p: Projectile, kind: HitKind, xs: np.ndarray, ys: np.ndarray, i: int, tank: Tank | None = None) -> Collision:
    j = max(0, i - 1)
    return Collision(
        projectile=p,
        kind=kind,
        x=float(xs[i]),
        y=float(ys[i]),
        tank=tank,
        free_x=float(xs[j]),
        free_y=float(ys[j]),
    )


def resolve(p: Projectile, tanks: Sequence[Tank], terrain: TerrainField) -> Collision | None:
    """
    First collision along one projectile's swept path this tick, if any.

    Tanks are checked in order, skipping the dead and the shooter. For each
    tank a sample inside the hitbox wins over the shield ring, so a shot that
    passes through a shield into the hull is a tank hit. Then terrain, then
    leaving the field through the sides or bottom. Above the top edge a
    projectile is still in flight.
    """
    xs, ys = sample_path(p)

    for tank in tanks:
        if not tank.alive or tank.tank_id == p.owner_id:
            continue
        d = np.hypot(xs - tank.x, ys - tank.y)
        inner = np.flatnonzero(d <= TANK_HITBOX_RADIUS)
        if inner.size:
            return _at(p, HitKind.TANK, xs, ys, int(inner[0]), tank)
        if tank.shield_active:
            ring = np.flatnonzero(d <= tank.shield.radius)
            if ring.size:
                return _at(p, HitKind.SHIELD, xs, ys, int(ring[0]), tank)

    solid = np.flatnonzero(terrain.solid_mask(xs, ys))
    if solid.size:
        return _at(p, HitKind.TERRAIN, xs, ys, int(solid[0]))

    if p.x < 0 or p.x > terrain.width or p.y > terrain.height:
        return Collision(p, HitKind.OUT_OF_BOUNDS, p.x, p.y, None, p.x, p.y)
    return None


def resolve_all(
    projectiles: Sequence[Projectile], tanks: Sequence[Tank], terrain: TerrainField
) -> list[Collision | None]:
    """Resolve every projectile against the same terrain state, before any crater is applied."""
    return [resolve(p, tanks, terrain) for p in projectiles]
