from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from ..constants import TANK_HITBOX_RADIUS
from ..weapons import centre_fragment, rebound, should_bounce, should_split
from .projectile import Projectile, advance

if TYPE_CHECKING:
    from ..gen.biomes import EnvironmentEffects
    from .world import TerrainField


@dataclass
class TraceResult:
    x: float
    y: float
    outcome: str  # "target" | "ground" | "out_of_bounds" | "timeout"
    steps: int
    miss: float = math.inf  # distance from target, 0 if the path crossed its hitbox
    path: list[tuple[float, float]] = field(default_factory=list)
    bounces: int = 0
    split: bool = False


def trace_impact(
    p: Projectile,
    env: EnvironmentEffects,
    terrain: TerrainField,
    dt: float = 1.0,
    max_steps: int = 600,
    target: tuple[float, float] | None = None,
    hit_radius: float = TANK_HITBOX_RADIUS,
    record_path: bool = False,
    follow_weapon: bool = True,
) -> TraceResult:
    """
    Fly a projectile forward until it meets ground or leaves the field.

    Each step is sampled every few pixels so thin ridges are not skipped. With
    `target` set, the trace also stops as soon as the path passes within
    `hit_radius` of it, ahead of any ground hit on the same step.

    With `follow_weapon`, the shell behaves as it would in play: bouncing
    shells rebound off solid ground while they have bounces left, and
    splitting shells continue as the middle fragment of their fan once
    they split. Tanks other than `target` and terrain damage are ignored.
    """
    path = [(p.x, p.y)] if record_path else []
    bounces = 0
    split = False

    def done(x: float, y: float, outcome: str, step: int, miss: float) -> TraceResult:
        return TraceResult(x, y, outcome, step, miss, path, bounces, split)

    for step in range(1, max_steps + 1):
        nxt = advance(p, dt, env)
        seg = math.hypot(nxt.x - p.x, nxt.y - p.y)
        n = max(2, math.ceil(seg / 4.0) + 1)
        t = np.linspace(0.0, 1.0, n)
        xs = p.x + (nxt.x - p.x) * t
        ys = p.y + (nxt.y - p.y) * t

        ground = np.flatnonzero(terrain.ground_mask(xs, ys))
        first_ground = int(ground[0]) if ground.size else n

        if target is not None:
            near = np.flatnonzero(np.hypot(xs - target[0], ys - target[1]) <= hit_radius)
            if near.size and int(near[0]) <= first_ground:
                i = int(near[0])
                if record_path:
                    path.append((float(xs[i]), float(ys[i])))
                return done(float(xs[i]), float(ys[i]), "target", step, 0.0)

        if first_ground < n:
            hx, hy = float(xs[first_ground]), float(ys[first_ground])
            if record_path:
                path.append((hx, hy))
            if follow_weapon and terrain.is_solid(hx, hy) and should_bounce(nxt):
                j = max(0, first_ground - 1)
                p = rebound(nxt, terrain.surface_normal_angle(hx), float(xs[j]), float(ys[j]))
                bounces += 1
                continue
            return done(hx, hy, "ground", step, _miss(hx, hy, target))

        p = nxt
        if record_path:
            path.append((p.x, p.y))
        if p.x < 0 or p.x > terrain.width:
            return done(p.x, p.y, "out_of_bounds", step, _miss(p.x, p.y, target))
        if follow_weapon and should_split(p):
            p = centre_fragment(p)
            split = True

    return done(p.x, p.y, "timeout", max_steps, _miss(p.x, p.y, target))


def _miss(x: float, y: float, target: tuple[float, float] | None) -> float:
    if target is None:
        return math.inf
    return math.hypot(x - target[0], y - target[1])
