from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from ..config import WeaponKind
from ..constants import BASE_LAUNCH_SPEED, DRAG_COEFF, WIND_ATTENUATION

if TYPE_CHECKING:
    from ..gen.biomes import EnvironmentEffects


@dataclass
class Projectile:
    x: float
    y: float
    vx: float
    vy: float
    owner_id: int
    weapon: WeaponKind
    drag_multiplier: float = 1.0

    # Flight state
    prev_x: float = field(default=math.nan)
    prev_y: float = field(default=math.nan)
    distance: float = 0.0
    bounces: int = 0
    rotation: float = 0.0  # degrees, cosmetic
    alive: bool = True

    def __post_init__(self) -> None:
        if math.isnan(self.prev_x):
            self.prev_x = self.x
        if math.isnan(self.prev_y):
            self.prev_y = self.y

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


def launch_velocity(angle_deg: float, power: float, speed_multiplier: float = 1.0) -> tuple[float, float]:
    """Initial velocity for a world angle (0 = right, 90 = down) and power in 0..100."""
    speed = power / 100.0 * BASE_LAUNCH_SPEED * speed_multiplier
    a = math.radians(angle_deg)
    return math.cos(a) * speed, math.sin(a) * speed


def launch(
    x: float,
    y: float,
    angle_deg: float,
    power: float,
    owner_id: int,
    weapon: WeaponKind,
    speed_multiplier: float = 1.0,
    drag_multiplier: float = 1.0,
) -> Projectile:
    vx, vy = launch_velocity(angle_deg, power, speed_multiplier)
    return Projectile(
        x=x,
        y=y,
        vx=vx,
        vy=vy,
        owner_id=owner_id,
        weapon=weapon,
        drag_multiplier=drag_multiplier,
        rotation=angle_deg,
    )


def advance(p: Projectile, dt: float, env: EnvironmentEffects) -> Projectile:
    """
    One semi-implicit Euler step. Order is fixed: gravity, wind, drag, position.

    Returns a new Projectile; the input is left untouched.
    """
    vx, vy = p.vx, p.vy

    vy += env.gravity * dt

    k = 1.0 / (1.0 + WIND_ATTENUATION * abs(vx))
    vx += env.wind_x * dt * k
    vy += env.wind_y * dt * k

    speed = math.hypot(vx, vy)
    if speed > 0.0:
        drag = DRAG_COEFF * env.air_density * p.drag_multiplier * speed
        vx -= vx / speed * drag * dt
        vy -= vy / speed * drag * dt

    x = p.x + vx * dt
    y = p.y + vy * dt

    return replace(
        p,
        x=x,
        y=y,
        vx=vx,
        vy=vy,
        prev_x=p.x,
        prev_y=p.y,
        distance=p.distance + math.hypot(x - p.x, y - p.y),
        rotation=math.degrees(math.atan2(vy, vx)),
    )
