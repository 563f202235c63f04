from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType

import numpy as np

from .config import CraterShape, WeaponKind, WeaponSpec
from .sim.projectile import Projectile, launch

STANDARD = WeaponSpec(
    kind=WeaponKind.STANDARD,
    name="Standard",
    speed_multiplier=1.0,
    drag_multiplier=1.0,
    explosion_radius=35.0,
    explosion_damage=50,
    color=0xFFFF00,
)

SALVO = WeaponSpec(
    kind=WeaponKind.SALVO,
    name="Salvo",
    speed_multiplier=1.1,
    drag_multiplier=1.0,
    explosion_radius=22.0,
    explosion_damage=35,
    color=0xFF6600,
    salvo_count=16,
    salvo_spread_deg=18.0,
    salvo_delay_s=0.05,
)

BOUNCING = WeaponSpec(
    kind=WeaponKind.BOUNCING,
    name="Bouncing",
    speed_multiplier=1.2,
    drag_multiplier=1.0,
    explosion_radius=30.0,
    explosion_damage=45,
    color=0x00FFAA,
    max_bounces=3,
    bounce_speed_keep=0.7,
    min_bounce_speed=5.0,
)

HAZELNUT = WeaponSpec(
    kind=WeaponKind.HAZELNUT,
    name="Hazelnut",
    speed_multiplier=1.0,
    drag_multiplier=1.0,
    explosion_radius=18.0,
    explosion_damage=40,
    explosion_shape=CraterShape.VERTICAL,
    shape_ratio=2.0,
    color=0x8B4513,
    split_count=20,
    split_spread_deg=20.0,
    split_min_distance=100.0,
    split_delay_s=0.01,
    split_jitter_px=15.0,
)

WEAPONS: Mapping[WeaponKind, WeaponSpec] = MappingProxyType(
    {spec.kind: spec for spec in (STANDARD, SALVO, BOUNCING, HAZELNUT)}
)

# Fragments fan out around straight down.
SPLIT_BASE_ANGLE = 90.0
SPLIT_MIN_POWER = 30.0


def weapon_spec(kind: WeaponKind | str) -> WeaponSpec:
    try:
        return WEAPONS[WeaponKind(kind)]
    except ValueError:
        raise ValueError(f"Unknown weapon {kind!r}; expected one of {[k.value for k in WeaponKind]}") from None


@dataclass(frozen=True)
class SpawnSpec:
    x: float
    y: float
    angle: float  # world degrees, 0 = right, 90 = down
    power: float
    owner_id: int
    weapon: WeaponKind

    def build(self) -> Projectile:
        spec = WEAPONS[self.weapon]
        return launch(
            self.x,
            self.y,
            self.angle,
            self.power,
            self.owner_id,
            self.weapon,
            speed_multiplier=spec.speed_multiplier,
            drag_multiplier=spec.drag_multiplier,
        )


@dataclass(frozen=True)
class FirePlan:
    """Projectiles to spawn for one trigger pull, each with a delay in seconds."""

    weapon: WeaponKind
    spawns: tuple[tuple[SpawnSpec, float], ...]
    angle: float
    power: float
    owner_id: int
    play_sound: bool = True
    clear_preview: bool = True

    def __len__(self) -> int:
        return len(self.spawns)


def _single_shot(spec: WeaponSpec, x: float, y: float, angle: float, power: float, owner_id: int) -> FirePlan:
    shot = SpawnSpec(x, y, angle, power, owner_id, spec.kind)
    return FirePlan(spec.kind, ((shot, 0.0),), angle, power, owner_id)


def _salvo(spec: WeaponSpec, x: float, y: float, angle: float, power: float, owner_id: int) -> FirePlan:
    n = spec.salvo_count
    start = angle - spec.salvo_spread_deg / 2.0
    step = spec.salvo_spread_deg / (n - 1) if n > 1 else 0.0
    spawns = tuple(
        (SpawnSpec(x, y, start + step * i, power, owner_id, spec.kind), i * spec.salvo_delay_s) for i in range(n)
    )
    return FirePlan(spec.kind, spawns, angle, power, owner_id)


_PLAN_BUILDERS: Mapping[WeaponKind, Callable[..., FirePlan]] = MappingProxyType(
    {
        WeaponKind.STANDARD: _single_shot,
        WeaponKind.SALVO: _salvo,
        WeaponKind.BOUNCING: _single_shot,
        WeaponKind.HAZELNUT: _single_shot,
    }
)


def create_fire_plan(
    kind: WeaponKind, origin: tuple[float, float], angle: float, power: float, owner_id: int
) -> FirePlan:
    spec = WEAPONS[kind]
    return _PLAN_BUILDERS[kind](spec, float(origin[0]), float(origin[1]), float(angle), float(power), owner_id)


def should_split(p: Projectile) -> bool:
    """Falling and far enough from the muzzle."""
    spec = WEAPONS[p.weapon]
    if not spec.can_split:
        return False
    return p.vy > 0 and p.distance > spec.split_min_distance


def split_power(p: Projectile) -> float:
    return max(SPLIT_MIN_POWER, p.speed / 50.0 * 70.0)


def centre_fragment(p: Projectile) -> Projectile:
    """The middle fragment of a split, launched from the split point without jitter."""
    return SpawnSpec(p.x, p.y, SPLIT_BASE_ANGLE, split_power(p), p.owner_id, WeaponKind.STANDARD).build()


def create_split_plan(p: Projectile, owner_id: int, rng: np.random.Generator) -> FirePlan:
    """
    Break a projectile into standard fragments fanned around straight down.

    Each fragment keeps 70% of the parent's speed (as power, floored at 30),
    is launched a little after the previous one, and starts at a random
    offset of up to `split_jitter_px` from the split point.
    """
    spec = WEAPONS[p.weapon]
    n = spec.split_count
    start = SPLIT_BASE_ANGLE - spec.split_spread_deg / 2.0
    step = spec.split_spread_deg / (n - 1) if n > 1 else 0.0
    power = split_power(p)

    spawns = []
    for i in range(n):
        heading = rng.uniform(0.0, 2.0 * math.pi)
        offset = rng.uniform(0.0, spec.split_jitter_px)
        fx = p.x + math.cos(heading) * offset
        fy = p.y + math.sin(heading) * offset
        frag = SpawnSpec(fx, fy, start + step * i, power, owner_id, WeaponKind.STANDARD)
        spawns.append((frag, i * spec.split_delay_s))
    return FirePlan(
        WeaponKind.STANDARD,
        tuple(spawns),
        SPLIT_BASE_ANGLE,
        power,
        owner_id,
        play_sound=False,
        clear_preview=False,
    )


def should_bounce(p: Projectile) -> bool:
    spec = WEAPONS[p.weapon]
    if not spec.can_bounce:
        return False
    return p.bounces < spec.max_bounces and p.speed >= spec.min_bounce_speed


def bounce_velocity(p: Projectile, normal_angle_deg: float) -> tuple[float, float]:
    """Reflect the velocity about the surface normal and bleed off speed."""
    keep = WEAPONS[p.weapon].bounce_speed_keep
    a = math.radians(normal_angle_deg)
    nx, ny = math.cos(a), math.sin(a)
    dot = p.vx * nx + p.vy * ny
    rx = p.vx - 2.0 * dot * nx
    ry = p.vy - 2.0 * dot * ny

    length = math.hypot(rx, ry)
    if length == 0.0:
        return p.vx * keep, -p.vy * keep
    scale = p.speed * keep / length
    return rx * scale, ry * scale


def rebound(p: Projectile, normal_angle_deg: float, x: float, y: float) -> Projectile:
    """Restart a bouncing shell from (x, y) with its reflected velocity."""
    vx, vy = bounce_velocity(p, normal_angle_deg)
    return replace(
        p,
        x=x,
        y=y,
        prev_x=x,
        prev_y=y,
        vx=vx,
        vy=vy,
        bounces=p.bounces + 1,
        rotation=math.degrees(math.atan2(vy, vx)),
    )
