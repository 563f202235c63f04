from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..config import ShieldKind, WeaponKind
from ..constants import (
    BARREL_LENGTH,
    GROUND_PROBE_DEPTH,
    MAX_FALL_SPEED,
    MUZZLE_OFFSET,
    TANK_BODY_HEIGHT,
    TANK_BODY_WIDTH,
    TANK_DEFAULT_ANGLE,
    TANK_DEFAULT_POWER,
    TANK_MAX_HEALTH,
)
from .shield import Shield

if TYPE_CHECKING:
    from .world import TerrainField

INFINITE = -1


class GroundState(Enum):
    GROUNDED = "grounded"
    FALLING = "falling"


class Controller(str, Enum):
    HUMAN = "human"
    AI = "ai"


def default_ammo() -> dict[WeaponKind, int]:
    return {
        WeaponKind.STANDARD: INFINITE,
        WeaponKind.SALVO: 3,
        WeaponKind.BOUNCING: 5,
        WeaponKind.HAZELNUT: 3,
    }


def default_shield_stock() -> dict[ShieldKind, int]:
    return {ShieldKind.SINGLE_USE: 1, ShieldKind.MULTI_USE: 2}


def world_angle(facing: int, elevation: float) -> float:
    """Turret elevation (positive = up) to a world angle (0 = right, 90 = down)."""
    return -elevation if facing >= 0 else 180.0 + elevation


def muzzle_point(x: float, y: float, facing: int, elevation: float) -> tuple[float, float]:
    """Barrel tip for a tank whose body centre is (x, y)."""
    a = math.radians(world_angle(facing, elevation))
    reach = BARREL_LENGTH + MUZZLE_OFFSET
    return x + math.cos(a) * reach, y - TANK_BODY_HEIGHT / 2.0 + math.sin(a) * reach


@dataclass
class Tank:
    tank_id: int
    x: float
    y: float  # body centre
    facing: int = 1  # +1 faces right, -1 faces left
    health: int = TANK_MAX_HEALTH
    max_health: int = TANK_MAX_HEALTH
    angle: float = TANK_DEFAULT_ANGLE  # turret elevation in degrees
    power: float = TANK_DEFAULT_POWER
    weapon: WeaponKind = WeaponKind.STANDARD
    ammo: dict[WeaponKind, int] = field(default_factory=default_ammo)
    shield: Shield | None = None
    shield_stock: dict[ShieldKind, int] = field(default_factory=default_shield_stock)
    controller: Controller = Controller.HUMAN

    # Ground state
    ground: GroundState = GroundState.GROUNDED
    fall_speed: float = 0.0

    @property
    def alive(self) -> bool:
        return self.health > 0

    @property
    def shield_active(self) -> bool:
        return self.shield is not None and self.shield.active

    # ------------------------------------------------------------------
    # Aim
    # ------------------------------------------------------------------

    def world_angle(self) -> float:
        return world_angle(self.facing, self.angle)

    def turret_base(self) -> tuple[float, float]:
        return self.x, self.y - TANK_BODY_HEIGHT / 2.0

    def muzzle(self) -> tuple[float, float]:
        return muzzle_point(self.x, self.y, self.facing, self.angle)

    def adjust_angle(self, delta: float) -> float:
        self.angle = min(90.0, max(-90.0, self.angle + delta))
        return self.angle

    def adjust_power(self, delta: float) -> float:
        self.power = min(100.0, max(0.0, self.power + delta))
        return self.power

    def aim(self, angle: float, power: float) -> None:
        self.angle = min(90.0, max(-90.0, float(angle)))
        self.power = min(100.0, max(0.0, float(power)))

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def has_ammo(self, kind: WeaponKind | None = None) -> bool:
        count = self.ammo.get(self.weapon if kind is None else kind, 0)
        return count == INFINITE or count > 0

    def consume_ammo(self, kind: WeaponKind | None = None) -> None:
        kind = self.weapon if kind is None else kind
        count = self.ammo.get(kind, 0)
        if count == INFINITE:
            return
        if count <= 0:
            raise ValueError(f"tank {self.tank_id} has no {kind.value} ammo left")
        self.ammo[kind] = count - 1

    def select_weapon(self, kind: WeaponKind) -> bool:
        if not self.has_ammo(kind):
            return False
        self.weapon = kind
        return True

    def activate_shield(self, kind: ShieldKind) -> bool:
        if self.shield_active:
            return False
        count = self.shield_stock.get(kind, 0)
        if count != INFINITE:
            if count <= 0:
                return False
            self.shield_stock[kind] = count - 1
        self.shield = Shield.of(kind)
        return True

    # ------------------------------------------------------------------
    # Damage
    # ------------------------------------------------------------------

    def take_damage(self, amount: int) -> int:
        """Route damage through the shield, then apply the rest. Returns health lost."""
        remainder = self.shield.take_damage(amount) if self.shield is not None else amount
        return self.apply_damage(remainder)

    def apply_damage(self, amount: int) -> int:
        lost = min(self.health, max(0, int(amount)))
        self.health -= lost
        return lost

    # ------------------------------------------------------------------
    # Ground support
    # ------------------------------------------------------------------

    def _probe_xs(self) -> tuple[float, float, float]:
        third = TANK_BODY_WIDTH / 3.0
        return self.x, self.x - third, self.x + third

    def _probe_y(self) -> float:
        return self.y + TANK_BODY_HEIGHT / 2.0 + GROUND_PROBE_DEPTH

    def is_supported(self, terrain: TerrainField) -> bool:
        py = self._probe_y()
        return any(terrain.is_ground(px, py) for px in self._probe_xs())

    def settle(self, terrain: TerrainField) -> None:
        """Drop onto the highest ground under the footprint."""
        top = min(terrain.surface_y(px) for px in self._probe_xs())
        self.y = top - TANK_BODY_HEIGHT / 2.0
        self.ground = GroundState.GROUNDED
        self.fall_speed = 0.0

    def update_ground(self, terrain: TerrainField, dt: float, gravity: float) -> GroundState | None:
        """
        Advance the Grounded/Falling state machine by one tick.

        Returns the new state when it changed, otherwise None.
        """
        if not self.alive:
            return None

        if self.ground == GroundState.GROUNDED:
            if self.is_supported(terrain):
                return None
            self.ground = GroundState.FALLING
            self.fall_speed = 0.0
            return GroundState.FALLING

        self.fall_speed = min(MAX_FALL_SPEED, self.fall_speed + gravity * dt)
        self.y += self.fall_speed * dt
        if not self.is_supported(terrain):
            return None

        # Land on the nearest ground under the probes.
        py = self._probe_y()
        landing = max(
            float(terrain.surface_y(px)) if terrain.is_solid(px, py) else float(terrain.height)
            for px in self._probe_xs()
            if terrain.is_ground(px, py)
        )
        self.y = min(self.y, landing - TANK_BODY_HEIGHT / 2.0)
        self.ground = GroundState.GROUNDED
        self.fall_speed = 0.0
        return GroundState.GROUNDED
