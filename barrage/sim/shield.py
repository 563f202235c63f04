from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..config import ShieldKind, ShieldSpec

SINGLE_USE = ShieldSpec(
    kind=ShieldKind.SINGLE_USE,
    name="Single-use shield",
    max_hp=1000,
    radius=100.0,
    absorbs_any_hit=True,
)

MULTI_USE = ShieldSpec(
    kind=ShieldKind.MULTI_USE,
    name="Multi-use shield",
    max_hp=75,
    radius=100.0,
)

SHIELDS: Mapping[ShieldKind, ShieldSpec] = MappingProxyType({s.kind: s for s in (SINGLE_USE, MULTI_USE)})


@dataclass
class Shield:
    spec: ShieldSpec
    hp: int = field(init=False)
    active: bool = False

    def __post_init__(self) -> None:
        self.hp = self.spec.max_hp if self.active else 0

    @classmethod
    def of(cls, kind: ShieldKind, active: bool = True) -> Shield:
        return cls(SHIELDS[kind], active=active)

    @property
    def kind(self) -> ShieldKind:
        return self.spec.kind

    @property
    def radius(self) -> float:
        return self.spec.radius

    def activate(self) -> None:
        self.hp = self.spec.max_hp
        self.active = True

    def take_damage(self, amount: int) -> int:
        """Absorb what the shield can and return the damage that passes through."""
        if not self.active:
            return max(0, amount)
        if amount <= 0:
            return 0
        if self.spec.absorbs_any_hit:
            self._collapse()
            return 0
        if amount >= self.hp:
            remainder = amount - self.hp
            self._collapse()
            return remainder
        self.hp -= amount
        return 0

    def _collapse(self) -> None:
        self.hp = 0
        self.active = False
