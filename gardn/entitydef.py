"""Identifiers and small value types attached to entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from functools import total_ordering

from gardn.staticdata import PetalId


class MobAiState(IntEnum):
    IDLE = 0
    IDLE_MOVING = 1
    IDLE_MOVING_2 = 2
    AGGRO = 3
    RETURNING = 4
    FIRING = 5


_PASSIVE_STATES = frozenset(
    {MobAiState.IDLE, MobAiState.IDLE_MOVING, MobAiState.IDLE_MOVING_2, MobAiState.RETURNING}
)


def ai_state_is_passive(state: int) -> bool:
    """True for states in which a mob is not engaging a target."""
    return state in _PASSIVE_STATES


@total_ordering
@dataclass(frozen=True)
class EntityId:
    """Slot index plus generation counter identifying one entity."""

    id: int = 0
    hash: int = 0

    def is_null(self) -> bool:
        return self.id == 0

    def __lt__(self, other: EntityId) -> bool:
        if not isinstance(other, EntityId):
            return NotImplemented
        return (self.hash * 65536 + self.id) < (other.hash * 65536 + other.id)


NULL_ENTITY = EntityId(0, 0)


@dataclass
class PoisonDefinition:
    """Poison an entity deals: damage per tick over a number of ticks."""

    damage: float = 0.0
    ticks: int = 0

    def define(self, damage: float, ticks: int) -> None:
        self.damage = damage
        self.ticks = int(ticks)

    def has(self) -> bool:
        return self.damage != 0


@dataclass
class AppliedPoison:
    """Poison currently affecting an entity."""

    dealer: EntityId = NULL_ENTITY
    damage: float = 0.0
    ticks_left: int = 0

    def reset(self) -> None:
        self.damage = 0.0
        self.ticks_left = 0


@dataclass
class LoadoutPetal:
    reload: int = 0
    ent_id: EntityId = NULL_ENTITY


_PETALS_PER_SLOT = 5
_RESET_PETALS = 3


@dataclass
class LoadoutSlot:
    """One equipped loadout slot and the petals it has spawned."""

    id: PetalId = PetalId.NONE
    petals: list[LoadoutPetal] = field(
        default_factory=lambda: [LoadoutPetal() for _ in range(_PETALS_PER_SLOT)]
    )

    def reset(self) -> None:
        self.id = PetalId.NONE
        for petal in self.petals[:_RESET_PETALS]:
            petal.reload = 0
            petal.ent_id = NULL_ENTITY