"""Game constants and the tables describing petals and mobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

ARENA_WIDTH = 3000
ARENA_HEIGHT = 3000

SERVER_DT = 0.05  # seconds per tick
PLAYER_ACCELERATION = 3.95
DEFAULT_FRICTION = 0.25
MAX_SLOT_COUNT = 8


def real_time(st: float) -> float:
    """Convert a number of server ticks into seconds."""
    return SERVER_DT * st


def server_time(rt: float) -> float:
    """Convert seconds into server ticks, dropping floating-point noise."""
    return round(rt / SERVER_DT, 6)


class PetalId(IntEnum):
    NONE = 0
    BASIC = 1
    FAST = 2
    HEAVY = 3
    ROSE = 4
    TWIN = 5
    STINGER = 6
    LEAF = 7
    IRIS = 8
    WING = 9
    MISSILE = 10
    BUBBLE = 11
    AZALEA = 12
    PEAS = 13
    ROCK = 14
    CACTUS = 15
    GRAPES = 16
    EGG = 17
    TRIPLET = 18
    HEAVIEST = 19
    E_AZALEA = 20
    POISON_CACTUS = 21
    TRINGER = 22
    TRICAC = 23
    BEETLE_EGG = 24


class MobId(IntEnum):
    BABY_ANT = 0
    WORKER_ANT = 1
    SOLDIER_ANT = 2
    BEE = 3
    LADYBUG = 4
    BEETLE = 5
    HORNET = 6
    CENTIPEDE = 7
    EVIL_CENTIPEDE = 8
    SPIDER = 9
    ROCK = 10
    BOULDER = 11
    CACTUS = 12
    DARK_LADYBUG = 13
    MASSIVE_BEETLE = 14
    MASSIVE_LADYBUG = 15
    ANT_HOLE = 16
    QUEEN_ANT = 17


class Rarity(IntEnum):
    COMMON = 0
    UNUSUAL = 1
    RARE = 2
    EPIC = 3
    LEGENDARY = 4
    MYTHIC = 5


NUM_PETALS = len(PetalId)
NUM_MOBS = len(MobId)
NUM_RARITIES = len(Rarity)


@dataclass(frozen=True)
class PetalExtras:
    secondary_reload: float = 0.0
    clump_radius: float = 0.0
    poison_damage: float = 0.0
    poison_time: float = 0.01
    heal: float = 0.0


@dataclass(frozen=True)
class PetalData:
    name: str
    rarity: Rarity
    health: float
    damage: float
    radius: float
    reload: float  # seconds
    count: int
    extras: PetalExtras = field(default_factory=PetalExtras)


@dataclass(frozen=True)
class MobDrop:
    id: PetalId
    chance: float


@dataclass(frozen=True)
class MobData:
    name: str
    rarity: Rarity
    health: float
    damage: float
    radius: float
    xp: float
    drops: tuple[MobDrop, ...] = ()


def _petal(name, rarity, health, damage, radius, reload, count, **extras):
    return PetalData(name, rarity, health, damage, radius, reload, count, PetalExtras(**extras))


def _mob(name, rarity, health, damage, radius, xp, *drops):
    return MobData(name, rarity, health, damage, radius, xp, tuple(MobDrop(i, c) for i, c in drops))


_C, _U, _R, _E, _L = Rarity.COMMON, Rarity.UNUSUAL, Rarity.RARE, Rarity.EPIC, Rarity.LEGENDARY
P = PetalId

PETAL_DATA: tuple[PetalData, ...] = (
    _petal("", _C, 0, 0, 0, 0, 0),
    _petal("Basic", _C, 10, 10, 10, 2.5, 1),
    _petal("Fast", _C, 5, 7, 7, 1.0, 1),
    _petal("Heavy", _C, 20, 20, 12, 6.0, 1),
    _petal("Rose", _U, 5, 5, 10, 3.5, 1, secondary_reload=1.0, heal=10),
    _petal("Twin", _U, 5, 7, 7, 1.0, 2),
    _petal("Stinger", _U, 5, 30, 7, 3.5, 1),
    _petal("Leaf", _U, 8, 10, 10, 1.2, 1, heal=1),
    _petal("Iris", _U, 5, 5, 7, 5.0, 1, poison_damage=60, poison_time=8),
    _petal("Wing", _R, 15, 15, 15, 1.5, 1),
    _petal("Missile", _R, 35, 15, 15, 2.5, 1, secondary_reload=0.5),
    _petal("Bubble", _R, 1, 1, 12, 3.5, 1, secondary_reload=0.5),
    _petal("Azalea", _R, 5, 5, 7, 3.5, 3, secondary_reload=1.0, clump_radius=10, heal=4),
    _petal("Peas", _R, 5, 5, 7, 1.5, 4, secondary_reload=0.5, clump_radius=8),
    _petal("Rock", _R, 100, 15, 12, 10.0, 1),
    _petal("Cactus", _R, 30, 2, 15, 1.0, 1),
    _petal(
        "Grapes", _E, 2, 5, 7, 1.5, 4,
        secondary_reload=0.5, clump_radius=8, poison_damage=10, poison_time=1.0,
    ),
    _petal("Egg", _E, 50, 1, 14, 4.0, 1, secondary_reload=10),
    _petal("Triplet", _E, 5, 7, 7, 1.0, 3),
    _petal("Heaviest", _E, 250, 10, 16, 12.0, 1),
    _petal("Azalea", _E, 5, 5, 10, 3.5, 1, secondary_reload=1.0, heal=20),
    _petal("Cactus", _E, 30, 2, 15, 1.0, 1, poison_damage=10, poison_time=1.0),
    _petal("Stinger", _L, 5, 30, 7, 3.5, 3, clump_radius=10),
    _petal("Cactus", _L, 30, 2, 15, 1.0, 3, clump_radius=10),
    _petal("Egg", _L, 50, 1, 15, 4.0, 1, secondary_reload=1.0),
)

MOB_DATA: tuple[MobData, ...] = (
    _mob("Baby Ant", _C, 10, 10, 14, 1, (P.FAST, 0.36), (P.TWIN, 0.12), (P.LEAF, 0.09)),
    _mob("Worker Ant", _C, 15, 10, 14, 2, (P.FAST, 0.48), (P.TWIN, 0.16), (P.LEAF, 0.12)),
    _mob("Soldier Ant", _U, 30, 10, 14, 6, (P.TWIN, 0.16), (P.WING, 0.008), (P.TRIPLET, 0.0004)),
    _mob(
        "Bee", _C, 15, 40, 25, 3,
        (P.FAST, 0.36), (P.STINGER, 0.12), (P.BUBBLE, 0.006), (P.TRINGER, 0.0002),
    ),
    _mob(
        "Ladybug", _C, 25, 10, 30, 2,
        (P.FAST, 0.36), (P.TWIN, 0.04), (P.ROSE, 0.12), (P.WING, 0.006),
    ),
    _mob("Beetle", _R, 40, 30, 35, 9, (P.IRIS, 0.48), (P.WING, 0.024), (P.TRIPLET, 0.001)),
    _mob("Hornet", _R, 40, 30, 25, 15, (P.MISSILE, 0.18), (P.BUBBLE, 0.12)),
    _mob("Centipede", _C, 25, 10, 35, 3, (P.FAST, 0.24), (P.LEAF, 0.08), (P.PEAS, 0.006)),
    _mob("Evil Centipede", _U, 25, 10, 35, 3, (P.IRIS, 0.48), (P.GRAPES, 0.005)),
    _mob("Spider", _U, 25, 20, 15, 7, (P.IRIS, 0.48), (P.STINGER, 0.24)),
    _mob("Rock", _C, 25, 10, 25, 2, (P.FAST, 0.24), (P.HEAVY, 0.36), (P.ROCK, 0.005)),
    _mob("Boulder", _U, 60, 10, 45, 5, (P.HEAVY, 1.00), (P.ROCK, 0.04), (P.HEAVIEST, 0.0006)),
    _mob(
        "Cactus", _C, 40, 30, 50, 4,
        (P.STINGER, 0.12), (P.CACTUS, 0.04), (P.POISON_CACTUS, 0.001), (P.TRICAC, 0.00005),
    ),
    _mob("Ladybug", _U, 40, 10, 30, 4, (P.AZALEA, 0.12), (P.WING, 0.06), (P.E_AZALEA, 0.002)),
    _mob(
        "Beetle", _E, 300, 30, 75, 50,
        (P.IRIS, 1.00), (P.WING, 0.82), (P.TRIPLET, 0.02), (P.BEETLE_EGG, 0.005),
    ),
    _mob(
        "Ladybug", _L, 1000, 10, 100, 100,
        (P.ROSE, 1.00), (P.WING, 1.00), (P.AZALEA, 1.00), (P.E_AZALEA, 1.00),
    ),
    _mob("Ant Hole", _R, 500, 10, 45, 30, (P.IRIS, 1.00), (P.TRIPLET, 0.01), (P.EGG, 0.02)),
    _mob(
        "Queen Ant", _R, 250, 10, 45, 25,
        (P.IRIS, 1.00), (P.WING, 0.32), (P.TRIPLET, 0.01), (P.EGG, 0.02), (P.TRINGER, 0.005),
    ),
)

del P

RARITY_COLORS: tuple[int, ...] = (
    0xFF7EEF6D,
    0xFFFFE65D,
    0xFF4D52E3,
    0xFF861FDE,
    0xFFDE1F1F,
    0xFF1FDBDE,
)

RARITY_SACRIFICE_XP: tuple[float, ...] = (1, 5, 40, 500, 7500, 100000)


def xp_to_next_level(curr_level: int) -> float:
    """Experience needed to advance from ``curr_level`` to the next level."""
    return 1 + 2.56 * curr_level * 1.06**curr_level


def get_level_from_xp(xp: float) -> int:
    """The level reached with a total of ``xp`` experience; never below 1."""
    level = 1
    xp -= xp_to_next_level(level)
    while xp > 0:
        level += 1
        xp -= xp_to_next_level(level)
    return level