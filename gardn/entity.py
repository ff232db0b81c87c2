"""Entities: component flags, networked fields with change tracking and
per-entity simulation state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Iterator

from gardn.binary import ProtocolError, Reader, Writer
from gardn.entitydef import (
    NULL_ENTITY,
    AppliedPoison,
    EntityId,
    LoadoutSlot,
    MobAiState,
    PoisonDefinition,
)
from gardn.staticdata import MAX_SLOT_COUNT, PetalId
from gardn.vector import Vector


class Component(IntEnum):
    PHYSICS = 0
    RELATIONS = 1
    CAMERA = 2
    FLOWER = 3
    PETAL = 4
    HEALTH = 5
    MOB = 6
    DROP = 7
    SCORE = 8
    SEGMENTED = 9


class Field(IntEnum):
    X = 0
    Y = 1
    RADIUS = 2
    ANGLE = 3
    DELETION_TICK = 4
    TEAM = 5
    PARENT = 6
    CAMERA_X = 7
    CAMERA_Y = 8
    EXPERIENCE = 9
    FOV = 10
    PLAYER = 11
    LOADOUT_COUNT = 12
    LOADOUT_IDS = 13
    LOADOUT_RELOADS = 14
    FACE_FLAGS = 15
    EYE_ANGLE = 16
    PETAL_ID = 17
    HEALTH = 18
    MAX_HEALTH = 19
    DAMAGED = 20
    MOB_ID = 21
    DROP_ID = 22
    SCORE = 23
    NAME = 24
    IS_HEAD = 25


FIELD_COUNT = len(Field)
DELETED_PETAL_COUNT = 10
_ARRAY_END = 255


def _as_uint8(v: Any) -> int:
    return int(v) & 0xFF


def _as_entid(v: Any) -> EntityId:
    if not isinstance(v, EntityId):
        raise TypeError(f"expected an EntityId, got {type(v).__name__}")
    return v


@dataclass(frozen=True)
class _Kind:
    default: Any
    coerce: Callable[[Any], Any]
    write: Callable[[Writer, Any], None]
    read: Callable[[Reader], Any]


_FLOAT = _Kind(0.0, float, Writer.write_float, Reader.read_float)
_UINT8 = _Kind(0, _as_uint8, Writer.write_uint8, Reader.read_uint8)
_ENTID = _Kind(NULL_ENTITY, _as_entid, Writer.write_entid, Reader.read_entid)
_STRING = _Kind("", str, Writer.write_string, Reader.read_string)

# field -> (kind, element count; 0 for a single value)
_SPEC: dict[Field, tuple[_Kind, int]] = {
    Field.X: (_FLOAT, 0),
    Field.Y: (_FLOAT, 0),
    Field.RADIUS: (_FLOAT, 0),
    Field.ANGLE: (_FLOAT, 0),
    Field.DELETION_TICK: (_UINT8, 0),
    Field.TEAM: (_ENTID, 0),
    Field.PARENT: (_ENTID, 0),
    Field.CAMERA_X: (_FLOAT, 0),
    Field.CAMERA_Y: (_FLOAT, 0),
    Field.EXPERIENCE: (_FLOAT, 0),
    Field.FOV: (_FLOAT, 0),
    Field.PLAYER: (_ENTID, 0),
    Field.LOADOUT_COUNT: (_UINT8, 0),
    Field.LOADOUT_IDS: (_UINT8, 2 * MAX_SLOT_COUNT),
    Field.LOADOUT_RELOADS: (_UINT8, MAX_SLOT_COUNT),
    Field.FACE_FLAGS: (_UINT8, 0),
    Field.EYE_ANGLE: (_FLOAT, 0),
    Field.PETAL_ID: (_UINT8, 0),
    Field.HEALTH: (_FLOAT, 0),
    Field.MAX_HEALTH: (_FLOAT, 0),
    Field.DAMAGED: (_UINT8, 0),
    Field.MOB_ID: (_UINT8, 0),
    Field.DROP_ID: (_UINT8, 0),
    Field.SCORE: (_FLOAT, 0),
    Field.NAME: (_STRING, 0),
    Field.IS_HEAD: (_UINT8, 0),
}

_COMPONENT_FIELDS: dict[Component, tuple[Field, ...]] = {
    Component.PHYSICS: (Field.X, Field.Y, Field.RADIUS, Field.ANGLE, Field.DELETION_TICK),
    Component.RELATIONS: (Field.TEAM, Field.PARENT),
    Component.CAMERA: (
        Field.CAMERA_X,
        Field.CAMERA_Y,
        Field.EXPERIENCE,
        Field.FOV,
        Field.PLAYER,
        Field.LOADOUT_COUNT,
        Field.LOADOUT_IDS,
        Field.LOADOUT_RELOADS,
    ),
    Component.FLOWER: (Field.FACE_FLAGS, Field.EYE_ANGLE),
    Component.PETAL: (Field.PETAL_ID,),
    Component.HEALTH: (Field.HEALTH, Field.MAX_HEALTH, Field.DAMAGED),
    Component.MOB: (Field.MOB_ID,),
    Component.DROP: (Field.DROP_ID,),
    Component.SCORE: (Field.SCORE, Field.NAME),
    Component.SEGMENTED: (Field.IS_HEAD,),
}


class FieldArray:
    """Fixed-size networked array remembering which indices changed."""

    def __init__(self, size: int, default: Any = 0, coerce: Callable[[Any], Any] = int) -> None:
        self._default = default
        self._coerce = coerce
        self._values = [default] * size
        self.changed: set[int] = set()

    def _check(self, index: int) -> int:
        index = int(index)
        if not 0 <= index < len(self._values):
            raise IndexError(f"index {index} out of range for array of {len(self._values)}")
        return index

    def __getitem__(self, index: int) -> Any:
        return self._values[self._check(index)]

    def __setitem__(self, index: int, value: Any) -> None:
        index = self._check(index)
        value = self._coerce(value)
        if self._values[index] == value:
            return
        self._values[index] = value
        self.changed.add(index)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def reset_state(self) -> None:
        """Forget which indices changed."""
        self.changed.clear()

    def _load(self, index: int, value: Any) -> None:
        index = self._check(index)
        self._values[index] = self._coerce(value)
        self.changed.add(index)

    def _clear(self) -> None:
        self._values = [self._default] * len(self._values)
        self.changed.clear()

    def __repr__(self) -> str:
        return f"FieldArray({self._values!r})"


class _Networked:
    """A single networked value; assigning a different value marks it changed."""

    def __init__(self, field: Field) -> None:
        self.field = field
        self.coerce = _SPEC[field][0].coerce

    def __get__(self, obj: Entity | None, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj._values[self.field]

    def __set__(self, obj: Entity, value: Any) -> None:
        value = self.coerce(value)
        if obj._values[self.field] == value:
            return
        obj._values[self.field] = value
        obj._changed.add(self.field)


class _NetworkedArray:
    def __init__(self, field: Field) -> None:
        self.field = field

    def __get__(self, obj: Entity | None, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj._arrays[self.field]

    def __set__(self, obj: Entity, value: Any) -> None:
        raise AttributeError(f"{self.field.name.lower()} is a fixed-size array; assign its items")


class Entity:
    """A simulation entity made of components and networked fields."""

    x = _Networked(Field.X)
    y = _Networked(Field.Y)
    radius = _Networked(Field.RADIUS)
    angle = _Networked(Field.ANGLE)
    deletion_tick = _Networked(Field.DELETION_TICK)
    team = _Networked(Field.TEAM)
    parent = _Networked(Field.PARENT)
    camera_x = _Networked(Field.CAMERA_X)
    camera_y = _Networked(Field.CAMERA_Y)
    experience = _Networked(Field.EXPERIENCE)
    fov = _Networked(Field.FOV)
    player = _Networked(Field.PLAYER)
    loadout_count = _Networked(Field.LOADOUT_COUNT)
    loadout_ids = _NetworkedArray(Field.LOADOUT_IDS)
    loadout_reloads = _NetworkedArray(Field.LOADOUT_RELOADS)
    face_flags = _Networked(Field.FACE_FLAGS)
    eye_angle = _Networked(Field.EYE_ANGLE)
    petal_id = _Networked(Field.PETAL_ID)
    health = _Networked(Field.HEALTH)
    max_health = _Networked(Field.MAX_HEALTH)
    damaged = _Networked(Field.DAMAGED)
    mob_id = _Networked(Field.MOB_ID)
    drop_id = _Networked(Field.DROP_ID)
    score = _Networked(Field.SCORE)
    name = _Networked(Field.NAME)
    is_head = _Networked(Field.IS_HEAD)

    def __init__(self) -> None:
        self.id: EntityId = NULL_ENTITY
        self._values: dict[Field, Any] = {}
        self._arrays: dict[Field, FieldArray] = {
            field: FieldArray(count, kind.default, kind.coerce)
            for field, (kind, count) in _SPEC.items()
            if count
        }
        self._changed: set[Field] = set()
        self.init()

    def init(self) -> None:
        """Reset components, fields and state to a fresh entity; the id is kept."""
        self.components = 0
        for field, (kind, count) in _SPEC.items():
            if count:
                self._arrays[field]._clear()
            else:
                self._values[field] = kind.default

        self.pending_delete = 0
        self.input = 0
        self.detached = 0
        self.no_friendly_collision = 0
        self.friction = 0.0
        self.mass = 1.0
        self.velocity = Vector()
        self.collision_velocity = Vector()
        self.acceleration = Vector()
        self.rotation_count = 1
        self.rotation_angle = 0.0
        self.damage = 0.0
        self.despawn_ticks = 0
        self.ai_state = MobAiState.IDLE
        self.ai_ticks_to_next_action = 0
        self.loadout = [LoadoutSlot() for _ in range(MAX_SLOT_COUNT)]
        self.target = NULL_ENTITY
        self.head_node = NULL_ENTITY
        self.immunity_ticks = 0
        self.deleted_petals = [PetalId.NONE] * DELETED_PETAL_COUNT
        self.bearing_angle = 0.0
        self.effect_delay = 0
        self.applied_poison = AppliedPoison()
        self.poison = PoisonDefinition()

        # interpolation state used by a receiving side
        self.touched = 0
        self.prev_x = 0.0
        self.prev_y = 0.0
        self.lerp_x = 0.0
        self.lerp_y = 0.0
        self.lerp_angle = 0.0
        self.lerp_radius = 0.0
        self.lerp_camera_x = 0.0
        self.lerp_camera_y = 0.0
        self.lerp_fov = 1.0
        self.lerp_deletion_tick = 0.0
        self.lerp_eye_x = 3.0
        self.lerp_eye_y = 0.0
        self.lerp_mouth = 0.0
        self.lerp_health = 0.0
        self.lerp_max_health = 0.0
        self.healthbar_opacity = 0.0
        self.animation_tick = 0.0
        self.damage_flash = 0.0

        self.reset_protocol_state()

    def reset_protocol_state(self) -> None:
        """Forget which networked fields changed."""
        self._changed.clear()
        for array in self._arrays.values():
            array.reset_state()

    def add_component(self, comp: int) -> None:
        comp = Component(comp)
        if self.has_component(comp):
            raise ValueError(f"entity already has component {comp.name}")
        self.components |= 1 << comp

    def has_component(self, comp: int) -> bool:
        return bool((self.components >> comp) & 1)

    def write(self, writer: Writer, create: bool) -> None:
        """Write all fields (``create``) or only the changed ones."""
        writer.write_uint32(self.components)
        for comp in Component:
            if not self.has_component(comp):
                continue
            for field in _COMPONENT_FIELDS[comp]:
                kind, count = _SPEC[field]
                if not count:
                    if create or field in self._changed:
                        writer.write_uint8(field)
                        kind.write(writer, self._values[field])
                    continue
                array = self._arrays[field]
                if create or array.changed:
                    writer.write_uint8(field)
                    for index, value in enumerate(array):
                        if create or index in array.changed:
                            writer.write_uint8(index)
                            kind.write(writer, value)
                # The terminator goes out even for an unchanged array; readers skip it.
                writer.write_uint8(_ARRAY_END)
        writer.write_uint8(FIELD_COUNT)

    def read(self, reader: Reader) -> None:
        """Apply an update written by :meth:`write`."""
        self.prev_x = self.x
        self.prev_y = self.y
        self.components = reader.read_uint32()
        while True:
            code = reader.read_uint8()
            if code == FIELD_COUNT:
                return
            if code == _ARRAY_END:
                continue
            try:
                field = Field(code)
            except ValueError:
                raise ProtocolError(f"unknown field id {code}") from None
            kind, count = _SPEC[field]
            if not count:
                self._values[field] = kind.coerce(kind.read(reader))
                self._changed.add(field)
                continue
            array = self._arrays[field]
            while (index := reader.read_uint8()) != _ARRAY_END:
                if index >= len(array):
                    raise ProtocolError(f"index {index} out of range for {field.name.lower()}")
                array._load(index, kind.read(reader))

    def __repr__(self) -> str:
        comps = [c.name for c in Component if self.has_component(c)]
        return f"Entity(id={self.id!r}, components={comps})"