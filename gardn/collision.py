"""What happens when two entities touch: separation, damage and drop pickup."""

from __future__ import annotations

from typing import Any

from gardn.combat import inflict_damage
from gardn.entity import Component, Entity
from gardn.helpers import TAU, frand
from gardn.staticdata import MAX_SLOT_COUNT, PetalId, server_time
from gardn.vector import Vector


def _should_interact(ent1: Entity, ent2: Entity) -> bool:
    if ent1.pending_delete or ent2.pending_delete:
        return False
    if ent1.team != ent2.team:
        return True
    return not (ent1.no_friendly_collision or ent2.no_friendly_collision)


def _should_collide(ent1: Entity, ent2: Entity) -> bool:
    return not (ent1.has_component(Component.DROP) or ent2.has_component(Component.DROP))


def _pickup_drop(simulation: Any, player: Entity, drop: Entity) -> None:
    """Put the drop into the first free loadout slot, else the first free spare slot."""
    if not simulation.ent_alive(player.parent):
        return
    if drop.despawn_ticks < server_time(0.5):
        return
    camera = simulation.get_ent(player.parent)

    for slot in camera.loadout[: camera.loadout_count]:
        if slot.id != PetalId.NONE:
            continue
        slot.reset()
        slot.id = drop.drop_id
        break
    else:
        for index in range(camera.loadout_count, camera.loadout_count + MAX_SLOT_COUNT):
            if camera.loadout_ids[index] != PetalId.NONE:
                continue
            camera.loadout_ids[index] = drop.drop_id
            break
        else:
            return
    drop.x = player.x
    drop.y = player.y
    simulation.request_delete(drop.id)


def on_collide(simulation: Any, ent1: Entity, ent2: Entity) -> None:
    """Resolve a possible contact between two entities."""
    if not _should_interact(ent1, ent2):
        return
    separation = Vector(ent1.x - ent2.x, ent1.y - ent2.y)
    overlap = ent1.radius + ent2.radius - separation.magnitude()
    if overlap < 0:
        return
    if _should_collide(ent1, ent2):
        if separation.x == 0 and separation.y == 0:
            separation.unit_normal(frand() * TAU)
        separation.normalize()
        ratio = ent2.mass / (ent1.mass + ent2.mass)
        ent1.collision_velocity.set(
            separation.x * ratio * overlap, separation.y * ratio * overlap
        )
        ent2.collision_velocity.set(
            separation.x * (ratio - 1) * overlap, separation.y * (ratio - 1) * overlap
        )
    if (
        ent1.has_component(Component.HEALTH)
        and ent2.has_component(Component.HEALTH)
        and ent1.team != ent2.team
    ):
        inflict_damage(simulation, ent1, ent2.id, ent2.damage)
        inflict_damage(simulation, ent2, ent1.id, ent1.damage)
    if ent1.has_component(Component.DROP) and ent2.has_component(Component.FLOWER):
        _pickup_drop(simulation, ent2, ent1)
    if ent2.has_component(Component.DROP) and ent1.has_component(Component.FLOWER):
        _pickup_drop(simulation, ent1, ent2)