"""Per-tick behaviour of segments, drops, health and motion."""

from __future__ import annotations

import math
from typing import Any

from gardn.combat import inflict_damage
from gardn.entity import Component, Entity
from gardn.helpers import fclamp, frand
from gardn.staticdata import ARENA_HEIGHT, ARENA_WIDTH, PETAL_DATA, server_time
from gardn.vector import Vector


def tick_centipede_behavior(simulation: Any, ent: Entity) -> None:
    """Keep a body segment attached just behind the segment it follows."""
    if not simulation.ent_alive(ent.head_node):
        return
    par = simulation.get_ent(ent.head_node)
    diff = Vector(ent.x - par.x, ent.y - par.y)
    diff.set_magnitude(ent.radius + par.radius + 1)
    ent.x = par.x + diff.x
    ent.y = par.y + diff.y
    ent.angle = diff.angle() + math.pi


def tick_drop_behavior(simulation: Any, ent: Entity) -> None:
    """Show a fresh drop and despawn it after a time that grows with rarity."""
    if ent.despawn_ticks == 0:
        ent.angle = frand() * 0.2 - 0.1
        ent.radius = 20
    ent.despawn_ticks += 1
    rarity = PETAL_DATA[ent.drop_id].rarity
    if ent.despawn_ticks >= server_time(10 + 10 * rarity):
        simulation.request_delete(ent.id)


def tick_health_behavior(simulation: Any, ent: Entity) -> None:
    """Apply poison damage and count down immunity."""
    poison = ent.applied_poison
    if poison.ticks_left == 0:
        poison.reset()
    else:
        inflict_damage(simulation, ent, ent.target, poison.damage)
        poison.ticks_left -= 1
        ent.damaged = 1 if poison.ticks_left % int(server_time(1)) == 0 else 0
    if ent.immunity_ticks > 0:
        ent.immunity_ticks -= 1


def tick_entity_motion(simulation: Any, ent: Entity) -> None:
    """Integrate velocity, keep non-petals inside the arena and clear forces."""
    ent.velocity *= 1 - ent.friction
    ent.velocity += ent.acceleration
    ent.x = ent.x + ent.velocity.x + ent.collision_velocity.x
    ent.y = ent.y + ent.velocity.y + ent.collision_velocity.y
    if not ent.has_component(Component.PETAL):
        ent.x = fclamp(ent.x, ent.radius, ARENA_WIDTH - ent.radius)
        ent.y = fclamp(ent.y, ent.radius, ARENA_HEIGHT - ent.radius)
    if ent.has_component(Component.FLOWER):
        if ent.acceleration.x != 0 or ent.acceleration.y != 0:
            ent.eye_angle = ent.acceleration.angle()
    ent.acceleration.set(0, 0)
    ent.collision_velocity.set(0, 0)