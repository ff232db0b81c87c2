"""Damage, healing, poison and target search."""

from __future__ import annotations

import math
from typing import Any

from gardn.entity import Component, Entity
from gardn.entitydef import NULL_ENTITY, EntityId
from gardn.helpers import fclamp
from gardn.staticdata import MobId

_PARENT_LEASH = 900

_HOLE_SPAWNS: tuple[tuple[MobId, ...], ...] = (
    (MobId.BABY_ANT,),
    (MobId.BABY_ANT, MobId.WORKER_ANT),
    (MobId.WORKER_ANT, MobId.WORKER_ANT),
    (MobId.SOLDIER_ANT, MobId.WORKER_ANT),
    (MobId.SOLDIER_ANT, MobId.WORKER_ANT),
    (MobId.SOLDIER_ANT,),
    (MobId.SOLDIER_ANT, MobId.SOLDIER_ANT),
    (MobId.SOLDIER_ANT, MobId.SOLDIER_ANT),
    (MobId.QUEEN_ANT,),
    (MobId.SOLDIER_ANT,),
    (MobId.SOLDIER_ANT, MobId.SOLDIER_ANT, MobId.SOLDIER_ANT),
)


def _deal_poison(recv: Entity, deal: Entity) -> None:
    pending = recv.applied_poison.damage * recv.applied_poison.ticks_left
    possible = deal.poison.damage * deal.poison.ticks
    if pending < possible:
        recv.applied_poison.dealer = deal.id
        recv.applied_poison.damage = deal.poison.damage
        recv.applied_poison.ticks_left = deal.poison.ticks


def _ant_hole(simulation: Any, hole: Entity, dmg: float) -> None:
    """Release the waves of ants corresponding to the health just lost."""
    rat = (hole.max_health - hole.health) / hole.max_health
    new_rat = fclamp(rat + dmg / hole.max_health, 0, 1)
    start = math.floor(rat * len(_HOLE_SPAWNS))
    end = math.floor(new_rat * len(_HOLE_SPAWNS))
    for wave in _HOLE_SPAWNS[start:end]:
        for mob_id in wave:
            spawn = simulation.alloc_mob(mob_id)
            spawn.x = hole.x
            spawn.y = hole.y
            spawn.parent = hole.id


def inflict_damage(simulation: Any, receiver: Entity, dealer: EntityId, damage: float) -> None:
    """Damage ``receiver`` on behalf of ``dealer``, handling aggro, poison, score and death."""
    if not receiver.has_component(Component.HEALTH):
        raise ValueError("entity has no health component")
    if receiver.has_component(Component.MOB) and receiver.mob_id == MobId.ANT_HOLE:
        _ant_hole(simulation, receiver, damage)
    rh = fclamp(receiver.health - damage, 0, receiver.max_health)
    receiver.health = rh
    receiver.damaged = 1
    if simulation.ent_alive(dealer):
        d_ent = simulation.get_ent(dealer)
        if not simulation.ent_alive(receiver.target):
            receiver.target = d_ent.parent if simulation.ent_alive(d_ent.parent) else dealer
        if d_ent.poison.has():
            _deal_poison(receiver, d_ent)
        if rh == 0 and receiver.has_component(Component.SCORE):
            reward = receiver.score / 2
            if d_ent.has_component(Component.FLOWER):
                d_ent.score = d_ent.score + reward
            elif simulation.ent_alive(d_ent.parent):
                owner = simulation.get_ent(d_ent.parent)
                if owner.has_component(Component.FLOWER):
                    owner.score = owner.score + reward
    if rh == 0:
        simulation.request_delete(receiver.id)


def inflict_heal(simulation: Any, receiver: Entity, heal: float) -> None:
    """Heal ``receiver``, never beyond its maximum health."""
    if not receiver.has_component(Component.HEALTH):
        raise ValueError("entity has no health component")
    receiver.health = fclamp(receiver.health + heal, 0, receiver.max_health)


def find_nearest_enemy(simulation: Any, entity: Entity, radius: float) -> EntityId:
    """The closest hostile mob or flower within ``radius``, or the null id."""
    nearest = NULL_ENTITY
    min_dist = radius
    parent = simulation.get_ent(entity.parent) if simulation.ent_alive(entity.parent) else None
    for ent in simulation.spatial_hash.query(entity.x, entity.y, radius, radius):
        if ent.team == entity.team or ent.immunity_ticks > 0:
            continue
        if not ent.has_component(Component.MOB) and not ent.has_component(Component.FLOWER):
            continue
        if parent is not None and math.hypot(ent.x - parent.x, ent.y - parent.y) > _PARENT_LEASH:
            continue
        dist = math.hypot(ent.x - entity.x, ent.y - entity.y)
        if dist < min_dist:
            min_dist = dist
            nearest = ent.id
    return nearest