"""Player loadouts: petal spawning, orbiting, special abilities and passive buffs."""

from __future__ import annotations

import math
from typing import Any

from gardn.combat import inflict_heal
from gardn.entity import Component, Entity
from gardn.entitydef import NULL_ENTITY
from gardn.helpers import TAU, bit_at, fclamp
from gardn.staticdata import (
    MAX_SLOT_COUNT,
    PETAL_DATA,
    PLAYER_ACCELERATION,
    MobId,
    PetalId,
    get_level_from_xp,
    real_time,
    server_time,
)
from gardn.vector import Vector

_HEALERS = frozenset({PetalId.ROSE, PetalId.AZALEA, PetalId.E_AZALEA})


def tick_petal(simulation: Any, petal: Entity, rot_pos: int, secondary_pos: int) -> None:
    """Steer an attached petal towards its place in the orbit around its player."""
    if not simulation.ent_alive(petal.id):
        raise ValueError("petal is not alive")
    if not simulation.ent_alive(petal.parent):
        raise ValueError("petal has no live owner")
    player = simulation.get_ent(petal.parent)
    data = PETAL_DATA[petal.petal_id]

    if petal.petal_id == PetalId.WING and petal.effect_delay > server_time(1.5):
        petal.effect_delay = 0

    if bit_at(player.input, 0):
        mag = 150.0
    elif bit_at(player.input, 1):
        mag = 50.0
    else:
        mag = 75.0
    if petal.petal_id == PetalId.WING and bit_at(player.input, 0):
        mag = 150 + 50 + 50 * math.sin(TAU * petal.effect_delay / server_time(1.5))

    angle = TAU * rot_pos / (player.rotation_count or 1) + player.rotation_angle
    move_to = Vector().unit_normal(angle).set_magnitude(mag)
    move_to.x += player.x - petal.x - player.velocity.x
    move_to.y += player.y - petal.y - player.velocity.y
    if data.extras.clump_radius != 0:
        angle_addition = player.rotation_angle * 0.75 + TAU * secondary_pos / data.count
        clump = Vector().unit_normal(angle_addition).set_magnitude(data.extras.clump_radius)
        angle += angle_addition
        move_to += clump
    move_to *= 0.5
    petal.acceleration = move_to

    speed_cap = 25 / (1 - petal.friction)
    if petal.velocity.magnitude() > speed_cap:
        petal.velocity.set_magnitude(speed_cap)

    if petal.petal_id == PetalId.WING:
        petal.angle = math.fmod(petal.angle + real_time(10), TAU)
    elif petal.petal_id == PetalId.BEETLE_EGG:
        petal.angle = 0
    elif petal.petal_id == PetalId.MISSILE:
        petal.angle = angle
    else:
        petal.angle = math.fmod(petal.angle + real_time(2), TAU)


def _calculate_passive_buffs(simulation: Any, player: Entity) -> None:
    camera = simulation.get_ent(player.parent)
    camera.experience = player.score
    level = get_level_from_xp(player.score)
    slot_count = min(level // 15 + 5, MAX_SLOT_COUNT)
    if slot_count > camera.loadout_count:
        for index in range(camera.loadout_count, slot_count):
            camera.loadout[index].reset()
            camera.loadout[index].id = camera.loadout_ids[index]
        camera.loadout_count = slot_count

    player.poison.define(0, 0)
    max_health = 100 + fclamp((level - 1) * 50 // 44, 0, 50)

    for slot in camera.loadout[: camera.loadout_count]:
        if slot.id == PetalId.NONE:
            continue
        if slot.id == PetalId.LEAF:
            inflict_heal(simulation, player, real_time(PETAL_DATA[slot.id].extras.heal))
        if slot.id == PetalId.CACTUS:
            max_health += 20
        if slot.id == PetalId.TRICAC:
            max_health += 40
        if slot.id == PetalId.POISON_CACTUS:
            max_health += 20
            player.poison.define(real_time(10), server_time(3))

    ratio = player.health / player.max_health
    player.max_health = max_health
    player.health = ratio * max_health
    player.rotation_angle += real_time(2.5)

    player.face_flags = bit_at(player.input, 0) | (bit_at(player.input, 1) << 1)
    if player.applied_poison.ticks_left > 0:
        player.face_flags = (1 << 1) | (1 << 2)


def _hatch(simulation: Any, player: Entity, petal: Entity, mob_id: MobId) -> Entity:
    summon = simulation.alloc_mob(mob_id)
    summon.team = player.parent
    summon.parent = player.id
    summon.x = petal.x
    summon.y = petal.y
    simulation.request_delete(petal.id)
    return summon


def _player_behavior(simulation: Any, player: Entity) -> None:
    if not simulation.ent_exists(player.parent):
        raise ValueError("player has no camera")
    camera = simulation.get_ent(player.parent)

    rotation_pos = 0
    for index, slot in enumerate(camera.loadout[: camera.loadout_count]):
        data = PETAL_DATA[slot.id]
        camera.loadout_ids[index] = slot.id
        if slot.id == PetalId.NONE:
            continue
        reload_ticks = int(server_time(data.reload))
        lowest = reload_ticks
        secondary = server_time(data.extras.secondary_reload)
        clumped = data.extras.clump_radius != 0
        if clumped:
            rotation_pos += 1
        for j, petal_slot in enumerate(slot.petals[: data.count]):
            if not clumped:
                rotation_pos += 1
            if not simulation.ent_alive(petal_slot.ent_id):
                lowest = min(lowest, petal_slot.reload)
                petal_slot.reload += 1
                if petal_slot.reload >= server_time(data.reload):
                    petal = simulation.alloc_petal(slot.id)
                    petal.x = player.x
                    petal.y = player.y
                    petal.parent = player.id
                    petal.team = player.parent
                    petal_slot.ent_id = petal.id
                continue

            petal = simulation.get_ent(petal_slot.ent_id)
            is_mob = petal.has_component(Component.MOB)
            if is_mob:
                rotation_pos -= 1
            petal_slot.reload = 0
            petal.effect_delay += 1
            ready = petal.effect_delay >= secondary

            if petal.petal_id == PetalId.EGG and ready:
                petal_slot.ent_id = _hatch(simulation, player, petal, MobId.SOLDIER_ANT).id
                continue
            if petal.petal_id == PetalId.BEETLE_EGG and ready:
                petal_slot.ent_id = _hatch(simulation, player, petal, MobId.BEETLE).id
                continue
            if petal.petal_id == PetalId.MISSILE and ready and bit_at(player.input, 0):
                petal.detached = 1
                petal.effect_delay = int(server_time(3))
                petal.velocity.unit_normal(petal.angle).set_magnitude(
                    PLAYER_ACCELERATION * 4 / petal.friction
                )
                petal_slot.ent_id = NULL_ENTITY
                continue
            if petal.petal_id == PetalId.BUBBLE and ready and bit_at(player.input, 1):
                petal.detached = 1
                delta = Vector(player.x - petal.x, player.y - petal.y)
                player.acceleration += delta.set_magnitude(10 * PLAYER_ACCELERATION)
                simulation.request_delete(petal.id)
                continue
            if petal.petal_id in _HEALERS and ready and player.health < player.max_health:
                delta = Vector(player.x - petal.x, player.y - petal.y)
                pull = Vector(delta.x * 0.25, delta.y * 0.25)
                if pull.magnitude() > PLAYER_ACCELERATION * 3:
                    pull.set_magnitude(PLAYER_ACCELERATION * 3)
                petal.acceleration += pull
                petal.acceleration += player.acceleration
                if delta.magnitude() < player.radius:
                    inflict_heal(simulation, player, data.extras.heal)
                    simulation.request_delete(petal.id)
                continue
            if not is_mob:
                tick_petal(simulation, petal, rotation_pos, j)
        camera.loadout_reloads[index] = lowest * 255 // reload_ticks
    player.rotation_count = rotation_pos
    _calculate_passive_buffs(simulation, player)


def _tick_detached_petal(simulation: Any, petal: Entity) -> None:
    petal.effect_delay -= 1
    if petal.effect_delay == 0:
        simulation.request_delete(petal.id)
        return
    if petal.petal_id == PetalId.MISSILE:
        petal.acceleration.unit_normal(petal.angle).set_magnitude(PLAYER_ACCELERATION * 2)


def tick_petal_behavior(simulation: Any) -> None:
    """Run loadouts for every live player and age detached or orphaned petals."""
    for ent_id in tuple(simulation.active_entities):
        ent = simulation.get_ent(ent_id)
        if ent.has_component(Component.FLOWER) and not ent.pending_delete:
            _player_behavior(simulation, ent)
        elif ent.has_component(Component.PETAL) and ent.detached:
            _tick_detached_petal(simulation, ent)
        elif ent.has_component(Component.PETAL) and not simulation.ent_alive(ent.parent):
            simulation.request_delete(ent.id)