"""Per-tick decision making for every kind of mob."""

from __future__ import annotations

import math
from typing import Any, Callable

from gardn.combat import find_nearest_enemy
from gardn.entity import Component, Entity
from gardn.entitydef import NULL_ENTITY, MobAiState, ai_state_is_passive
from gardn.helpers import TAU, frand
from gardn.staticdata import PLAYER_ACCELERATION, MobId, PetalId, real_time, server_time
from gardn.vector import Vector

DETECTION_RANGE = 600
_LEASH = DETECTION_RANGE + 300


def _accelerate(entity: Entity, magnitude: float) -> None:
    """Accelerate ``entity`` along its facing angle."""
    entity.acceleration.unit_normal(entity.angle).set_magnitude(magnitude)


def _lose_target(entity: Entity) -> None:
    entity.ai_state = MobAiState.IDLE
    entity.ai_ticks_to_next_action = 0
    entity.target = NULL_ENTITY


def _acquire_target(simulation: Any, entity: Entity) -> None:
    if not simulation.ent_alive(entity.target):
        entity.target = find_nearest_enemy(simulation, entity, DETECTION_RANGE)


def _aggro_if_targeting(simulation: Any, entity: Entity) -> None:
    if simulation.ent_alive(entity.target) and ai_state_is_passive(entity.ai_state):
        entity.ai_state = MobAiState.AGGRO


def _chase(simulation: Any, entity: Entity, speed: float, leash: float | None) -> None:
    """Head for the target; give up when it is gone or beyond ``leash``."""
    if not simulation.ent_alive(entity.target):
        _lose_target(entity)
        return
    target = simulation.get_ent(entity.target)
    diff = Vector(target.x - entity.x, target.y - entity.y)
    entity.angle = diff.angle()
    _accelerate(entity, PLAYER_ACCELERATION * speed)
    if leash is not None and diff.magnitude() > leash:
        _lose_target(entity)


def _wander_bearing(entity: Entity) -> None:
    """Bee-style wandering: sway around a bearing that changes every few seconds."""
    if entity.ai_state == MobAiState.IDLE:
        entity.bearing_angle = frand() * TAU
        entity.ai_state = MobAiState.IDLE_MOVING
        return
    if entity.ai_ticks_to_next_action > server_time(5):
        entity.ai_ticks_to_next_action = 0
        entity.bearing_angle = frand() * TAU
        entity.ai_state = MobAiState.IDLE_MOVING
        return
    entity.angle = entity.bearing_angle + 0.75 * math.sin(entity.ai_ticks_to_next_action * 0.05)
    _accelerate(entity, PLAYER_ACCELERATION / 6)


def _wander_circle(entity: Entity) -> None:
    """Centipede-style wandering: curve left or right for a few seconds."""
    if entity.ai_state == MobAiState.IDLE:
        entity.ai_ticks_to_next_action = 0
        entity.ai_state = (
            MobAiState.IDLE_MOVING if frand() > 0.5 else MobAiState.IDLE_MOVING_2
        )
        return
    if entity.ai_ticks_to_next_action > server_time(5.0):
        entity.ai_ticks_to_next_action = 0
        entity.ai_state = MobAiState.IDLE
        return
    turn = real_time(0.05)
    if entity.ai_state == MobAiState.IDLE_MOVING:
        entity.angle = entity.angle + turn
    else:
        entity.angle = entity.angle - turn
    _accelerate(entity, PLAYER_ACCELERATION / 10)


def default_tick_idle(simulation: Any, entity: Entity) -> None:
    """Stand still until it is time to pick a new direction."""
    if entity.ai_ticks_to_next_action >= server_time(2):
        entity.angle = frand() * TAU
        entity.ai_ticks_to_next_action = 0
        entity.ai_state = MobAiState.IDLE_MOVING


def default_tick_idle_moving(simulation: Any, entity: Entity) -> None:
    """Drift along the chosen direction, slowing down before going idle."""
    ticks = entity.ai_ticks_to_next_action
    if ticks > server_time(2):
        entity.ai_ticks_to_next_action = 0
        entity.ai_state = MobAiState.IDLE
    elif ticks > server_time(1.75):
        _accelerate(entity, PLAYER_ACCELERATION / 4)
    elif ticks > server_time(0.25):
        _accelerate(entity, PLAYER_ACCELERATION / 2)


def _default_wander(simulation: Any, entity: Entity) -> bool:
    """Run the default idle states; False when the state is not one of them."""
    if entity.ai_state == MobAiState.IDLE:
        default_tick_idle(simulation, entity)
    elif entity.ai_state == MobAiState.IDLE_MOVING:
        default_tick_idle_moving(simulation, entity)
    else:
        return False
    return True


def tick_baby_ant_ai(simulation: Any, entity: Entity) -> None:
    """Passive wandering; never attacks."""
    if not _default_wander(simulation, entity):
        entity.ai_state = MobAiState.IDLE


def tick_bee_ai(simulation: Any, entity: Entity) -> None:
    """Passive swaying flight."""
    if entity.ai_state in (MobAiState.IDLE, MobAiState.IDLE_MOVING):
        _wander_bearing(entity)
    else:
        entity.ai_state = MobAiState.IDLE


def tick_worker_ant_ai(simulation: Any, entity: Entity) -> None:
    """Wanders, but chases whoever hurt it."""
    _aggro_if_targeting(simulation, entity)
    if _default_wander(simulation, entity):
        return
    if entity.ai_state == MobAiState.AGGRO:
        _chase(simulation, entity, 0.95, None)
    else:
        entity.ai_state = MobAiState.IDLE


def tick_soldier_ant_ai(simulation: Any, entity: Entity) -> None:
    """Hunts nearby enemies and gives up when they get too far away."""
    _acquire_target(simulation, entity)
    _aggro_if_targeting(simulation, entity)
    if _default_wander(simulation, entity):
        return
    if entity.ai_state == MobAiState.AGGRO:
        _chase(simulation, entity, 0.95, _LEASH)
    else:
        entity.ai_state = MobAiState.IDLE


def _fire_missile(simulation: Any, entity: Entity) -> None:
    petal = simulation.alloc_petal(PetalId.MISSILE)
    petal.x = entity.x
    petal.y = entity.y
    petal.angle = entity.angle
    petal.parent = entity.id
    petal.team = entity.team
    petal.health = 10
    petal.max_health = 10
    petal.damage = 10
    petal.velocity.unit_normal(entity.angle).set_magnitude(
        PLAYER_ACCELERATION * 4 / petal.friction
    )
    petal.detached = 1
    petal.effect_delay = int(server_time(3))
    entity.ai_ticks_to_next_action = 0


def tick_hornet_ai(simulation: Any, entity: Entity) -> None:
    """Keeps its distance from a target and shoots missiles at it."""
    _acquire_target(simulation, entity)
    _aggro_if_targeting(simulation, entity)
    if entity.ai_state in (MobAiState.IDLE, MobAiState.IDLE_MOVING):
        _wander_bearing(entity)
        return
    if entity.ai_state != MobAiState.AGGRO:
        entity.ai_state = MobAiState.IDLE
        return
    if not simulation.ent_alive(entity.target):
        _lose_target(entity)
        return
    target = simulation.get_ent(entity.target)
    diff = Vector(target.x - entity.x, target.y - entity.y)
    dist = diff.magnitude()
    entity.angle = diff.angle()
    if dist > 750:
        _lose_target(entity)
        return
    if dist > 250:
        _accelerate(entity, PLAYER_ACCELERATION * 0.95)
    if entity.ai_ticks_to_next_action > server_time(3) and dist < 500:
        _fire_missile(simulation, entity)


def tick_centipede_ai(simulation: Any, entity: Entity) -> None:
    """Passive circling."""
    if entity.ai_state in (
        MobAiState.IDLE,
        MobAiState.IDLE_MOVING,
        MobAiState.IDLE_MOVING_2,
    ):
        _wander_circle(entity)
    else:
        entity.ai_state = MobAiState.IDLE


def tick_evil_centipede_ai(simulation: Any, entity: Entity) -> None:
    """Circles like a centipede but hunts nearby enemies."""
    _acquire_target(simulation, entity)
    _aggro_if_targeting(simulation, entity)
    if entity.ai_state in (
        MobAiState.IDLE,
        MobAiState.IDLE_MOVING,
        MobAiState.IDLE_MOVING_2,
    ):
        _wander_circle(entity)
    elif entity.ai_state == MobAiState.AGGRO:
        _chase(simulation, entity, 0.95, _LEASH)
    else:
        entity.ai_state = MobAiState.IDLE


def tick_spider_ai(simulation: Any, entity: Entity) -> None:
    """A fast hunter."""
    _acquire_target(simulation, entity)
    _aggro_if_targeting(simulation, entity)
    if _default_wander(simulation, entity):
        return
    if entity.ai_state == MobAiState.AGGRO:
        _chase(simulation, entity, 1.2, _LEASH)
    else:
        entity.ai_state = MobAiState.IDLE


def _no_ai(simulation: Any, entity: Entity) -> None:
    return None


_AI: dict[int, Callable[[Any, Entity], None]] = {
    MobId.BABY_ANT: tick_baby_ant_ai,
    MobId.LADYBUG: tick_baby_ant_ai,
    MobId.MASSIVE_LADYBUG: tick_baby_ant_ai,
    MobId.WORKER_ANT: tick_worker_ant_ai,
    MobId.DARK_LADYBUG: tick_worker_ant_ai,
    MobId.BEETLE: tick_soldier_ant_ai,
    MobId.SOLDIER_ANT: tick_soldier_ant_ai,
    MobId.MASSIVE_BEETLE: tick_soldier_ant_ai,
    MobId.QUEEN_ANT: tick_soldier_ant_ai,
    MobId.HORNET: tick_hornet_ai,
    MobId.BEE: tick_bee_ai,
    MobId.CENTIPEDE: tick_centipede_ai,
    MobId.EVIL_CENTIPEDE: tick_evil_centipede_ai,
    MobId.SPIDER: tick_spider_ai,
    MobId.ROCK: _no_ai,
    MobId.BOULDER: _no_ai,
    MobId.CACTUS: _no_ai,
    MobId.ANT_HOLE: _no_ai,
}


def _follow_parent(simulation: Any, entity: Entity) -> bool:
    """Keep a mob near its parent; True when the mob's own AI should be skipped."""
    parent = simulation.get_ent(entity.parent)
    delta = Vector(parent.x - entity.x, parent.y - entity.y)
    if simulation.ent_alive(entity.target):
        return_dist = _LEASH
    elif ai_state_is_passive(entity.ai_state):
        return_dist = 350
    else:
        return_dist = 200
    if delta.magnitude() > return_dist:
        entity.ai_state = MobAiState.RETURNING
        entity.ai_ticks_to_next_action = int(frand() * server_time(0.25))
        entity.acceleration = delta.set_magnitude(PLAYER_ACCELERATION)
        entity.angle = delta.angle()
        entity.target = NULL_ENTITY
        return True
    if entity.ai_state == MobAiState.RETURNING:
        entity.acceleration = delta.set_magnitude(PLAYER_ACCELERATION)
        entity.angle = delta.angle()
        entity.target = NULL_ENTITY
        entity.ai_ticks_to_next_action += 1
        if entity.ai_ticks_to_next_action > server_time(1.0):
            entity.ai_state = MobAiState.IDLE
            entity.ai_ticks_to_next_action = int(server_time(0.5) + frand() * server_time(2))
        else:
            return True
    if not simulation.ent_alive(entity.target) and simulation.ent_alive(parent.target):
        entity.target = parent.target
    return False


def tick_mob_ai(simulation: Any, entity: Entity) -> None:
    """Run one tick of the AI that belongs to the mob's kind."""
    if entity.has_component(Component.SEGMENTED) and simulation.ent_alive(entity.head_node):
        return
    if simulation.ent_alive(entity.parent) and _follow_parent(simulation, entity):
        return
    entity.ai_ticks_to_next_action += 1
    try:
        ai = _AI[entity.mob_id]
    except KeyError:
        raise ValueError(f"invalid mob id {entity.mob_id}") from None
    ai(simulation, entity)