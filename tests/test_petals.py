import math

import pytest

from gardn.entity import Component, Entity
from gardn.entitydef import NULL_ENTITY, EntityId
from gardn.helpers import TAU
from gardn.petals import tick_petal, tick_petal_behavior
from gardn.staticdata import (
    DEFAULT_FRICTION,
    MAX_SLOT_COUNT,
    PETAL_DATA,
    PLAYER_ACCELERATION,
    MobId,
    PetalId,
    real_time,
    server_time,
)


class FakeSimulation:
    def __init__(self):
        self.entities = {}
        self._next = 1

    @property
    def active_entities(self):
        return list(self.entities)

    def alloc_ent(self):
        ent = Entity()
        ent.id = EntityId(self._next, 0)
        self._next += 1
        self.entities[ent.id] = ent
        return ent

    def ent_exists(self, entid):
        return entid in self.entities

    def ent_alive(self, entid):
        return entid in self.entities and not self.entities[entid].pending_delete

    def get_ent(self, entid):
        return self.entities[entid]

    def request_delete(self, entid):
        self.entities[entid].pending_delete = 1

    def alloc_petal(self, petal_id):
        ent = self.alloc_ent()
        for comp in (Component.PHYSICS, Component.RELATIONS, Component.PETAL, Component.HEALTH):
            ent.add_component(comp)
        ent.petal_id = petal_id
        ent.radius = PETAL_DATA[petal_id].radius
        ent.friction = DEFAULT_FRICTION
        ent.max_health = PETAL_DATA[petal_id].health
        ent.health = PETAL_DATA[petal_id].health
        ent.no_friendly_collision = 1
        return ent

    def alloc_mob(self, mob_id):
        ent = self.alloc_ent()
        for comp in (Component.PHYSICS, Component.RELATIONS, Component.HEALTH, Component.MOB):
            ent.add_component(comp)
        ent.mob_id = mob_id
        return ent


def make_player(sim, slots=(), x=500.0, y=500.0):
    camera = sim.alloc_ent()
    camera.add_component(Component.CAMERA)
    camera.loadout_count = 5
    for index, petal_id in enumerate(slots):
        camera.loadout[index].id = petal_id
    player = sim.alloc_ent()
    for comp in (Component.PHYSICS, Component.RELATIONS, Component.FLOWER,
                 Component.HEALTH, Component.SCORE):
        player.add_component(comp)
    player.x, player.y, player.radius = x, y, 25
    player.max_health = 100
    player.health = 100
    player.parent = camera.id
    player.team = camera.id
    camera.player = player.id
    return camera, player


def attach(sim, camera, player, slot_index, petal_id, effect_delay=0, dx=0.0):
    petal = sim.alloc_petal(petal_id)
    petal.x = player.x + dx
    petal.y = player.y
    petal.parent = player.id
    petal.team = camera.id
    petal.effect_delay = effect_delay
    camera.loadout[slot_index].petals[0].ent_id = petal.id
    return petal


def petals_of(sim, player):
    return [e for e in sim.entities.values()
            if e.has_component(Component.PETAL) and e.parent == player.id]


def test_basic_petal_spawns_after_reload_time():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.BASIC])
    reload_ticks = int(server_time(PETAL_DATA[PetalId.BASIC].reload))
    for _ in range(reload_ticks - 1):
        tick_petal_behavior(sim)
    assert petals_of(sim, player) == []
    tick_petal_behavior(sim)
    spawned = petals_of(sim, player)
    assert len(spawned) == 1
    assert spawned[0].petal_id == PetalId.BASIC
    assert spawned[0].team == camera.id
    assert camera.loadout[0].petals[0].ent_id == spawned[0].id
    assert camera.loadout_ids[0] == PetalId.BASIC


def test_reload_indicator_stays_in_byte_range():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.BASIC, PetalId.FAST])
    for _ in range(30):
        tick_petal_behavior(sim)
        assert all(0 <= v <= 255 for v in camera.loadout_reloads)
    assert player.rotation_count == 2


def test_orphaned_petal_is_deleted():
    sim = FakeSimulation()
    petal = sim.alloc_petal(PetalId.BASIC)
    petal.parent = EntityId(999, 0)
    tick_petal_behavior(sim)
    assert petal.pending_delete == 1


def test_detached_petal_expires():
    sim = FakeSimulation()
    petal = sim.alloc_petal(PetalId.BASIC)
    petal.detached = 1
    petal.effect_delay = 1
    tick_petal_behavior(sim)
    assert petal.pending_delete == 1


def test_detached_missile_keeps_accelerating():
    sim = FakeSimulation()
    petal = sim.alloc_petal(PetalId.MISSILE)
    petal.detached = 1
    petal.effect_delay = 5
    petal.angle = 1.0
    tick_petal_behavior(sim)
    assert not petal.pending_delete
    assert petal.effect_delay == 4
    assert petal.acceleration.magnitude() == pytest.approx(PLAYER_ACCELERATION * 2)
    assert petal.acceleration.angle() == pytest.approx(1.0)


def test_egg_hatches_into_soldier_ant():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.EGG])
    ready = int(server_time(PETAL_DATA[PetalId.EGG].extras.secondary_reload))
    egg = attach(sim, camera, player, 0, PetalId.EGG, effect_delay=ready - 1)
    tick_petal_behavior(sim)
    assert egg.pending_delete == 1
    summon = sim.get_ent(camera.loadout[0].petals[0].ent_id)
    assert summon.has_component(Component.MOB)
    assert summon.mob_id == MobId.SOLDIER_ANT
    assert summon.team == camera.id
    assert summon.parent == player.id


def test_missile_is_launched_when_attacking():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.MISSILE])
    player.input = 1
    ready = int(server_time(PETAL_DATA[PetalId.MISSILE].extras.secondary_reload))
    missile = attach(sim, camera, player, 0, PetalId.MISSILE, effect_delay=ready - 1)
    tick_petal_behavior(sim)
    assert missile.detached == 1
    assert missile.effect_delay == int(server_time(3))
    assert camera.loadout[0].petals[0].ent_id == NULL_ENTITY
    expected = PLAYER_ACCELERATION * 4 / missile.friction
    assert missile.velocity.magnitude() == pytest.approx(expected)


def test_bubble_pushes_player_when_defending():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.BUBBLE])
    player.input = 2
    bubble = attach(sim, camera, player, 0, PetalId.BUBBLE, effect_delay=100, dx=50.0)
    tick_petal_behavior(sim)
    assert bubble.pending_delete == 1
    assert player.acceleration.magnitude() == pytest.approx(10 * PLAYER_ACCELERATION)
    assert player.acceleration.x < 0


def test_rose_heals_player_on_contact():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.ROSE])
    player.health = 50
    rose = attach(sim, camera, player, 0, PetalId.ROSE, effect_delay=100)
    tick_petal_behavior(sim)
    assert rose.pending_delete == 1
    assert player.health == pytest.approx(50 + PETAL_DATA[PetalId.ROSE].extras.heal)


def test_cactus_raises_max_health_and_keeps_ratio():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.CACTUS])
    player.health = 50
    tick_petal_behavior(sim)
    assert player.max_health == 120
    assert player.health / player.max_health == pytest.approx(0.5)


def test_poison_cactus_gives_poison():
    sim = FakeSimulation()
    camera, player = make_player(sim, [PetalId.POISON_CACTUS])
    tick_petal_behavior(sim)
    assert player.poison.has()
    assert player.poison.ticks == int(server_time(3))


def test_face_flags_follow_input_and_poison():
    sim = FakeSimulation()
    camera, player = make_player(sim)
    player.input = 3
    tick_petal_behavior(sim)
    assert player.face_flags == 3
    player.applied_poison.ticks_left = 5
    tick_petal_behavior(sim)
    assert player.face_flags == 6


def test_high_level_unlocks_all_slots():
    sim = FakeSimulation()
    camera, player = make_player(sim)
    camera.loadout_ids[5] = PetalId.WING
    player.score = 1e9
    tick_petal_behavior(sim)
    assert camera.loadout_count == MAX_SLOT_COUNT
    assert camera.loadout[5].id == PetalId.WING
    assert camera.experience == player.score


def test_tick_petal_caps_velocity_and_spins():
    sim = FakeSimulation()
    camera, player = make_player(sim)
    petal = attach(sim, camera, player, 0, PetalId.BASIC)
    petal.angle = 1.0
    petal.velocity.set(1000, 0)
    tick_petal(sim, petal, 1, 0)
    assert petal.velocity.magnitude() == pytest.approx(25 / (1 - petal.friction))
    assert petal.angle == pytest.approx(math.fmod(1.0 + real_time(2), TAU))
    assert petal.acceleration.magnitude() > 0


def test_tick_petal_beetle_egg_faces_zero():
    sim = FakeSimulation()
    camera, player = make_player(sim)
    petal = attach(sim, camera, player, 0, PetalId.BEETLE_EGG)
    petal.angle = 2.0
    tick_petal(sim, petal, 1, 0)
    assert petal.angle == 0


def test_tick_petal_resets_wing_cycle():
    sim = FakeSimulation()
    camera, player = make_player(sim)
    wing = attach(sim, camera, player, 0, PetalId.WING, effect_delay=100)
    tick_petal(sim, wing, 1, 0)
    assert wing.effect_delay == 0


def test_tick_petal_requires_live_owner():
    sim = FakeSimulation()
    petal = sim.alloc_petal(PetalId.BASIC)
    petal.parent = EntityId(999, 0)
    with pytest.raises(ValueError):
        tick_petal(sim, petal, 1, 0)