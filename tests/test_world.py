import random

import pytest

from gardn.entity import Component
from gardn.entitydef import NULL_ENTITY, EntityId
from gardn.staticdata import MOB_DATA, PETAL_DATA, MobId, PetalId, real_time, server_time
from gardn.world import ENTITY_CAP, Simulation


class _Client:
    def __init__(self, camera):
        self.camera = camera
        self.last_in_view = set()
        self.sent = []

    def send(self, data):
        self.sent.append(data)


def _camera(sim):
    camera = sim.alloc_ent()
    camera.add_component(Component.CAMERA)
    camera.fov = 1.0
    camera.camera_x = 1500
    camera.camera_y = 1500
    return camera


def test_alloc_ent_uses_lowest_free_slots():
    sim = Simulation()
    first = sim.alloc_ent()
    second = sim.alloc_ent()
    assert first.id == EntityId(1, 0)
    assert second.id == EntityId(2, 0)


def test_deleted_slot_is_reused_with_new_hash():
    sim = Simulation()
    ent = sim.alloc_ent()
    old = ent.id
    sim.delete_ent(old)
    assert not sim.ent_exists(old)
    again = sim.alloc_ent()
    assert again.id.id == old.id
    assert again.id.hash == old.hash + 1
    assert sim.ent_exists(again.id)


def test_get_missing_entity_raises():
    sim = Simulation()
    with pytest.raises(KeyError):
        sim.get_ent(EntityId(5, 0))


def test_out_of_range_index_raises():
    sim = Simulation()
    with pytest.raises(ValueError):
        sim.ent_exists(EntityId(ENTITY_CAP, 0))


def test_force_alloc_and_skip():
    sim = Simulation()
    forced = sim.force_alloc_ent(EntityId(1, 7))
    assert forced.id == EntityId(1, 7)
    assert sim.ent_exists(EntityId(1, 7))
    assert not sim.ent_exists(EntityId(1, 0))
    assert sim.alloc_ent().id.id == 2
    with pytest.raises(ValueError):
        sim.force_alloc_ent(EntityId(1, 3))


def test_request_delete_is_idempotent():
    sim = Simulation()
    ent = sim.alloc_ent()
    sim.request_delete(ent.id)
    sim.request_delete(ent.id)
    assert sim.pending_delete == [ent.id]
    assert sim.ent_exists(ent.id)
    assert not sim.ent_alive(ent.id)


def test_pre_tick_lists_live_entities():
    sim = Simulation()
    ids = [sim.alloc_ent().id for _ in range(3)]
    sim.delete_ent(ids[1])
    sim.pre_tick()
    assert sim.active_entities == [ids[0], ids[2]]


def test_reset_forgets_everything():
    sim = Simulation()
    ent = sim.alloc_ent()
    sim.reset()
    assert not sim.ent_exists(ent.id)
    assert sim.alloc_ent().id == EntityId(1, 0)


def test_alloc_mob_uses_mob_table():
    sim = Simulation()
    mob = sim.alloc_mob(MobId.BEE)
    data = MOB_DATA[MobId.BEE]
    assert mob.has_component(Component.MOB)
    assert mob.has_component(Component.HEALTH)
    assert mob.health == data.health
    assert mob.max_health == data.health
    assert mob.score == data.xp * 2
    assert mob.name == data.name
    assert mob.team == NULL_ENTITY
    assert mob.mass == pytest.approx(mob.radius / 20 + 3)


def test_centipede_is_a_chain_of_segments():
    sim = Simulation()
    head = sim.alloc_mob(MobId.CENTIPEDE)
    assert head.is_head == 1
    sim.pre_tick()
    assert len(sim.active_entities) == 10
    segments = [sim.get_ent(i) for i in sim.active_entities if i != head.id]
    assert all(s.has_component(Component.SEGMENTED) for s in segments)
    followed = {s.head_node for s in segments}
    assert head.id in followed
    assert len(followed) == 9


def test_ant_hole_spawns_ants_around_it():
    sim = Simulation()
    hole = sim.alloc_mob(MobId.ANT_HOLE)
    assert hole.no_friendly_collision == 1
    sim.pre_tick()
    ants = [sim.get_ent(i) for i in sim.active_entities if i != hole.id]
    assert sorted(a.mob_id for a in ants) == [0, 0, 0, 1, 1]
    assert all(a.parent == hole.id for a in ants)


def test_alloc_player_binds_to_camera():
    sim = Simulation()
    camera = _camera(sim)
    player = sim.alloc_player(camera)
    assert camera.player == player.id
    assert player.parent == camera.id
    assert player.team == camera.id
    assert (player.x, player.y) == (camera.camera_x, camera.camera_y)
    assert player.health == 100
    assert player.immunity_ticks == int(server_time(2))


def test_alloc_petal_poison():
    sim = Simulation()
    petal = sim.alloc_petal(PetalId.IRIS)
    extras = PETAL_DATA[PetalId.IRIS].extras
    assert petal.poison.damage == pytest.approx(
        real_time(extras.poison_damage / extras.poison_time)
    )
    assert petal.poison.ticks == int(server_time(extras.poison_time))
    assert petal.petal_id == PetalId.IRIS
    plain = sim.alloc_petal(PetalId.BASIC)
    assert not plain.poison.has()


def test_leaderboard_keeps_top_ten_descending():
    sim = Simulation()
    for score in range(1, 13):
        ent = sim.alloc_ent()
        ent.add_component(Component.FLOWER)
        ent.add_component(Component.SCORE)
        ent.score = score
        ent.name = f"p{score}"
    sim.pre_tick()
    sim.calculate_leaderboard()
    scores = [entry.score for entry in sim.leaderboard]
    assert len(scores) == 10
    assert scores == sorted(scores, reverse=True)
    assert sim.leaderboard[0].name == "p12"
    assert sim.get_ent(sim.leaderboard[0].id).score == 12


def test_non_physics_entity_is_deleted_at_end_of_tick():
    sim = Simulation()
    ent = sim.alloc_ent()
    sim.pre_tick()
    sim.request_delete(ent.id)
    sim.post_tick()
    assert not sim.ent_exists(ent.id)
    assert sim.pending_delete == []


def test_physics_entity_lingers_for_death_animation():
    sim = Simulation()
    ent = sim.alloc_ent()
    ent.add_component(Component.PHYSICS)
    entid = ent.id
    sim.request_delete(entid)
    for _ in range(5):
        sim.pre_tick()
        sim.post_tick()
        assert sim.ent_exists(entid)
    sim.pre_tick()
    sim.post_tick()
    assert not sim.ent_exists(entid)


def test_boulder_always_drops_heavy():
    sim = Simulation()
    boulder = sim.alloc_mob(MobId.BOULDER)
    sim.pre_tick()
    sim.request_delete(boulder.id)
    sim.post_tick()
    sim.pre_tick()
    drops = [
        sim.get_ent(i) for i in sim.active_entities
        if sim.get_ent(i).has_component(Component.DROP)
    ]
    assert PetalId.HEAVY in [d.drop_id for d in drops]
    assert all((d.x, d.y) == (boulder.x, boulder.y) for d in drops)


def test_player_with_only_basic_petals_drops_nothing():
    sim = Simulation()
    camera = _camera(sim)
    camera.loadout_count = 5
    for i in range(5):
        camera.loadout_ids[i] = PetalId.BASIC
    player = sim.alloc_player(camera)
    sim.pre_tick()
    before = len(sim.active_entities)
    sim.request_delete(player.id)
    sim.post_tick()
    sim.pre_tick()
    assert len(sim.active_entities) == before


def test_update_client_sends_camera_first():
    sim = Simulation()
    camera = _camera(sim)
    client = _Client(camera.id)
    sim.update_client(client)
    assert len(client.sent) == 1
    assert client.sent[0][:3] == b"\x00\x01\x00"
    assert client.last_in_view == {camera.id}


def test_update_client_tracks_player_in_view():
    sim = Simulation()
    camera = _camera(sim)
    player = sim.alloc_player(camera)
    player.x = 200
    client = _Client(camera.id)
    sim.update_client(client)
    assert client.last_in_view == {camera.id, player.id}
    assert camera.camera_x == 200


def test_update_client_without_camera_sends_nothing():
    sim = Simulation()
    client = _Client(EntityId(3, 0))
    sim.update_client(client)
    assert client.sent == []


def test_tick_updates_registered_clients():
    random.seed(4)
    sim = Simulation()
    camera = _camera(sim)
    player = sim.alloc_player(camera)
    client = _Client(camera.id)
    sim.clients.add(client)
    sim.tick()
    sim.tick()
    assert len(client.sent) == 2
    assert player.id in client.last_in_view
    assert sim.ent_alive(player.id)
    assert camera.loadout_count == 5