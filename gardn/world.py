"""The entity table and the server-side game loop."""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass
from typing import Any

from gardn.ai import tick_mob_ai
from gardn.behaviors import (
    tick_centipede_behavior,
    tick_drop_behavior,
    tick_entity_motion,
    tick_health_behavior,
)
from gardn.binary import Clientbound, Writer
from gardn.collision import on_collide
from gardn.entity import Component, Entity
from gardn.entitydef import NULL_ENTITY, EntityId
from gardn.helpers import TAU, frand
from gardn.petals import tick_petal_behavior
from gardn.spatialhash import SpatialHash
from gardn.staticdata import (
    ARENA_HEIGHT,
    ARENA_WIDTH,
    DEFAULT_FRICTION,
    MAX_SLOT_COUNT,
    MOB_DATA,
    PETAL_DATA,
    PLAYER_ACCELERATION,
    MobId,
    PetalId,
    real_time,
    server_time,
)
from gardn.vector import Vector

ENTITY_CAP = 4096
LEADERBOARD_SIZE = 10
DELETED_PETAL_COUNT = 10
CENTIPEDE_SEGMENTS = 9
DELETION_ANIMATION_TICKS = 5
ANT_HOLE_SPAWN_CHANCE = 0.01

_VIEW_HALF_WIDTH = 960
_VIEW_HALF_HEIGHT = 540
_HASH_MASK = 0xFFFF
_DROPPED_ON_DEATH = 3


@dataclass
class LeaderboardEntry:
    name: str = ""
    id: EntityId = NULL_ENTITY
    score: float = 0.0


class Simulation:
    """Fixed-capacity table of entities plus the per-tick update pipeline.

    ``clients`` holds the connected clients; each needs ``camera``,
    ``last_in_view`` (a set of ids) and ``send(data)``.
    """

    def __init__(self) -> None:
        self.spatial_hash = SpatialHash(self)
        self.clients: set[Any] = set()
        self.reset()

    def reset(self) -> None:
        """Forget every entity."""
        self.leaderboard: list[LeaderboardEntry] = []
        self.entity_tracker = [False] * ENTITY_CAP
        self.hash_tracker = [0] * ENTITY_CAP
        self._entities: list[Entity | None] = [None] * ENTITY_CAP
        self._free = list(range(1, ENTITY_CAP))
        heapq.heapify(self._free)
        self.active_entities: list[EntityId] = []
        self.pending_delete: list[EntityId] = []
        self.spatial_hash.clear()

    def _slot(self, index: int) -> Entity:
        ent = self._entities[index]
        if ent is None:
            ent = Entity()
            self._entities[index] = ent
        else:
            ent.init()
        return ent

    def alloc_ent(self) -> Entity:
        """Take the lowest free slot and return its freshly initialised entity."""
        while self._free:
            index = heapq.heappop(self._free)
            if self.entity_tracker[index]:
                continue
            self.entity_tracker[index] = True
            ent = self._slot(index)
            ent.id = EntityId(index, self.hash_tracker[index])
            return ent
        raise RuntimeError("entity cap reached")

    def _check_index(self, entid: EntityId) -> None:
        if not 0 <= entid.id < ENTITY_CAP:
            raise ValueError(f"entity index {entid.id} out of range")

    def get_ent(self, entid: EntityId) -> Entity:
        if not self.ent_exists(entid):
            raise KeyError(f"no entity {entid!r}")
        return self._entities[entid.id]

    def force_alloc_ent(self, entid: EntityId) -> Entity:
        """Create an entity with exactly the given id."""
        self._check_index(entid)
        if self.entity_tracker[entid.id]:
            raise ValueError(f"entity slot {entid.id} is already in use")
        ent = self._slot(entid.id)
        self.entity_tracker[entid.id] = True
        self.hash_tracker[entid.id] = entid.hash
        ent.id = entid
        return ent

    def ent_exists(self, entid: EntityId) -> bool:
        self._check_index(entid)
        return self.entity_tracker[entid.id] and self.hash_tracker[entid.id] == entid.hash

    def ent_alive(self, entid: EntityId) -> bool:
        return self.ent_exists(entid) and not self._entities[entid.id].pending_delete

    def request_delete(self, entid: EntityId) -> None:
        """Mark an entity for deletion at the end of the tick."""
        ent = self.get_ent(entid)
        if ent.pending_delete:
            return
        ent.pending_delete = 1
        self.pending_delete.append(entid)

    def delete_ent(self, entid: EntityId) -> None:
        """Free the slot immediately; ids of the old entity become stale."""
        if not self.ent_exists(entid):
            raise KeyError(f"no entity {entid!r}")
        self.entity_tracker[entid.id] = False
        self.hash_tracker[entid.id] = (self.hash_tracker[entid.id] + 1) & _HASH_MASK
        heapq.heappush(self._free, entid.id)

    def pre_tick(self) -> None:
        self.active_entities = [
            self._entities[index].id
            for index, used in enumerate(self.entity_tracker)
            if used
        ]

    def tick(self) -> None:
        """Advance the world by one server tick and update every client."""
        if frand() < ANT_HOLE_SPAWN_CHANCE:
            self.alloc_mob(MobId.ANT_HOLE)
        self.pre_tick()
        active = [self.get_ent(entid) for entid in self.active_entities]
        for ent in active:
            ent.damaged = 0
            if ent.has_component(Component.PHYSICS):
                self.spatial_hash.insert(ent)
        self.spatial_hash.collide(on_collide)
        tick_petal_behavior(self)
        for ent in active:
            if ent.has_component(Component.MOB) and not ent.pending_delete:
                tick_mob_ai(self, ent)
        for ent in active:
            if ent.pending_delete:
                continue
            if ent.has_component(Component.SEGMENTED):
                tick_centipede_behavior(self, ent)
            if ent.has_component(Component.DROP):
                tick_drop_behavior(self, ent)
            if ent.has_component(Component.PHYSICS):
                tick_entity_motion(self, ent)
            if ent.has_component(Component.HEALTH):
                tick_health_behavior(self, ent)
        self.post_tick()

    def post_tick(self) -> None:
        """Run deaths, send updates, then free entities that finished dying."""
        for entid in self.active_entities:
            ent = self.get_ent(entid)
            if ent.pending_delete and ent.has_component(Component.PHYSICS):
                if ent.deletion_tick == 0:
                    self._on_delete(ent)
                ent.deletion_tick = ent.deletion_tick + 1
                if ent.id not in self.pending_delete:
                    self.pending_delete.append(ent.id)

        self.calculate_leaderboard()

        for client in tuple(self.clients):
            self.update_client(client)

        for entid in self.active_entities:
            self.get_ent(entid).reset_protocol_state()

        for entid in self.pending_delete:
            ent = self.get_ent(entid)
            if (
                not ent.has_component(Component.PHYSICS)
                or ent.deletion_tick > DELETION_ANIMATION_TICKS
            ):
                self.delete_ent(entid)
        self.pending_delete.clear()
        self.spatial_hash.clear()

    def _spawn_drops(self, source: Entity, drop_ids: list[int]) -> None:
        count = len(drop_ids)
        for i, drop_id in enumerate(drop_ids):
            drop = self.alloc_ent()
            drop.add_component(Component.PHYSICS)
            drop.x = source.x
            drop.y = source.y
            drop.radius = 0
            drop.angle = -math.pi
            drop.friction = 0.4
            drop.add_component(Component.RELATIONS)
            drop.team = NULL_ENTITY
            drop.add_component(Component.DROP)
            drop.drop_id = drop_id
            drop.despawn_ticks = 0
            if count > 1:
                drop.acceleration = Vector().unit_normal(TAU * i / count).set_magnitude(
                    server_time(PLAYER_ACCELERATION) * 0.4
                )
            self.spatial_hash.insert(drop)

    def _on_delete(self, ent: Entity) -> None:
        if ent.team == NULL_ENTITY and ent.has_component(Component.MOB):
            drops = [drop.id for drop in MOB_DATA[ent.mob_id].drops if frand() < drop.chance]
            if drops:
                self._spawn_drops(ent, drops)
        elif ent.has_component(Component.FLOWER):
            self._flower_death(ent)

    def _flower_death(self, ent: Entity) -> None:
        """Drop the best petals a dead player owned and shift the rest forward."""
        camera = self.get_ent(ent.parent)
        owned = camera.loadout_count + MAX_SLOT_COUNT
        queue = [int(PetalId.NONE)] * (DELETED_PETAL_COUNT + 2 * MAX_SLOT_COUNT)
        for i in range(owned):
            if camera.loadout_ids[i] != PetalId.BASIC and frand() > 0.05:
                queue[i] = camera.loadout_ids[i]
        for i, petal_id in enumerate(camera.deleted_petals):
            if frand() > 0.05:
                queue[owned + i] = int(petal_id)
        span = owned + DELETED_PETAL_COUNT
        queue[:span] = sorted(
            queue[:span],
            key=lambda p: PETAL_DATA[p].rarity + (p != PetalId.NONE),
            reverse=True,
        )
        drops = []
        for petal_id in queue[:_DROPPED_ON_DEATH]:
            if petal_id == PetalId.NONE:
                break
            drops.append(petal_id)
        if not drops:
            return
        self._spawn_drops(ent, drops)
        for i in range(owned):
            camera.loadout_ids[i] = queue[i + len(drops)]

    def update_client(self, client: Any) -> None:
        """Send ``client`` the entities that entered, left or changed in its view."""
        if not self.ent_exists(client.camera):
            return
        in_view: set[EntityId] = {client.camera}
        camera = self.get_ent(client.camera)
        if self.ent_exists(camera.player):
            player = self.get_ent(camera.player)
            camera.camera_x = player.x
            camera.camera_y = player.y
            in_view.add(player.id)

        writer = Writer()
        writer.write_uint8(Clientbound(0))
        writer.write_entid(client.camera)
        for ent in self.spatial_hash.query(
            camera.camera_x,
            camera.camera_y,
            _VIEW_HALF_WIDTH / camera.fov,
            _VIEW_HALF_HEIGHT / camera.fov,
        ):
            in_view.add(ent.id)

        for entid in sorted(client.last_in_view):
            if entid not in in_view:
                writer.write_entid(entid)
        writer.write_entid(NULL_ENTITY)

        for entid in sorted(in_view):
            ent = self.get_ent(entid)
            create = entid not in client.last_in_view
            writer.write_entid(entid)
            writer.write_uint8(int(create))
            ent.write(writer, create)
        writer.write_entid(NULL_ENTITY)

        writer.write_uint32(len(self.leaderboard))
        if self.leaderboard:
            for entry in self.leaderboard[:-1]:
                self._write_entry(writer, entry.name, entry.id, entry.score)
            last = self.leaderboard[-1]
            if (
                self.ent_exists(camera.player)
                and self.get_ent(camera.player).score <= last.score
            ):
                player = self.get_ent(camera.player)
                self._write_entry(writer, player.name, player.id, player.score)
            else:
                self._write_entry(writer, last.name, last.id, last.score)

        client.last_in_view = set(in_view)
        client.send(writer.getvalue())

    @staticmethod
    def _write_entry(writer: Writer, name: str, entid: EntityId, score: float) -> None:
        writer.write_string(name)
        writer.write_entid(entid)
        writer.write_float(score)

    def calculate_leaderboard(self) -> None:
        """Rank the ten highest-scoring players."""
        players = [
            entid
            for entid in self.active_entities
            if self.get_ent(entid).has_component(Component.FLOWER)
            and self.get_ent(entid).has_component(Component.SCORE)
        ]
        self.leaderboard = []
        for _ in range(min(len(players), LEADERBOARD_SIZE)):
            max_score = 0.0
            max_ind = 0
            for j, entid in enumerate(players):
                score = self.get_ent(entid).score
                if score > max_score:
                    max_score = score
                    max_ind = j
            best = players[max_ind]
            self.leaderboard.append(
                LeaderboardEntry(self.get_ent(best).name, best, max_score)
            )
            players[max_ind] = players[-1]
            players.pop()

    def _alloc_single_mob(self, mob_id: int) -> Entity:
        data = MOB_DATA[mob_id]
        mob = self.alloc_ent()
        mob.add_component(Component.PHYSICS)
        mob.x = frand() * ARENA_WIDTH
        mob.y = frand() * ARENA_HEIGHT
        mob.angle = frand() * TAU
        mob.radius = data.radius
        mob.friction = DEFAULT_FRICTION
        mob.add_component(Component.RELATIONS)
        mob.team = NULL_ENTITY
        mob.add_component(Component.HEALTH)
        mob.max_health = data.health
        mob.health = data.health
        mob.damage = data.damage
        mob.add_component(Component.MOB)
        mob.mob_id = mob_id
        mob.add_component(Component.SCORE)
        mob.score = data.xp * 2  # the killer only gets half
        mob.name = data.name
        if mob_id == MobId.ROCK:
            mob.radius = 15 + frand() * 25
        elif mob_id == MobId.BOULDER:
            mob.radius = 40 + frand() * 40
        elif mob_id == MobId.CACTUS:
            mob.radius = 30 + frand() * 40
        mob.mass = mob.radius / 20 + 3
        return mob

    def _spawn_near(self, hole: Entity, mob_id: int) -> None:
        spawn = self._alloc_single_mob(mob_id)
        angle = frand() * TAU
        dist = math.sqrt(frand()) * 100
        spawn.x = hole.x + math.cos(angle) * dist
        spawn.y = hole.y + math.sin(angle) * dist
        spawn.parent = hole.id

    def alloc_mob(self, mob_id: int) -> Entity:
        """Create a mob; centipedes come with their body, ant holes with ants."""
        if mob_id in (MobId.CENTIPEDE, MobId.EVIL_CENTIPEDE):
            head = self._alloc_single_mob(mob_id)
            head.add_component(Component.SEGMENTED)
            head.is_head = 1
            prev = head
            for _ in range(CENTIPEDE_SEGMENTS):
                segment = self._alloc_single_mob(mob_id)
                segment.add_component(Component.SEGMENTED)
                segment.head_node = prev.id
                segment.angle = prev.angle + frand() * 0.1 - 0.05
                gap = prev.radius + segment.radius
                segment.x = prev.x - gap * math.cos(segment.angle)
                segment.y = prev.y - gap * math.sin(segment.angle)
                prev = segment
            return head
        if mob_id == MobId.ANT_HOLE:
            hole = self._alloc_single_mob(mob_id)
            hole.no_friendly_collision = 1
            for _ in range(3):
                self._spawn_near(hole, MobId.BABY_ANT)
            for _ in range(2):
                self._spawn_near(hole, MobId.WORKER_ANT)
            return hole
        return self._alloc_single_mob(mob_id)

    def alloc_petal(self, petal_id: int) -> Entity:
        data = PETAL_DATA[petal_id]
        petal = self.alloc_ent()
        petal.add_component(Component.PHYSICS)
        petal.radius = data.radius
        petal.friction = DEFAULT_FRICTION
        petal.mass = 0.2
        petal.add_component(Component.RELATIONS)
        petal.add_component(Component.PETAL)
        petal.petal_id = petal_id
        petal.add_component(Component.HEALTH)
        petal.max_health = data.health
        petal.health = data.health
        petal.damage = data.damage
        petal.effect_delay = 0
        extras = data.extras
        petal.poison.define(
            real_time(extras.poison_damage / extras.poison_time),
            server_time(extras.poison_time),
        )
        petal.no_friendly_collision = 1
        return petal

    def alloc_player(self, camera: Entity) -> Entity:
        """Spawn a flower at the camera's position and bind it to the camera."""
        player = self.alloc_ent()
        player.add_component(Component.PHYSICS)
        player.x = camera.camera_x
        player.y = camera.camera_y
        player.radius = 25
        player.friction = DEFAULT_FRICTION
        player.add_component(Component.FLOWER)
        camera.player = player.id
        player.add_component(Component.RELATIONS)
        player.parent = camera.id
        player.team = camera.id
        player.add_component(Component.HEALTH)
        player.health = 100
        player.max_health = 100
        player.damage = 25
        player.immunity_ticks = int(server_time(2))
        player.add_component(Component.SCORE)
        player.score = camera.experience / 2
        player.no_friendly_collision = 1
        return player