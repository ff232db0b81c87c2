"""WebSocket game server: client sessions, serverbound messages and the tick loop."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any, Callable

import websockets

from gardn.binary import ProtocolError, Reader, Serverbound
from gardn.entity import Component, Entity
from gardn.entitydef import EntityId
from gardn.helpers import frand
from gardn.staticdata import (
    ARENA_HEIGHT,
    ARENA_WIDTH,
    MAX_SLOT_COUNT,
    PETAL_DATA,
    PLAYER_ACCELERATION,
    RARITY_SACRIFICE_XP,
    SERVER_DT,
    PetalId,
    get_level_from_xp,
)
from gardn.vector import Vector
from gardn.world import Simulation

log = logging.getLogger(__name__)

DEFAULT_PORT = 9001
MAX_PAYLOAD = 1024 * 1024
BASE_SLOT_COUNT = 5
LEVELS_PER_SLOT = 15
MAX_INPUT_COORD = 5e3
FULL_SPEED_DISTANCE = 200
PETALS_PER_SLOT = 3

_INPUT, _SPAWN, _SWAP, _DELETE = Serverbound


class Client:
    """One connected player: a camera entity and what it saw last tick."""

    def __init__(self, simulation: Simulation, send: Callable[[bytes], Any]) -> None:
        self.simulation = simulation
        self._send = send
        self.camera: EntityId | None = None
        self.last_in_view: set[EntityId] = set()

    def init(self) -> None:
        """Create the camera entity at a random spot in the arena."""
        ent = self.simulation.alloc_ent()
        ent.add_component(Component.CAMERA)
        ent.fov = 1.0
        ent.camera_x = frand() * ARENA_WIDTH
        ent.camera_y = frand() * ARENA_HEIGHT
        self.camera = ent.id

    def remove(self) -> None:
        """Schedule the camera and its player for deletion."""
        sim = self.simulation
        if self.camera is not None and sim.ent_exists(self.camera):
            player = sim.get_ent(self.camera).player
            if sim.ent_exists(player):
                sim.request_delete(player)
            sim.request_delete(self.camera)
        log.info("deleting client %r", self)

    def alive(self) -> bool:
        """True when the client's flower exists."""
        sim = self.simulation
        if self.camera is None or not sim.ent_exists(self.camera):
            return False
        return bool(sim.ent_exists(sim.get_ent(self.camera).player))

    def send(self, data: bytes) -> None:
        self._send(data)


class GameServer:
    """Owns the simulation and turns client messages into game actions."""

    def __init__(self, simulation: Simulation | None = None) -> None:
        self.simulation = simulation if simulation is not None else Simulation()

    @property
    def clients(self) -> set[Client]:
        return self.simulation.clients

    def connect(self, send: Callable[[bytes], Any]) -> Client:
        """Register a new client whose updates go to ``send``."""
        log.info("client connection")
        client = Client(self.simulation, send)
        client.init()
        self.clients.add(client)
        return client

    def disconnect(self, client: Client) -> None:
        log.info("client disconnection")
        client.remove()
        self.clients.discard(client)

    def handle_message(self, client: Client, data: bytes) -> None:
        """Apply one serverbound message; raise ProtocolError on a bad one."""
        reader = Reader(bytes(data))
        try:
            try:
                kind = Serverbound(reader.read_uint8())
            except ValueError:
                raise ProtocolError("unknown message type") from None
            handler = {
                _INPUT: self._on_input,
                _SPAWN: self._on_spawn,
                _SWAP: self._on_swap,
                _DELETE: self._on_delete,
            }[kind]
            handler(client, reader)
        except (IndexError, EOFError) as exc:
            raise ProtocolError("truncated message") from exc

    def _camera(self, client: Client) -> Entity:
        return self.simulation.get_ent(client.camera)

    def _on_input(self, client: Client, reader: Reader) -> None:
        if not client.alive():
            return
        camera = self._camera(client)
        player = self.simulation.get_ent(camera.player)
        x = reader.read_float()
        y = reader.read_float()
        if x == 0 and y == 0:
            player.acceleration.set(0, 0)
        else:
            if abs(x) > MAX_INPUT_COORD or abs(y) > MAX_INPUT_COORD:
                return
            accel = Vector(x, y)
            m = accel.magnitude()
            if m > FULL_SPEED_DISTANCE:
                accel.normalize().set_magnitude(PLAYER_ACCELERATION)
            else:
                accel.normalize().set_magnitude(m / FULL_SPEED_DISTANCE * PLAYER_ACCELERATION)
            player.acceleration = accel
        player.input = reader.read_uint8() & 3

    def _on_spawn(self, client: Client, reader: Reader) -> None:
        if client.alive():
            return
        camera = self._camera(client)
        camera.camera_x = frand() * ARENA_WIDTH
        camera.camera_y = frand() * ARENA_HEIGHT
        player = self.simulation.alloc_player(camera)
        player.name = reader.read_string()
        log.info("client spawn: %s", player.name)
        slots = min(
            BASE_SLOT_COUNT + get_level_from_xp(player.score) // LEVELS_PER_SLOT,
            MAX_SLOT_COUNT,
        )
        camera.loadout_count = slots
        for index, slot in enumerate(camera.loadout[:slots]):
            slot.reset()
            slot.id = camera.loadout_ids[index] or PetalId.BEETLE_EGG
        for index in range(slots + MAX_SLOT_COUNT, 2 * MAX_SLOT_COUNT):
            camera.loadout_ids[index] = PetalId.NONE

    def _clear_slot(self, camera: Entity, pos: int) -> None:
        slot = camera.loadout[pos]
        for petal in slot.petals[:PETALS_PER_SLOT]:
            if self.simulation.ent_alive(petal.ent_id):
                self.simulation.request_delete(petal.ent_id)
        slot.reset()

    def _on_swap(self, client: Client, reader: Reader) -> None:
        if not client.alive():
            return
        camera = self._camera(client)
        pos1 = reader.read_uint8()
        pos2 = reader.read_uint8()
        limit = MAX_SLOT_COUNT + camera.loadout_count
        if pos1 >= limit or pos2 >= limit:
            return
        id1 = camera.loadout_ids[pos1]
        id2 = camera.loadout_ids[pos2]
        camera.loadout_ids[pos1] = id2
        camera.loadout_ids[pos2] = id1
        for pos, new_id in ((pos1, id2), (pos2, id1)):
            if pos < camera.loadout_count:
                self._clear_slot(camera, pos)
                camera.loadout[pos].id = new_id

    def _on_delete(self, client: Client, reader: Reader) -> None:
        if not client.alive():
            return
        camera = self._camera(client)
        player = self.simulation.get_ent(camera.player)
        pos = reader.read_uint8()
        if pos >= camera.loadout_count + MAX_SLOT_COUNT:
            return
        petal_id = camera.loadout_ids[pos]
        if petal_id != PetalId.BASIC:
            player.score = player.score + RARITY_SACRIFICE_XP[PETAL_DATA[petal_id].rarity]
        if pos < camera.loadout_count:
            self._clear_slot(camera, pos)
        else:
            camera.loadout_ids[pos] = PetalId.NONE
        if petal_id == PetalId.BASIC:
            return
        camera.deleted_petals[:] = [petal_id, *camera.deleted_petals[:-1]]

    def tick(self) -> None:
        """Advance the simulation one tick; clients receive their updates."""
        self.simulation.tick()

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while True:
            self.tick()
            next_at += SERVER_DT
            await asyncio.sleep(max(0.0, next_at - loop.time()))

    async def _handle(self, ws: Any) -> None:
        queue: asyncio.Queue[bytes] = asyncio.Queue()
        client = self.connect(queue.put_nowait)

        async def pump() -> None:
            while True:
                await ws.send(await queue.get())

        sender = asyncio.create_task(pump())
        try:
            async for message in ws:
                if isinstance(message, str):
                    message = message.encode()
                try:
                    self.handle_message(client, message)
                except ProtocolError as exc:
                    log.warning("closing client after bad message: %s", exc)
                    await ws.close()
                    break
        except websockets.ConnectionClosed:
            pass
        finally:
            sender.cancel()
            self.disconnect(client)

    async def _serve(self, host: str, port: int) -> None:
        async with websockets.serve(self._handle, host, port, max_size=MAX_PAYLOAD):
            log.info("Listening on port %d", port)
            await self._tick_loop()

    def run(self, host: str = "0.0.0.0", port: int = DEFAULT_PORT) -> None:
        """Serve clients and tick the world until interrupted."""
        asyncio.run(self._serve(host, port))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the game server.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        GameServer().run(args.host, args.port)
    except KeyboardInterrupt:
        pass
    return 0