# gardn

An authoritative game server for a multiplayer arena game. Each player is a
flower that orbits petals around itself and fights mobs such as ants, bees,
beetles, hornets, spiders, centipedes and ant holes. Defeated mobs drop
petals that players can pick up and put in their loadout. The server runs a
fixed-rate simulation of 20 ticks per second (`SERVER_DT` is 0.05 seconds)
and sends each client a compact binary update of the entities in its view.

## Installing

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Running the server

```
gardn-server
```

The server listens for WebSocket connections on `0.0.0.0`, port 9001.
Two options change that:

```
gardn-server --host 127.0.0.1 --port 9002
```

Messages larger than 1 MiB are refused. A client that sends a malformed or
truncated message has its connection closed; when a client disconnects, its
camera and flower are removed from the world.

## The protocol

All messages are binary and are built with `gardn.binary.Writer` and read
with `gardn.binary.Reader`:

- unsigned integers are variable-length, 7 bits per byte, least significant
  group first, the high bit marking that more bytes follow;
- signed integers put the sign in the lowest bit and the magnitude above it;
- floats are signed integers in units of 1/1024, truncated towards zero;
  non-finite floats raise `gardn.binary.ProtocolError`;
- an entity id is its index, followed by its generation only when the index
  is not 0;
- strings are the length of their UTF-8 encoding followed by one integer per
  byte.

Messages from the client start with a `gardn.binary.Serverbound` code:

- `CLIENT_INPUT`: mouse offset as x and y floats, then an input byte
  (bit 0 attack, bit 1 defend); offsets beyond 5000 in either axis are ignored
- `CLIENT_SPAWN`: the player's name
- `PETAL_SWAP`: two loadout positions to swap
- `PETAL_DELETE`: a loadout position whose petal is given up for experience

Each tick the server sends a `Clientbound.CLIENT_UPDATE` message. It holds
the camera id, the ids that have left the view (ended by the null id), a
create-or-update record for every entity in view (also ended by the null id),
and the leaderboard of up to ten players. In the leaderboard's last place a
client sees its own flower when its score does not exceed that entry's.

## Using the library

The simulation can be driven without any network:

```python
from gardn.world import Simulation
from gardn.staticdata import MobId

sim = Simulation()
bee = sim.alloc_mob(MobId.BEE)
for _ in range(100):
    sim.tick()
print(bee.x, bee.y)
```

Each tick may also spawn an ant hole at random. The main modules are:

- `gardn.world`: `Simulation`, the entity table and the tick pipeline
- `gardn.entity`: `Entity`, its `Component` flags and networked `Field`s
- `gardn.staticdata`: petal and mob tables, arena constants and levelling
- `gardn.ai`, `gardn.petals`, `gardn.behaviors`, `gardn.collision`,
  `gardn.combat`: the per-tick rules
- `gardn.spatialhash`: the grid used for collisions and view queries
- `gardn.binary`: the wire encoding

`gardn.server.GameServer` connects the simulation to clients. Its
`connect`, `handle_message`, `disconnect` and `tick` methods can also be
called directly; `connect` takes any callable that receives the update bytes.

## What it does not do

This package is only the server. It has no game client or renderer, serves
plain WebSockets without TLS, and keeps nothing between runs: every player
and mob lives only in memory.