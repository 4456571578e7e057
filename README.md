# ecsgame

Building blocks for a real-time game server, using only the standard library.

- **`ecsgame.net`**: a KCP reliable-UDP protocol engine.
  - `ecsgame.net.kcp.Kcp` handles segmentation, retransmission, fast resend,
    window probing and congestion control.
  - `ecsgame.net.errors` holds the errors it raises, all subclasses of
    `KcpError`: `ConvInconsistentError`, `InvalidMtuError`,
    `InvalidSegmentSizeError`, `InvalidSegmentDataSizeError`,
    `NeedUpdateError`, `RecvQueueEmptyError`, `ExpectingFragmentError`,
    `UnsupportedCmdError`, `UserBufTooBigError` and `UserBufTooSmallError`.
    `RecvQueueEmptyError` and `ExpectingFragmentError` are also
    `BlockingIOError`s.
  - `ecsgame.net.segment` has the wire layout (`Segment`, `KCP_OVERHEAD`) and
    helpers for raw packet headers: `get_conv`, `set_conv`, `get_sn`, plus
    `timediff` for wrapping 32-bit timestamps.
- **`ecsgame.combat`**:
  - `flowfield`: `get_neighbours`, `calculate_integration_field`,
    `calculate_flow_field`, loaders for precomputed fields and `FlowfieldRes`.
  - `agent`: agent movement state (`AgentMovement`), a repeating `Timer` and
    `update_occupied_position`.
  - `vec2`: a small immutable `Vec2`.
  - `skill`: the skill registry (`get_skill`, `SKILL_REGISTRY`) and
    `handle_player_cast_skill`.
- **`ecsgame.server.app`**: an HTTP handler that answers `GET /ping` with
  `pong`, and the `ecsgame-server` command.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## KCP

`Kcp(conv, output)` takes a conversation id (equal on both ends) and a
callable that receives every datagram to put on the wire. Drive it with
`update(now_ms)`, feed received datagrams to `input()`, and read whole
messages with `recv(max_size)`.

```python
from ecsgame.net.kcp import Kcp

wire = []
sender = Kcp(1, wire.append)
receiver = Kcp(1, lambda datagram: None)

sender.set_nodelay(True, 10, 2, True)  # no congestion control: send at once
sender.send(b"hello")
sender.update(0)

for datagram in wire:
    receiver.input(datagram)

print(receiver.recv(1024))  # b'hello'
```

`Kcp(conv, output, stream=True)` selects stream mode, in which sends are
merged into full segments rather than kept as separate messages.
`check(now_ms)` tells how many milliseconds may pass before the next
`update` is needed.

## Flow-field pathfinding

An integration field holds, for each cell, the cheapest total cost to reach a
destination. Cells with cost `65535` are impassable.

```python
from ecsgame.combat.flowfield import calculate_integration_field, calculate_flow_field

costs = [
    [1, 1, 1, 1],
    [1, 3, 1, 1],
    [1, 1, 1, 1],
    [1, 1, 1, 1],
]
field = calculate_integration_field(4, 4, costs, (3, 3))
# [[4, 3, 3, 3],
#  [3, 4, 2, 2],
#  [3, 2, 1, 1],
#  [3, 2, 1, 0]]

flow = calculate_flow_field(4, 4, field)
# flow[x][y] is a unit Vec2 pointing to the cheapest neighbouring cell,
# or a zero vector where no neighbour is cheaper.
```

`FlowfieldRes.load(root)` reads precomputed fields from
`cost_fields/map.txt`, `integration_fields/map.txt` and `flow_fields/map.txt`
under `root` (the current directory by default). The cost file is a JSON array
of rows; the integration and flow files are JSON objects whose keys are
destinations written as `"x_y"`. The same files can be read one at a time with
`load_cost_field`, `load_integration_fields` and `load_flow_fields`.

## Skills

```python
from ecsgame.combat.skill import PlayerCastSkill, get_skill, handle_player_cast_skill

skill = get_skill("normal_attack_100")
print(skill.damage)  # 100

resolved = handle_player_cast_skill([
    PlayerCastSkill(caster_entity=7, skill_id="normal_attack_100"),
    PlayerCastSkill(caster_entity=7, skill_id="unknown"),
])
# one (cast, skill) pair: requests for unknown skills are dropped
```

## The ping endpoint

`create_server(host, port)` returns a threading HTTP server that answers
`GET /ping` (and `HEAD /ping`) with `pong`; other paths get 404.
`server_address()` reads the address from `METRIC_HOST` (default `0.0.0.0`)
and `METRIC_PORT` (default `9669`).

```python
from ecsgame.server.app import create_server, server_address

server = create_server(*server_address())
server.serve_forever()
```

The command

```
ecsgame-server
```

binds that server in a background thread, runs the game application once and
exits.

## What the package does not do

- The game application has no systems and no run loop: `ecsgame-server`
  performs a single empty update and then shuts the HTTP endpoint down, so it
  does not stay up as a long-running server. Run `create_server(...)` with
  `serve_forever()` yourself for a lasting ping endpoint.
- There is no UDP socket layer: `Kcp` only produces and consumes datagrams
  through the `output` callable and `input()`.
- There is no lobby, game state, metrics endpoint or player handling; skills
  are resolved against the registry but apply no damage, healing or cost.