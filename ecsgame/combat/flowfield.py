"""Flow-field path finding: cost, integration and flow fields for a grid map."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from .vec2 import Vec2

UNREACHABLE = 0xFFFF

CostField = list[list[int]]
IntegrationField = list[list[int]]
FlowField = list[list[Vec2]]

_DIRECTIONS = (
    (-1, 0),
    (0, -1),
    (1, 0),
    (0, 1),
    (-1, -1),
    (-1, 1),
    (1, -1),
    (1, 1),
)


def get_neighbours(
    length: int, width: int, cur_x: int, cur_y: int
) -> list[tuple[int, int]]:
    """Cells around ``(cur_x, cur_y)`` inside a ``length`` x ``width`` grid."""
    return [
        (cur_x + dx, cur_y + dy)
        for dx, dy in _DIRECTIONS
        if not (
            (cur_x == 0 and dx == -1)
            or (cur_y == 0 and dy == -1)
            or (cur_x == length - 1 and dx == 1)
            or (cur_y == width - 1 and dy == 1)
        )
    ]


def calculate_integration_field(
    length: int,
    width: int,
    cost_map: CostField,
    destination: tuple[int, int],
) -> IntegrationField:
    """Cheapest total cost from every cell to ``destination``.

    Cells whose cost is ``UNREACHABLE`` are obstacles and keep that value.
    """
    costs = [list(row) for row in cost_map]
    dest_x, dest_y = destination
    costs[dest_x][dest_y] = 0

    best = [[UNREACHABLE] * width for _ in range(length)]
    best[dest_x][dest_y] = 0

    open_set = deque([(dest_x, dest_y)])
    while open_set:
        cur_x, cur_y = open_set.popleft()
        for nx, ny in get_neighbours(length, width, cur_x, cur_y):
            cost = costs[nx][ny]
            if cost == UNREACHABLE:
                continue
            new_cost = cost + best[cur_x][cur_y]
            if new_cost > UNREACHABLE:
                raise OverflowError(
                    f"integration cost {new_cost} at {(nx, ny)} exceeds {UNREACHABLE}"
                )
            if new_cost < best[nx][ny]:
                best[nx][ny] = new_cost
                open_set.append((nx, ny))

    return best


def calculate_flow_field(
    length: int, width: int, integration_field: IntegrationField
) -> FlowField:
    """Unit direction from every cell towards its cheapest neighbour."""
    flow: FlowField = [[Vec2.ZERO] * width for _ in range(length)]
    for cur_x, row in enumerate(integration_field):
        for cur_y, cost in enumerate(row):
            if cost == UNREACHABLE:
                continue
            best_cost = cost
            best_neighbour = None
            for nx, ny in get_neighbours(length, width, cur_x, cur_y):
                neighbour_cost = integration_field[nx][ny]
                if neighbour_cost < best_cost:
                    best_cost = neighbour_cost
                    best_neighbour = (nx, ny)
            if best_neighbour is not None:
                bx, by = best_neighbour
                flow[cur_x][cur_y] = Vec2(
                    float(bx - cur_x), float(by - cur_y)
                ).normalize_or_zero()
    return flow


def _parse_usize(text: str) -> int:
    digits = text[1:] if text.startswith("+") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise ValueError(f"invalid grid coordinate {text!r}")
    return int(digits)


def _parse_destination(key: str) -> tuple[int, int]:
    parts = key.split("_")
    if len(parts) < 2:
        raise ValueError(f"destination key {key!r} is not of the form X_Y")
    return _parse_usize(parts[0]), _parse_usize(parts[1])


def _as_cost_grid(value: object) -> CostField:
    if not isinstance(value, list):
        raise ValueError("expected a list of rows")
    grid = []
    for row in value:
        if not isinstance(row, list):
            raise ValueError("expected each row to be a list")
        for cost in row:
            if isinstance(cost, bool) or not isinstance(cost, int):
                raise ValueError(f"cost {cost!r} is not an integer")
            if not 0 <= cost <= UNREACHABLE:
                raise ValueError(f"cost {cost} is out of range")
        grid.append(list(row))
    return grid


def _as_vec2(value: object) -> Vec2:
    if (
        not isinstance(value, list)
        or len(value) != 2
        or not all(
            isinstance(c, (int, float)) and not isinstance(c, bool) for c in value
        )
    ):
        raise ValueError(f"{value!r} is not a two-element vector")
    return Vec2(float(value[0]), float(value[1]))


def _as_flow_grid(value: object) -> FlowField:
    if not isinstance(value, list) or not all(isinstance(r, list) for r in value):
        raise ValueError("expected a list of rows")
    return [[_as_vec2(cell) for cell in row] for row in value]


def _read_json(path: str | Path) -> object:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_cost_field(path: str | Path) -> CostField:
    """Read a cost field stored as a JSON array of rows."""
    return _as_cost_grid(_read_json(path))


def load_integration_fields(
    path: str | Path,
) -> dict[tuple[int, int], IntegrationField]:
    """Read integration fields keyed by ``"X_Y"`` destination strings."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object of integration fields")
    return {_parse_destination(key): _as_cost_grid(grid) for key, grid in data.items()}


def load_flow_fields(path: str | Path) -> dict[tuple[int, int], FlowField]:
    """Read flow fields keyed by ``"X_Y"`` destination strings."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object of flow fields")
    return {_parse_destination(key): _as_flow_grid(grid) for key, grid in data.items()}


@dataclass
class FlowfieldRes:
    """The precomputed path-finding fields of a map."""

    cost_field: CostField = field(default_factory=list)
    integration_fields: dict[tuple[int, int], IntegrationField] = field(
        default_factory=dict
    )
    flow_fields: dict[tuple[int, int], FlowField] = field(default_factory=dict)

    @classmethod
    def load(cls, root: str | Path = ".") -> FlowfieldRes:
        """Load the fields from ``map.txt`` files under ``root``."""
        base = Path(root)
        return cls(
            cost_field=load_cost_field(base / "cost_fields" / "map.txt"),
            integration_fields=load_integration_fields(
                base / "integration_fields" / "map.txt"
            ),
            flow_fields=load_flow_fields(base / "flow_fields" / "map.txt"),
        )