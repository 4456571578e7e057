import json

import pytest

from ecsgame.combat.flowfield import (
    UNREACHABLE,
    FlowfieldRes,
    calculate_flow_field,
    calculate_integration_field,
    get_neighbours,
    load_cost_field,
    load_flow_fields,
    load_integration_fields,
)
from ecsgame.combat.vec2 import Vec2

M = UNREACHABLE


def _sign(value):
    return (value > 1e-9) - (value < -1e-9)


def _assert_flows_downhill(flow, field):
    for x, row in enumerate(flow):
        for y, direction in enumerate(row):
            if direction == Vec2.ZERO:
                continue
            assert direction.length() == pytest.approx(1.0)
            nx, ny = x + _sign(direction.x), y + _sign(direction.y)
            assert field[nx][ny] < field[x][y]


def test_get_neighbours_corner_and_centre():
    assert get_neighbours(4, 4, 0, 0) == [(1, 0), (0, 1), (1, 1)]
    assert get_neighbours(4, 4, 1, 1) == [
        (0, 1),
        (1, 0),
        (2, 1),
        (1, 2),
        (0, 0),
        (0, 2),
        (2, 0),
        (2, 2),
    ]
    assert get_neighbours(4, 4, 3, 3) == [(2, 3), (3, 2), (2, 2)]


def test_calculate_integration_field():
    result = calculate_integration_field(
        4,
        4,
        [[1, 1, 1, 1], [1, 3, 1, 1], [1, 1, 1, 1], [1, 1, 1, 1]],
        (3, 3),
    )
    assert result == [[4, 3, 3, 3], [3, 4, 2, 2], [3, 2, 1, 1], [3, 2, 1, 0]]


def test_calculate_integration_field_with_obstacles():
    result = calculate_integration_field(
        4,
        4,
        [[1, 1, 1, 1], [1, 3, 1, 1], [1, M, 1, 1], [1, 1, 1, 1]],
        (3, 3),
    )
    assert result == [[4, 3, 3, 3], [4, 4, 2, 2], [3, M, 1, 1], [3, 2, 1, 0]]


def test_integration_field_does_not_modify_input():
    cost_map = [[5, 5], [5, 5]]
    result = calculate_integration_field(2, 2, cost_map, (0, 0))
    assert cost_map == [[5, 5], [5, 5]]
    assert result[0][0] == 0


def test_integration_field_overflow_raises():
    with pytest.raises(OverflowError):
        calculate_integration_field(1, 3, [[1, 65000, 65000]], (0, 0))


def test_calculate_flow_field():
    field = [[4, 3, 3, 3], [3, 4, 2, 2], [3, 2, 1, 1], [3, 2, 1, 0]]
    flow = calculate_flow_field(4, 4, field)
    assert len(flow) == 4 and all(len(row) == 4 for row in flow)
    assert flow[3][3] == Vec2.ZERO
    assert flow[0][0] == Vec2(1.0, 0.0)
    assert flow[2][2].x == pytest.approx(2 ** -0.5)
    assert flow[2][2].y == pytest.approx(2 ** -0.5)
    _assert_flows_downhill(flow, field)


def test_calculate_flow_field_with_obstacles():
    field = [[4, 3, 3, 3], [4, 4, 2, 2], [3, M, 1, 1], [3, 2, 1, 0]]
    flow = calculate_flow_field(4, 4, field)
    assert flow[2][1] == Vec2.ZERO
    assert flow[3][3] == Vec2.ZERO
    assert flow[1][0] == Vec2(1.0, 0.0)
    _assert_flows_downhill(flow, field)


def test_flow_from_integration_reaches_destination():
    cost_map = [[1] * 5 for _ in range(5)]
    cost_map[2][1] = cost_map[2][2] = cost_map[2][3] = M
    field = calculate_integration_field(5, 5, cost_map, (4, 2))
    flow = calculate_flow_field(5, 5, field)
    x, y = 0, 2
    for _ in range(25):
        if (x, y) == (4, 2):
            break
        d = flow[x][y]
        x, y = x + _sign(d.x), y + _sign(d.y)
    assert (x, y) == (4, 2)


def test_load_cost_field(tmp_path):
    path = tmp_path / "map.txt"
    path.write_text("[[1, 2], [3, 65535]]")
    assert load_cost_field(path) == [[1, 2], [3, M]]


def test_load_cost_field_rejects_out_of_range(tmp_path):
    path = tmp_path / "map.txt"
    path.write_text("[[1, 70000]]")
    with pytest.raises(ValueError):
        load_cost_field(path)


def test_load_integration_fields(tmp_path):
    path = tmp_path / "map.txt"
    path.write_text(json.dumps({"3_4": [[0, 1]], "0_0": [[2]]}))
    assert load_integration_fields(path) == {(3, 4): [[0, 1]], (0, 0): [[2]]}


@pytest.mark.parametrize("key", ["3", "a_1", "-1_2", "_"])
def test_load_integration_fields_bad_key(tmp_path, key):
    path = tmp_path / "map.txt"
    path.write_text(json.dumps({key: [[0]]}))
    with pytest.raises(ValueError):
        load_integration_fields(path)


def test_load_flow_fields(tmp_path):
    path = tmp_path / "map.txt"
    path.write_text(json.dumps({"1_2": [[[1.0, 0.0], [0, -1]]]}))
    assert load_flow_fields(path) == {(1, 2): [[Vec2(1.0, 0.0), Vec2(0.0, -1.0)]]}


def test_flowfield_res_load(tmp_path):
    for name, content in {
        "cost_fields": [[1, 1], [1, 1]],
        "integration_fields": {"1_1": [[1, 1], [1, 0]]},
        "flow_fields": {"1_1": [[[0.0, 1.0], [1.0, 0.0]], [[0.0, 1.0], [0.0, 0.0]]]},
    }.items():
        (tmp_path / name).mkdir()
        (tmp_path / name / "map.txt").write_text(json.dumps(content))
    res = FlowfieldRes.load(tmp_path)
    assert res.cost_field == [[1, 1], [1, 1]]
    assert res.integration_fields == {(1, 1): [[1, 1], [1, 0]]}
    assert res.flow_fields[(1, 1)][1][1] == Vec2.ZERO
    assert res.flow_fields[(1, 1)][0][1] == Vec2(1.0, 0.0)


def test_flowfield_res_load_missing_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        FlowfieldRes.load(tmp_path)