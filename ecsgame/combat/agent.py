"""Agent movement state used by flow-field path finding."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable

from .vec2 import Vec2

AGENT_TIMER_DURATION = 0.25

_U32_MAX = 0xFFFFFFFF


class Timer:
    """A countdown timer measured in seconds, optionally repeating."""

    def __init__(self, duration: float, repeating: bool = True) -> None:
        if duration < 0:
            raise ValueError("timer duration must not be negative")
        self.duration = float(duration)
        self.repeating = repeating
        self.elapsed = 0.0
        self.finished = False
        self.times_finished_this_tick = 0

    def __repr__(self) -> str:
        return (
            f"Timer(duration={self.duration}, repeating={self.repeating}, "
            f"elapsed={self.elapsed}, finished={self.finished})"
        )

    @property
    def just_finished(self) -> bool:
        """True if the timer finished during the last tick."""
        return self.times_finished_this_tick > 0

    def tick(self, delta: float) -> Timer:
        """Advance the timer by ``delta`` seconds."""
        if delta < 0:
            raise ValueError("tick delta must not be negative")

        if not self.repeating and self.finished:
            self.times_finished_this_tick = 0
            return self

        self.elapsed += delta
        self.finished = self.elapsed >= self.duration

        if not self.finished:
            self.times_finished_this_tick = 0
        elif self.repeating:
            if self.duration > 0:
                self.times_finished_this_tick = min(
                    int(self.elapsed // self.duration), _U32_MAX
                )
                self.elapsed %= self.duration
            else:
                self.times_finished_this_tick = _U32_MAX
                self.elapsed = 0.0
        else:
            self.times_finished_this_tick = 1
            self.elapsed = self.duration
        return self


def _new_agent_timer() -> Timer:
    return Timer(AGENT_TIMER_DURATION, repeating=True)


@dataclass
class AgentMovement:
    """Movement state of an agent following a flow field."""

    last_position: Vec2
    direction: Vec2 = Vec2.ZERO
    current_destination: Vec2 | None = None
    final_position: Vec2 | None = None
    final_target_entity: Hashable | None = None
    stuck_count: int = 0
    no_move_count: int = 0
    flow_field: tuple[int, int, list[list[Vec2]]] | None = None
    timer: Timer = field(default_factory=_new_agent_timer)

    def on_cancel_movement(self) -> None:
        """Forget the final destination."""
        self.final_position = None
        self.final_target_entity = None

    def update_last_position(self, position: Vec2) -> None:
        """Record ``position`` when the timer has just fired."""
        if self.timer.just_finished:
            self.last_position = position

    def check_stuck(self, position: Vec2) -> bool:
        """True once a moving agent has failed to move for several timer periods."""
        if self.final_target_entity is None and self.final_position is None:
            return False
        if not self.timer.just_finished:
            return False
        if position.distance(self.last_position) > 0.1:
            return False
        self.stuck_count = min(self.stuck_count + 1, 10)
        return self.stuck_count > 2

    def check_no_move(self, position: Vec2) -> bool:
        """True once the agent has stayed put for more than one timer period."""
        if not self.timer.finished:
            return False
        if position.distance(self.last_position) > 0.5:
            self.no_move_count = 0
        self.no_move_count = min(self.no_move_count + 1, 10)
        return self.no_move_count > 1


def _cell(value: float) -> int:
    if value != value or value <= 0:
        return 0
    return int(value)


def update_occupied_position(
    occupied_positions: set[tuple[int, int]], position: Vec2
) -> None:
    """Mark the cell under ``position`` and any cell it leans into as occupied."""
    cell_x = _cell(position.x)
    cell_y = _cell(position.y)
    occupied_positions.add((cell_x, cell_y))

    diff_x = position.x - cell_x
    diff_y = position.y - cell_y

    if diff_x < 0.3:
        if cell_x == 0:
            raise OverflowError("no grid cell to the left of column 0")
        occupied_positions.add((cell_x - 1, cell_y))
    if diff_x > 0.7:
        occupied_positions.add((cell_x + 1, cell_y))
    if diff_y < 0.3:
        if cell_y == 0:
            raise OverflowError("no grid cell below row 0")
        occupied_positions.add((cell_x, cell_y - 1))
    if diff_y > 0.7:
        occupied_positions.add((cell_x, cell_y + 1))