"""Skill definitions, the skill registry and handling of cast requests."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Union


@dataclass(frozen=True)
class Circle:
    """A circular skill area."""

    radius: float


@dataclass(frozen=True)
class Rectangle:
    """A rectangular skill area."""

    width: float
    height: float


SkillAreaShape = Union[Circle, Rectangle]


@dataclass(frozen=True)
class SkillArea:
    """Where a skill takes effect: a shape placed at an offset from the caster."""

    shape: SkillAreaShape
    offset: float


@dataclass(frozen=True)
class Skill:
    """A castable skill."""

    skill_id: str
    skill_cost: int
    damage: int
    healing: int
    area: SkillArea


@dataclass(frozen=True)
class PlayerCastSkill:
    """A request from a player entity to cast a skill."""

    caster_entity: Hashable
    skill_id: str


def _build_registry() -> Mapping[str, Skill]:
    skills = [
        Skill(
            skill_id="normal_attack_100",
            skill_cost=0,
            damage=100,
            healing=0,
            area=SkillArea(shape=Circle(5.0), offset=0.0),
        ),
    ]
    return MappingProxyType({skill.skill_id: skill for skill in skills})


SKILL_REGISTRY: Mapping[str, Skill] = _build_registry()


def get_skill(skill_id: str) -> Skill | None:
    """Look up a skill by id; ``None`` if there is no such skill."""
    return SKILL_REGISTRY.get(skill_id)


def handle_player_cast_skill(
    casts: Iterable[PlayerCastSkill],
) -> list[tuple[PlayerCastSkill, Skill]]:
    """Consume cast requests and pair each with its skill.

    Every request is consumed; those naming an unknown skill are dropped.
    """
    resolved = []
    for cast in casts:
        skill = get_skill(cast.skill_id)
        if skill is None:
            continue
        resolved.append((cast, skill))
    return resolved