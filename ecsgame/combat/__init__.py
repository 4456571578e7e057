"""Flow-field pathfinding, agent movement state, a 2D vector and the skill registry."""

__all__ = ["agent", "flowfield", "skill", "vec2"]