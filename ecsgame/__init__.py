"""Game server building blocks: KCP networking, flow-field pathfinding, skills and a ping endpoint."""

__version__ = "0.1.0"