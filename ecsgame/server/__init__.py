"""The game server command and its ping HTTP endpoint."""

__all__ = ["app"]