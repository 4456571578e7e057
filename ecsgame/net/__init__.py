"""KCP reliable-UDP protocol engine, its segment layout and its errors."""

__all__ = ["errors", "kcp", "segment"]