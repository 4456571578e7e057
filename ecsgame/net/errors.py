"""Errors raised by the KCP protocol implementation."""

from __future__ import annotations


class KcpError(Exception):
    """Base class of every KCP protocol error."""


class ConvInconsistentError(KcpError):
    """A segment arrived with a conversation id other than the expected one."""

    def __init__(self, expected: int, found: int) -> None:
        super().__init__(f"conv inconsistent, expected {expected}, found {found}")
        self.expected = expected
        self.found = found


class InvalidMtuError(KcpError):
    """The requested MTU is too small."""

    def __init__(self, mtu: int) -> None:
        super().__init__(f"invalid mtu {mtu}")
        self.mtu = mtu


class InvalidSegmentSizeError(KcpError):
    """An input packet is shorter than a segment header."""

    def __init__(self, size: int) -> None:
        super().__init__(f"invalid segment size {size}")
        self.size = size


class InvalidSegmentDataSizeError(KcpError):
    """A segment announces more payload than the packet holds."""

    def __init__(self, expected: int, found: int) -> None:
        super().__init__(
            f"invalid segment data size, expected {expected}, found {found}"
        )
        self.expected = expected
        self.found = found


class NeedUpdateError(KcpError):
    """A flush was requested before the first call to update()."""

    def __init__(self) -> None:
        super().__init__("need to call update() once")


class RecvQueueEmptyError(KcpError, BlockingIOError):
    """There is no complete message waiting to be received."""

    def __init__(self) -> None:
        super().__init__("recv queue is empty")


class ExpectingFragmentError(KcpError, BlockingIOError):
    """The first message in the queue still lacks some of its fragments."""

    def __init__(self) -> None:
        super().__init__("expecting fragment")


class UnsupportedCmdError(KcpError):
    """A segment carries an unknown command byte."""

    def __init__(self, cmd: int) -> None:
        super().__init__(f"command {cmd} is not supported")
        self.cmd = cmd


class UserBufTooBigError(KcpError):
    """The data handed to send() needs too many fragments."""

    def __init__(self) -> None:
        super().__init__("user's send buffer is too big")


class UserBufTooSmallError(KcpError):
    """The caller's receive limit is smaller than the next message."""

    def __init__(self) -> None:
        super().__init__("user's recv buffer is too small")