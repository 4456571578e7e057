"""KCP segment layout, wire constants and sequence-number helpers."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

RTO_NDL = 30
RTO_MIN = 100
RTO_DEF = 200
RTO_MAX = 60000

CMD_PUSH = 81
CMD_ACK = 82
CMD_WASK = 83
CMD_WINS = 84
COMMANDS = frozenset({CMD_PUSH, CMD_ACK, CMD_WASK, CMD_WINS})

ASK_SEND = 1
ASK_TELL = 2

WND_SND = 32
WND_RCV = 128

MTU_DEF = 1400
INTERVAL = 100
KCP_OVERHEAD = 24
DEADLINK = 20

THRESH_INIT = 2
THRESH_MIN = 2

PROBE_INIT = 7000
PROBE_LIMIT = 120000
FASTACK_LIMIT = 5

U32_MAX = 0xFFFFFFFF

HEADER = struct.Struct("<IBBHIIII")


def _require_header(buf) -> None:
    if len(buf) < KCP_OVERHEAD:
        raise ValueError(
            f"buffer of {len(buf)} bytes is shorter than the {KCP_OVERHEAD}-byte header"
        )


def get_conv(buf) -> int:
    """Read the conversation id from a raw packet."""
    _require_header(buf)
    return struct.unpack_from("<I", buf, 0)[0]


def set_conv(buf: bytearray, conv: int) -> None:
    """Overwrite the conversation id of a raw packet in place."""
    _require_header(buf)
    struct.pack_into("<I", buf, 0, conv)


def get_sn(buf) -> int:
    """Read the sequence number from a raw packet."""
    _require_header(buf)
    return struct.unpack_from("<I", buf, 12)[0]


def timediff(later: int, earlier: int) -> int:
    """Signed 32-bit difference between two wrapping timestamps."""
    return ((later - earlier + 0x80000000) & U32_MAX) - 0x80000000


def bound(lower: int, v: int, upper: int) -> int:
    """Clamp ``v`` to ``lower`` from below, then to ``upper`` from above."""
    return min(max(lower, v), upper)


@dataclass
class Segment:
    """One KCP segment: header fields, retransmission state and payload."""

    conv: int = 0
    cmd: int = 0
    frg: int = 0
    wnd: int = 0
    ts: int = 0
    sn: int = 0
    una: int = 0
    resendts: int = 0
    rto: int = 0
    fastack: int = 0
    xmit: int = 0
    data: bytearray = field(default_factory=bytearray)

    def encode(self) -> bytes:
        """Serialise the header and payload in wire order."""
        header = HEADER.pack(
            self.conv,
            self.cmd,
            self.frg,
            self.wnd,
            self.ts,
            self.sn,
            self.una,
            len(self.data),
        )
        return header + bytes(self.data)

    def encoded_len(self) -> int:
        """Number of bytes encode() produces."""
        return KCP_OVERHEAD + len(self.data)