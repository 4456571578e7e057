"""KCP reliable transport: the control block that turns datagrams into messages."""

from __future__ import annotations

from collections import deque
from typing import Callable

from .errors import (
    ConvInconsistentError,
    ExpectingFragmentError,
    InvalidMtuError,
    InvalidSegmentDataSizeError,
    InvalidSegmentSizeError,
    NeedUpdateError,
    RecvQueueEmptyError,
    UnsupportedCmdError,
    UserBufTooBigError,
    UserBufTooSmallError,
)
from .segment import (
    ASK_SEND,
    ASK_TELL,
    CMD_ACK,
    CMD_PUSH,
    CMD_WASK,
    CMD_WINS,
    COMMANDS,
    DEADLINK,
    FASTACK_LIMIT,
    HEADER,
    INTERVAL,
    KCP_OVERHEAD,
    MTU_DEF,
    PROBE_INIT,
    PROBE_LIMIT,
    RTO_DEF,
    RTO_MAX,
    RTO_MIN,
    RTO_NDL,
    THRESH_INIT,
    THRESH_MIN,
    U32_MAX,
    WND_RCV,
    WND_SND,
    Segment,
    bound,
    get_conv,
    get_sn,
    set_conv,
    timediff,
)

__all__ = ["Kcp", "KCP_OVERHEAD", "get_conv", "get_sn", "set_conv"]

U16_MAX = 0xFFFF

Output = Callable[[bytes], object]


def _u32(value: int) -> int:
    return value & U32_MAX


class Kcp:
    """A KCP control block.

    ``conv`` must be equal on both endpoints of a connection. ``output`` is
    called with every datagram that should go out on the wire.
    """

    def __init__(self, conv: int, output: Output, *, stream: bool = False) -> None:
        self.conv = conv
        self._output = output
        self.stream = stream

        self._mtu = MTU_DEF
        self._mss = MTU_DEF - KCP_OVERHEAD
        self.state = 0

        self.snd_una = 0
        self.snd_nxt = 0
        self.rcv_nxt = 0

        self.ssthresh = THRESH_INIT

        self.rx_rttval = 0
        self.rx_srtt = 0
        self.rx_rto = RTO_DEF
        self.rx_minrto = RTO_MIN

        self.snd_wnd = WND_SND
        self.rcv_wnd = WND_RCV
        self.rmt_wnd = WND_RCV
        self.cwnd = 0
        self.probe = 0

        self.current = 0
        self.interval = INTERVAL
        self.ts_flush = INTERVAL
        self.xmit = 0

        self.nodelay = False
        self.updated = False

        self.ts_probe = 0
        self.probe_wait = 0

        self.dead_link = DEADLINK
        self.incr = 0

        self._snd_queue: deque[Segment] = deque()
        self._rcv_queue: deque[Segment] = deque()
        self._snd_buf: deque[Segment] = deque()
        self._rcv_buf: deque[Segment] = deque()

        self._acklist: list[tuple[int, int]] = []
        self._buf = bytearray()

        self.fastresend = 0
        self.fastlimit = FASTACK_LIMIT
        self.nocwnd = False

        self._input_conv = False

    def __repr__(self) -> str:
        return (
            f"Kcp(conv={self.conv}, mtu={self._mtu}, snd_una={self.snd_una}, "
            f"snd_nxt={self.snd_nxt}, rcv_nxt={self.rcv_nxt}, cwnd={self.cwnd}, "
            f"wait_snd={self.wait_snd})"
        )

    # ------------------------------------------------------------------ info

    @property
    def mtu(self) -> int:
        """Maximum transmission unit."""
        return self._mtu

    @property
    def mss(self) -> int:
        """Maximum segment payload size."""
        return self._mss

    @property
    def wait_snd(self) -> int:
        """Number of segments still waiting to be sent or acknowledged."""
        return len(self._snd_buf) + len(self._snd_queue)

    @property
    def is_dead_link(self) -> bool:
        """True once a segment has been resent ``dead_link`` times."""
        return self.state != 0

    @property
    def waiting_conv(self) -> bool:
        """True while the next input is expected to supply the conv."""
        return self._input_conv

    # ------------------------------------------------------------- receiving

    def move_buf(self) -> None:
        """Move in-order segments from the receive buffer to the receive queue."""
        while self._rcv_buf:
            seg = self._rcv_buf[0]
            if seg.sn != self.rcv_nxt or len(self._rcv_queue) >= self.rcv_wnd:
                break
            self.rcv_nxt = _u32(self.rcv_nxt + 1)
            self._rcv_queue.append(self._rcv_buf.popleft())

    def recv(self, max_size: int) -> bytes:
        """Return the next complete message, at most ``max_size`` bytes long."""
        if not self._rcv_queue:
            raise RecvQueueEmptyError()

        size = self.peeksize()
        if size > max_size:
            raise UserBufTooSmallError()

        recover = len(self._rcv_queue) >= self.rcv_wnd

        message = bytearray()
        while self._rcv_queue:
            seg = self._rcv_queue.popleft()
            message += seg.data
            if seg.frg == 0:
                break

        self.move_buf()

        if len(self._rcv_queue) < self.rcv_wnd and recover:
            self.probe |= ASK_TELL

        return bytes(message)

    def peeksize(self) -> int:
        """Size of the next complete message without consuming it."""
        if not self._rcv_queue:
            raise RecvQueueEmptyError()

        first = self._rcv_queue[0]
        if first.frg == 0:
            return len(first.data)

        if len(self._rcv_queue) < first.frg + 1:
            raise ExpectingFragmentError()

        total = 0
        for seg in self._rcv_queue:
            total += len(seg.data)
            if seg.frg == 0:
                break
        return total

    # --------------------------------------------------------------- sending

    def send(self, data: bytes) -> int:
        """Queue ``data`` for sending; returns the number of bytes accepted."""
        if self._mss <= 0:
            raise ValueError("mss must be positive")

        view = memoryview(bytes(data))
        sent = 0

        if self.stream:
            if self._snd_queue:
                last = self._snd_queue[-1]
                if len(last.data) < self._mss:
                    extend = min(len(view), self._mss - len(last.data))
                    last.data += view[:extend]
                    view = view[extend:]
                    last.frg = 0
                    sent += extend
            if not view:
                return sent

        if len(view) <= self._mss:
            count = 1
        else:
            count = (len(view) + self._mss - 1) // self._mss

        if count >= WND_RCV:
            raise UserBufTooBigError()

        for i in range(count):
            size = min(self._mss, len(view))
            chunk, view = view[:size], view[size:]
            frg = 0 if self.stream else count - i - 1
            self._snd_queue.append(Segment(frg=frg, data=bytearray(chunk)))
            sent += size

        return sent

    # ----------------------------------------------------------- ack parsing

    def _update_ack(self, rtt: int) -> None:
        if self.rx_srtt == 0:
            self.rx_srtt = rtt
            self.rx_rttval = rtt // 2
        else:
            delta = abs(rtt - self.rx_srtt)
            self.rx_rttval = (3 * self.rx_rttval + delta) // 4
            self.rx_srtt = max((7 * self.rx_srtt + rtt) // 8, 1)
        rto = self.rx_srtt + max(self.interval, 4 * self.rx_rttval)
        self.rx_rto = bound(self.rx_minrto, rto, RTO_MAX)

    def _shrink_buf(self) -> None:
        self.snd_una = self._snd_buf[0].sn if self._snd_buf else self.snd_nxt

    def _parse_ack(self, sn: int) -> None:
        if timediff(sn, self.snd_una) < 0 or timediff(sn, self.snd_nxt) >= 0:
            return
        for index, seg in enumerate(self._snd_buf):
            if sn == seg.sn:
                del self._snd_buf[index]
                break
            if sn < seg.sn:
                break

    def _parse_una(self, una: int) -> None:
        while self._snd_buf and timediff(una, self._snd_buf[0].sn) > 0:
            self._snd_buf.popleft()

    def _parse_fastack(self, sn: int, ts: int) -> None:
        if timediff(sn, self.snd_una) < 0 or timediff(sn, self.snd_nxt) >= 0:
            return
        for seg in self._snd_buf:
            if timediff(sn, seg.sn) < 0:
                break
            if sn != seg.sn and timediff(ts, seg.ts) >= 0:
                seg.fastack += 1

    def _parse_data(self, new_segment: Segment) -> None:
        sn = new_segment.sn
        if (
            timediff(sn, _u32(self.rcv_nxt + self.rcv_wnd)) >= 0
            or timediff(sn, self.rcv_nxt) < 0
        ):
            return

        repeat = False
        index = len(self._rcv_buf)
        for seg in reversed(self._rcv_buf):
            if seg.sn == sn:
                repeat = True
                break
            if timediff(sn, seg.sn) > 0:
                break
            index -= 1

        if not repeat:
            self._rcv_buf.insert(index, new_segment)

        self.move_buf()

    # ----------------------------------------------------------------- input

    def expect_input_conv(self) -> None:
        """Take the conv from the next input instead of rejecting a mismatch."""
        self._input_conv = True

    def input(self, data: bytes) -> int:
        """Feed a datagram received from the wire; returns the bytes consumed."""
        data = bytes(data)
        size = len(data)
        if size < KCP_OVERHEAD:
            raise InvalidSegmentSizeError(size)

        flag = False
        max_ack = 0
        latest_ts = 0
        old_una = self.snd_una

        pos = 0
        while size - pos >= KCP_OVERHEAD:
            conv, cmd, frg, wnd, ts, sn, una, length = HEADER.unpack_from(data, pos)
            if conv != self.conv:
                if not self._input_conv:
                    raise ConvInconsistentError(self.conv, conv)
                self.conv = conv
                self._input_conv = False
            pos += KCP_OVERHEAD

            remaining = size - pos
            if remaining < length:
                raise InvalidSegmentDataSizeError(length, remaining)
            if cmd not in COMMANDS:
                raise UnsupportedCmdError(cmd)

            self.rmt_wnd = wnd
            self._parse_una(una)
            self._shrink_buf()

            if cmd == CMD_ACK:
                rtt = timediff(self.current, ts)
                if rtt >= 0:
                    self._update_ack(rtt)
                self._parse_ack(sn)
                self._shrink_buf()
                if not flag:
                    flag = True
                    max_ack = sn
                    latest_ts = ts
                elif timediff(sn, max_ack) > 0 and timediff(ts, latest_ts) > 0:
                    max_ack = sn
                    latest_ts = ts
            elif cmd == CMD_PUSH:
                if timediff(sn, _u32(self.rcv_nxt + self.rcv_wnd)) < 0:
                    self._acklist.append((sn, ts))
                    if timediff(sn, self.rcv_nxt) >= 0:
                        self._parse_data(
                            Segment(
                                conv=conv,
                                cmd=cmd,
                                frg=frg,
                                wnd=wnd,
                                ts=ts,
                                sn=sn,
                                una=una,
                                data=bytearray(data[pos : pos + length]),
                            )
                        )
            elif cmd == CMD_WASK:
                self.probe |= ASK_TELL
            # CMD_WINS carries nothing beyond the window already recorded.

            pos += length

        if flag:
            self._parse_fastack(max_ack, latest_ts)

        if timediff(self.snd_una, old_una) > 0 and self.cwnd < self.rmt_wnd:
            mss = self._mss
            if self.cwnd < self.ssthresh:
                self.cwnd += 1
                self.incr += mss
            else:
                if self.incr < mss:
                    self.incr = mss
                self.incr += (mss * mss) // self.incr + mss // 16
                if (self.cwnd + 1) * mss <= self.incr:
                    self.cwnd = ((self.incr + mss - 1) // (mss if mss > 0 else 1)) & U16_MAX
            if self.cwnd > self.rmt_wnd:
                self.cwnd = self.rmt_wnd
                self.incr = self.rmt_wnd * mss

        return pos

    # ----------------------------------------------------------- scheduling

    def _wnd_unused(self) -> int:
        queued = len(self._rcv_queue)
        return self.rcv_wnd - queued if queued < self.rcv_wnd else 0

    def _probe_wnd_size(self) -> None:
        if self.rmt_wnd != 0:
            self.ts_probe = 0
            self.probe_wait = 0
            return
        if self.probe_wait == 0:
            self.probe_wait = PROBE_INIT
            self.ts_probe = _u32(self.current + self.probe_wait)
        elif timediff(self.current, self.ts_probe) >= 0:
            if self.probe_wait < PROBE_INIT:
                self.probe_wait = PROBE_INIT
            self.probe_wait += self.probe_wait // 2
            if self.probe_wait > PROBE_LIMIT:
                self.probe_wait = PROBE_LIMIT
            self.ts_probe = _u32(self.current + self.probe_wait)
            self.probe |= ASK_SEND

    def check(self, current: int) -> int:
        """Milliseconds until update() should next be called (0 means now)."""
        if not self.updated:
            return 0

        ts_flush = self.ts_flush
        tm_packet = U32_MAX

        diff = timediff(current, ts_flush)
        if diff >= 10000 or diff < -10000:
            ts_flush = current

        if timediff(current, ts_flush) >= 0:
            return 0

        tm_flush = timediff(ts_flush, current)
        for seg in self._snd_buf:
            wait = timediff(seg.resendts, current)
            if wait <= 0:
                return 0
            tm_packet = min(tm_packet, wait)

        return min(tm_packet, tm_flush, self.interval)

    # ---------------------------------------------------------- configuration

    def set_mtu(self, mtu: int) -> None:
        """Change the MTU (default 1400)."""
        if mtu < 50 or mtu < KCP_OVERHEAD:
            raise InvalidMtuError(mtu)
        self._mtu = mtu
        self._mss = mtu - KCP_OVERHEAD

    def set_interval(self, interval: int) -> None:
        """Set the internal flush interval, clamped to 10..5000 ms."""
        self.interval = min(max(interval, 10), 5000)

    def set_nodelay(self, nodelay: bool, interval: int, resend: int, nc: bool) -> None:
        """Tune latency: nodelay mode, interval, fast-resend trigger and congestion control."""
        self.nodelay = bool(nodelay)
        self.rx_minrto = RTO_NDL if nodelay else RTO_MIN
        self.interval = min(max(interval, 10), 5000)
        if resend >= 0:
            self.fastresend = resend
        self.nocwnd = bool(nc)

    def set_wndsize(self, sndwnd: int, rcvwnd: int) -> None:
        """Set the send and receive windows; zero leaves a window unchanged."""
        if sndwnd > 0:
            self.snd_wnd = sndwnd
        if rcvwnd > 0:
            self.rcv_wnd = max(rcvwnd, WND_RCV)

    # ---------------------------------------------------------------- output

    def _emit(self) -> None:
        if self._buf:
            self._output(bytes(self._buf))
            self._buf.clear()

    def _make_ack_segment(self) -> Segment:
        return Segment(
            conv=self.conv, cmd=CMD_ACK, wnd=self._wnd_unused(), una=self.rcv_nxt
        )

    def _flush_acks(self, segment: Segment) -> None:
        for sn, ts in self._acklist:
            if len(self._buf) + KCP_OVERHEAD > self._mtu:
                self._emit()
            segment.sn = sn
            segment.ts = ts
            self._buf += segment.encode()
        self._acklist.clear()

    def _flush_probe(self, cmd: int, segment: Segment) -> None:
        segment.cmd = cmd
        if len(self._buf) + KCP_OVERHEAD > self._mtu:
            self._emit()
        self._buf += segment.encode()

    def flush_ack(self) -> None:
        """Encode pending acknowledgements into the output buffer."""
        if not self.updated:
            raise NeedUpdateError()
        self._flush_acks(self._make_ack_segment())

    def flush(self) -> None:
        """Send acknowledgements, window probes and any data the windows allow."""
        if not self.updated:
            raise NeedUpdateError()

        segment = self._make_ack_segment()
        self._flush_acks(segment)

        self._probe_wnd_size()
        if self.probe & ASK_SEND:
            self._flush_probe(CMD_WASK, segment)
        if self.probe & ASK_TELL:
            self._flush_probe(CMD_WINS, segment)
        self.probe = 0

        cwnd = min(self.snd_wnd, self.rmt_wnd)
        if not self.nocwnd:
            cwnd = min(self.cwnd, cwnd)

        while self._snd_queue and timediff(self.snd_nxt, _u32(self.snd_una + cwnd)) < 0:
            new_segment = self._snd_queue.popleft()
            new_segment.conv = self.conv
            new_segment.cmd = CMD_PUSH
            new_segment.wnd = segment.wnd
            new_segment.ts = self.current
            new_segment.sn = self.snd_nxt
            self.snd_nxt = _u32(self.snd_nxt + 1)
            new_segment.una = self.rcv_nxt
            new_segment.resendts = self.current
            new_segment.rto = self.rx_rto
            new_segment.fastack = 0
            new_segment.xmit = 0
            self._snd_buf.append(new_segment)

        resent = self.fastresend if self.fastresend > 0 else U32_MAX
        rtomin = 0 if self.nodelay else self.rx_rto >> 3

        lost = False
        change = 0

        for seg in self._snd_buf:
            need_send = False
            if seg.xmit == 0:
                need_send = True
                seg.xmit += 1
                seg.rto = self.rx_rto
                seg.resendts = _u32(self.current + seg.rto + rtomin)
            elif timediff(self.current, seg.resendts) >= 0:
                need_send = True
                seg.xmit += 1
                self.xmit += 1
                if not self.nodelay:
                    seg.rto += max(seg.rto, self.rx_rto)
                else:
                    seg.rto += seg.rto // 2
                seg.resendts = _u32(self.current + seg.rto)
                lost = True
            elif seg.fastack >= resent:
                if seg.xmit <= self.fastlimit or self.fastlimit <= 0:
                    need_send = True
                    seg.xmit += 1
                    seg.fastack = 0
                    seg.resendts = _u32(self.current + seg.rto)
                    change += 1

            if need_send:
                seg.ts = self.current
                seg.wnd = segment.wnd
                seg.una = self.rcv_nxt
                if len(self._buf) + seg.encoded_len() > self._mtu:
                    self._emit()
                self._buf += seg.encode()
                if seg.xmit >= self.dead_link:
                    self.state = -1

        self._emit()

        if change > 0:
            inflight = _u32(self.snd_nxt - self.snd_una)
            self.ssthresh = max((inflight & U16_MAX) // 2, THRESH_MIN)
            self.cwnd = (self.ssthresh + (resent & U16_MAX)) & U16_MAX
            self.incr = self.cwnd * self._mss

        if lost:
            self.ssthresh = max(cwnd // 2, THRESH_MIN)
            self.cwnd = 1
            self.incr = self._mss

        if self.cwnd < 1:
            self.cwnd = 1
            self.incr = self._mss

    def update(self, current: int) -> None:
        """Advance the clock to ``current`` ms and flush when an interval has passed."""
        self.current = _u32(current)

        if not self.updated:
            self.updated = True
            self.ts_flush = self.current

        slap = timediff(self.current, self.ts_flush)
        if slap >= 10000 or slap < -10000:
            self.ts_flush = self.current
            slap = 0

        if slap >= 0:
            self.ts_flush = _u32(self.ts_flush + self.interval)
            if timediff(self.current, self.ts_flush) >= 0:
                self.ts_flush = _u32(self.current + self.interval)
            self.flush()