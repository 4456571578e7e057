import pytest

from ecsgame.net.errors import (
    ConvInconsistentError,
    ExpectingFragmentError,
    InvalidMtuError,
    InvalidSegmentDataSizeError,
    InvalidSegmentSizeError,
    KcpError,
    NeedUpdateError,
    RecvQueueEmptyError,
    UnsupportedCmdError,
    UserBufTooBigError,
    UserBufTooSmallError,
)


def _catch(err):
    """Raise ``err`` and report which handler took it, with its message."""
    try:
        raise err
    except BlockingIOError as exc:
        return "blocking", str(exc)
    except KcpError as exc:
        return "kcp", str(exc)


def test_conv_inconsistent_message_and_fields():
    err = ConvInconsistentError(7, 9)
    assert str(err) == "conv inconsistent, expected 7, found 9"
    assert (err.expected, err.found) == (7, 9)


def test_invalid_mtu_message():
    err = InvalidMtuError(20)
    assert str(err) == "invalid mtu 20"
    assert err.mtu == 20


def test_invalid_segment_size_message():
    err = InvalidSegmentSizeError(3)
    assert str(err) == "invalid segment size 3"
    assert err.size == 3


def test_invalid_segment_data_size_message():
    err = InvalidSegmentDataSizeError(100, 4)
    assert str(err) == "invalid segment data size, expected 100, found 4"
    assert (err.expected, err.found) == (100, 4)


def test_unsupported_cmd_message():
    err = UnsupportedCmdError(99)
    assert str(err) == "command 99 is not supported"
    assert err.cmd == 99


@pytest.mark.parametrize(
    "cls, message",
    [
        (NeedUpdateError, "need to call update() once"),
        (RecvQueueEmptyError, "recv queue is empty"),
        (ExpectingFragmentError, "expecting fragment"),
        (UserBufTooBigError, "user's send buffer is too big"),
        (UserBufTooSmallError, "user's recv buffer is too small"),
    ],
)
def test_argumentless_messages(cls, message):
    assert str(cls()) == message


@pytest.mark.parametrize(
    "err, message",
    [
        (ConvInconsistentError(1, 2), "conv inconsistent, expected 1, found 2"),
        (InvalidMtuError(1), "invalid mtu 1"),
        (InvalidSegmentSizeError(1), "invalid segment size 1"),
        (
            InvalidSegmentDataSizeError(1, 2),
            "invalid segment data size, expected 1, found 2",
        ),
        (NeedUpdateError(), "need to call update() once"),
        (UnsupportedCmdError(1), "command 1 is not supported"),
        (UserBufTooBigError(), "user's send buffer is too big"),
        (UserBufTooSmallError(), "user's recv buffer is too small"),
    ],
)
def test_non_blocking_errors_are_caught_as_kcp_errors(err, message):
    assert _catch(err) == ("kcp", message)


@pytest.mark.parametrize(
    "cls, message",
    [
        (RecvQueueEmptyError, "recv queue is empty"),
        (ExpectingFragmentError, "expecting fragment"),
    ],
)
def test_would_block_errors(cls, message):
    assert _catch(cls()) == ("blocking", message)


@pytest.mark.parametrize("cls", [RecvQueueEmptyError, ExpectingFragmentError])
def test_would_block_errors_are_also_kcp_errors(cls):
    with pytest.raises(KcpError) as info:
        raise cls()
    assert type(info.value) is cls