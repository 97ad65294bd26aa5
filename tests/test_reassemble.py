"""Unit tests for reassembling telnet sequences split across reads."""

from __future__ import annotations

import pytest

from simple_telnet.clients.telnet.negotiate import TelnetNegotiator
from simple_telnet.clients.telnet.reassemble import StreamReassembler, split_point
from simple_telnet.clients.telnet.types import TelnetCommand, TelnetOption, TelnetSequence

IAC = TelnetCommand.IAC

STREAM = (
    b"Welcome\r\n"
    + TelnetSequence.create_command(TelnetCommand.WILL, TelnetOption.ECHO)
    + TelnetSequence.create_subnegotiation(TelnetOption.TERMINAL_TYPE, b"\x01\xff\xff")
    + b"cost: 5\xff\xff units\r\0"
    + TelnetSequence.create_command(TelnetCommand.DO, TelnetOption.NAWS)
    + bytes([IAC, TelnetCommand.GA])
    + b"login: "
)


def decode_in_parts(parts: list[bytes]) -> tuple[bytes, list[bytes]]:
    """Feed parts through a reassembler and a negotiator like a session does."""
    reassembler = StreamReassembler()
    negotiator = TelnetNegotiator()
    data = b""
    replies: list[bytes] = []
    for part in parts:
        result = negotiator.decode(reassembler.feed(part))
        data += result.data
        replies.extend(result.replies)
    return data, replies


@pytest.mark.parametrize(
    ("buffer", "expected"),
    [
        (b"", 0),
        (b"abc", 3),
        (b"abc\xff", 3),
        (b"abc\xff\xfd", 3),
        (b"abc\xff\xfd\x01", 6),
        (b"abc\xff\xff", 5),
        (b"abc\xff\xff\xff", 5),
        (b"abc\xff\xfa\x18\x01", 3),
        (b"abc\xff\xfa\x18\xff\xff\x01", 3),
        (b"abc\xff\xfa\x18\x01\xff\xf0", 9),
        (b"abc\r", 3),
        (b"abc\r\n", 5),
        (b"\xff\xfd\r", 3),
    ],
)
def test_split_point(buffer: bytes, expected: int) -> None:
    """Test only complete sequences are released."""
    split = split_point(buffer)
    if split != expected:
        pytest.fail(f"Expected split at {expected} for {buffer!r}, got {split}")


def test_split_invariance_at_every_boundary() -> None:
    """Test splitting the stream anywhere gives the same result as one read."""
    expected = decode_in_parts([STREAM])

    for index in range(1, len(STREAM)):
        result = decode_in_parts([STREAM[:index], STREAM[index:]])
        if result != expected:
            pytest.fail(f"Split at {index} gave {result!r}, expected {expected!r}")


def test_byte_by_byte_delivery() -> None:
    """Test delivering one byte at a time gives the same result as one read."""
    expected = decode_in_parts([STREAM])
    result = decode_in_parts([bytes([byte]) for byte in STREAM])
    if result != expected:
        pytest.fail(f"Byte-wise delivery gave {result!r}, expected {expected!r}")


def test_decoded_stream_content() -> None:
    """Test the reference stream decodes to the expected text and replies."""
    data, replies = decode_in_parts([STREAM])
    if data != b"Welcome\ncost: 5\xff units\rlogin: ":
        pytest.fail(f"Unexpected data {data!r}")
    expected = [
        TelnetSequence.create_command(TelnetCommand.DO, TelnetOption.ECHO),
        TelnetSequence.create_command(TelnetCommand.WONT, TelnetOption.NAWS),
    ]
    if replies != expected:
        pytest.fail(f"Expected replies {expected!r}, got {replies!r}")


def test_held_bytes_are_kept() -> None:
    """Test the unfinished tail waits in the residual buffer."""
    reassembler = StreamReassembler()
    ready = reassembler.feed(b"data\xff\xfb")
    if ready != b"data" or reassembler.residual != b"\xff\xfb":
        pytest.fail(f"Unexpected split: ready={ready!r} residual={reassembler.residual!r}")

    ready = reassembler.feed(b"\x01more")
    if ready != b"\xff\xfb\x01more" or reassembler.residual:
        pytest.fail(f"Unexpected completion: ready={ready!r} residual={reassembler.residual!r}")

    reassembler.feed(b"\xff")
    reassembler.clear()
    if reassembler.residual:
        pytest.fail("clear() should drop held bytes")


def test_plain_mode_line_endings() -> None:
    """Test CR LF collapsing outside telnet mode, across reads."""
    reassembler = StreamReassembler()
    first = reassembler.feed(b"220 ready\r", telnet_mode=False)
    second = reassembler.feed(b"\n250 ok\r\n", telnet_mode=False)
    if first + second != b"220 ready\n250 ok\n":
        pytest.fail(f"Unexpected plain mode output {first!r} + {second!r}")


def test_plain_binary_mode_untouched() -> None:
    """Test nothing is held or converted outside telnet mode in binary mode."""
    reassembler = StreamReassembler()
    ready = reassembler.feed(b"\xff\xfd\x01raw\r", telnet_mode=False, bin_mode=True)
    if ready != b"\xff\xfd\x01raw\r" or reassembler.residual:
        pytest.fail(f"Expected bytes untouched, got {ready!r}")
