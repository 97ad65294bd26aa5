"""Unit tests for telnet decoding and option negotiation."""

from __future__ import annotations

import pytest

from simple_telnet.clients.telnet.negotiate import TelnetNegotiator
from simple_telnet.clients.telnet.types import TelnetCommand, TelnetOption, TelnetSequence
from simple_telnet.constants import AYT_REPLY

IAC = TelnetCommand.IAC


def command(cmd: int, option: int) -> bytes:
    """Build a three byte negotiation sequence."""
    return TelnetSequence.create_command(cmd, option)


@pytest.fixture
def negotiator() -> TelnetNegotiator:
    """Fixture providing a negotiator in its initial state."""
    return TelnetNegotiator()


@pytest.mark.parametrize(
    ("cmd", "option", "expected"),
    [
        (TelnetCommand.DO, TelnetOption.BINARY, command(TelnetCommand.WILL, TelnetOption.BINARY)),
        (TelnetCommand.DO, TelnetOption.NAWS, command(TelnetCommand.WONT, TelnetOption.NAWS)),
        (TelnetCommand.DO, TelnetOption.TERMINAL_TYPE, command(TelnetCommand.WONT, TelnetOption.TERMINAL_TYPE)),
        (TelnetCommand.DONT, TelnetOption.BINARY, command(TelnetCommand.WONT, TelnetOption.BINARY)),
        (TelnetCommand.WILL, TelnetOption.BINARY, command(TelnetCommand.DO, TelnetOption.BINARY)),
        (TelnetCommand.WILL, TelnetOption.ECHO, command(TelnetCommand.DO, TelnetOption.ECHO)),
        (TelnetCommand.WILL, TelnetOption.SGA, command(TelnetCommand.DO, TelnetOption.SGA)),
        (TelnetCommand.WILL, TelnetOption.STATUS, command(TelnetCommand.DONT, TelnetOption.STATUS)),
        (TelnetCommand.WONT, TelnetOption.ECHO, command(TelnetCommand.DONT, TelnetOption.ECHO)),
        (TelnetCommand.WONT, TelnetOption.SGA, command(TelnetCommand.DONT, TelnetOption.SGA)),
    ],
)
def test_negotiation_replies(negotiator: TelnetNegotiator, cmd: int, option: int, expected: bytes) -> None:
    """Test every negotiation gets the documented reply."""
    reply = negotiator.negotiate(cmd, option)
    if reply != expected:
        pytest.fail(f"Expected {expected!r} for {cmd!r} {option!r}, got {reply!r}")


def test_negotiation_flags(negotiator: TelnetNegotiator) -> None:
    """Test BINARY and SGA flags follow the negotiation."""
    negotiator.negotiate(TelnetCommand.DO, TelnetOption.BINARY)
    negotiator.negotiate(TelnetCommand.WILL, TelnetOption.SGA)
    if not (negotiator.binary and negotiator.suppress_go_ahead):
        pytest.fail(f"Expected BINARY and SGA set, got {negotiator!r}")

    negotiator.negotiate(TelnetCommand.WONT, TelnetOption.SGA)
    if negotiator.suppress_go_ahead:
        pytest.fail("SGA should be cleared by WONT SGA")


def test_decode_strips_negotiation(negotiator: TelnetNegotiator) -> None:
    """Test negotiations are removed from the data and answered in order."""
    data = b"Hello" + command(TelnetCommand.DO, TelnetOption.NAWS) + b" world" + command(
        TelnetCommand.WILL, TelnetOption.ECHO
    )

    result = negotiator.decode(data)

    if result.data != b"Hello world":
        pytest.fail(f"Expected b'Hello world', got {result.data!r}")
    expected = [
        command(TelnetCommand.WONT, TelnetOption.NAWS),
        command(TelnetCommand.DO, TelnetOption.ECHO),
    ]
    if result.replies != expected:
        pytest.fail(f"Expected replies {expected!r}, got {result.replies!r}")


def test_decode_are_you_there(negotiator: TelnetNegotiator) -> None:
    """Test AYT gets the fixed reply and produces no data."""
    result = negotiator.decode(bytes([IAC, TelnetCommand.AYT]))
    if result.data or result.replies != [AYT_REPLY]:
        pytest.fail(f"Unexpected AYT handling: {result!r}")


def test_decode_discards_other_commands(negotiator: TelnetNegotiator) -> None:
    """Test GA, NOP and subnegotiations carry no data and need no reply."""
    data = (
        b"a"
        + bytes([IAC, TelnetCommand.GA])
        + b"b"
        + bytes([IAC, TelnetCommand.NOP])
        + TelnetSequence.create_subnegotiation(TelnetOption.TERMINAL_TYPE, b"\x01")
        + b"c"
    )

    result = negotiator.decode(data)

    if result != (b"abc", []):
        pytest.fail(f"Expected (b'abc', []), got {result!r}")


def test_decode_escaped_iac(negotiator: TelnetNegotiator) -> None:
    """Test an escaped IAC becomes a literal 0xFF byte."""
    result = negotiator.decode(b"x\xff\xffy")
    if result.data != b"x\xffy":
        pytest.fail(f"Expected b'x\\xffy', got {result.data!r}")


def test_decode_escaped_iac_inside_subnegotiation(negotiator: TelnetNegotiator) -> None:
    """Test IAC IAC inside a subnegotiation does not end it early."""
    data = bytes([IAC, TelnetCommand.SB, 24, IAC, IAC, 1, IAC, TelnetCommand.SE]) + b"ok"
    result = negotiator.decode(data)
    if result.data != b"ok":
        pytest.fail(f"Expected b'ok', got {result.data!r}")


@pytest.mark.parametrize(
    ("data", "bin_mode", "expected"),
    [
        (b"line\r\n", False, b"line\n"),
        (b"line\r\n", True, b"line\r\n"),
        (b"a\r\0b", False, b"a\rb"),
        (b"a\r\0b", True, b"a\rb"),
        (b"a\0b", False, b"ab"),
        (b"a\0b", True, b"a\0b"),
        (b"a\rb", False, b"a\rb"),
        (b"a\r\r\n", False, b"a\r\n"),
        (b"end\r", False, b"end\r"),
    ],
)
def test_decode_line_endings(
    negotiator: TelnetNegotiator, data: bytes, bin_mode: bool, expected: bytes  # noqa: FBT001
) -> None:
    """Test CR LF, CR NUL and NUL handling with and without binary mode."""
    result = negotiator.decode(data, bin_mode=bin_mode)
    if result.data != expected:
        pytest.fail(f"Expected {expected!r} from {data!r} (bin_mode={bin_mode}), got {result.data!r}")


def test_escape_round_trip(negotiator: TelnetNegotiator) -> None:
    """Test escaped data decodes back to the original bytes."""
    original = bytes(range(256))

    escaped = TelnetNegotiator.escape(original)
    if escaped.count(IAC) != 2:
        pytest.fail(f"Expected IAC doubled once, got {escaped.count(IAC)} IAC bytes")

    result = negotiator.decode(escaped, bin_mode=True)
    if result.data != original or result.replies:
        pytest.fail(f"Round trip mismatch: {result!r}")


def test_escape_without_iac_returns_data() -> None:
    """Test data without IAC bytes is returned unchanged."""
    data = b"plain text"
    if TelnetNegotiator.escape(data) is not data:
        pytest.fail("Expected the same object back when there is nothing to escape")
