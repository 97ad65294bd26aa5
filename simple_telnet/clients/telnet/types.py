"""Telnet protocol types module."""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import NamedTuple

IAC_BYTE = 0xFF  # Interpret As Command byte
CR_BYTE = 0x0D
LF_BYTE = 0x0A
NUL_BYTE = 0x00


class ParserState(IntEnum):
    """States for the telnet parser state machine."""

    DATA = 0
    IAC = 1
    COMMAND = 2
    SUBNEG = 3
    SUBNEG_IAC = 4
    CR = 5


class ConnectionState(StrEnum):
    """States of a telnet session."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    WAITING_FOR_PROMPT = "waiting_for_prompt"
    CLOSED = "closed"


class TelnetCommand(IntEnum):
    """Telnet protocol commands."""

    IAC = 255  # Interpret As Command
    DONT = 254
    DO = 253
    WONT = 252
    WILL = 251
    SB = 250  # Subnegotiation Begin
    GA = 249  # Go Ahead
    EL = 248  # Erase Line
    EC = 247  # Erase Character
    AYT = 246  # Are You There
    AO = 245  # Abort Output
    IP = 244  # Interrupt Process
    BREAK = 243
    DM = 242  # Data Mark
    NOP = 241
    SE = 240  # Subnegotiation End

    @classmethod
    def is_negotiation(cls, cmd: int) -> bool:
        """Check if a command byte is a negotiation command.

        Returns:
            True if the command is a negotiation command, False otherwise
        """
        return cmd in {cls.DO, cls.DONT, cls.WILL, cls.WONT}


class TelnetOption(IntEnum):
    """Telnet protocol options."""

    BINARY = 0
    ECHO = 1
    SGA = 3  # Suppress Go Ahead
    STATUS = 5
    TIMING_MARK = 6
    TERMINAL_TYPE = 24
    NAWS = 31  # Negotiate About Window Size
    TERMINAL_SPEED = 32
    LINEMODE = 34
    NEW_ENVIRON = 39
    EXOPL = 255  # Extended-Options-List


class TelnetSequence(NamedTuple):
    """Represents a complete telnet command sequence."""

    command: int
    option: int = 0
    data: bytes = b""

    @classmethod
    def create_command(cls, command: int, option: int) -> bytes:
        """Create a simple telnet command sequence.

        Returns:
            The created command sequence
        """
        return bytes([TelnetCommand.IAC, command, option])

    @classmethod
    def create_subnegotiation(cls, option: int, data: bytes) -> bytes:
        """Create a telnet subnegotiation sequence.

        Returns:
            The created subnegotiation sequence
        """
        result = bytearray([TelnetCommand.IAC, TelnetCommand.SB, option])
        result.extend(data)
        result.extend([TelnetCommand.IAC, TelnetCommand.SE])
        return bytes(result)


class DecodeResult(NamedTuple):
    """Application bytes and protocol replies produced by one decode call."""

    data: bytes
    replies: list[bytes]
