"""Reassembly of telnet control sequences split across reads."""

from __future__ import annotations

from dataclasses import dataclass, field

from .types import CR_BYTE, IAC_BYTE, TelnetCommand

EOL = b"\r\n"


def split_point(buffer: bytes) -> int:
    """Find where the decodable part of a telnet byte stream ends.

    Walks IAC sequences from the start so escaped IAC pairs and option bytes are
    never mistaken for the start of a new sequence. The bytes from the returned
    index onward are either an unfinished control sequence or a trailing CR
    that may still be followed by LF or NUL.

    Returns:
        Length of the prefix that is safe to decode
    """
    size = len(buffer)
    index = 0
    trailing_cr = False

    while index < size:
        if buffer[index] != IAC_BYTE:
            trailing_cr = buffer[index] == CR_BYTE
            index += 1
            continue

        trailing_cr = False
        if index + 1 >= size:
            # Bare IAC
            return index

        cmd = buffer[index + 1]
        if cmd == TelnetCommand.SB:
            end = _subnegotiation_end(buffer, index + 2)
            if end < 0:
                # Opener without a terminator yet
                return index
            index = end
        elif TelnetCommand.is_negotiation(cmd):
            if index + 2 >= size:
                # Option byte still to come
                return index
            index += 3
        else:
            index += 2

    return size - 1 if trailing_cr else size


def _subnegotiation_end(buffer: bytes, start: int) -> int:
    """Find the end of a subnegotiation block whose content starts at ``start``.

    Returns:
        Index just past IAC SE, or -1 if the block is not complete yet
    """
    index = buffer.find(IAC_BYTE, start)
    while index >= 0:
        if index + 1 >= len(buffer):
            return -1
        if buffer[index + 1] == TelnetCommand.SE:
            return index + 2
        index = buffer.find(IAC_BYTE, index + 2)
    return -1


@dataclass(slots=True)
class StreamReassembler:
    """Hold back incomplete trailing bytes until the next delivery completes them."""

    residual: bytes = field(default=b"")

    def feed(self, data: bytes, *, telnet_mode: bool = True, bin_mode: bool = False) -> bytes:
        """Combine leftover bytes with new data and return what is safe to process.

        In telnet mode the result still needs decoding. Outside of telnet mode
        only line endings are handled here: CR LF becomes LF unless in binary
        mode.

        Args:
            data: Newly received bytes
            telnet_mode: Whether the stream carries telnet control sequences
            bin_mode: Disable newline handling

        Returns:
            The bytes that can be processed now
        """
        combined = self.residual + data

        if telnet_mode:
            split = split_point(combined)
        elif not bin_mode and combined.endswith(b"\r"):
            split = len(combined) - 1
        else:
            split = len(combined)

        self.residual = combined[split:]
        ready = combined[:split]

        if not telnet_mode and not bin_mode:
            ready = ready.replace(EOL, b"\n")
        return ready

    def clear(self) -> None:
        """Drop any held bytes."""
        self.residual = b""
