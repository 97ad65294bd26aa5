"""Telnet protocol negotiation and decoding helper class."""

from __future__ import annotations

from dataclasses import dataclass, field

from simple_telnet.constants import AYT_REPLY

from .types import (
    CR_BYTE,
    IAC_BYTE,
    LF_BYTE,
    NUL_BYTE,
    DecodeResult,
    ParserState,
    TelnetCommand,
    TelnetOption,
    TelnetSequence,
)


@dataclass(slots=True)
class TelnetNegotiator:
    """Decode telnet traffic and answer option negotiations.

    Only BINARY, ECHO and SGA are acted upon. Every other option is refused,
    which keeps the peer in plain NVT mode.
    """

    # Negotiated state
    binary: bool = field(default=False)
    suppress_go_ahead: bool = field(default=False)

    def decode(self, data: bytes, *, bin_mode: bool = False) -> DecodeResult:
        """Split received data into application bytes and replies for the peer.

        The data must not end in the middle of a control sequence; the stream
        reassembler guarantees that. A trailing CR is passed through as-is.

        Args:
            data: Raw bytes received from the telnet server
            bin_mode: Disable CR LF collapsing and NUL stripping

        Returns:
            DecodeResult with the processed data and the replies to send
        """
        if not data:
            return DecodeResult(b"", [])

        processed = bytearray()
        replies: list[bytes] = []
        state = ParserState.DATA
        cmd = 0

        for byte in data:
            match state:
                case ParserState.DATA:
                    state = self._data_byte(byte, processed, bin_mode=bin_mode)

                case ParserState.CR:
                    # Previous byte was a CR
                    if byte == NUL_BYTE:
                        processed.append(CR_BYTE)
                        state = ParserState.DATA
                    elif byte == LF_BYTE and not bin_mode:
                        processed.append(LF_BYTE)
                        state = ParserState.DATA
                    else:
                        processed.append(CR_BYTE)
                        state = self._data_byte(byte, processed, bin_mode=bin_mode)

                case ParserState.IAC:
                    match byte:
                        case TelnetCommand.IAC:
                            # Escaped IAC - literal 255
                            processed.append(byte)
                            state = ParserState.DATA
                        case TelnetCommand.SB:
                            state = ParserState.SUBNEG
                        case TelnetCommand.AYT:
                            replies.append(AYT_REPLY)
                            state = ParserState.DATA
                        case _ if TelnetCommand.is_negotiation(byte):
                            cmd = byte
                            state = ParserState.COMMAND
                        case _:
                            # GA, NOP, DM and friends carry no data
                            state = ParserState.DATA

                case ParserState.COMMAND:
                    replies.append(self.negotiate(cmd, byte))
                    state = ParserState.DATA

                case ParserState.SUBNEG:
                    # Subnegotiation content is not interpreted
                    if byte == TelnetCommand.IAC:
                        state = ParserState.SUBNEG_IAC

                case ParserState.SUBNEG_IAC:
                    state = ParserState.DATA if byte == TelnetCommand.SE else ParserState.SUBNEG

        if state == ParserState.CR:
            processed.append(CR_BYTE)

        return DecodeResult(bytes(processed), replies)

    @staticmethod
    def _data_byte(byte: int, processed: bytearray, *, bin_mode: bool) -> ParserState:
        """Handle one byte outside of any control sequence.

        Returns:
            The parser state for the next byte
        """
        if byte == IAC_BYTE:
            return ParserState.IAC
        if byte == CR_BYTE:
            return ParserState.CR
        if byte != NUL_BYTE or bin_mode:
            processed.append(byte)
        return ParserState.DATA

    def negotiate(self, cmd: int, option: int) -> bytes:
        """Answer a single negotiation command.

        Args:
            cmd: The telnet command (DO/DONT/WILL/WONT)
            option: The option being negotiated

        Returns:
            The response to send to the server
        """
        match cmd:
            case TelnetCommand.DO:
                # Server asks us to use an option, we only agree to BINARY
                if option == TelnetOption.BINARY:
                    self.binary = True
                    return TelnetSequence.create_command(TelnetCommand.WILL, option)
                return TelnetSequence.create_command(TelnetCommand.WONT, option)
            case TelnetCommand.DONT:
                return TelnetSequence.create_command(TelnetCommand.WONT, option)
            case TelnetCommand.WILL:
                if option == TelnetOption.SGA:
                    self.suppress_go_ahead = True
                if option in {TelnetOption.BINARY, TelnetOption.ECHO, TelnetOption.SGA}:
                    return TelnetSequence.create_command(TelnetCommand.DO, option)
                return TelnetSequence.create_command(TelnetCommand.DONT, option)
            case _:  # WONT
                if option == TelnetOption.SGA:
                    self.suppress_go_ahead = False
                return TelnetSequence.create_command(TelnetCommand.DONT, option)

    @staticmethod
    def escape(data: bytes) -> bytes:
        """Double every IAC byte so the peer reads it as data.

        Returns:
            The escaped data
        """
        # Fast path for common case - no IAC bytes
        if IAC_BYTE not in data:
            return data
        return data.replace(bytes([IAC_BYTE]), bytes([IAC_BYTE, IAC_BYTE]))
