"""
vpcd Command Codec

Translates frame payloads into typed commands and typed responses back
into payloads.

Payload interpretation:
- length 0: power off (accepted for compatibility)
- length 1: control code
- length > 1: APDU, passed through untouched

A one byte APDU cannot be told apart from a control code on this wire,
so it is not supported; such payloads are always read as control codes.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union

from .errors import ProtocolError


CTRL_MSG_LENGTH = 1


class VPCDControl(IntEnum):
    """vpcd control message types."""
    OFF = 0      # Power off
    ON = 1       # Power on
    RESET = 2    # Reset card
    ATR = 4      # Request ATR


@dataclass(frozen=True)
class PowerOff:
    """Remove power from the card."""


@dataclass(frozen=True)
class PowerOn:
    """Apply power to the card."""


@dataclass(frozen=True)
class Reset:
    """Warm reset of a powered card."""


@dataclass(frozen=True)
class GetAtr:
    """Request the ATR of the current power cycle."""


@dataclass(frozen=True)
class Apdu:
    """An APDU command, opaque at this layer."""
    data: bytes

    def __str__(self) -> str:
        return f"Apdu({self.data.hex()})"


Command = Union[PowerOff, PowerOn, Reset, GetAtr, Apdu]

_CONTROL_COMMANDS = {
    VPCDControl.OFF: PowerOff(),
    VPCDControl.ON: PowerOn(),
    VPCDControl.RESET: Reset(),
    VPCDControl.ATR: GetAtr(),
}

_CONTROL_CODES = {type(cmd): code for code, cmd in _CONTROL_COMMANDS.items()}


class ResponseKind(Enum):
    """What a response frame carries."""
    ACK = "ack"
    ATR = "atr"
    APDU = "apdu"


@dataclass(frozen=True)
class Response:
    """
    A response to be framed and sent back to vpcd.

    Attributes:
        kind: What the payload carries
        payload: The response bytes, empty for ACK
    """
    kind: ResponseKind
    payload: bytes = b''

    @classmethod
    def ack(cls) -> 'Response':
        """Create an empty acknowledgment."""
        return cls(ResponseKind.ACK)

    @classmethod
    def atr(cls, atr: bytes) -> 'Response':
        return cls(ResponseKind.ATR, bytes(atr))

    @classmethod
    def apdu(cls, data: bytes) -> 'Response':
        return cls(ResponseKind.APDU, bytes(data))


def decode_command(payload: bytes) -> Command:
    """
    Decode a frame payload into a command.

    Args:
        payload: The frame payload

    Returns:
        The decoded command

    Raises:
        ProtocolError: If a control payload carries an unknown code
    """
    if len(payload) == 0:
        return PowerOff()

    if len(payload) == CTRL_MSG_LENGTH:
        code = payload[0]
        try:
            return _CONTROL_COMMANDS[VPCDControl(code)]
        except ValueError:
            raise ProtocolError(
                f"Unknown control message: {code}", bytes(payload)
            ) from None

    return Apdu(bytes(payload))


def encode_command(command: Command) -> bytes:
    """
    Encode a command as a frame payload.

    This is what vpcd itself sends; it is used when acting as the daemon
    side of a connection.
    """
    if isinstance(command, Apdu):
        if len(command.data) <= CTRL_MSG_LENGTH:
            raise ProtocolError(
                f"APDU of {len(command.data)} bytes cannot be framed", command.data
            )
        return command.data
    return bytes([_CONTROL_CODES[type(command)]])


def encode_response(response: Response) -> bytes:
    """
    Encode a response as a frame payload.

    Args:
        response: The response to encode

    Returns:
        Empty bytes for an acknowledgment, otherwise the ATR or APDU
        response bytes
    """
    if response.kind is ResponseKind.ACK:
        return b''
    return response.payload
