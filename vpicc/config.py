"""
Configuration

Settings are passed around as explicit values; nothing here is global.
"""

from dataclasses import dataclass
from enum import Enum


DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 35963


class ProtocolErrorPolicy(Enum):
    """What a session does with a frame it cannot decode."""
    DROP = "drop"            # Skip the frame and keep reading
    TERMINATE = "terminate"  # End the session


@dataclass(frozen=True)
class VPCDConfig:
    """
    Connection settings for one virtual card.

    Attributes:
        host: The hostname/IP vpcd listens on
        port: The TCP port number vpcd listens on
        protocol_error_policy: How sessions treat undecodable frames
    """
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    protocol_error_policy: ProtocolErrorPolicy = ProtocolErrorPolicy.DROP

    def __post_init__(self) -> None:
        if not 0 < self.port <= 0xFFFF:
            raise ValueError(f"Invalid port number: {self.port}")

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)
