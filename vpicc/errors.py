"""
Error Types

Exception hierarchy shared by the framing layer, the command codec and
the card state machine.

- VPCDConnectionError: the stream to vpcd failed, fatal
- ConnectionClosed: vpcd closed the stream between frames
- FrameTruncated: the stream ended inside a frame
- ProtocolError: a frame could not be interpreted
- FrameTooLarge: a response is too long to frame
- StateError: a command is not legal for the current power state
"""

from typing import Optional


class VPICCError(Exception):
    """Base class for all vpicc errors."""
    pass


class VPCDConnectionError(VPICCError, ConnectionError):
    """Exception raised for vpcd connection errors."""
    pass


class ConnectionClosed(VPCDConnectionError):
    """Raised when vpcd closes the connection at a frame boundary."""
    pass


class FrameTruncated(VPCDConnectionError):
    """
    Raised when the stream ends in the middle of a frame.
    
    Attributes:
        expected: Number of frame bytes that were declared
        received: Number of those bytes that actually arrived
    """
    
    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Connection closed mid-frame: expected {expected} bytes, got {received}"
        )
        self.expected = expected
        self.received = received


class ProtocolError(VPICCError):
    """
    Raised when a frame payload is malformed.
    
    Attributes:
        payload: The offending payload, if one was read
    """
    
    def __init__(self, message: str, payload: Optional[bytes] = None):
        super().__init__(message)
        self.payload = payload


class FrameTooLarge(VPICCError):
    """
    Raised when an outgoing payload does not fit a 16-bit length.
    
    Attributes:
        size: Length of the payload that was refused
    """
    
    def __init__(self, size: int):
        super().__init__(f"Payload of {size} bytes exceeds 65535")
        self.size = size


class StateError(VPICCError):
    """Raised when a command is illegal for the current power state."""
    pass
