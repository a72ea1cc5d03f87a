"""
vpcd Framing Module

Reads and writes length-prefixed frames over an already connected
byte stream.

Frame layout:
- 2-byte big-endian payload length
- exactly that many payload bytes

No read timeout is applied: read_frame() blocks for as long as the peer
stays silent, because the vpcd protocol has no idle timeout. Closing the
stream is the only way to unblock a pending read.
"""

import logging
import socket
import struct
from typing import Optional, Protocol

from .errors import (
    ConnectionClosed, FrameTooLarge, FrameTruncated, ProtocolError,
    VPCDConnectionError,
)


logger = logging.getLogger(__name__)

LENGTH_PREFIX_SIZE = 2
MAX_PAYLOAD_SIZE = 0xFFFF

_LENGTH = struct.Struct('>H')


class ByteStream(Protocol):
    """The subset of the socket interface used by FramedConnection."""

    def recv(self, bufsize: int) -> bytes: ...

    def sendall(self, data: bytes) -> None: ...

    def close(self) -> None: ...

    def shutdown(self, how: int) -> None: ...


def encode_frame(payload: bytes) -> bytes:
    """
    Prepend the length prefix to a payload.

    Args:
        payload: The frame payload

    Returns:
        The complete frame

    Raises:
        FrameTooLarge: If the payload does not fit a 16-bit length
    """
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise FrameTooLarge(len(payload))
    return _LENGTH.pack(len(payload)) + bytes(payload)


def decode_frame(data: bytes) -> bytes:
    """
    Extract the payload from one complete frame.

    Args:
        data: Exactly one frame, prefix included

    Returns:
        The frame payload

    Raises:
        ProtocolError: If the declared length does not match the data
    """
    if len(data) < LENGTH_PREFIX_SIZE:
        raise ProtocolError(f"Frame too short for length prefix: {len(data)} bytes")
    (length,) = _LENGTH.unpack_from(data)
    payload = bytes(data[LENGTH_PREFIX_SIZE:])
    if len(payload) != length:
        raise ProtocolError(
            f"Declared length {length} does not match payload length {len(payload)}",
            payload,
        )
    return payload


class FramedConnection:
    """
    A framed view of one connection to vpcd.

    Each session owns exactly one FramedConnection and is its only
    writer, so no locking is done here.

    Attributes:
        sock: The underlying stream, None once closed
    """

    def __init__(self, sock: ByteStream):
        """
        Wrap a connected stream.

        Args:
            sock: A connected socket or socket-like object
        """
        self.sock: Optional[ByteStream] = sock

    @property
    def closed(self) -> bool:
        return self.sock is None

    def _recv_exact(self, num_bytes: int, frame_offset: int = 0) -> bytes:
        """
        Receive exact number of bytes from the stream.

        Args:
            num_bytes: Number of bytes to receive
            frame_offset: Bytes of the current frame already consumed

        Returns:
            The received bytes

        Raises:
            ConnectionClosed: If the stream ends before any frame byte,
                or the connection was closed locally
            FrameTruncated: If the stream ends inside a frame
            VPCDConnectionError: If reading fails
        """
        sock = self.sock
        if sock is None:
            raise ConnectionClosed("Connection closed locally")
        data = b''
        while len(data) < num_bytes:
            try:
                chunk = sock.recv(num_bytes - len(data))
            except OSError as e:
                if self.sock is None:
                    raise ConnectionClosed("Connection closed locally") from e
                raise VPCDConnectionError(f"Error reading from vpcd: {e}") from e
            if not chunk:
                if self.sock is None:
                    raise ConnectionClosed("Connection closed locally")
                if frame_offset == 0 and not data:
                    raise ConnectionClosed("Connection closed by vpcd")
                raise FrameTruncated(
                    expected=frame_offset + num_bytes,
                    received=frame_offset + len(data),
                )
            data += chunk
        return data

    def read_frame(self) -> bytes:
        """
        Receive one frame and return its payload.

        Blocks until the whole frame has arrived.

        Returns:
            The payload, possibly empty

        Raises:
            ConnectionClosed: If vpcd closed the connection between frames
            FrameTruncated: If the connection closed inside the frame
            VPCDConnectionError: If reading from the stream fails
        """
        length_data = self._recv_exact(LENGTH_PREFIX_SIZE)
        (length,) = _LENGTH.unpack(length_data)

        if length == 0:
            logger.debug("Received empty frame")
            return b''

        payload = self._recv_exact(length, frame_offset=LENGTH_PREFIX_SIZE)
        logger.debug(f"Received {length} bytes: {payload.hex()}")
        return payload

    def write_frame(self, payload: bytes) -> None:
        """
        Send a length-prefixed frame.

        Args:
            payload: The frame payload

        Raises:
            FrameTooLarge: If the payload is too large to frame
            VPCDConnectionError: If the stream is closed or fails
        """
        if self.sock is None:
            raise VPCDConnectionError("Not connected to vpcd")
        frame = encode_frame(payload)
        try:
            self.sock.sendall(frame)
        except OSError as e:
            raise VPCDConnectionError(f"Error writing to vpcd: {e}") from e
        logger.debug(f"Sent {len(payload)} bytes: {payload.hex()}")

    def close(self) -> None:
        """
        Close the underlying stream.

        A read blocked in another thread is woken up and fails with
        ConnectionClosed.
        """
        sock = self.sock
        if sock is None:
            return
        self.sock = None
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Socket shutdown failed: {e}")
        try:
            sock.close()
        except OSError as e:
            logger.warning(f"Error closing socket: {e}")

    def __enter__(self) -> 'FramedConnection':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
