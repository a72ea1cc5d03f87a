"""
Tests for vpcd frame encoding and the framed connection.

Tests cover:
- encode_frame / decode_frame helpers
- Reading frames split across many recv() calls
- Clean close, mid-frame close and I/O failures
- Writing frames
"""

import pytest

from vpicc.errors import (
    ConnectionClosed,
    FrameTooLarge,
    FrameTruncated,
    ProtocolError,
    VPCDConnectionError,
)
from vpicc.framing import (
    MAX_PAYLOAD_SIZE,
    FramedConnection,
    decode_frame,
    encode_frame,
)


class ChunkedSocket:
    """Socket stand-in that hands out data a few bytes at a time."""

    def __init__(self, data: bytes, chunk_size: int = 1, error=None):
        self.data = data
        self.chunk_size = chunk_size
        self.error = error
        self.sent = b''
        self.closed = False

    def recv(self, bufsize: int) -> bytes:
        if not self.data and self.error is not None:
            raise self.error
        size = min(bufsize, self.chunk_size)
        chunk, self.data = self.data[:size], self.data[size:]
        return chunk

    def sendall(self, data: bytes) -> None:
        if self.error is not None:
            raise self.error
        self.sent += data

    def shutdown(self, how: int) -> None:
        pass

    def close(self) -> None:
        self.closed = True


class TestFrameHelpers:
    """Tests for encode_frame and decode_frame."""

    def test_encode_frame(self):
        """Test the prefix is a big-endian 16-bit length."""
        assert encode_frame(b"\x01") == bytes.fromhex("000101")
        assert encode_frame(b"") == bytes.fromhex("0000")
        assert encode_frame(b"\xAA" * 0x1234)[:2] == bytes.fromhex("1234")

    @pytest.mark.parametrize("length", [0, 1, 2, 300, MAX_PAYLOAD_SIZE])
    def test_round_trip(self, length):
        """Test decode_frame undoes encode_frame."""
        payload = bytes(i & 0xFF for i in range(length))
        assert decode_frame(encode_frame(payload)) == payload

    def test_encode_too_large(self):
        """Test payloads over 65535 bytes are rejected."""
        with pytest.raises(FrameTooLarge) as exc_info:
            encode_frame(b"\x00" * (MAX_PAYLOAD_SIZE + 1))
        assert exc_info.value.size == MAX_PAYLOAD_SIZE + 1
        assert not isinstance(exc_info.value, ProtocolError)

    def test_decode_length_mismatch(self):
        """Test a declared length that disagrees with the payload."""
        with pytest.raises(ProtocolError):
            decode_frame(bytes.fromhex("0005 00A4"))
        with pytest.raises(ProtocolError):
            decode_frame(bytes.fromhex("000101FF"))

    def test_decode_too_short(self):
        """Test a buffer without a full length prefix."""
        with pytest.raises(ProtocolError):
            decode_frame(b"\x00")


class TestReadFrame:
    """Tests for FramedConnection.read_frame."""

    def test_read_control_frame(self, connection, daemon, sample_frames):
        """Test reading a one byte control frame."""
        daemon.send_raw(sample_frames["power_on"])
        assert connection.read_frame() == b"\x01"

    def test_read_empty_frame(self, connection, daemon, sample_frames):
        """Test reading a zero length frame."""
        daemon.send_raw(sample_frames["empty"])
        assert connection.read_frame() == b""

    def test_read_consecutive_frames(self, connection, daemon, sample_frames):
        """Test frames sent back to back are split correctly."""
        daemon.send_raw(sample_frames["power_on"] + sample_frames["select"])
        assert connection.read_frame() == b"\x01"
        assert connection.read_frame() == bytes.fromhex("00A4040000")

    def test_read_fragmented_frame(self):
        """Test a frame delivered one byte per recv()."""
        conn = FramedConnection(ChunkedSocket(bytes.fromhex("000500A4040000")))
        assert conn.read_frame() == bytes.fromhex("00A4040000")

    def test_clean_close(self, connection, daemon):
        """Test end of stream between frames."""
        daemon.hang_up()
        with pytest.raises(ConnectionClosed):
            connection.read_frame()

    def test_close_mid_payload(self, connection, daemon):
        """Test end of stream before the declared payload length."""
        daemon.send_raw(bytes.fromhex("000500A4"))
        daemon.hang_up()
        with pytest.raises(FrameTruncated) as exc_info:
            connection.read_frame()
        assert exc_info.value.expected == 7
        assert exc_info.value.received == 4
        assert isinstance(exc_info.value, ConnectionError)

    def test_close_mid_prefix(self, connection, daemon):
        """Test end of stream inside the length prefix."""
        daemon.send_raw(b"\x00")
        daemon.hang_up()
        with pytest.raises(FrameTruncated) as exc_info:
            connection.read_frame()
        assert exc_info.value.expected == 2
        assert exc_info.value.received == 1

    def test_socket_error(self):
        """Test OS errors surface as VPCDConnectionError."""
        conn = FramedConnection(ChunkedSocket(b"", error=ConnectionResetError("reset")))
        with pytest.raises(VPCDConnectionError) as exc_info:
            conn.read_frame()
        assert isinstance(exc_info.value.__cause__, ConnectionResetError)

    def test_local_close_mid_frame(self):
        """Test closing our end inside a frame is a clean close, not truncation."""
        sock = ChunkedSocket(bytes.fromhex("000500A4"))
        conn = FramedConnection(sock)
        original_recv = sock.recv

        def recv(bufsize):
            if not sock.data:
                conn.close()
            return original_recv(bufsize)

        sock.recv = recv
        with pytest.raises(ConnectionClosed) as exc_info:
            conn.read_frame()
        assert not isinstance(exc_info.value, FrameTruncated)

    def test_read_after_close(self, connection):
        """Test reading from a closed connection."""
        connection.close()
        with pytest.raises(VPCDConnectionError):
            connection.read_frame()

    def test_no_timeout_is_set(self, socket_pair):
        """Test wrapping a socket leaves it fully blocking."""
        FramedConnection(socket_pair[0])
        assert socket_pair[0].gettimeout() is None


class TestWriteFrame:
    """Tests for FramedConnection.write_frame."""

    def test_write_frame(self, connection, daemon):
        """Test a written frame arrives prefix first."""
        connection.write_frame(bytes.fromhex("9000"))
        assert daemon.recv_raw(4) == bytes.fromhex("00029000")

    def test_write_empty_frame(self, connection, daemon):
        """Test an empty acknowledgment frame."""
        connection.write_frame(b"")
        assert daemon.recv_raw(2) == bytes.fromhex("0000")

    def test_write_uses_single_sendall(self):
        """Test prefix and payload go out together."""
        sock = ChunkedSocket(b"")
        FramedConnection(sock).write_frame(b"\x90\x00")
        assert sock.sent == bytes.fromhex("00029000")

    def test_write_error(self):
        """Test OS errors on send surface as VPCDConnectionError."""
        conn = FramedConnection(ChunkedSocket(b"", error=BrokenPipeError("pipe")))
        with pytest.raises(VPCDConnectionError):
            conn.write_frame(b"\x90\x00")

    def test_write_after_close(self, connection):
        """Test writing to a closed connection."""
        connection.close()
        with pytest.raises(VPCDConnectionError):
            connection.write_frame(b"\x90\x00")


class TestClose:
    """Tests for closing a FramedConnection."""

    def test_close_is_idempotent(self):
        """Test closing twice."""
        sock = ChunkedSocket(b"")
        conn = FramedConnection(sock)
        conn.close()
        conn.close()
        assert sock.closed
        assert conn.closed

    def test_context_manager(self):
        """Test the connection closes on leaving a with block."""
        sock = ChunkedSocket(b"")
        with FramedConnection(sock) as conn:
            assert not conn.closed
        assert sock.closed
