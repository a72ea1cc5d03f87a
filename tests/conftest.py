"""
Pytest configuration and fixtures for vpicc tests.
"""

import socket
import struct

import pytest

from vpicc.card import DEFAULT_ATR, VSmartCard
from vpicc.framing import FramedConnection


class RecordingCard(VSmartCard):
    """A card that records every call and echoes APDUs back."""

    def __init__(self, atrs=None):
        self.atrs = list(atrs) if atrs else [DEFAULT_ATR]
        self.atr_calls = 0
        self.apdus = []
        self.events = []

    def produce_atr(self) -> bytes:
        atr = self.atrs[min(self.atr_calls, len(self.atrs) - 1)]
        self.atr_calls += 1
        self.events.append("atr")
        return atr

    def handle_apdu(self, request: bytes) -> bytes:
        self.apdus.append(request)
        self.events.append("apdu")
        return request

    def power_on(self) -> None:
        self.events.append("power_on")

    def power_off(self) -> None:
        self.events.append("power_off")

    def reset(self) -> None:
        self.events.append("reset")


class FakeDaemon:
    """The vpcd end of a socketpair."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.sock.settimeout(5)

    def send_raw(self, data: bytes) -> None:
        self.sock.sendall(data)

    def send_frame(self, payload: bytes) -> None:
        self.sock.sendall(struct.pack('>H', len(payload)) + payload)

    def recv_raw(self, num_bytes: int) -> bytes:
        data = b''
        while len(data) < num_bytes:
            chunk = self.sock.recv(num_bytes - len(data))
            if not chunk:
                break
            data += chunk
        return data

    def recv_frame(self) -> bytes:
        (length,) = struct.unpack('>H', self.recv_raw(2))
        return self.recv_raw(length)

    def has_pending_data(self) -> bool:
        self.sock.setblocking(False)
        try:
            return bool(self.sock.recv(1, socket.MSG_PEEK))
        except BlockingIOError:
            return False
        finally:
            self.sock.settimeout(5)

    def hang_up(self) -> None:
        """Stop sending; the card side sees end of stream."""
        self.sock.shutdown(socket.SHUT_WR)

    def close(self) -> None:
        self.sock.close()


@pytest.fixture
def socket_pair():
    """A connected (card, daemon) socket pair."""
    card_sock, daemon_sock = socket.socketpair()
    yield card_sock, daemon_sock
    card_sock.close()
    daemon_sock.close()


@pytest.fixture
def connection(socket_pair):
    """A FramedConnection on the card end of the pair."""
    conn = FramedConnection(socket_pair[0])
    yield conn
    conn.close()


@pytest.fixture
def daemon(socket_pair):
    """The fake vpcd end of the pair."""
    return FakeDaemon(socket_pair[1])


@pytest.fixture
def card():
    """A card that echoes APDUs and records calls."""
    return RecordingCard()


@pytest.fixture
def sample_frames():
    """Raw vpcd frames, prefix included."""
    return {
        "power_off": bytes.fromhex("000100"),
        "power_on": bytes.fromhex("000101"),
        "reset": bytes.fromhex("000102"),
        "get_atr": bytes.fromhex("000104"),
        "empty": bytes.fromhex("0000"),
        "unknown_ctrl": bytes.fromhex("000103"),
        # SELECT header with Lc=0
        "select": bytes.fromhex("000500A4040000"),
    }
