"""
vpcd Transport

Opens the TCP connection to vpcd. Sessions only need a connected
stream, so anything else that yields one (a Unix socket, a
socketpair in tests) can be used instead.
"""

import logging
import socket

from .config import VPCDConfig
from .errors import VPCDConnectionError
from .framing import FramedConnection


logger = logging.getLogger(__name__)


def connect(config: VPCDConfig) -> FramedConnection:
    """
    Establish connection to vpcd.

    The socket is left in blocking mode without a timeout.

    Args:
        config: Where vpcd is listening

    Returns:
        A framed connection ready for a Session

    Raises:
        VPCDConnectionError: If vpcd cannot be reached
    """
    logger.info(f"Connecting to vpcd at {config.host}:{config.port}")
    try:
        sock = socket.create_connection(config.address)
    except OSError as e:
        logger.error(f"Failed to connect to vpcd: {e}")
        raise VPCDConnectionError(
            f"Failed to connect to vpcd at {config.host}:{config.port}: {e}"
        ) from e
    sock.settimeout(None)
    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    logger.info(f"Connected to vpcd at {config.host}:{config.port}")
    return FramedConnection(sock)
