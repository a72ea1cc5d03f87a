"""
vpcd Session Module

Drives one connection to vpcd from the first frame until the stream
closes: read a frame, decode it, apply it to the card state machine
and send back any response.

The loop has no stop command. It ends only when the connection is
closed by either side.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from .card import VSmartCard
from .codec import decode_command, encode_response
from .config import ProtocolErrorPolicy
from .errors import ConnectionClosed, ProtocolError, VPCDConnectionError
from .framing import FramedConnection
from .state import CardStateMachine


logger = logging.getLogger(__name__)


ProtocolErrorHandler = Callable[[ProtocolError], bool]


class SessionState(Enum):
    """Lifecycle of a session."""
    RUNNING = "running"
    TERMINATED = "terminated"


class Session:
    """
    One virtual card attached to one vpcd connection.

    Commands are processed strictly one at a time. Sessions share no
    state with each other, so several may run in separate threads.

    Attributes:
        connection: The framed connection to vpcd
        machine: The card power state machine
        state: Whether the session is still running
        termination_reason: The exception that ended the session, if any
        frames_received: Number of frames read so far
        protocol_errors: Number of frames that failed to decode
    """

    def __init__(
        self,
        connection: FramedConnection,
        card: VSmartCard,
        on_protocol_error: Optional[ProtocolErrorHandler] = None,
        policy: ProtocolErrorPolicy = ProtocolErrorPolicy.DROP,
    ):
        """
        Initialize the session.

        Args:
            connection: A framed connection to vpcd
            card: The card implementation for this session
            on_protocol_error: Called with each ProtocolError; returning
                True keeps the session going, False terminates it.
                Overrides policy when set.
            policy: Used when no on_protocol_error handler is given
        """
        self.connection = connection
        self.machine: Optional[CardStateMachine] = CardStateMachine(card)
        self.state = SessionState.RUNNING
        self.termination_reason: Optional[BaseException] = None
        self.frames_received = 0
        self.protocol_errors = 0
        self._on_protocol_error = on_protocol_error
        self._policy = policy
        self._terminate_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self.state is SessionState.RUNNING

    def _should_continue(self, error: ProtocolError) -> bool:
        if self._on_protocol_error is not None:
            return bool(self._on_protocol_error(error))
        return self._policy is ProtocolErrorPolicy.DROP

    def process_one_frame(self) -> None:
        """
        Process a single frame from vpcd.

        Blocks until a frame is received, processes it, and sends any
        response.

        Raises:
            VPCDConnectionError: If the connection is lost
            ProtocolError: If the frame is malformed and the error
                handler or policy says to stop
        """
        machine = self.machine
        if not self.running or machine is None:
            raise ConnectionClosed("Session closed")

        payload = self.connection.read_frame()
        self.frames_received += 1

        try:
            command = decode_command(payload)
        except ProtocolError as e:
            self.protocol_errors += 1
            logger.warning(f"Protocol error: {e}")
            if self._should_continue(e):
                logger.info("Dropping malformed frame")
                return
            raise

        logger.debug(f"Command: {command}")
        response = machine.apply(command)
        if response is not None:
            self.connection.write_frame(encode_response(response))

    def run(self) -> None:
        """
        Main loop - process frames until the connection closes.

        Returns normally when vpcd closes the connection between frames
        or when close() is called, even in the middle of a frame.

        Raises:
            ConnectionError: If the connection fails or closes mid-frame
            ProtocolError: If a malformed frame terminates the session
            FrameTooLarge: If the card produced a response over 65535
                bytes. This is fatal and is not reported to the protocol
                error handler, which only sees frames from vpcd.
        """
        logger.info("Starting vpcd session")
        try:
            while True:
                self.process_one_frame()
        except ConnectionClosed as e:
            logger.info(f"vpcd session ended: {e}")
            self._terminate(e)
        except VPCDConnectionError as e:
            if not self.running:
                logger.info(f"vpcd session closed: {e}")
                return
            logger.error(f"Connection error: {e}")
            self._terminate(e)
            raise
        except BaseException as e:
            self._terminate(e)
            raise

    def _terminate(self, reason: Optional[BaseException]) -> None:
        # The first caller wins; its reason is the one recorded.
        with self._terminate_lock:
            if not self.running:
                return
            self.state = SessionState.TERMINATED
            self.termination_reason = reason
            self.machine = None
        self.connection.close()

    def close(self) -> None:
        """
        End the session from the application side.

        Safe to call from another thread; a pending read in run() wakes
        up and the loop returns. If run() already ended the session, its
        termination_reason is kept.
        """
        self._terminate(None)
