"""
Card Power State Machine

Tracks whether the virtual card is powered and decides which commands
reach the card.

Transitions:
- PowerOn, any state -> ON, new ATR produced and cached
- PowerOff, any state -> OFF, cached ATR dropped
- Reset while ON -> ON, new ATR produced; while OFF it does nothing
- GetAtr / Apdu while OFF -> empty response, card not called
"""

import logging
from enum import Enum
from typing import Optional

from .card import VSmartCard
from .codec import Apdu, Command, GetAtr, PowerOff, PowerOn, Reset, Response
from .errors import StateError


logger = logging.getLogger(__name__)


class CardState(Enum):
    """Power state of the virtual card."""
    OFF = "off"
    ON = "on"


class CardStateMachine:
    """
    Power state of one virtual card.

    Owned by exactly one session and never shared.

    Attributes:
        card: The card implementation commands are dispatched to
        state_errors: Number of commands rejected for the power state
    """

    def __init__(self, card: VSmartCard):
        self.card = card
        self._state = CardState.OFF
        self._atr: Optional[bytes] = None
        self.state_errors = 0

    @property
    def state(self) -> CardState:
        return self._state

    @property
    def powered(self) -> bool:
        return self._state is CardState.ON

    @property
    def atr(self) -> Optional[bytes]:
        """The ATR of the current power cycle, None while off."""
        return self._atr

    def apply(self, command: Command) -> Optional[Response]:
        """
        Apply a command to the card.

        Args:
            command: A decoded command

        Returns:
            The response to send, or None if vpcd expects no reply
        """
        if isinstance(command, PowerOn):
            self._power_on()
        elif isinstance(command, PowerOff):
            self._power_off()
        elif isinstance(command, Reset):
            self._reset()
        elif isinstance(command, (GetAtr, Apdu)):
            try:
                self._require_powered(type(command).__name__)
            except StateError as e:
                self.state_errors += 1
                logger.warning(f"Rejected command: {e}")
                return Response.ack()
            if isinstance(command, GetAtr):
                return Response.atr(self._atr or b'')
            return Response.apdu(self.card.handle_apdu(command.data))
        else:
            raise TypeError(f"Not a card command: {command!r}")
        return None

    def _power_on(self) -> None:
        self.card.power_on()
        self._atr = bytes(self.card.produce_atr())
        self._state = CardState.ON
        logger.info(f"Card powered on, ATR: {self._atr.hex()}")

    def _power_off(self) -> None:
        self._state = CardState.OFF
        self._atr = None
        self.card.power_off()
        logger.info("Card powered off")

    def _reset(self) -> None:
        if not self.powered:
            logger.info("Ignoring reset of unpowered card")
            return
        self.card.reset()
        self._atr = bytes(self.card.produce_atr())
        logger.info(f"Card reset, ATR: {self._atr.hex()}")

    def _require_powered(self, operation: str) -> None:
        if not self.powered:
            raise StateError(f"{operation} while card is powered off")
