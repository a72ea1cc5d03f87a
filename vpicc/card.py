"""
Virtual Smart Card Interface

The card behaviour is supplied by the embedding application by
subclassing VSmartCard. One card instance serves one session.
"""

import logging
from abc import ABC, abstractmethod


logger = logging.getLogger(__name__)

DEFAULT_ATR = bytes.fromhex("3B 95 13 81 01 80 73 FF 01 00 0B")

SW_SUCCESS = bytes([0x90, 0x00])


class VSmartCard(ABC):
    """
    A virtual smartcard implementation.

    Subclasses must implement handle_apdu(). The power hooks are optional
    and are called by the state machine before the ATR is produced.
    All methods are called synchronously from the session thread and
    may block.
    """

    def produce_atr(self) -> bytes:
        """
        Produce the ATR for a new power cycle.

        Called once after every power on and every reset of a powered
        card.

        Returns:
            The ATR bytes, defaulting to DEFAULT_ATR
        """
        return DEFAULT_ATR

    @abstractmethod
    def handle_apdu(self, request: bytes) -> bytes:
        """
        Execute an APDU command.

        Args:
            request: The raw command APDU

        Returns:
            The response APDU (data + status word)
        """

    def power_on(self) -> None:
        """Handle card power on."""

    def power_off(self) -> None:
        """Handle card power off."""

    def reset(self) -> None:
        """Handle card reset."""


class DummySmartCard(VSmartCard):
    """
    A card that logs every event and answers every APDU with 90 00.
    """

    def __init__(self, atr: bytes = DEFAULT_ATR):
        self.atr = bytes(atr)

    def produce_atr(self) -> bytes:
        return self.atr

    def handle_apdu(self, request: bytes) -> bytes:
        logger.info(f"Received APDU command: {request.hex()}")
        return SW_SUCCESS

    def power_on(self) -> None:
        logger.info("Power On")

    def power_off(self) -> None:
        logger.info("Power Off")

    def reset(self) -> None:
        logger.info("Reset")
