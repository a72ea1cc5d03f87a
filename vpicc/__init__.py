"""
vpicc - Virtual Smart Card for vpcd

Presents a virtual smart card to the vsmartcard vpcd daemon. The
application supplies the card behaviour by subclassing VSmartCard;
this package handles the vpcd wire protocol and the card power state.

Example:
    from vpicc import DummySmartCard, Session, VPCDConfig, connect

    session = Session(connect(VPCDConfig()), DummySmartCard())
    session.run()
"""

__version__ = "0.1.0"

from .errors import (
    VPICCError,
    VPCDConnectionError,
    ConnectionClosed,
    FrameTruncated,
    ProtocolError,
    FrameTooLarge,
    StateError,
)

from .framing import (
    FramedConnection,
    encode_frame,
    decode_frame,
)

from .codec import (
    VPCDControl,
    Command,
    PowerOff,
    PowerOn,
    Reset,
    GetAtr,
    Apdu,
    Response,
    ResponseKind,
    decode_command,
    encode_command,
    encode_response,
)

from .card import (
    VSmartCard,
    DummySmartCard,
    DEFAULT_ATR,
)

from .state import (
    CardState,
    CardStateMachine,
)

from .config import (
    VPCDConfig,
    ProtocolErrorPolicy,
    DEFAULT_HOST,
    DEFAULT_PORT,
)

from .session import (
    Session,
    SessionState,
)

from .transport import connect

from .main import run_card

__all__ = [
    # Version
    "__version__",

    # Errors
    "VPICCError",
    "VPCDConnectionError",
    "ConnectionClosed",
    "FrameTruncated",
    "ProtocolError",
    "FrameTooLarge",
    "StateError",

    # Framing
    "FramedConnection",
    "encode_frame",
    "decode_frame",

    # Codec
    "VPCDControl",
    "Command",
    "PowerOff",
    "PowerOn",
    "Reset",
    "GetAtr",
    "Apdu",
    "Response",
    "ResponseKind",
    "decode_command",
    "encode_command",
    "encode_response",

    # Card
    "VSmartCard",
    "DummySmartCard",
    "DEFAULT_ATR",

    # State
    "CardState",
    "CardStateMachine",

    # Configuration
    "VPCDConfig",
    "ProtocolErrorPolicy",
    "DEFAULT_HOST",
    "DEFAULT_PORT",

    # Session
    "Session",
    "SessionState",

    # Transport
    "connect",

    # Main
    "run_card",
]
