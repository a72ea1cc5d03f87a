"""
Main Entry Point for vpicc

Runs a dummy virtual smart card against a vpcd daemon. Every APDU is
logged and answered with 90 00.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .card import DEFAULT_ATR, DummySmartCard, VSmartCard
from .config import DEFAULT_HOST, DEFAULT_PORT, ProtocolErrorPolicy, VPCDConfig
from .session import Session
from .transport import connect


logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def run_card(config: VPCDConfig, card: VSmartCard) -> None:
    """
    Run a virtual card until vpcd closes the connection.

    Args:
        config: vpcd address and session policy
        card: The card implementation to present

    Raises:
        ConnectionError: If vpcd cannot be reached or the connection fails
    """
    connection = connect(config)
    session = Session(connection, card, policy=config.protocol_error_policy)
    try:
        session.run()
    finally:
        session.close()


def _parse_atr(value: str) -> bytes:
    try:
        atr = bytes.fromhex(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}")
    if not atr:
        raise argparse.ArgumentTypeError("ATR must not be empty")
    return atr


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='vpicc',
        description='vpicc - Virtual smart card for vpcd',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                    # Connect to vpcd on localhost:35963
  %(prog)s --port 35964       # Use different port
  %(prog)s --atr 3B8001       # Present a custom ATR
  %(prog)s -vv                # Debug output, including every frame

Prerequisites:
  1. Install vpcd: sudo apt install vsmartcard-vpcd
  2. Restart pcscd: sudo systemctl restart pcscd
  3. Run this virtual card
        """
    )

    parser.add_argument(
        '--host',
        default=DEFAULT_HOST,
        help=f'vpcd host address (default: {DEFAULT_HOST})'
    )

    parser.add_argument(
        '--port', '-p',
        type=int,
        default=DEFAULT_PORT,
        help=f'vpcd port number (default: {DEFAULT_PORT})'
    )

    parser.add_argument(
        '--atr',
        type=_parse_atr,
        default=DEFAULT_ATR,
        help=f'ATR as hex string (default: {DEFAULT_ATR.hex().upper()})'
    )

    parser.add_argument(
        '--on-protocol-error',
        choices=[policy.value for policy in ProtocolErrorPolicy],
        default=ProtocolErrorPolicy.DROP.value,
        help='What to do with undecodable frames (default: drop)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='count',
        default=0,
        help='Increase verbosity (use -vv for debug)'
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with argument parsing."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set log level based on verbosity
    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)

    try:
        config = VPCDConfig(
            host=args.host,
            port=args.port,
            protocol_error_policy=ProtocolErrorPolicy(args.on_protocol_error),
        )
    except ValueError as e:
        parser.error(str(e))

    logger.info(f"Starting virtual card, connecting to vpcd at {config.host}:{config.port}")

    try:
        run_card(config, DummySmartCard(atr=args.atr))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except ConnectionError as e:
        logger.error(f"Connection error: {e}")
        logger.info("Make sure vpcd is running. Install with: sudo apt install vsmartcard-vpcd")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
