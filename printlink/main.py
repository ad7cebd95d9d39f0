"""Command line entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from printlink import __version__
from printlink.connectors.tcp import TcpPrinterConnector
from printlink.core.config import ConfigManager
from printlink.types.printers import ConnectionStatus


logger = logging.getLogger(__name__)


def _setup_logging(log_level: str) -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from libraries
    logging.getLogger("icmplib").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


async def run_discover(connector: TcpPrinterConnector, args: argparse.Namespace) -> int:
    """Print printers as the scan finds them."""
    found = 0
    async for printer in connector.discover(args.address, args.port, args.timeout):
        print(printer.name)
        found += 1

    print(f"Found {found} printer(s)", file=sys.stderr)
    return 0


async def run_print(connector: TcpPrinterConnector, args: argparse.Namespace) -> int:
    """Send a file's raw bytes to a printer."""
    payload = Path(args.file).read_bytes()

    if not await connector.connect(args.address, args.port, args.timeout):
        print(f"Connection failed: {connector.last_error}", file=sys.stderr)
        return 1

    try:
        if not await connector.send(payload):
            print(f"Send failed: {connector.last_error}", file=sys.stderr)
            return 1
        print(f"Sent {len(payload)} bytes to {connector.endpoint}")
    finally:
        await connector.disconnect(args.delay_ms)

    return 0


async def run_watch(connector: TcpPrinterConnector, args: argparse.Namespace) -> int:
    """Hold a connection open and report status changes until it drops."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler():
        print("\nShutdown signal received...", file=sys.stderr)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    subscription = connector.status_stream.subscribe()

    if not await connector.connect(args.address, args.port, args.timeout):
        subscription.close()
        print(f"Connection failed: {connector.last_error}", file=sys.stderr)
        return 1

    async def follow_status():
        async for status in subscription:
            print(f"status: {status.value}")
            if status == ConnectionStatus.NONE:
                stop_event.set()
                return

    follower = asyncio.create_task(follow_status())
    try:
        await stop_event.wait()
    finally:
        await connector.disconnect()
        subscription.close()
        await follower

    return 0 if connector.last_error is None else 2


async def async_main(args: argparse.Namespace) -> int:
    """Async main function."""
    config_manager = ConfigManager(args.config)
    config_manager.load()

    _setup_logging(args.log_level or config_manager.get_log_level())
    logger.debug(f"Running command: {args.command}")

    async with TcpPrinterConnector(config_manager.get_connector_config()) as connector:
        return await args.handler(connector, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="printlink - network printer discovery and connection")
    parser.add_argument(
        "--config",
        default="config",
        help="Configuration directory (default: config)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: from config, else INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"printlink {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    discover_parser = subparsers.add_parser("discover", help="Scan the local subnet for printers")
    discover_parser.add_argument("--address", help="Any address in the subnet to scan (default: this host)")
    discover_parser.add_argument("--port", type=int, help="TCP port to probe (default: 9100)")
    discover_parser.add_argument("--timeout", type=float, help="Per-host timeout in seconds")
    discover_parser.set_defaults(handler=run_discover)

    print_parser = subparsers.add_parser("print", help="Send a file's raw bytes to a printer")
    print_parser.add_argument("address", help="Printer IPv4 address")
    print_parser.add_argument("file", help="File with printer-ready bytes")
    print_parser.add_argument("--port", type=int, help="TCP port (default: 9100)")
    print_parser.add_argument("--timeout", type=float, help="Connect timeout in seconds")
    print_parser.add_argument("--delay-ms", type=int, help="Wait this long after closing the socket")
    print_parser.set_defaults(handler=run_print)

    watch_parser = subparsers.add_parser("watch", help="Connect and report status changes")
    watch_parser.add_argument("address", help="Printer IPv4 address")
    watch_parser.add_argument("--port", type=int, help="TCP port (default: 9100)")
    watch_parser.add_argument("--timeout", type=float, help="Connect timeout in seconds")
    watch_parser.set_defaults(handler=run_watch)

    return parser


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        exit_code = asyncio.run(async_main(args))
    except KeyboardInterrupt:
        exit_code = 130
    except Exception as e:
        print(f"\nFatal error: {e}", file=sys.stderr)
        logging.error(f"Fatal error: {e}", exc_info=True)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
