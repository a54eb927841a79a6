"""
CLI interface for desk control.

With an address (argument or DESK_ADDRESS), prompts for a target height and
moves the desk there. Without one, lists the devices in range.
"""

import asyncio
import logging
import os
import sys

from rich.console import Console
from rich.prompt import Prompt

from desk_mover.config import DeskSettings, load_env_file
from desk_mover.errors import InvalidTargetError
from desk_mover.orchestrator import SessionOrchestrator
from desk_mover.protocol import MAX_TARGET_MM, MIN_TARGET_MM, parse_target_height

console = Console(highlight=False)


def report(msg: str) -> None:
    """Print one progress line as-is."""
    console.print(msg, markup=False)


def setup_logging() -> None:
    level = os.getenv("DESK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def print_help():
    """Print usage."""
    print(
        f"""
Usage: desk-mover [address]

  address    Bluetooth address of the desk (default: $DESK_ADDRESS)

With an address, asks for a target height ({MIN_TARGET_MM} - {MAX_TARGET_MM} mm)
and moves the desk there. Without one, lists nearby devices.

Environment (also read from .env):
  DESK_ADDRESS        Desk address
  DESK_ADAPTER        Bluetooth adapter, e.g. hci0
  DESK_SCAN_ATTEMPTS  Polls before giving up on the desk (default: 10)
  DESK_SCAN_DELAY     Seconds between polls (default: 0.2)
  DESK_SETTLE_DELAY   Seconds between movement pulses (default: 0.05)
  DESK_LIST_TIMEOUT   Seconds to scan when listing devices (default: 2)
  DESK_MAX_PULSES     Stop after this many pulses (default: no limit)
  DESK_LOG_LEVEL      Logging level (default: WARNING)
"""
    )


def ask_target() -> int:
    """
    Prompt for the target height.

    Raises:
        InvalidTargetError: If the answer is not a height in range
    """
    try:
        answer = Prompt.ask(f"Move Desk Height ({MIN_TARGET_MM} - {MAX_TARGET_MM} mm)", console=console)
    except EOFError as e:
        raise InvalidTargetError("No height given") from e
    return parse_target_height(answer)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the desk-mover command."""
    args = sys.argv[1:] if argv is None else argv
    if args and args[0] in ("-h", "--help", "help"):
        print_help()
        return 0

    load_env_file()
    setup_logging()
    try:
        settings = DeskSettings.from_env(dotenv=False)
    except ValueError as e:
        report(f"Invalid configuration: {e}")
        return 1

    orchestrator = SessionOrchestrator(settings, report=report)

    address = args[0].strip() if args else settings.address
    if not address:
        report("No mac address provided, scanning...")
        asyncio.run(orchestrator.list_devices())
        return 0

    report(f"Target device [{address}]")
    try:
        target = ask_target()
    except InvalidTargetError:
        report(f"Expected value between {MIN_TARGET_MM} and {MAX_TARGET_MM}!")
        return 1

    try:
        outcome = asyncio.run(orchestrator.run(address, target))
    except KeyboardInterrupt:
        report("Interrupted")
        return 1
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())
