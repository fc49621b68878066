"""
CLI interface for desk control.

Provides command-line tools for scanning BLE devices and controlling the desk.
"""

import asyncio
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn

from desk_controller.codec import MAX_HEIGHT, MIN_HEIGHT, to_centimeters
from desk_controller.config import DeskSettings
from desk_controller.controller import DeskController, connect_with_settings
from desk_controller.exceptions import (
    CannotFindDevice,
    ConnectionFailed,
    DeskError,
    PermissionDenied,
)
from desk_controller.scanner import print_devices, scan_devices

console = Console()

# tenth-millimeters per inch
TENTHS_PER_INCH = 254


class RichProgressSink:
    """Shows move_to progress as a rich progress bar."""

    def __init__(self, progress: Progress, total: int):
        self._progress = progress
        self._task = progress.add_task("Moving", total=total)

    def advance(self, distance: int) -> None:
        self._progress.advance(self._task, distance)

    def update(self, message: str) -> None:
        self._progress.update(self._task, description=message)


def format_height(height: int) -> str:
    cm = to_centimeters(height)
    return f'{cm:.1f}cm ({cm / 2.54:.1f}")'


def relative_target(current: int, inches: float) -> int:
    """Height `inches` away from `current`, kept within the desk's range."""
    target = current + round(inches * TENTHS_PER_INCH)
    return min(MAX_HEIGHT, max(MIN_HEIGHT, target))


async def run_scan(settings: DeskSettings):
    """Scan for BLE devices."""
    console.print("🔍 Scanning for BLE devices (10 seconds)...\n")
    devices = await scan_devices(timeout=10.0, adapter=settings.adapter)
    print_devices(devices, console)

    desks = [d for d in devices if d.is_desk]
    if desks:
        console.print(f"\n✅ Found {len(desks)} desk(s):")
        for desk in desks:
            console.print(f"   • {desk.name} ({desk.address})")
    else:
        console.print("\n⚠️  No desks found. Make sure your desk is powered on.")


async def move(desk: DeskController, target: int, timeout: Optional[float]):
    """Move to target with a progress bar."""
    start = await desk.query_height()
    console.print(f"📏 {format_height(start)} → {format_height(target)}")
    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        console=console,
        transient=True,
    ) as progress:
        sink = RichProgressSink(progress, total=abs(target - start))
        final = await desk.move_to(target, sink, timeout=timeout)
    console.print(f"✅ Done: {format_height(final)}")


async def run_control(args: list[str], settings: DeskSettings):
    """Run a desk command."""
    console.print(f"🔍 Searching for {settings.address or settings.name}...")
    desk = await connect_with_settings(settings)
    console.print(f"🔗 Connected to {desk.address}")

    try:
        if not args or args[0] == "height":
            height = await desk.query_height()
            console.print(f"📏 Height: {format_height(height)}")

        elif args[0] in ("up", "down"):
            inches = float(args[1]) if len(args) > 1 else 1.0
            if args[0] == "down":
                inches = -inches
            target = relative_target(await desk.query_height(), inches)
            await move(desk, target, settings.move_timeout)

        elif args[0] == "goto":
            if len(args) < 2:
                console.print("Usage: goto <height_mm>")
            else:
                await move(desk, round(float(args[1]) * 10), settings.move_timeout)

        elif args[0] == "stop":
            await desk.halt()
            console.print("🛑 Stopped")

        else:
            console.print(f"Unknown command: {args[0]}")
            print_control_help()

    except KeyboardInterrupt:
        console.print("\n🛑 Interrupted")
        await desk.halt()
    finally:
        await desk.disconnect()
        console.print("👋 Disconnected")


def print_control_help():
    """Print help for desk control commands."""
    console.print(
        """
Usage: desk-control [-v] [command] [args]

Commands:
  (no command)     Show current height
  height           Show current height
  up [inches]      Move up by inches (default: 1)
  down [inches]    Move down by inches (default: 1)
  goto <mm>        Move to specific height in mm (620-1270)
  stop             Stop the desk

Configuration (environment or .env):
  DESK_NAME, DESK_ADDRESS, DESK_ADAPTER, DESK_DISCOVERY_ATTEMPTS,
  DESK_DISCOVERY_INTERVAL, DESK_POLL_INTERVAL, DESK_MOVE_TIMEOUT,
  DESK_SUBSCRIBE

Examples:
  desk-control                  # Show current height
  desk-control up 3             # Move up 3 inches
  desk-control goto 900         # Move to 900mm
""",
        highlight=False,
    )


def _setup_logging(argv: list[str]) -> list[str]:
    """Enable debug logging for -v/--verbose and strip the flag."""
    verbose = any(arg in ("-v", "--verbose") for arg in argv)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    return [arg for arg in argv if arg not in ("-v", "--verbose")]


def main_scan():
    """Entry point for desk-scan command."""
    _setup_logging(sys.argv[1:])
    asyncio.run(run_scan(DeskSettings.from_env()))


def main_control():
    """Entry point for desk-control command."""
    args = _setup_logging(sys.argv[1:])
    if args and args[0] in ("-h", "--help", "help"):
        print_control_help()
        return

    try:
        settings = DeskSettings.from_env()
        asyncio.run(run_control(args, settings))
    except PermissionDenied as e:
        console.print(f"❌ Bluetooth access denied: {e}")
        sys.exit(1)
    except CannotFindDevice as e:
        console.print(f"❌ {e}")
        sys.exit(1)
    except ConnectionFailed as e:
        console.print(f"❌ Connection failed: {e}")
        sys.exit(1)
    except DeskError as e:
        console.print(f"❌ {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main_control()
