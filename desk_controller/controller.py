"""
IKEA Idåsen / Linak Standing Desk Controller

Drives the desk to a target height with a position-feedback loop: every
iteration reads the height, estimates the current speed from the previous
sample, and either keeps the motor running, brakes, or stops.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from desk_controller.codec import (
    MotorCommand,
    decode_height,
    encode_command,
    in_range,
    to_centimeters,
)
from desk_controller.config import DeskSettings
from desk_controller.discovery import (
    DEFAULT_ATTEMPTS,
    DEFAULT_LOOP_INTERVAL,
    DEFAULT_POLL_INTERVAL,
    DeviceAddress,
    Matcher,
    NameMatcher,
    find_device,
)
from desk_controller.exceptions import (
    CannotFindDevice,
    CannotReadPosition,
    CannotWriteCommand,
    ConnectionFailed,
    MacAddrParseFailed,
    MoveTimedOut,
    PositionNotInRange,
)
from desk_controller.resolver import resolve
from desk_controller.transport import (
    Attribute,
    BleakTransport,
    DeviceHandle,
    Transport,
    TransportError,
)

logger = logging.getLogger(__name__)

# Within 1mm the desk is considered arrived
STOP_TOLERANCE = 10
# Never brake later than 5mm before the target
MIN_BRAKE_DISTANCE = 50


class ProgressSink(Protocol):
    """Receives movement progress for display."""

    def advance(self, distance: int) -> None: ...

    def update(self, message: str) -> None: ...


class DeskController:
    """Controller for a connected IKEA Idåsen / Linak standing desk."""

    def __init__(
        self,
        handle: DeviceHandle,
        control: Attribute,
        position: Attribute,
        poll_interval: float = DEFAULT_LOOP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._handle = handle
        self._control = control
        self._position = position
        try:
            self.address = DeviceAddress.parse(handle.address)
        except MacAddrParseFailed:
            self.address = DeviceAddress(handle.address)
        self.poll_interval = poll_interval
        self.notified_height: Optional[int] = None
        self._clock = clock
        self._sleep = sleep

    async def __aenter__(self) -> "DeskController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def disconnect(self):
        """Release the connection to the desk."""
        await self._handle.disconnect()
        logger.info("Disconnected from %s", self.address)

    def on_position_notification(self, data: bytes):
        """Record a height pushed by the desk."""
        if len(data) < 2:
            logger.debug("Ignoring short position notification: %r", data)
            return
        self.notified_height = decode_height(data)

    async def _write(self, cmd: MotorCommand):
        try:
            await self._handle.write(self._control, encode_command(cmd))
        except TransportError as e:
            raise CannotWriteCommand(f"{cmd.name} not sent: {e}") from e

    async def _safe_write(self, cmd: MotorCommand):
        """Write a command, tolerating a dropped write."""
        try:
            await self._write(cmd)
        except CannotWriteCommand as e:
            logger.debug("Ignoring failed motor write: %s", e)

    async def raise_(self):
        """Start (or keep) moving up."""
        await self._write(MotorCommand.RAISE)

    async def lower(self):
        """Start (or keep) moving down."""
        await self._write(MotorCommand.LOWER)

    async def halt(self):
        """Stop desk movement. Safe to send when already stopped."""
        await self._write(MotorCommand.HALT)

    async def query_height(self) -> int:
        """
        Read the current height in tenth-millimeters.

        Raises:
            CannotReadPosition: If the read fails for any reason
        """
        try:
            data = await self._handle.read(self._position)
        except TransportError as e:
            raise CannotReadPosition(str(e)) from e
        return decode_height(data)

    async def move_to(
        self,
        target: int,
        progress: Optional[ProgressSink] = None,
        timeout: Optional[float] = None,
    ) -> int:
        """
        Move the desk to `target` tenth-millimeters.

        Direction is re-evaluated on every sample so an overshoot gets
        corrected. The desk is braked once it would reach the target within
        roughly half a second at its measured speed. Dropped motor writes are
        ignored; a failed height read aborts the move.

        Args:
            target: Target height in tenth-millimeters
            progress: Optional sink for display updates
            timeout: Give up after this many seconds (None waits forever)

        Returns:
            The last sampled height

        Raises:
            PositionNotInRange: If target is outside the desk's range
            CannotReadPosition: If a height read fails
            MoveTimedOut: If timeout elapses before arrival
        """
        if not in_range(target):
            raise PositionNotInRange(target)

        last_height = await self.query_height()
        last_time = self._clock()
        if last_height == target:
            logger.debug("Already at %d", target)
            return last_height

        started = last_time
        logger.info("Moving %d -> %d", last_height, target)

        while True:
            current = await self.query_height()
            now = self._clock()

            direction = MotorCommand.RAISE if target > current else MotorCommand.LOWER
            remaining = abs(target - current)
            covered = abs(last_height - current)
            elapsed = now - last_time
            speed = int(covered / elapsed) if elapsed > 0 else 0

            if progress is not None:
                progress.advance(covered)
                progress.update(f"{to_centimeters(current):.1f}cm")

            if remaining <= STOP_TOLERANCE:
                await self._safe_write(MotorCommand.HALT)
                logger.info("Arrived at %d (target %d)", current, target)
                return current

            if timeout is not None and now - started >= timeout:
                await self._safe_write(MotorCommand.HALT)
                raise MoveTimedOut(f"Stopped at {current} after {timeout}s, target was {target}")

            await self._safe_write(direction)
            # Brake when the target is less than ~0.5s away; from a standstill
            # this turns the command above into a short nudge
            if remaining < max(speed / 2, MIN_BRAKE_DISTANCE):
                await self._safe_write(MotorCommand.HALT)

            last_height, last_time = current, now
            await self._sleep(self.poll_interval)


async def connect_desk(
    transport: Transport,
    matcher: Optional[Matcher] = None,
    max_attempts: int = DEFAULT_ATTEMPTS,
    discovery_interval: float = DEFAULT_POLL_INTERVAL,
    subscribe: bool = True,
    poll_interval: float = DEFAULT_LOOP_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DeskController:
    """
    Find, connect and resolve a desk, returning a ready controller.

    Either a fully usable controller comes back or an error is raised; a
    connection that fails characteristic resolution is closed first.

    Raises:
        ScanFailed: If scanning cannot start
        CannotFindDevice: If no matching desk shows up
        ConnectionFailed: If connecting fails
        CharacteristicsDiscoveryFailed: If enumeration fails
        CharacteristicsNotFound: If the desk lacks a required characteristic
        CannotSubscribePosition: If notifications cannot be enabled
    """
    matcher = matcher or NameMatcher()
    peripheral = await find_device(transport, matcher, max_attempts, discovery_interval, sleep)
    if peripheral is None:
        raise CannotFindDevice(f"No desk matching {matcher}. Is it powered on?")

    try:
        handle = await transport.connect(peripheral)
    except TransportError as e:
        raise ConnectionFailed(str(e)) from e
    logger.info("Connected to %s (%s)", peripheral.name, handle.address)

    controller: Optional[DeskController] = None

    def forward(data: bytes):
        if controller is not None:
            controller.on_position_notification(data)

    try:
        control, position = await resolve(handle, subscribe=subscribe, on_position=forward)
    except BaseException:
        await handle.disconnect()
        raise

    controller = DeskController(handle, control, position, poll_interval, clock, sleep)
    return controller


async def connect_with_settings(
    settings: DeskSettings, transport: Optional[Transport] = None
) -> DeskController:
    """Connect using DeskSettings, over bleak unless a transport is given."""
    transport = transport or BleakTransport(adapter=settings.adapter)
    return await connect_desk(
        transport,
        settings.matcher(),
        max_attempts=settings.discovery_attempts,
        discovery_interval=settings.discovery_interval,
        subscribe=settings.subscribe,
        poll_interval=settings.poll_interval,
    )
