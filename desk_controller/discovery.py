"""
Desk discovery.

Advertisements show up asynchronously, so a single look at the scanner's
device list is unreliable. find_device polls it a bounded number of times.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from desk_controller.exceptions import MacAddrParseFailed, PermissionDenied, ScanFailed
from desk_controller.transport import Peripheral, Transport, TransportError, TransportPermissionError

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Desk"
DEFAULT_ATTEMPTS = 240
DEFAULT_POLL_INTERVAL = 0.05
# Seconds between height samples while moving
DEFAULT_LOOP_INTERVAL = 0.1

_MAC_RE = re.compile(r"^[0-9A-F]{2}([:-])[0-9A-F]{2}(\1[0-9A-F]{2}){4}$")
# CoreBluetooth hides MACs and reports a per-host UUID instead
_UUID_RE = re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}$")


@dataclass(frozen=True, order=True)
class DeviceAddress:
    """Normalized hardware address of a desk."""

    value: str

    @classmethod
    def parse(cls, text: str) -> "DeviceAddress":
        """
        Parse a MAC or CoreBluetooth UUID address.

        Raises:
            MacAddrParseFailed: If the text is neither
        """
        candidate = text.strip().upper()
        if _MAC_RE.match(candidate):
            return cls(candidate.replace("-", ":"))
        if _UUID_RE.match(candidate):
            return cls(candidate)
        raise MacAddrParseFailed(text)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NameMatcher:
    """Matches peripherals whose advertised name contains a substring."""

    substring: str = DEFAULT_NAME

    def matches(self, peripheral: Peripheral) -> bool:
        return peripheral.name is not None and self.substring in peripheral.name


@dataclass(frozen=True)
class AddressMatcher:
    """Matches exactly one peripheral by hardware address."""

    address: DeviceAddress

    def matches(self, peripheral: Peripheral) -> bool:
        try:
            return DeviceAddress.parse(peripheral.address) == self.address
        except MacAddrParseFailed:
            return False


Matcher = Union[NameMatcher, AddressMatcher]


async def find_device(
    transport: Transport,
    matcher: Matcher,
    max_attempts: int = DEFAULT_ATTEMPTS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[Peripheral]:
    """
    Search the visible peripherals for one accepted by `matcher`.

    Args:
        transport: Transport to scan with
        matcher: NameMatcher or AddressMatcher
        max_attempts: How many times the device list is checked
        poll_interval: Seconds to wait after each unsuccessful check
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        The first matching peripheral, or None once attempts run out

    Raises:
        PermissionDenied: If the OS refuses Bluetooth access
        ScanFailed: If scanning cannot be started
    """
    try:
        await transport.start_scan()
    except TransportPermissionError as e:
        raise PermissionDenied(str(e)) from e
    except TransportError as e:
        raise ScanFailed(str(e)) from e

    try:
        for attempt in range(max_attempts):
            for peripheral in transport.peripherals():
                if matcher.matches(peripheral):
                    logger.info(
                        "Found %s (%s) after %d attempt(s)",
                        peripheral.name,
                        peripheral.address,
                        attempt + 1,
                    )
                    return peripheral
            await sleep(poll_interval)
    finally:
        await transport.stop_scan()

    logger.warning("No device matching %s after %d attempts", matcher, max_attempts)
    return None
