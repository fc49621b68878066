"""
BLE transport used by the desk controller.

The controller only talks to the small interface below. BleakTransport is
the real implementation; anything exposing the same methods (an in-memory
desk in the test suite, for instance) can be used instead.
"""

import asyncio
import logging
import warnings
from contextlib import suppress
from typing import Callable, Optional, Protocol

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

# Suppress bleak's internal asyncio warnings (race condition in CoreBluetooth backend)
warnings.filterwarnings("ignore", message=".*invalid state.*")
logging.getLogger("bleak").setLevel(logging.ERROR)

logger = logging.getLogger(__name__)

# Fragments of the errors bleak's backends report when the OS refuses access
_PERMISSION_HINTS = ("notauthorized", "notpermitted", "accessdenied", "permission")


class TransportError(Exception):
    """A BLE operation failed at the transport level."""

    pass


class TransportPermissionError(TransportError):
    """The OS denied this process access to the Bluetooth adapter."""

    pass


class Peripheral(Protocol):
    """An advertising device seen during a scan."""

    name: Optional[str]
    address: str


class Attribute(Protocol):
    """A remote GATT characteristic."""

    uuid: str


class DeviceHandle(Protocol):
    """A connected peripheral."""

    @property
    def address(self) -> str: ...

    async def discover_attributes(self) -> list[Attribute]: ...

    async def read(self, attr: Attribute) -> bytes: ...

    async def write(self, attr: Attribute, data: bytes) -> None: ...

    async def subscribe(self, attr: Attribute, callback: Callable[[bytes], None]) -> None: ...

    async def disconnect(self) -> None: ...


class Transport(Protocol):
    """Scanning and connecting side of the BLE stack."""

    async def start_scan(self) -> None: ...

    async def stop_scan(self) -> None: ...

    def peripherals(self) -> list[Peripheral]: ...

    async def connect(self, peripheral: Peripheral) -> DeviceHandle: ...


def _is_permission_problem(err: Exception) -> bool:
    text = str(err).lower().replace(".", "").replace(" ", "")
    return any(hint in text for hint in _PERMISSION_HINTS)


class BleakDeviceHandle:
    """DeviceHandle backed by a connected BleakClient."""

    def __init__(self, client: BleakClient):
        self._client = client

    @property
    def address(self) -> str:
        return self._client.address

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    async def discover_attributes(self) -> list:
        try:
            return [char for service in self._client.services for char in service.characteristics]
        except BleakError as e:
            raise TransportError(f"Service discovery failed: {e}") from e

    async def read(self, attr) -> bytes:
        try:
            return bytes(await self._client.read_gatt_char(attr))
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"Read of {attr.uuid} failed: {e}") from e

    async def write(self, attr, data: bytes) -> None:
        try:
            await self._client.write_gatt_char(attr, data)
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"Write to {attr.uuid} failed: {e}") from e

    async def subscribe(self, attr, callback: Callable[[bytes], None]) -> None:
        def handler(_sender, data: bytearray):
            callback(bytes(data))

        try:
            await self._client.start_notify(attr, handler)
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"Subscribe to {attr.uuid} failed: {e}") from e

    async def disconnect(self) -> None:
        with suppress(BleakError, asyncio.TimeoutError, OSError):
            await self._client.disconnect()


class BleakTransport:
    """
    Transport built on bleak.

    bleak picks the platform backend (BlueZ, CoreBluetooth, WinRT) itself;
    `adapter` only matters on Linux, where it selects e.g. "hci0".
    """

    def __init__(self, adapter: Optional[str] = None, connect_timeout: float = 30.0):
        self.adapter = adapter
        self.connect_timeout = connect_timeout
        self._scanner: Optional[BleakScanner] = None

    def _backend_kwargs(self) -> dict:
        return {"adapter": self.adapter} if self.adapter else {}

    async def start_scan(self) -> None:
        if self._scanner is not None:
            return
        scanner = BleakScanner(**self._backend_kwargs())
        try:
            await scanner.start()
        except PermissionError as e:
            raise TransportPermissionError(f"Bluetooth access denied: {e}") from e
        except (BleakError, OSError) as e:
            if _is_permission_problem(e):
                raise TransportPermissionError(f"Bluetooth access denied: {e}") from e
            raise TransportError(f"BLE scan failed: {e}") from e
        self._scanner = scanner
        logger.debug("Scan started")

    async def stop_scan(self) -> None:
        if self._scanner is None:
            return
        scanner, self._scanner = self._scanner, None
        with suppress(BleakError):
            await scanner.stop()
        logger.debug("Scan stopped")

    def peripherals(self) -> list:
        if self._scanner is None:
            return []
        return list(self._scanner.discovered_devices)

    async def connect(self, peripheral) -> BleakDeviceHandle:
        client = BleakClient(
            peripheral,
            timeout=self.connect_timeout,
            disconnected_callback=self._on_disconnect,
            **self._backend_kwargs(),
        )
        try:
            await client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"Connection to {peripheral.address} failed: {e}") from e
        return BleakDeviceHandle(client)

    def _on_disconnect(self, client: BleakClient):
        logger.info("Disconnected from %s", client.address)
