"""
BLE Device Scanner

Lists nearby Bluetooth Low Energy devices and flags the ones that look
like Linak desks.
"""

from dataclasses import dataclass
from typing import Optional

from bleak import BleakScanner
from rich.console import Console
from rich.table import Table

# Linak services all live under this vendor base
LINAK_UUID_PREFIX = "99fa"


@dataclass
class ScannedDevice:
    """Information about a discovered BLE device."""

    name: str | None
    address: str
    rssi: int
    manufacturer_id: int | None = None
    service_uuids: list[str] | None = None

    @property
    def is_desk(self) -> bool:
        """Check if this device appears to be a Linak desk."""
        if self.name and "desk" in self.name.lower():
            return True
        if self.service_uuids:
            return any(uuid.lower().startswith(LINAK_UUID_PREFIX) for uuid in self.service_uuids)
        return False


async def scan_devices(
    timeout: float = 10.0,
    filter_desks: bool = False,
    adapter: Optional[str] = None,
) -> list[ScannedDevice]:
    """
    Scan for BLE devices.

    Args:
        timeout: Scan duration in seconds
        filter_desks: If True, only return devices that appear to be desks
        adapter: Bluetooth adapter to scan with (Linux only)

    Returns:
        List of discovered devices, sorted by signal strength (strongest first)
    """
    kwargs = {"adapter": adapter} if adapter else {}
    discovered = await BleakScanner.discover(timeout=timeout, return_adv=True, **kwargs)

    devices: list[ScannedDevice] = []
    for address, (device, adv_data) in discovered.items():
        manufacturer_id = None
        if adv_data.manufacturer_data:
            manufacturer_id = list(adv_data.manufacturer_data.keys())[0]

        scanned = ScannedDevice(
            name=device.name,
            address=address,
            rssi=adv_data.rssi,
            manufacturer_id=manufacturer_id,
            service_uuids=adv_data.service_uuids or None,
        )
        if filter_desks and not scanned.is_desk:
            continue
        devices.append(scanned)

    devices.sort(key=lambda d: d.rssi, reverse=True)
    return devices


def devices_table(devices: list[ScannedDevice]) -> Table:
    """Build a table of discovered devices."""
    table = Table(title="Nearby BLE devices")
    table.add_column("Name")
    table.add_column("Address")
    table.add_column("RSSI", justify="right")
    table.add_column("Notes")

    for device in devices:
        name = device.name or "(unknown)"
        if len(name) > 24:
            name = name[:21] + "..."

        notes = []
        if device.is_desk:
            notes.append("[bold green]DESK[/]")
        if device.manufacturer_id:
            notes.append(f"MFG:0x{device.manufacturer_id:04X}")

        table.add_row(name, device.address, f"{device.rssi} dBm", ", ".join(notes))
    return table


def print_devices(devices: list[ScannedDevice], console: Optional[Console] = None) -> None:
    """Print a formatted table of discovered devices."""
    console = console or Console()
    if not devices:
        console.print("No devices found.")
        return
    console.print(devices_table(devices))
