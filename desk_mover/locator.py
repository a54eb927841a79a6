"""
BLE Device Locator

Finds the desk by address on a running scan, and lists nearby devices for
the scan-only mode.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from desk_mover.errors import DeviceNotFoundError, ScanStartError

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_RETRY_DELAY = 0.2


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
        # Check for Linak service UUID
        if self.service_uuids:
            return any("99fa" in uuid.lower() for uuid in self.service_uuids)
        return False

    def __str__(self) -> str:
        return f"{self.address} {self.name or '(unknown)'} ({self.rssi} dBm)"


async def locate(
    scanner: BleakScanner,
    address: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> BLEDevice:
    """
    Start scanning and wait for the device with the given address.

    The scanner is left running; whoever owns it stops it.

    Args:
        scanner: Scanner to start and poll
        address: Exact address of the desk
        max_attempts: Number of polls of the discovered devices
        retry_delay: Seconds to wait between polls

    Returns:
        The matching device

    Raises:
        ScanStartError: If the scan cannot be started
        DeviceNotFoundError: If the device was not seen after max_attempts polls
    """
    try:
        await scanner.start()
    except (BleakError, OSError) as e:
        raise ScanStartError(f"BLE scan failed: {e}") from e

    for attempt in range(1, max_attempts + 1):
        for device in scanner.discovered_devices:
            if device.address == address:
                _LOGGER.debug("Found %s on attempt %d", address, attempt)
                return device

        _LOGGER.debug("%s not visible yet (attempt %d/%d)", address, attempt, max_attempts)
        if attempt < max_attempts:
            await asyncio.sleep(retry_delay)

    raise DeviceNotFoundError(address, max_attempts)


async def scan_devices(
    timeout: float = 2.0,
    filter_desks: bool = False,
    adapter: str | None = None,
) -> list[ScannedDevice]:
    """
    Scan for BLE devices.

    Args:
        timeout: Scan duration in seconds
        filter_desks: If True, only return devices that appear to be desks
        adapter: Bluetooth adapter to scan with (e.g. "hci0"), or the default

    Returns:
        List of discovered devices, sorted by signal strength (strongest first)

    Raises:
        ScanStartError: If the scan cannot be run
    """
    devices: list[ScannedDevice] = []
    kwargs = {"adapter": adapter} if adapter else {}

    try:
        discovered = await BleakScanner.discover(timeout=timeout, return_adv=True, **kwargs)
    except (BleakError, OSError) as e:
        raise ScanStartError(f"BLE scan failed: {e}") from e

    for address, (device, adv_data) in discovered.items():
        # Extract manufacturer ID if present
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


def print_devices(devices: list[ScannedDevice], report: Callable[[str], None] = print) -> None:
    """Report each discovered device on its own line."""
    if not devices:
        report("No devices found.")
        return

    for device in devices:
        notes = []
        if device.is_desk:
            notes.append("DESK")
        if device.manufacturer_id:
            notes.append(f"MFG:0x{device.manufacturer_id:04X}")

        line = f"→ {device}"
        if notes:
            line += f" [{', '.join(notes)}]"
        report(line)
