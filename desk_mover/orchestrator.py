"""
End-to-end desk run: locate, connect, move, disconnect.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from desk_mover.config import DeskSettings
from desk_mover.errors import (
    DeskConnectionError,
    DeskError,
    DeviceNotFoundError,
    DisconnectError,
    EndpointMissingError,
    ScanStartError,
    ServiceDiscoveryError,
)
from desk_mover.locator import ScannedDevice, locate, print_devices, scan_devices
from desk_mover.motion import MotionController, MotionResult, MotionState
from desk_mover.protocol import MotionDirection, setpoint_for
from desk_mover.session import DeskSession

_LOGGER = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """What happened during one run."""

    ok: bool
    error: DeskError | None = None
    result: MotionResult | None = None
    disconnect_error: DisconnectError | None = None


class SessionOrchestrator:
    """Runs one desk move from scan to disconnect."""

    def __init__(
        self,
        settings: DeskSettings | None = None,
        scanner_factory: Callable[..., BleakScanner] = BleakScanner,
        client_factory: Callable[..., BleakClient] = BleakClient,
        report: Callable[[str], None] = print,
        quiet: bool = False,
    ):
        self.settings = settings or DeskSettings()
        self.scanner_factory = scanner_factory
        self.client_factory = client_factory
        self.report = report
        self.quiet = quiet
        self._session: DeskSession | None = None
        self._controller: MotionController | None = None

    def _log(self, msg: str):
        """Report progress unless in quiet mode."""
        if not self.quiet:
            self.report(msg)

    def _adapter_kwargs(self) -> dict:
        return {"adapter": self.settings.adapter} if self.settings.adapter else {}

    async def run(self, address: str, target_mm: int) -> RunOutcome:
        """
        Move the desk at address to a validated target height.

        Every documented failure is reported and returned in the outcome,
        never raised. Once connected, the desk is always disconnected.
        """
        setpoint = setpoint_for(target_mm)
        scanner = self.scanner_factory(**self._adapter_kwargs())
        self._session = None
        self._controller = None

        try:
            outcome = await self._drive(scanner, address, setpoint)
        finally:
            disconnect_error = await self._teardown(scanner)

        outcome.disconnect_error = disconnect_error
        return outcome

    async def _drive(self, scanner: BleakScanner, address: str, setpoint: int) -> RunOutcome:
        self._log("Scanning...")
        try:
            device = await locate(
                scanner,
                address,
                max_attempts=self.settings.scan_attempts,
                retry_delay=self.settings.scan_delay,
            )
        except ScanStartError as e:
            _LOGGER.error("%s", e)
            self._log("Failed to scan!")
            return RunOutcome(ok=False, error=e)
        except DeviceNotFoundError as e:
            _LOGGER.error("%s", e)
            self._log(f"Could not find device [{address}]")
            return RunOutcome(ok=False, error=e)

        self._log("Connecting...")
        self._session = DeskSession(self.client_factory(device, **self._adapter_kwargs()))
        try:
            await self._session.connect()
            self._session.resolve_endpoints()
        except DeskConnectionError as e:
            _LOGGER.error("%s", e)
            self._log("Failed to connect!")
            return RunOutcome(ok=False, error=e)
        except ServiceDiscoveryError as e:
            _LOGGER.error("%s", e)
            self._log("Failed to discover services!")
            return RunOutcome(ok=False, error=e)
        except EndpointMissingError as e:
            _LOGGER.error("%s", e)
            self._log(f"Missing {e.kind} characteristic!")
            return RunOutcome(ok=False, error=e)

        controller = self._controller = MotionController(
            self._session,
            settle_delay=self.settings.settle_delay,
            max_pulses=self.settings.max_pulses,
            report=self.report,
            quiet=self.quiet,
        )
        result = await controller.move_to(setpoint)
        return RunOutcome(ok=True, result=result)

    async def _teardown(self, scanner: BleakScanner) -> DisconnectError | None:
        """Disconnect and stop scanning. Returns the disconnect failure, if any."""
        error = None
        session, self._session = self._session, None
        controller, self._controller = self._controller, None
        if session is not None and session.is_connected:
            if controller is not None and controller.state is MotionState.MOVING:
                # Move was interrupted before its own stop command
                self._log("Stopping...")
                await session.send_direction(MotionDirection.STOP)
            self._log("Disconnecting...")
            try:
                await session.disconnect()
            except DisconnectError as e:
                _LOGGER.warning("%s", e)
                self._log("Failed to disconnect!")
                error = e

        with suppress(BleakError, OSError):
            await scanner.stop()
        return error

    async def list_devices(self) -> list[ScannedDevice]:
        """Scan briefly and report every device seen."""
        try:
            devices = await scan_devices(
                timeout=self.settings.list_timeout, adapter=self.settings.adapter
            )
        except ScanStartError as e:
            _LOGGER.error("%s", e)
            self._log("Failed to scan!")
            return []

        print_devices(devices, report=self._log)
        return devices
