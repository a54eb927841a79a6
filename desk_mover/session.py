"""
Connected desk session.

Owns one BLE client, resolves the height and command characteristics and
exposes best-effort reads and writes on top of them.
"""

import asyncio
import logging
from dataclasses import dataclass

from bleak import BleakClient
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.service import BleakGATTServiceCollection
from bleak.exc import BleakError

from desk_mover.errors import (
    DeskConnectionError,
    DeskError,
    DisconnectError,
    EndpointMissingError,
    ServiceDiscoveryError,
)
from desk_mover.protocol import (
    UUID_COMMAND,
    UUID_HEIGHT,
    MotionDirection,
    decode_height,
    encode_direction,
)

_LOGGER = logging.getLogger(__name__)

# Bleak logs every transient GATT error; the session reports its own
logging.getLogger("bleak").setLevel(logging.ERROR)

# Errors a transport call can fail with
TRANSPORT_ERRORS = (BleakError, asyncio.TimeoutError, OSError)


@dataclass(frozen=True)
class ControlEndpoints:
    """The two characteristics a move needs."""

    telemetry: BleakGATTCharacteristic
    command: BleakGATTCharacteristic


def resolve_endpoints(services: BleakGATTServiceCollection) -> ControlEndpoints:
    """
    Find the height and command characteristics among the discovered services.

    Raises:
        EndpointMissingError: If either characteristic is absent
    """
    telemetry = services.get_characteristic(UUID_HEIGHT)
    if telemetry is None:
        raise EndpointMissingError("telemetry", UUID_HEIGHT)

    command = services.get_characteristic(UUID_COMMAND)
    if command is None:
        raise EndpointMissingError("command", UUID_COMMAND)

    return ControlEndpoints(telemetry=telemetry, command=command)


class DeskSession:
    """A connection to one desk and its control characteristics."""

    def __init__(self, client: BleakClient):
        self.client = client
        self.services: BleakGATTServiceCollection | None = None
        self.endpoints: ControlEndpoints | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """
        Connect to the desk and discover its services.

        Raises:
            DeskConnectionError: If the connection cannot be established
            ServiceDiscoveryError: If the services are not available after connecting
        """
        try:
            await self.client.connect()
        except TRANSPORT_ERRORS as e:
            raise DeskConnectionError(f"BLE error: {e}") from e
        self._connected = True

        try:
            self.services = self.client.services
        except BleakError as e:
            raise ServiceDiscoveryError(f"Service discovery failed: {e}") from e

    def resolve_endpoints(self) -> ControlEndpoints:
        """
        Resolve the control characteristics once for this session.

        Raises:
            EndpointMissingError: If either characteristic is absent
        """
        if self.endpoints is None:
            if self.services is None:
                raise ServiceDiscoveryError("Services have not been discovered")
            self.endpoints = resolve_endpoints(self.services)
        return self.endpoints

    def _require_endpoints(self) -> ControlEndpoints:
        if self.endpoints is None:
            raise DeskError("Control endpoints have not been resolved")
        return self.endpoints

    async def read_height(self) -> int:
        """
        Read the current height in mm.

        A failed read is not an error here: it decodes like an empty payload
        and yields UNKNOWN_HEIGHT, so a move keeps polling instead of aborting.
        """
        endpoints = self._require_endpoints()
        try:
            data = await self.client.read_gatt_char(endpoints.telemetry)
        except TRANSPORT_ERRORS as e:
            _LOGGER.warning("Height read failed: %s", e)
            data = None
        return decode_height(data)

    async def send_direction(self, direction: MotionDirection) -> bool:
        """
        Write a movement command without waiting for a response.

        Returns False when the command was dropped by the transport. Delivery
        is not confirmed; the height telemetry tells whether the desk moved.
        """
        endpoints = self._require_endpoints()
        try:
            await self.client.write_gatt_char(
                endpoints.command, encode_direction(direction), response=False
            )
            return True
        except TRANSPORT_ERRORS as e:
            _LOGGER.warning("Dropped %s command: %s", direction.value, e)
            return False

    async def disconnect(self) -> None:
        """
        Disconnect from the desk.

        The session is abandoned whether or not this succeeds.

        Raises:
            DisconnectError: If the transport reported a failure
        """
        try:
            await self.client.disconnect()
        except TRANSPORT_ERRORS as e:
            raise DisconnectError(f"Failed to disconnect: {e}") from e
        finally:
            self._connected = False

    async def __aenter__(self) -> "DeskSession":
        try:
            await self.connect()
            self.resolve_endpoints()
        except DeskError:
            if self._connected:
                await self._disconnect_quietly()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._disconnect_quietly()

    async def _disconnect_quietly(self) -> None:
        try:
            await self.disconnect()
        except DisconnectError as e:
            _LOGGER.warning("%s", e)
