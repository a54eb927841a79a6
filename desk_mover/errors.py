"""Exceptions raised by the desk mover."""


class DeskError(Exception):
    """Base exception for desk mover errors."""

    pass


class ScanStartError(DeskError):
    """Raised when the BLE scan cannot be started."""

    pass


class DeviceNotFoundError(DeskError):
    """Raised when the desk does not show up in the scan results."""

    def __init__(self, address: str, attempts: int):
        super().__init__(f"Could not find device [{address}] after {attempts} attempts")
        self.address = address
        self.attempts = attempts


class DeskConnectionError(DeskError):
    """Raised when connection to the desk fails."""

    pass


class ServiceDiscoveryError(DeskError):
    """Raised when the desk's GATT services cannot be discovered."""

    pass


class EndpointMissingError(DeskError):
    """Raised when a required characteristic is not exposed by the desk."""

    def __init__(self, kind: str, uuid: str):
        super().__init__(f"Missing {kind} characteristic {uuid}")
        self.kind = kind
        self.uuid = uuid


class DisconnectError(DeskError):
    """Raised when disconnecting from the desk fails."""

    pass


class InvalidTargetError(DeskError, ValueError):
    """Raised when a target height is not a number or out of range."""

    pass
