"""
Desk Mover - move a Linak standing desk to a height over Bluetooth LE.

This package finds the desk by address, connects to it and pulses it up or
down until the reported height reaches the requested one.
"""

from desk_mover.config import DeskSettings
from desk_mover.errors import (
    DeskConnectionError,
    DeskError,
    DeviceNotFoundError,
    DisconnectError,
    EndpointMissingError,
    InvalidTargetError,
    ScanStartError,
    ServiceDiscoveryError,
)
from desk_mover.motion import MotionController, MotionResult, MotionState
from desk_mover.orchestrator import RunOutcome, SessionOrchestrator
from desk_mover.protocol import (
    MAX_TARGET_MM,
    MIN_TARGET_MM,
    MotionDirection,
    decode_height,
    encode_direction,
    parse_target_height,
)
from desk_mover.session import ControlEndpoints, DeskSession

__all__ = [
    # Protocol
    "MotionDirection",
    "decode_height",
    "encode_direction",
    "parse_target_height",
    "MIN_TARGET_MM",
    "MAX_TARGET_MM",
    # Session and control
    "DeskSession",
    "ControlEndpoints",
    "MotionController",
    "MotionResult",
    "MotionState",
    "SessionOrchestrator",
    "RunOutcome",
    "DeskSettings",
    # Errors
    "DeskError",
    "ScanStartError",
    "DeviceNotFoundError",
    "DeskConnectionError",
    "ServiceDiscoveryError",
    "EndpointMissingError",
    "DisconnectError",
    "InvalidTargetError",
]
