"""
Linak desk wire protocol.

Height telemetry and the 2-byte movement commands understood by the
desk's control box.
"""

import struct
from enum import Enum

from desk_mover.errors import InvalidTargetError

# === LINAK BLE UUIDS ===
UUID_COMMAND = "99fa0002-338a-1024-8a49-009c0215f78a"
UUID_HEIGHT = "99fa0021-338a-1024-8a49-009c0215f78a"

# === CONSTANTS ===
BASE_HEIGHT_MM = 600
MIN_TARGET_MM = 820
MAX_TARGET_MM = 1250
CALIBRATION_OFFSET_MM = 20
MARGIN_MM = 10

# Returned when the height characteristic could not be read
UNKNOWN_HEIGHT = 0


class MotionDirection(Enum):
    """Movement command sent to the desk."""

    UP = "up"
    DOWN = "down"
    STOP = "stop"


# === COMMANDS ===
CMD_UP = bytes([0x47, 0x00])
CMD_DOWN = bytes([0x46, 0x00])
CMD_STOP = bytes([0x00, 0x00])

_COMMANDS = {
    MotionDirection.UP: CMD_UP,
    MotionDirection.DOWN: CMD_DOWN,
    MotionDirection.STOP: CMD_STOP,
}


def raw_to_mm(raw: int) -> int:
    """Convert raw units to millimeters (includes base offset)."""
    return BASE_HEIGHT_MM + raw // 10


def decode_height(data: bytes | bytearray | None) -> int:
    """
    Decode height characteristic data.

    The first two bytes hold a little-endian unsigned height in tenths of a
    millimeter above the desk's base height. Anything shorter, including
    ``None`` for a failed read, decodes to ``UNKNOWN_HEIGHT``.
    """
    if not data or len(data) < 2:
        return UNKNOWN_HEIGHT
    raw = struct.unpack("<H", bytes(data[0:2]))[0]
    return raw_to_mm(raw)


def encode_direction(direction: MotionDirection) -> bytes:
    """Return the command payload for a movement direction."""
    return _COMMANDS[direction]


def parse_target_height(text: str) -> int:
    """
    Parse a user supplied target height in millimeters.

    Raises:
        InvalidTargetError: If the text is not an integer or the height is
            outside the desk's travel range
    """
    try:
        target = int(text.strip())
    except (AttributeError, ValueError) as e:
        raise InvalidTargetError(f"Not a valid height: {text!r}") from e

    if not MIN_TARGET_MM <= target <= MAX_TARGET_MM:
        raise InvalidTargetError(
            f"Expected value between {MIN_TARGET_MM} and {MAX_TARGET_MM}, got {target}"
        )
    return target


def setpoint_for(target_mm: int) -> int:
    """Apply the calibration offset to a validated target height."""
    return target_mm - CALIBRATION_OFFSET_MM
