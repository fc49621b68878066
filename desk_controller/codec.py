"""
Linak desk wire format.

Protocol reverse-engineered from:
- https://github.com/anson-vandoren/linak-desk-spec
- https://github.com/j5lien/esphome-idasen-desk-controller
"""

import struct
from enum import Enum

# === LINAK BLE UUIDS ===
UUID_CONTROL = "99fa0002-338a-1024-8a49-009c0215f78a"
UUID_POSITION = "99fa0021-338a-1024-8a49-009c0215f78a"

# === HEIGHTS (tenth-millimeters) ===
MIN_HEIGHT = 6200
MAX_HEIGHT = 12700


class MotorCommand(Enum):
    """Motor commands accepted by the control characteristic."""

    RAISE = bytes([0x47, 0x00])
    LOWER = bytes([0x46, 0x00])
    HALT = bytes([0xFF, 0x00])


def decode_height(data: bytes) -> int:
    """
    Decode a position characteristic value into a height.

    The first two bytes are a little-endian offset above MIN_HEIGHT. The
    last two carry the desk's own speed reading and are ignored.
    """
    raw = struct.unpack("<H", bytes(data[0:2]))[0]
    return raw + MIN_HEIGHT


def encode_command(cmd: MotorCommand) -> bytes:
    """Encode a motor command into its 2-byte opcode."""
    return cmd.value


def in_range(height: int) -> bool:
    return MIN_HEIGHT <= height <= MAX_HEIGHT


def to_centimeters(height: int) -> float:
    """Convert tenth-millimeters to centimeters for display."""
    return height / 100
