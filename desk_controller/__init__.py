"""
Desk Controller - drive a Linak / IKEA Idåsen standing desk over BLE.

This package discovers the desk, resolves its control and position
characteristics, and moves it to a target height with a closed loop.
"""

from desk_controller.codec import MAX_HEIGHT, MIN_HEIGHT, MotorCommand, decode_height, encode_command
from desk_controller.config import DeskSettings
from desk_controller.controller import DeskController, connect_desk, connect_with_settings
from desk_controller.discovery import AddressMatcher, DeviceAddress, NameMatcher, find_device
from desk_controller.exceptions import (
    CannotFindDevice,
    CannotReadPosition,
    CannotSubscribePosition,
    CannotWriteCommand,
    CharacteristicsDiscoveryFailed,
    CharacteristicsNotFound,
    ConnectionFailed,
    DeskError,
    MacAddrParseFailed,
    MoveTimedOut,
    PermissionDenied,
    PositionNotInRange,
    ScanFailed,
)
from desk_controller.resolver import resolve

__all__ = [
    # Controller
    "DeskController",
    "connect_desk",
    "connect_with_settings",
    "DeskSettings",
    # Building blocks
    "find_device",
    "resolve",
    "NameMatcher",
    "AddressMatcher",
    "DeviceAddress",
    "MotorCommand",
    "decode_height",
    "encode_command",
    "MIN_HEIGHT",
    "MAX_HEIGHT",
    # Errors
    "DeskError",
    "ScanFailed",
    "PermissionDenied",
    "CannotFindDevice",
    "ConnectionFailed",
    "CharacteristicsDiscoveryFailed",
    "CharacteristicsNotFound",
    "CannotSubscribePosition",
    "PositionNotInRange",
    "CannotReadPosition",
    "CannotWriteCommand",
    "MacAddrParseFailed",
    "MoveTimedOut",
]
