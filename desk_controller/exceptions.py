"""Errors raised by the desk controller."""


class DeskError(Exception):
    """Base exception for desk controller errors."""

    pass


class ScanFailed(DeskError):
    """Raised when the BLE scan cannot be started."""

    pass


class PermissionDenied(ScanFailed):
    """Raised when the OS refuses Bluetooth access to this process."""

    pass


class CannotFindDevice(DeskError):
    """Raised when discovery runs out of attempts."""

    pass


class ConnectionFailed(DeskError):
    """Raised when connecting to a discovered desk fails."""

    pass


class CharacteristicsDiscoveryFailed(DeskError):
    """Raised when the desk's GATT characteristics cannot be enumerated."""

    pass


class CharacteristicsNotFound(DeskError):
    """Raised when a required characteristic is missing on the desk."""

    def __init__(self, which: str):
        super().__init__(f"{which} characteristic not found")
        self.which = which


class CannotSubscribePosition(DeskError):
    """Raised when position notifications cannot be enabled."""

    pass


class PositionNotInRange(DeskError):
    """Raised when a target height is outside what the desk can reach."""

    def __init__(self, height: int):
        super().__init__(f"Height {height} is outside the desk's range")
        self.height = height


class CannotReadPosition(DeskError):
    """Raised when reading the position characteristic fails."""

    pass


class CannotWriteCommand(DeskError):
    """Raised when a motor command write is rejected by the transport."""

    pass


class MacAddrParseFailed(DeskError):
    """Raised for a malformed device address."""

    def __init__(self, text: str):
        super().__init__(f"Invalid device address: {text!r}")
        self.text = text


class MoveTimedOut(DeskError):
    """Raised when a move does not reach its target within the timeout."""

    pass
