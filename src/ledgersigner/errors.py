"""Exception hierarchy for Ledger signing.

Every error raised by this package derives from SigningError. Device failures
arrive as arbitrary exceptions from the device API library; classify_device_error()
is the single place where they are inspected and turned into typed variants:

- DeviceBusy: the transport is servicing another command (retried)
- AppNotRunning: status 27404, the required app is not open on the device
- UnsupportedOperation: status 27904, firmware does not know the instruction
- DeviceStatusError: any other status word
"""

from typing import Any, Optional

# Identifier carried by the transport when a command is already in flight
TRANSPORT_LOCKED_ID = "TransportLocked"

# Status words (decimal, as reported by the device API)
STATUS_APP_NOT_RUNNING = 27404  # 0x6B0C
STATUS_UNSUPPORTED_OPERATION = 27904  # 0x6D00


class SigningError(Exception):
    """Exception raised when signing fails."""
    pass


class SigningTimeoutError(SigningError):
    """Exception raised when signing operation times out."""
    pass


class InvalidPathError(SigningError, ValueError):
    """Derivation path could not be parsed."""
    pass


class InvalidPathFormat(InvalidPathError):
    """Path does not start with the root marker or has a malformed segment."""
    pass


class IndexOutOfRange(InvalidPathError):
    """Path segment does not fit in 31 bits."""
    pass


class InitializationTimeout(SigningTimeoutError):
    """The device session never became ready."""
    pass


class OperationTimeout(SigningTimeoutError):
    """The device kept reporting busy for the whole retry budget."""
    pass


class SessionFailedError(SigningError):
    """An earlier attempt to initialize the device session failed."""
    pass


class DeviceError(SigningError):
    """Typed failure reported by the device API.

    Attributes:
        status_code: Status word reported by the device, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeviceBusy(DeviceError):
    """Transport rejected the command because another one is in flight."""
    pass


class AppNotRunning(DeviceError):
    """The required application is not running on the device."""

    def __init__(self, message: str = "Required app is not running on the Ledger device"):
        super().__init__(message, STATUS_APP_NOT_RUNNING)


class UnsupportedOperation(DeviceError):
    """The device firmware does not support the requested operation."""

    def __init__(self, message: str = "Operation not supported by the device firmware"):
        super().__init__(message, STATUS_UNSUPPORTED_OPERATION)


class DeviceStatusError(DeviceError):
    """Device answered with a status word that has no dedicated variant."""
    pass


def _status_code_of(error: Any) -> Optional[int]:
    """Read the status word from whatever attribute the device library uses."""
    for attr in ("status_code", "statusCode", "sw"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_device_error(error: BaseException) -> BaseException:
    """Map a raw device-API failure onto a typed variant.

    Exceptions that are already SigningError instances are returned as is.
    Exceptions carrying neither the busy identifier nor a status word are
    returned unchanged so that they propagate verbatim.

    Args:
        error: Exception raised by a device operation

    Returns:
        Typed DeviceError, or the original exception
    """
    if isinstance(error, SigningError):
        return error

    if getattr(error, "id", None) == TRANSPORT_LOCKED_ID:
        return DeviceBusy(str(error) or "Ledger transport is busy")

    status_code = _status_code_of(error)
    if status_code is None:
        return error

    if status_code == STATUS_APP_NOT_RUNNING:
        return AppNotRunning()
    if status_code == STATUS_UNSUPPORTED_OPERATION:
        return UnsupportedOperation()

    return DeviceStatusError(
        f"Ledger device returned status 0x{status_code:04x}: {error}",
        status_code,
    )
