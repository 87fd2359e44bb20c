"""Device session, retry protocol and derivation path handling."""

from ledgersigner.device.base import DeviceAccount, DeviceAPI, DeviceSignature
from ledgersigner.device.cache import AddressCache
from ledgersigner.device.path import DerivationPath, parse_path
from ledgersigner.device.retry import RetryExecutor, require_app
from ledgersigner.device.session import DeviceSession, get_device_session, reset_device_sessions

__all__ = [
    "AddressCache",
    "DerivationPath",
    "DeviceAPI",
    "DeviceAccount",
    "DeviceSession",
    "DeviceSignature",
    "RetryExecutor",
    "get_device_session",
    "parse_path",
    "require_app",
    "reset_device_sessions",
]
