"""Retry protocol for device operations.

The Ledger transport accepts one command at a time and rejects overlapping
ones with a "TransportLocked" error. That rejection marks a critical section
in the driver: the request only has to be repeated until the driver is done
servicing the other caller. Every other failure (wrong app, user rejection,
malformed payload) is final and surfaces immediately.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from ledgersigner.config import get_settings
from ledgersigner.device.base import DeviceAPI
from ledgersigner.errors import AppNotRunning, DeviceBusy, OperationTimeout, classify_device_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Inspects a classified error; raises to override the retry decision,
# returns normally to let the executor decide.
ErrorHook = Callable[[BaseException], None]


class DeviceProvider(Protocol):
    """Anything exposing the current device API by reference."""

    @property
    def device(self) -> DeviceAPI:
        ...


class RetryExecutor:
    """Runs device operations, absorbing busy rejections.

    The provider is read on every attempt rather than captured once, so an
    executor built before the device session finished initializing still
    sees the published device.

    Example:
        executor = RetryExecutor(session, error_hook=require_app("Ethereum"))
        account = await executor.execute(lambda eth: eth.get_address(path))
    """

    def __init__(
        self,
        provider: DeviceProvider,
        error_hook: Optional[ErrorHook] = None,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ):
        """Initialize the executor.

        Args:
            provider: Object exposing the device API as `.device`
            error_hook: Optional callback run on every classified failure
            max_attempts: Attempt budget (defaults to settings.retry_max_attempts)
            interval: Pause after a busy rejection in seconds (defaults to settings.retry_interval)
        """
        settings = get_settings()
        self.provider = provider
        self.error_hook = error_hook
        self.max_attempts = max_attempts if max_attempts is not None else settings.retry_max_attempts
        self.interval = interval if interval is not None else settings.retry_interval

    async def execute(self, operation: Callable[[DeviceAPI], Awaitable[T]]) -> T:
        """Run an operation against the device until it is not busy.

        Args:
            operation: Coroutine function receiving the device API

        Returns:
            The operation result

        Raises:
            OperationTimeout: If the device stayed busy for every attempt
            Exception: Whatever the error hook raises, or the classified device error
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(self.provider.device)
            except Exception as exc:
                error = classify_device_error(exc)

                # Let the signer inspect the error and throw early
                if self.error_hook is not None:
                    self.error_hook(error)

                if not isinstance(error, DeviceBusy):
                    if error is exc:
                        raise
                    raise error from exc

                logger.debug(f"Device busy, retrying ({attempt}/{self.max_attempts})")

            await asyncio.sleep(self.interval)

        logger.warning(f"Device still busy after {self.max_attempts} attempts")
        raise OperationTimeout(
            f"Device operation timed out after {self.max_attempts} attempts"
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(max_attempts={self.max_attempts}, interval={self.interval})"


def require_app(app_name: str) -> ErrorHook:
    """Build an error hook that names the app missing on the device.

    Args:
        app_name: Human readable app name ("Ethereum", ...)

    Returns:
        Hook raising AppNotRunning with a specific message
    """
    def hook(error: BaseException) -> None:
        if isinstance(error, AppNotRunning):
            raise AppNotRunning(f"Ledger device is not running {app_name} App") from error

    return hook
