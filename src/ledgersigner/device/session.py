"""Process-wide Ledger device session.

Opening a hardware transport is exclusive and slow, so every signer in a
process shares one transport/app pair per application. The session goes
through a single lifecycle:

    UNINITIALIZED -> INITIALIZING -> READY
                                  -> FAILED

The first caller claims initialization, opens the transport, builds the app
client and checks liveness before publishing it. Callers arriving while
initialization is in flight wait on a readiness event instead of opening a
second transport.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from ledgersigner.config import get_settings
from ledgersigner.device.base import AppFactory, DeviceAPI, TransportFactory
from ledgersigner.device.cache import AddressCache
from ledgersigner.errors import InitializationTimeout, SessionFailedError, SigningError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle state of a device session."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class DeviceSession:
    """Lazily opened, shared connection to one Ledger application.

    Usage:
        session = get_device_session("eth", open_transport, EthApp)
        eth = await session.acquire()
    """

    def __init__(
        self,
        name: str,
        open_transport: TransportFactory,
        app_factory: AppFactory,
        init_timeout: Optional[float] = None,
    ):
        """Initialize the session without touching the device.

        Args:
            name: Application name used for logging and registry lookup
            open_transport: Async callable returning an open transport
            app_factory: Callable building the device API from the transport
            init_timeout: Seconds to wait for another caller's initialization
                (defaults to settings.init_timeout)
        """
        self.name = name
        self.init_timeout = init_timeout if init_timeout is not None else get_settings().init_timeout
        self.state = SessionState.UNINITIALIZED
        self.transport: Any = None
        self.address_cache = AddressCache()

        self._open_transport = open_transport
        self._app_factory = app_factory
        self._device: Optional[DeviceAPI] = None
        self._ready: Optional[asyncio.Event] = None
        self._failure: Optional[BaseException] = None

    @property
    def device(self) -> DeviceAPI:
        """Published device API.

        Raises:
            SigningError: If the session is not ready yet
        """
        if self._device is None:
            raise SigningError(f"Ledger {self.name} session is not ready ({self.state.value})")
        return self._device

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.READY

    async def acquire(self) -> DeviceAPI:
        """Get the shared device API, opening the device on first use.

        Returns:
            Live device API

        Raises:
            InitializationTimeout: If another caller's initialization never completed
            SessionFailedError: If the session failed to initialize earlier
        """
        if self.state is SessionState.READY:
            return self._device

        if self.state is SessionState.UNINITIALIZED:
            # Claim before the first suspension point
            self.state = SessionState.INITIALIZING
            self._ready = asyncio.Event()
            return await self._initialize()

        if self.state is SessionState.INITIALIZING:
            await self._wait_until_ready()

        if self.state is SessionState.FAILED:
            raise SessionFailedError(
                f"Ledger {self.name} session failed to initialize: {self._failure}"
            ) from self._failure

        return self._device

    async def _initialize(self) -> DeviceAPI:
        logger.info(f"Opening Ledger transport for {self.name} session")
        try:
            transport = await self._open_transport()
            device = self._app_factory(transport)
            # Check that the connection is working
            await device.get_app_configuration()
        except BaseException as exc:
            self._failure = exc
            self.state = SessionState.FAILED
            self._ready.set()
            logger.error(f"Failed to open Ledger {self.name} session: {exc!r}")
            raise

        self.transport = transport
        self._device = device
        self.state = SessionState.READY
        self._ready.set()
        logger.info(f"Ledger {self.name} session ready")
        return device

    async def _wait_until_ready(self) -> None:
        logger.debug(f"Waiting for Ledger {self.name} transport to open")
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=self.init_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Ledger {self.name} transport did not open within {self.init_timeout}s")
            raise InitializationTimeout("Timed out while waiting for transport to open.")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, state={self.state.value})"


class SessionRegistry:
    """Holds the single session per application name for the process."""

    def __init__(self):
        self._sessions: dict[str, DeviceSession] = {}

    def get(
        self,
        name: str,
        open_transport: Optional[TransportFactory] = None,
        app_factory: Optional[AppFactory] = None,
    ) -> DeviceSession:
        """Get the session for an application, creating it on first request.

        Raises:
            SigningError: If the session does not exist and no factories were given
        """
        session = self._sessions.get(name)
        if session is not None:
            return session

        if open_transport is None or app_factory is None:
            raise SigningError(f"No Ledger {name} session and no factories to create one")

        session = DeviceSession(name, open_transport, app_factory)
        self._sessions[name] = session
        return session

    def reset(self) -> None:
        self._sessions.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._sessions


_registry = SessionRegistry()


def get_device_session(
    name: str,
    open_transport: Optional[TransportFactory] = None,
    app_factory: Optional[AppFactory] = None,
) -> DeviceSession:
    """Get the process-wide session for an application.

    Args:
        name: Application name ("eth", "sol", ...)
        open_transport: Transport factory, required on first request
        app_factory: Device API factory, required on first request

    Returns:
        Shared DeviceSession
    """
    return _registry.get(name, open_transport, app_factory)


def reset_device_sessions() -> None:
    """Forget all sessions (for testing)."""
    _registry.reset()
