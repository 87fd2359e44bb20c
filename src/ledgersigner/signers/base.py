"""Base class for Ledger-backed signers.

Signing flow:
1. Parse the derivation path
2. Acquire the shared device session (opens the transport on first use)
3. Derive the account through the session's address cache
4. Send the unsigned payload to the device through the retry executor
5. Normalize the returned signature for the caller

Private keys never leave the device; signers only ever see signatures.
"""

import logging
from abc import ABC
from enum import Enum
from typing import Any, ClassVar, Optional

from ledgersigner.config import get_settings
from ledgersigner.device.base import AppFactory, DeviceAccount, TransportFactory, account_from_response
from ledgersigner.device.path import DerivationPath, parse_path
from ledgersigner.device.retry import RetryExecutor, require_app
from ledgersigner.device.session import DeviceSession, get_device_session

logger = logging.getLogger(__name__)


class SignerType(str, Enum):
    """Ledger application backing a signer."""
    ETH = "eth"   # Ethereum app (all EVM chains)
    SOL = "sol"   # Solana app


class LedgerSigner(ABC):
    """Abstract base class for signers bound to one derivation path.

    Subclasses set `signer_type` and, when the device should report a
    specific missing app, `app_name`.
    """

    signer_type: ClassVar[SignerType]
    app_name: ClassVar[Optional[str]] = None

    def __init__(self, session: DeviceSession, derivation_path: DerivationPath, account: DeviceAccount):
        self.session = session
        self.derivation_path = derivation_path
        self.account = account
        self.executor = self.build_executor(session)

    @property
    def path(self) -> str:
        """Normalized path as sent to the device."""
        return self.derivation_path.normalized

    @classmethod
    def build_executor(cls, session: DeviceSession) -> RetryExecutor:
        hook = require_app(cls.app_name) if cls.app_name else None
        return RetryExecutor(session, error_hook=hook)

    @classmethod
    async def create(
        cls,
        path: Optional[str] = None,
        open_transport: Optional[TransportFactory] = None,
        app_factory: Optional[AppFactory] = None,
    ) -> "LedgerSigner":
        """Create a signer, opening the device if this is the first signer.

        Args:
            path: Derivation path starting with "m" (defaults to the chain default)
            open_transport: Transport factory, needed only before the session exists
            app_factory: Device API factory, needed only before the session exists

        Returns:
            Signer with its account already derived

        Raises:
            InvalidPathError: If the path is malformed
            SigningError: If the device cannot be opened or queried
        """
        derivation_path = parse_path(path or get_settings().get_default_path(cls.signer_type.name))

        session = get_device_session(cls.signer_type.value, open_transport, app_factory)
        await session.acquire()

        account = await cls.derive_account(session, derivation_path)
        logger.info(f"Ledger {cls.signer_type.value} signer ready at {derivation_path}")
        return cls(session, derivation_path, account)

    @classmethod
    async def derive_account(cls, session: DeviceSession, derivation_path: DerivationPath) -> DeviceAccount:
        """Derive the account for a path, using the session cache."""
        executor = cls.build_executor(session)

        async def derive() -> DeviceAccount:
            response = await executor.execute(
                lambda device: device.get_address(derivation_path.normalized)
            )
            return cls.convert_account(account_from_response(response))

        return await session.address_cache.get_or_derive(derivation_path, derive)

    @classmethod
    def convert_account(cls, account: DeviceAccount) -> DeviceAccount:
        """Convert the device's account encoding into the chain convention."""
        return account

    async def get_account(self) -> DeviceAccount:
        return await self.derive_account(self.session, self.derivation_path)

    async def health_check(self) -> bool:
        """Check if the device session is ready to sign."""
        return self.session.is_ready

    def describe(self) -> dict[str, Any]:
        return {
            "type": self.signer_type.value,
            "class": self.__class__.__name__,
            "path": str(self.derivation_path),
            "session": self.session.state.value,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.signer_type.value}, path={self.derivation_path})"
