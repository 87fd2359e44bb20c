"""Base interfaces for the Ledger device API.

The device API is provided by an external library (the Ledger app client
bound to an open transport). This module pins down the shape the signing
core relies on:

1. Open transport (external factory, once per process)
2. Build the app client on top of it
3. Check liveness with get_app_configuration()
4. Call derivation/signing operations with a normalized path ("44'/60'/0'/0/0")

Signing operations return raw signature fields exactly as the device
reports them; see ledgersigner.signature for normalization.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union


@dataclass(frozen=True)
class DeviceAccount:
    """Account derived by the device.

    Attributes:
        address: Address as encoded by the chain convention
        public_key: Public key (hex string or raw bytes, depending on the app)
    """
    address: Any
    public_key: Any = None


@dataclass(frozen=True)
class DeviceSignature:
    """Raw signature fields as returned by the device.

    Attributes:
        r: R component (hex, usually without 0x prefix)
        s: S component (hex, usually without 0x prefix)
        v: Recovery value as int or hex string, None for schemes without one
    """
    r: str
    s: str
    v: Optional[Union[int, str]] = None

    @classmethod
    def from_response(cls, response: Union["DeviceSignature", Mapping[str, Any]]) -> "DeviceSignature":
        """Build from a device response mapping ({"r": ..., "s": ..., "v": ...})."""
        if isinstance(response, DeviceSignature):
            return response
        return cls(r=response["r"], s=response["s"], v=response.get("v"))


class DeviceAPI(ABC):
    """Abstract Ledger application client.

    Implementations wrap the vendor library. Every method may raise the
    library's own exceptions; the retry layer classifies them.
    """

    @abstractmethod
    async def get_app_configuration(self) -> Any:
        """Query the running app configuration (used as liveness check)."""
        pass

    @abstractmethod
    async def get_address(self, path: str) -> Union[DeviceAccount, Mapping[str, Any]]:
        """Derive the account at a path.

        Returns:
            DeviceAccount or mapping with "address" and "publicKey"
        """
        pass

    async def sign_transaction(
        self, path: str, raw_tx: Union[str, bytes], resolution_config: Optional[Mapping[str, bool]] = None
    ) -> Any:
        """Sign an unsigned serialized transaction.

        The Ethereum app takes hex without prefix plus a clear-signing
        resolution config; the Solana app takes the raw message bytes.
        """
        raise NotImplementedError(f"{self.__class__.__name__} cannot sign transactions")

    async def sign_personal_message(self, path: str, message_hex: str) -> Any:
        """Sign a personal message given as hex (no prefix)."""
        raise NotImplementedError(f"{self.__class__.__name__} cannot sign personal messages")

    async def sign_typed_message(self, path: str, payload: Mapping[str, Any]) -> Any:
        """Clear-sign a full EIP-712 payload."""
        raise NotImplementedError(f"{self.__class__.__name__} cannot sign typed data")

    async def sign_typed_hashed_message(
        self, path: str, domain_hash_hex: str, value_hash_hex: str
    ) -> Any:
        """Sign precomputed EIP-712 domain and message hashes (hex, no prefix)."""
        raise NotImplementedError(f"{self.__class__.__name__} cannot sign hashed typed data")

    async def sign_offchain_message(self, path: str, message: bytes) -> Any:
        """Sign an off-chain message (account-model chains without v)."""
        raise NotImplementedError(f"{self.__class__.__name__} cannot sign off-chain messages")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def account_from_response(response: Union[DeviceAccount, Mapping[str, Any]]) -> DeviceAccount:
    """Normalize a get_address() response into a DeviceAccount."""
    if isinstance(response, DeviceAccount):
        return response
    public_key = response.get("publicKey", response.get("public_key"))
    return DeviceAccount(address=response["address"], public_key=public_key)


# Opens the transport; invoked once per session
TransportFactory = Callable[[], Awaitable[Any]]

# Builds the app client on top of an open transport
AppFactory = Callable[[Any], DeviceAPI]
