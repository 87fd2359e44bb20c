"""Solana Ledger signer.

Paths follow m/44'/501'/account'/change'. The Solana app returns the
ed25519 public key as the address and plain 64-byte signatures (no
recovery value).
"""

import logging
from typing import Any, Mapping, Union

import base58

from ledgersigner.device.base import DeviceAccount
from ledgersigner.errors import SigningError
from ledgersigner.signers.base import LedgerSigner, SignerType

logger = logging.getLogger(__name__)


def _signature_bytes(response: Union[bytes, Mapping[str, Any]]) -> bytes:
    signature = response.get("signature") if isinstance(response, Mapping) else response
    if signature is None:
        raise SigningError("Device response carries no signature")
    return bytes(signature)


class SolanaLedgerSigner(LedgerSigner):
    """Signer backed by the Ledger Solana app."""

    signer_type = SignerType.SOL

    @classmethod
    def convert_account(cls, account: DeviceAccount) -> DeviceAccount:
        public_key = bytes(account.address)
        return DeviceAccount(address=public_key, public_key=public_key)

    @property
    def address(self) -> str:
        """Base58 encoded public key."""
        return base58.b58encode(self.account.address).decode("ascii")

    async def get_address(self) -> bytes:
        """Get the raw 32-byte public key."""
        account = await self.get_account()
        return bytes(account.address)

    async def sign_message(self, message: bytes) -> bytes:
        """Sign an off-chain message."""
        response = await self.executor.execute(
            lambda sol: sol.sign_offchain_message(self.path, message)
        )
        return _signature_bytes(response)

    async def sign_transaction(self, transaction: bytes) -> bytes:
        """Sign a serialized transaction message."""
        logger.debug(f"Signing Solana transaction at {self.derivation_path}")
        response = await self.executor.execute(
            lambda sol: sol.sign_transaction(self.path, transaction)
        )
        return _signature_bytes(response)
