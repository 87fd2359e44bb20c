"""Ethereum Ledger signer.

Works for ETH and every EVM chain served by the Ledger Ethereum app.
Default derivation path: m/44'/60'/0'/0/0

    signer = await EthereumLedgerSigner.create()
    signer.address               # "0x..." checksum address
    await signer.sign_message("hello")
    await signer.sign_transaction(unsigned_tx_bytes, chain_id=1)
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from eth_utils import decode_hex, to_checksum_address

from ledgersigner.device.base import DeviceAccount, DeviceSignature
from ledgersigner.device.path import DerivationPath
from ledgersigner.device.session import DeviceSession
from ledgersigner.signature import (
    Signature,
    VEncoding,
    add_hex_prefix,
    normalize_signature,
    transaction_type_of,
)
from ledgersigner.signers.base import LedgerSigner, SignerType
from ledgersigner.typed_data import TypedDataSigningProtocol

logger = logging.getLogger(__name__)

# Properties the device may resolve to clear-sign a transaction
RESOLUTION_CONFIG: Mapping[str, bool] = MappingProxyType({
    "domain": True,
    "nft": True,
    "erc20": True,
    "plugin": True,
    "externalPlugins": True,
})


class EthereumLedgerSigner(LedgerSigner):
    """Signer backed by the Ledger Ethereum app."""

    signer_type = SignerType.ETH
    app_name = "Ethereum"

    def __init__(self, session: DeviceSession, derivation_path: DerivationPath, account: DeviceAccount):
        super().__init__(session, derivation_path, account)
        self.typed_data = TypedDataSigningProtocol(self.executor)

    @classmethod
    def convert_account(cls, account: DeviceAccount) -> DeviceAccount:
        return DeviceAccount(
            address=to_checksum_address(account.address),
            public_key=add_hex_prefix(account.public_key) if account.public_key else None,
        )

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def public_key(self) -> Optional[str]:
        return self.account.public_key

    @property
    def account_index(self) -> Optional[int]:
        return self.derivation_path.account_index

    @property
    def change_index(self) -> Optional[int]:
        return self.derivation_path.change_index

    @property
    def address_index(self) -> Optional[int]:
        return self.derivation_path.address_index

    async def get_address(self) -> str:
        account = await self.get_account()
        return account.address

    async def sign_transaction(
        self,
        unsigned_tx: Union[bytes, str],
        chain_id: Optional[int] = None,
        encoding: VEncoding = VEncoding.NUMERIC,
    ) -> Signature:
        """Sign an unsigned serialized transaction.

        Args:
            unsigned_tx: Unsigned transaction (EIP-2718 envelope or legacy RLP)
            chain_id: Chain ID, needed to rebuild EIP-155 v for legacy transactions
            encoding: Representation of v in the result

        Returns:
            Signature with v matching the transaction type
        """
        raw = decode_hex(unsigned_tx) if isinstance(unsigned_tx, str) else bytes(unsigned_tx)
        tx_type = transaction_type_of(raw)
        raw_hex = raw.hex()
        resolution = dict(RESOLUTION_CONFIG)

        logger.debug(f"Signing {tx_type.name} transaction at {self.derivation_path}")
        response = await self.executor.execute(
            lambda eth: eth.sign_transaction(self.path, raw_hex, resolution)
        )
        return normalize_signature(response, encoding, tx_type=tx_type, chain_id=chain_id)

    async def sign_message(self, message: Union[str, bytes]) -> str:
        """Sign a personal message (EIP-191).

        Args:
            message: Text (UTF-8 encoded before signing) or raw bytes

        Returns:
            65-byte serialized signature as 0x hex
        """
        if isinstance(message, str):
            message = message.encode("utf-8")
        message_hex = bytes(message).hex()

        response = await self.executor.execute(
            lambda eth: eth.sign_personal_message(self.path, message_hex)
        )
        return normalize_signature(DeviceSignature.from_response(response)).serialized

    async def sign_typed_data(self, typed_data: Mapping[str, Any]) -> str:
        """Sign EIP-712 typed data.

        Args:
            typed_data: Full message with types, primaryType, domain and message

        Returns:
            65-byte serialized signature as 0x hex
        """
        raw = await self.typed_data.sign(self.path, typed_data)
        return normalize_signature(raw).serialized
