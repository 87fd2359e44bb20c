"""EIP-712 structured data signing.

Devices with recent firmware clear-sign the full typed payload so the user
sees what is being signed. Older firmware rejects that instruction with
status 27904 (0x6D00); only in that case the domain and message hashes are
computed locally and signed blindly with the hashed-message instruction.
Any other failure (rejection by the user, malformed payload) is final.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional

from eth_account.messages import encode_typed_data

from ledgersigner.device.base import DeviceSignature
from ledgersigner.device.retry import RetryExecutor
from ledgersigner.errors import SigningError, UnsupportedOperation

logger = logging.getLogger(__name__)

EIP712_DOMAIN = "EIP712Domain"

# Canonical EIP712Domain field order and types
DOMAIN_FIELD_TYPES: dict[str, str] = {
    "name": "string",
    "version": "string",
    "chainId": "uint256",
    "verifyingContract": "address",
    "salt": "bytes32",
}


class SigningMode(str, Enum):
    """Which device instruction produced the signature."""
    CLEAR = "clear"
    HASHED = "hashed"


def with_domain_types(typed_data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a full EIP-712 payload whose types include EIP712Domain.

    The device needs the domain schema; callers often omit it. It is
    inferred from the keys present in the domain.

    Raises:
        SigningError: If the domain has a field outside the EIP-712 set
    """
    payload = dict(typed_data)
    types = dict(payload.get("types", {}))
    if EIP712_DOMAIN not in types:
        domain = payload.get("domain", {})
        unknown = set(domain) - set(DOMAIN_FIELD_TYPES)
        if unknown:
            raise SigningError(f"Invalid EIP-712 domain fields: {sorted(unknown)}")
        types[EIP712_DOMAIN] = [
            {"name": name, "type": field_type}
            for name, field_type in DOMAIN_FIELD_TYPES.items()
            if name in domain
        ]
    payload["types"] = types
    return payload


def hash_typed_data(typed_data: Mapping[str, Any]) -> tuple[bytes, bytes]:
    """Compute the EIP-712 domain separator and message hash.

    Returns:
        (domain_hash, value_hash), 32 bytes each
    """
    signable = encode_typed_data(full_message=dict(typed_data))
    return bytes(signable.header), bytes(signable.body)


class TypedDataSigningProtocol:
    """Signs typed data, degrading to hash signing on old firmware.

    Attributes:
        last_mode: Instruction used by the most recent successful signature.
            Only meaningful for sequential calls; concurrent callers should
            use sign_with_mode.
    """

    def __init__(self, executor: RetryExecutor):
        self.executor = executor
        self.last_mode: Optional[SigningMode] = None

    async def sign(self, path: str, typed_data: Mapping[str, Any]) -> DeviceSignature:
        """Sign an EIP-712 message.

        Args:
            path: Normalized derivation path
            typed_data: Full message with types, primaryType, domain and message

        Returns:
            Raw device signature
        """
        signature, mode = await self.sign_with_mode(path, typed_data)
        self.last_mode = mode
        return signature

    async def sign_with_mode(
        self, path: str, typed_data: Mapping[str, Any]
    ) -> tuple[DeviceSignature, SigningMode]:
        """Sign an EIP-712 message and report which instruction was used."""
        payload = with_domain_types(typed_data)
        try:
            response = await self.executor.execute(
                lambda device: device.sign_typed_message(path, payload)
            )
            mode = SigningMode.CLEAR
        except UnsupportedOperation:
            logger.info("Device cannot clear-sign EIP-712, signing hashes instead")
            domain_hash, value_hash = hash_typed_data(payload)
            response = await self.executor.execute(
                lambda device: device.sign_typed_hashed_message(
                    path, domain_hash.hex(), value_hash.hex()
                )
            )
            mode = SigningMode.HASHED

        return DeviceSignature.from_response(response), mode


async def sign_typed_data(
    executor: RetryExecutor, path: str, typed_data: Mapping[str, Any]
) -> DeviceSignature:
    """Sign typed data once, without keeping the protocol around."""
    return await TypedDataSigningProtocol(executor).sign(path, typed_data)
