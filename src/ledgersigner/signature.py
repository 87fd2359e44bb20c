"""Signature normalization.

The device reports signature fields in its own representation: r and s as
bare hex, v either as a number (messages) or as a hex string (transactions),
and for legacy EIP-155 transactions possibly truncated to one byte. Callers
expect 0x-prefixed even-length hex and a v value consistent with the
transaction type that is going to be re-serialized.

No cryptography happens here; the device is the only signer.
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Mapping, Optional, Union

from eth_utils import add_0x_prefix, decode_hex, is_hexstr, remove_0x_prefix

from ledgersigner.device.base import DeviceSignature
from ledgersigner.errors import SigningError

logger = logging.getLogger(__name__)

EIP155_OFFSET = 35
LEGACY_V_OFFSET = 27


class VEncoding(str, Enum):
    """How the recovery value is represented in the normalized signature."""
    NUMERIC = "numeric"  # int (viem/eth_account style)
    HEX = "hex"          # 0x-prefixed string (ethers v6 style)
    NONE = "none"        # schemes without recovery value


class TransactionType(IntEnum):
    """EIP-2718 transaction envelope types."""
    LEGACY = 0
    ACCESS_LIST = 1   # EIP-2930
    FEE_MARKET = 2    # EIP-1559
    BLOB = 3          # EIP-4844
    SET_CODE = 4      # EIP-7702


@dataclass(frozen=True)
class Signature:
    """Normalized ECDSA signature.

    Attributes:
        r: R component, 0x-prefixed hex
        s: S component, 0x-prefixed hex
        v: Recovery value (int, 0x-prefixed hex, or None)
    """
    r: str
    s: str
    v: Optional[Union[int, str]] = None

    @property
    def y_parity(self) -> int:
        if self.v is None:
            raise SigningError("Signature has no recovery value")
        return y_parity(parse_v(self.v))

    @property
    def serialized(self) -> str:
        """65-byte recoverable signature r || s || v with v in {27, 28}."""
        r = remove_0x_prefix(self.r).rjust(64, "0")
        s = remove_0x_prefix(self.s).rjust(64, "0")
        v = LEGACY_V_OFFSET + self.y_parity
        return f"0x{r}{s}{v:02x}"

    def to_dict(self) -> dict[str, Any]:
        return {"r": self.r, "s": self.s, "v": self.v}


def add_hex_prefix(value: Union[str, bytes, int]) -> str:
    """Encode a value as 0x-prefixed, even-length, lowercase hex.

    Raises:
        ValueError: If a string value is empty or not hex
    """
    if isinstance(value, bytes):
        body = value.hex()
    elif isinstance(value, int):
        if value < 0:
            raise ValueError(f"Cannot hex-encode negative value {value}")
        body = f"{value:x}"
    else:
        body = remove_0x_prefix(value.strip()).lower()
        if not body or not is_hexstr(body):
            raise ValueError(f"Not a hex value: {value!r}")

    if len(body) % 2:
        body = "0" + body
    return add_0x_prefix(body)


def parse_v(value: Union[int, str]) -> int:
    """Parse a device recovery value given as int or hex string."""
    if isinstance(value, int):
        return value
    body = remove_0x_prefix(value.strip())
    if not body:
        raise ValueError("Empty recovery value")
    return int(body, 16)


def _eip155_parity(v: int, chain_id: Optional[int]) -> Optional[int]:
    if chain_id is None:
        return None
    parity = (v - (chain_id * 2 + EIP155_OFFSET)) & 0xFF
    return parity if parity in (0, 1) else None


def y_parity(v: int, chain_id: Optional[int] = None) -> int:
    """Recover the y-parity bit from any v representation.

    Handles raw parity (0/1), legacy (27/28), full EIP-155 values and
    EIP-155 values truncated to their lowest byte by the device.

    Args:
        v: Recovery value reported by the device
        chain_id: Chain ID the transaction was signed for, if EIP-155

    Raises:
        SigningError: If v matches none of the known encodings
    """
    if v in (0, 1):
        return v

    parity = _eip155_parity(v, chain_id)
    if parity is not None:
        return parity

    if v in (LEGACY_V_OFFSET, LEGACY_V_OFFSET + 1):
        return v - LEGACY_V_OFFSET

    if chain_id is None and v >= EIP155_OFFSET:
        return (v - EIP155_OFFSET) % 2

    raise SigningError(f"Cannot derive y-parity from v={v} (chain_id={chain_id})")


def recovery_value(v: Union[int, str], tx_type: TransactionType, chain_id: Optional[int] = None) -> int:
    """Compute the v value to serialize for a transaction type.

    Typed transactions carry the bare y-parity. Legacy transactions carry
    27/28, or chain_id * 2 + 35 + parity when replay protected.
    """
    value = parse_v(v)
    if tx_type is not TransactionType.LEGACY:
        return y_parity(value, chain_id)
    if chain_id is None:
        return LEGACY_V_OFFSET + y_parity(value)

    # A truncated EIP-155 v can be 0x00 or 0x01, so it is checked before bare parity
    parity = _eip155_parity(value, chain_id)
    if parity is None:
        parity = y_parity(value, chain_id)
    return chain_id * 2 + EIP155_OFFSET + parity


def transaction_type_of(raw_tx: Union[bytes, str]) -> TransactionType:
    """Detect the EIP-2718 type of an unsigned serialized transaction.

    Raises:
        SigningError: If the payload is empty or uses an unknown envelope type
    """
    data = decode_hex(raw_tx) if isinstance(raw_tx, str) else raw_tx
    if not data:
        raise SigningError("Empty transaction payload")

    first = data[0]
    # Legacy transactions are a bare RLP list
    if first >= 0xC0:
        return TransactionType.LEGACY
    if first <= 0x7F:
        try:
            return TransactionType(first)
        except ValueError:
            raise SigningError(f"Unsupported transaction type 0x{first:02x}")
    raise SigningError(f"Invalid transaction envelope byte 0x{first:02x}")


def normalize_signature(
    raw: Union[DeviceSignature, Mapping[str, Any]],
    encoding: VEncoding = VEncoding.NUMERIC,
    tx_type: Optional[TransactionType] = None,
    chain_id: Optional[int] = None,
) -> Signature:
    """Convert device signature fields into the caller's convention.

    Args:
        raw: Device response ({"r", "s", "v"})
        encoding: Target representation of v
        tx_type: Transaction type when normalizing a transaction signature
        chain_id: Chain ID for legacy EIP-155 transactions

    Returns:
        Signature with prefixed r/s and v in the requested encoding

    Raises:
        SigningError: If v is required but missing or unrecognized
    """
    raw = DeviceSignature.from_response(raw)
    r = add_hex_prefix(raw.r)
    s = add_hex_prefix(raw.s)

    if encoding is VEncoding.NONE:
        return Signature(r=r, s=s)

    if raw.v is None:
        raise SigningError("Device signature is missing the recovery value")

    v = parse_v(raw.v)
    if tx_type is not None:
        v = recovery_value(v, tx_type, chain_id)
        logger.debug(f"Recovery value for {tx_type.name} transaction: {v}")

    if encoding is VEncoding.HEX:
        return Signature(r=r, s=s, v=add_hex_prefix(v))
    return Signature(r=r, s=s, v=v)
