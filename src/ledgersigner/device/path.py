"""BIP32 derivation path parsing.

Ledger's own path parser is overly tolerant, so paths are validated here
before they ever reach the device:

    parse_path("m/44'/60'/0'/0/0")
    # DerivationPath(normalized="44'/60'/0'/0/0",
    #                indices=(0x8000002c, 0x8000003c, 0x80000000, 0, 0))

The normalized string is what the device API receives. It is the caller's
own segments joined back together, not a re-serialization of the indices.
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from ledgersigner.errors import IndexOutOfRange, InvalidPathFormat

HARDENED_OFFSET = 0x80000000
MAX_INDEX_DIGITS = 10

ROOT_MARKER = "m"
SEPARATOR = "/"

_SEGMENT_RE = re.compile(r"([0-9]+)(')?")


class Bip44PathIndex(IntEnum):
    """Position of BIP44 levels in a path: m/purpose'/coin_type'/account'/change/address_index."""
    PURPOSE = 0
    COIN_TYPE = 1
    ACCOUNT = 2
    # change before address, as in BIP44 (some Ledger tooling lists them swapped)
    CHANGE = 3
    ADDRESS = 4


@dataclass(frozen=True)
class DerivationPath:
    """Validated derivation path.

    Attributes:
        normalized: Path without the root marker, e.g. "44'/60'/0'/0/0"
        indices: Child indices with the hardened offset applied
    """

    normalized: str
    indices: tuple[int, ...]

    def _index_at(self, position: Bip44PathIndex) -> Optional[int]:
        if position < len(self.indices):
            return self.indices[position]
        return None

    @property
    def account_index(self) -> Optional[int]:
        return self._index_at(Bip44PathIndex.ACCOUNT)

    @property
    def change_index(self) -> Optional[int]:
        return self._index_at(Bip44PathIndex.CHANGE)

    @property
    def address_index(self) -> Optional[int]:
        return self._index_at(Bip44PathIndex.ADDRESS)

    def is_hardened(self, position: int) -> bool:
        """Check whether the index at a position has the hardened bit set."""
        return self.indices[position] >= HARDENED_OFFSET

    def __str__(self) -> str:
        if not self.normalized:
            return ROOT_MARKER
        return f"{ROOT_MARKER}{SEPARATOR}{self.normalized}"


def _parse_segment(segment: str) -> int:
    match = _SEGMENT_RE.fullmatch(segment)
    if match is None:
        raise InvalidPathFormat(f"Invalid child index: {segment!r}")

    # 2**31 has 10 digits; longer values are out of range without converting
    digits = match.group(1).lstrip("0") or "0"
    if len(digits) > MAX_INDEX_DIGITS:
        raise IndexOutOfRange(f"Node index out of range: {segment[:20]!r}...")

    index = int(digits)
    if index >= HARDENED_OFFSET:
        raise IndexOutOfRange(f"Node index out of range: {segment!r}")

    if match.group(2):
        index += HARDENED_OFFSET
    return index


def parse_path(path: str) -> DerivationPath:
    """Parse and validate a derivation path.

    Args:
        path: Path string starting with the root marker, e.g. "m/44'/501'/0'/0'"

    Returns:
        DerivationPath with the normalized string and parsed indices

    Raises:
        InvalidPathFormat: If the root marker is missing or a segment is malformed
        IndexOutOfRange: If a segment does not fit in 31 bits
    """
    if not path.startswith(ROOT_MARKER):
        raise InvalidPathFormat('Path must start with "m"')

    if path == ROOT_MARKER:
        return DerivationPath(normalized="", indices=())

    prefix = ROOT_MARKER + SEPARATOR
    normalized = path[len(prefix):] if path.startswith(prefix) else path
    indices = tuple(_parse_segment(segment) for segment in normalized.split(SEPARATOR))

    return DerivationPath(normalized=normalized, indices=indices)
