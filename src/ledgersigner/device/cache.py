"""Address cache for a device session.

The cache is only valid for a single device. Since the transport is opened
once and never reconnected, entries are never invalidated.
"""

import logging
from typing import Awaitable, Callable, Optional

from ledgersigner.device.base import DeviceAccount
from ledgersigner.device.path import DerivationPath

logger = logging.getLogger(__name__)


class AddressCache:
    """Maps normalized derivation paths to derived accounts.

    Concurrent misses on the same path are not coalesced: every caller that
    misses performs its own device round trip. Derivation is deterministic,
    so the first stored value is kept and later writers get that same value.
    """

    def __init__(self):
        self._accounts: dict[str, DeviceAccount] = {}

    def get(self, path: DerivationPath) -> Optional[DeviceAccount]:
        return self._accounts.get(path.normalized)

    async def get_or_derive(
        self,
        path: DerivationPath,
        derive: Callable[[], Awaitable[DeviceAccount]],
    ) -> DeviceAccount:
        """Get the cached account for a path, deriving it on a miss.

        Args:
            path: Validated derivation path
            derive: Coroutine function performing the device round trip

        Returns:
            Cached or freshly derived account
        """
        cached = self._accounts.get(path.normalized)
        if cached is not None:
            logger.debug(f"Address cache hit for {path}")
            return cached

        account = await derive()
        return self._accounts.setdefault(path.normalized, account)

    def clear(self) -> None:
        """Drop all entries (useful for testing)."""
        self._accounts.clear()

    def __contains__(self, path: DerivationPath) -> bool:
        return path.normalized in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)
