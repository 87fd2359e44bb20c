"""Signer factory.

Creates the Ledger signer for a chain. The transport and device app
clients are external libraries; their factories are configured as import
paths ("package.module:attribute") in settings:

    TRANSPORT_FACTORY=mypkg.ledger:open_hid_transport
    ETH_APP_FACTORY=mypkg.ledger:EthApp
    SOL_APP_FACTORY=mypkg.ledger:SolanaApp
"""

import importlib
import logging
from typing import Any, Optional

from ledgersigner.config import get_settings
from ledgersigner.errors import SigningError
from ledgersigner.signers.base import LedgerSigner
from ledgersigner.signers.eth import EthereumLedgerSigner
from ledgersigner.signers.solana import SolanaLedgerSigner

logger = logging.getLogger(__name__)

# Chain to signer class mapping
SIGNER_CLASSES: dict[str, type[LedgerSigner]] = {
    "ETH": EthereumLedgerSigner,
    "BSC": EthereumLedgerSigner,
    "BNB": EthereumLedgerSigner,  # Alias for BSC
    "POLYGON": EthereumLedgerSigner,
    "MATIC": EthereumLedgerSigner,
    "ARBITRUM": EthereumLedgerSigner,
    "AVAX": EthereumLedgerSigner,
    "SOL": SolanaLedgerSigner,
}


def get_supported_chains() -> list[str]:
    """Get list of chains with a Ledger signer."""
    return list(SIGNER_CLASSES.keys())


def load_object(import_path: str) -> Any:
    """Resolve a "package.module:attribute" import path.

    Raises:
        SigningError: If the path is malformed or cannot be imported
    """
    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise SigningError(f"Invalid import path {import_path!r}, expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise SigningError(f"Cannot import {module_name}: {e}") from e

    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise SigningError(f"{module_name} has no attribute {attribute!r}") from e


def _load_optional(import_path: str) -> Optional[Any]:
    return load_object(import_path) if import_path else None


async def create_signer(chain: str, path: Optional[str] = None) -> LedgerSigner:
    """Create a Ledger signer for a chain.

    The configured factories are only used by the first signer of each
    device app; later signers share its session.

    Args:
        chain: Chain identifier (ETH, BSC, SOL, ...)
        path: Derivation path (defaults to the chain default from settings)

    Returns:
        Signer with derived account

    Raises:
        SigningError: If the chain is unsupported or factories are missing
    """
    signer_class = SIGNER_CLASSES.get(chain.upper())
    if signer_class is None:
        raise SigningError(f"No Ledger signer for chain {chain}")

    settings = get_settings()
    open_transport = _load_optional(settings.transport_factory)
    app_factory = _load_optional(settings.get_app_factory(signer_class.signer_type.name))

    logger.info(f"Creating Ledger signer for {chain.upper()}")
    return await signer_class.create(path, open_transport, app_factory)


async def get_signer_info(signer: LedgerSigner) -> dict:
    """Get information about a signer.

    Returns:
        Dict with signer type, health status, path and session state
    """
    info = signer.describe()
    info["healthy"] = await signer.health_check()
    return info
