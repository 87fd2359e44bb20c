"""Ledger hardware wallet signing.

Provides device-backed signers that never expose private keys:
- EthereumLedgerSigner: Ethereum app (ETH and EVM chains)
- SolanaLedgerSigner: Solana app
"""

from ledgersigner.errors import SigningError
from ledgersigner.signature import Signature, VEncoding
from ledgersigner.signers import (
    EthereumLedgerSigner,
    LedgerSigner,
    SolanaLedgerSigner,
    create_signer,
)

__version__ = "0.1.0"

__all__ = [
    "EthereumLedgerSigner",
    "LedgerSigner",
    "Signature",
    "SigningError",
    "SolanaLedgerSigner",
    "VEncoding",
    "create_signer",
]
