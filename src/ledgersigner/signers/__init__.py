"""Ledger signers per device application."""

from ledgersigner.signers.base import LedgerSigner, SignerType
from ledgersigner.signers.eth import EthereumLedgerSigner
from ledgersigner.signers.factory import create_signer, get_signer_info
from ledgersigner.signers.solana import SolanaLedgerSigner

__all__ = [
    "EthereumLedgerSigner",
    "LedgerSigner",
    "SignerType",
    "SolanaLedgerSigner",
    "create_signer",
    "get_signer_info",
]
