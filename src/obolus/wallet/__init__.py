"""
Wallet - identity, key storage and the signing session.
"""

from .eth import generate_eoa, get_account, get_address, load_private_key, save_private_key
from .session import (
    Connection,
    LocalKeyProvider,
    Signer,
    WalletProvider,
    WalletSession,
    discover_provider,
)

__all__ = [
    "generate_eoa",
    "get_account",
    "get_address",
    "load_private_key",
    "save_private_key",
    "Connection",
    "LocalKeyProvider",
    "Signer",
    "WalletProvider",
    "WalletSession",
    "discover_provider",
]
