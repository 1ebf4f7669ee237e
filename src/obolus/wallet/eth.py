"""
Local wallet key.

The key lives in ``~/.obolus/.env`` as ``PRIVATE_KEY`` (hex), next to the
other Obolus settings; an exported ``PRIVATE_KEY`` environment variable
takes precedence over the file.  Reading the key never mutates
``os.environ``.
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key
from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..config import OBOLUS_ENV

KEY_VAR = "PRIVATE_KEY"


def _key_file(env_path: Optional[Path]) -> Path:
    return env_path or OBOLUS_ENV


def generate_eoa() -> tuple[str, str]:
    """Fresh secp256k1 key; returns ``(private_key_hex, checksummed_address)``."""
    private_key = "0x" + secrets.token_hex(32)
    return private_key, Account.from_key(private_key).address


def save_private_key(private_key: str, env_path: Optional[Path] = None) -> Path:
    """Write ``PRIVATE_KEY`` into the env file, leaving other entries alone."""
    path = _key_file(env_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)
    set_key(path, KEY_VAR, private_key, quote_mode="never")
    if os.name != "nt":
        path.chmod(0o600)
    return path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Raises:
        ValueError: If no key is configured
    """
    path = _key_file(env_path)
    key = os.environ.get(KEY_VAR)
    if not key and path.is_file():
        key = dotenv_values(path).get(KEY_VAR)
    if not key:
        raise ValueError(
            f"{KEY_VAR} not found. Run 'obolus wallet new' or set {KEY_VAR} in {path}"
        )
    key = key.strip()
    return key if key.startswith("0x") else "0x" + key


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    return Account.from_key(private_key or load_private_key())


def get_address(private_key: Optional[str] = None) -> str:
    return get_account(private_key).address
