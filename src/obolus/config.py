"""
Configuration for Obolus.

Settings come from environment variables.  Before reading them,
``~/.obolus/.env`` is loaded with python-dotenv; variables already set
in the environment take precedence over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ValidationError

OBOLUS_DIR = Path.home() / ".obolus"
OBOLUS_ENV = OBOLUS_DIR / ".env"

# Default network: Ethereum Sepolia
DEFAULT_RPC_URL = "https://ethereum-sepolia-rpc.publicnode.com"
DEFAULT_CHAIN_ID = 11155111
DEFAULT_RPC_TIMEOUT = 30.0


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw, 0)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    token_address: Optional[str] = None
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    explorer_url: Optional[str] = None
    explorer_api_key: Optional[str] = None
    artifacts_dir: Optional[Path] = None
    gas_limit: Optional[int] = None

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Settings":
        env_path = env_path or OBOLUS_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        artifacts = os.environ.get("OBOLUS_ARTIFACTS")
        gas_limit = _env_int("OBOLUS_GAS_LIMIT", 0)

        return cls(
            rpc_url=os.environ.get("OBOLUS_RPC_URL", DEFAULT_RPC_URL),
            chain_id=_env_int("OBOLUS_CHAIN_ID", DEFAULT_CHAIN_ID),
            token_address=os.environ.get("OBOLUS_TOKEN_ADDRESS") or None,
            rpc_timeout=_env_float("OBOLUS_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT),
            explorer_url=os.environ.get("OBOLUS_EXPLORER_URL") or None,
            explorer_api_key=os.environ.get("OBOLUS_EXPLORER_API_KEY") or None,
            artifacts_dir=Path(artifacts).expanduser() if artifacts else None,
            gas_limit=gas_limit or None,
        )
