"""Helpers shared by the command implementations."""

from __future__ import annotations

import sys
from typing import Any, NoReturn, Optional

import click

from ..chain.abi import ERC20_ABI, TOKEN_CONTRACT
from ..chain.interface import ArtifactSource, ExplorerSource, InterfaceSource, StaticSource
from ..chain.rpc import RpcClient
from ..config import OBOLUS_ENV, Settings
from ..controller import InteractionController, OperationResult
from ..errors import ObolusError, ValidationError
from ..wallet.session import ApproveFn, WalletSession, discover_provider


def load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ValidationError as exc:
        raise click.ClickException(str(exc)) from exc


def open_rpc(settings: Settings) -> RpcClient:
    return RpcClient(settings.rpc_url, timeout=settings.rpc_timeout)


def interface_sources(settings: Settings) -> list[InterfaceSource]:
    """Artifact (if configured) → explorer (if configured) → built-in ERC-20 ABI."""
    sources: list[InterfaceSource] = []
    if settings.artifacts_dir is not None:
        sources.append(ArtifactSource(TOKEN_CONTRACT, settings.artifacts_dir))
    if settings.explorer_url:
        sources.append(
            ExplorerSource(
                settings.explorer_url,
                api_key=settings.explorer_api_key,
                timeout=settings.rpc_timeout,
            )
        )
    sources.append(StaticSource(ERC20_ABI))
    return sources


def resolve_token(token: Optional[str], settings: Settings) -> str:
    """Resolve the token address.

    Priority: --token flag  >  OBOLUS_TOKEN_ADDRESS env var.
    """
    if token:
        return token
    if settings.token_address:
        return settings.token_address
    raise click.ClickException(
        "Token address not specified. Use --token <address> or set "
        f"OBOLUS_TOKEN_ADDRESS in {OBOLUS_ENV}."
    )


def confirm_connection(address: str) -> bool:
    return click.confirm(f"  Allow Obolus to use wallet {address}?", default=True)


def make_controller(
    settings: Settings,
    rpc: RpcClient,
    token: str,
    approve: Optional[ApproveFn] = None,
    confirm: bool = False,
) -> InteractionController:
    wallet = WalletSession(discover=lambda: discover_provider(approve=approve))
    return InteractionController(
        wallet,
        rpc,
        token,
        interface_sources(settings),
        confirm=confirm,
        gas_limit=settings.gas_limit,
        chain_id=settings.chain_id,
    )


def unwrap(result: OperationResult) -> Any:
    """Return the value of a successful result; raise its error otherwise."""
    if result.ok:
        return result.value
    raise result.error or ObolusError("Operation failed")


def fail(exc: ObolusError) -> NoReturn:
    click.secho(f"ERROR: {exc}", fg="red")
    if isinstance(exc, ValidationError):
        for detail in exc.errors:
            click.echo(f"  - {detail}")
    sys.exit(exc.exit_code)


def label(text: str) -> str:
    return click.style(f"  {text:<9} ", dim=True)
