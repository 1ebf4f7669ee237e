"""
Deploy - put a fresh ObolusToken on chain.

Reads the Foundry artifact (``forge build`` in contracts/), ABI-encodes
``constructor(initialSupply, recipient)`` and sends the creation
transaction from the wallet.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import click

from ..chain.abi import TOKEN_CONTRACT, MethodTable, load_artifact_abi, load_bytecode
from ..chain.tx import deploy_contract
from ..config import Settings
from ..errors import ObolusError
from ..utils import checksum_address, format_units, parse_units
from ..wallet.session import WalletSession, discover_provider
from . import common


async def _deploy(
    settings: Settings,
    out_dir: Optional[Path],
    supply: str,
    decimals: int,
    recipient: Optional[str],
    yes: bool,
) -> dict[str, Any]:
    try:
        table = MethodTable.from_abi(load_artifact_abi(TOKEN_CONTRACT, out_dir))
        bytecode = load_bytecode(TOKEN_CONTRACT, out_dir)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    initial_supply = parse_units(supply, decimals)
    approve = None if yes else common.confirm_connection
    wallet = WalletSession(discover=lambda: discover_provider(approve=approve))

    async with common.open_rpc(settings) as rpc:
        connection = await wallet.connect()
        mint_to = checksum_address(recipient) if recipient else connection.address

        click.echo(common.label("Deployer:") + connection.address)
        click.echo(common.label("Supply:") + f"{format_units(initial_supply, decimals)} ({initial_supply} raw)")
        click.echo(common.label("Mint to:") + mint_to)
        click.echo()
        click.echo("  Sending creation transaction...")

        result = await deploy_contract(
            rpc,
            connection.signer,
            bytecode,
            constructor=table.constructor,
            constructor_args=[initial_supply, mint_to],
            gas_limit=settings.gas_limit,
            chain_id=settings.chain_id,
        )
        await wallet.disconnect()
    return result


@click.command()
@click.option("--supply", required=True, help="Initial supply in whole tokens (e.g. 1000000)")
@click.option("--decimals", default=18, show_default=True, type=int,
              help="Token decimals used to scale --supply")
@click.option("--recipient", default=None, help="Address receiving the initial mint (default: wallet)")
@click.option("--artifacts", "artifacts_dir", default=None,
              type=click.Path(file_okay=False, path_type=Path),
              help="Foundry out/ directory (default: OBOLUS_ARTIFACTS or contracts/out)")
@click.option("--yes", "-y", is_flag=True, help="Do not ask before using the wallet")
def deploy(
    supply: str,
    decimals: int,
    recipient: Optional[str],
    artifacts_dir: Optional[Path],
    yes: bool,
) -> None:
    """Deploy ObolusToken and mint the initial supply."""
    settings = common.load_settings()
    out_dir = artifacts_dir or settings.artifacts_dir

    click.echo(f"=== Deploy {TOKEN_CONTRACT} ===")
    click.echo()

    try:
        result = asyncio.run(_deploy(settings, out_dir, supply, decimals, recipient, yes))
    except ObolusError as exc:
        common.fail(exc)

    click.echo()
    click.secho("  Deployed!", fg="green", bold=True)
    click.echo(common.label("Address:") + result["contract_address"])
    click.echo(common.label("TX:") + result["tx_hash"])
    click.echo()
    click.echo(f"  Set OBOLUS_TOKEN_ADDRESS={result['contract_address']} to use it by default.")
