"""
Token commands - ERC-20 balance and transfer.

The user supplies the token contract address with --token (or relies on
OBOLUS_TOKEN_ADDRESS).

Commands:
- balance:  Show the token balance of the wallet, or of any --account
- transfer: Send tokens from the wallet to a recipient
"""

from __future__ import annotations

import asyncio
from typing import Optional

import click

from ..chain.binding import bind
from ..chain.interface import resolve_interface
from ..config import Settings
from ..errors import ObolusError
from ..utils import checksum_address, format_units, parse_units, validate_amount
from . import common


# ---------------------------------------------------------------------------
# balance
# ---------------------------------------------------------------------------

async def _account_balance(settings: Settings, token: str, account: str) -> tuple[int, int, str]:
    """Read-only path: no wallet, just the read provider."""
    async with common.open_rpc(settings) as rpc:
        interface = await resolve_interface(rpc, token, common.interface_sources(settings))
        binding = bind(interface, token, rpc, required=("balanceOf",))
        raw = await binding.balance_of(checksum_address(account))
        decimals = int(await binding.decimals()) if "decimals" in binding else 18
        symbol = str(await binding.symbol()) if "symbol" in binding else "???"
    return raw, decimals, symbol


async def _wallet_balance(settings: Settings, token: str) -> tuple[str, int, int, str]:
    async with common.open_rpc(settings) as rpc:
        controller = common.make_controller(settings, rpc, token)
        address = common.unwrap(await controller.connect())
        raw = common.unwrap(await controller.check_balance())
        await controller.disconnect()
    return address, raw, controller.display.decimals, controller.display.symbol or "???"


@click.command()
@click.option("--token", "token_address", default=None,
              help="ERC-20 token contract address (default: OBOLUS_TOKEN_ADDRESS)")
@click.option("--account", default=None,
              help="Read this account instead of the wallet (no wallet needed)")
def balance(token_address: Optional[str], account: Optional[str]) -> None:
    """Show ERC-20 token balance."""
    settings = common.load_settings()
    token = common.resolve_token(token_address, settings)

    try:
        if account:
            raw, decimals, symbol = asyncio.run(_account_balance(settings, token, account))
            holder = account
        else:
            holder, raw, decimals, symbol = asyncio.run(_wallet_balance(settings, token))
    except ObolusError as exc:
        common.fail(exc)

    click.echo(f"=== {symbol} Balance ===")
    click.echo()
    click.echo(common.label("Token:") + token)
    click.echo(common.label("Account:") + holder)
    click.echo(
        common.label("Balance:")
        + click.style(f"{format_units(raw, decimals)} {symbol}", fg="green", bold=True)
        + click.style(f"  ({raw} raw)", dim=True)
    )
    click.echo()


# ---------------------------------------------------------------------------
# transfer
# ---------------------------------------------------------------------------

async def _transfer(
    settings: Settings,
    token: str,
    recipient: str,
    amount: str,
    raw: bool,
    wait: bool,
    yes: bool,
) -> None:
    approve = None if yes else common.confirm_connection

    async with common.open_rpc(settings) as rpc:
        controller = common.make_controller(settings, rpc, token, approve=approve, confirm=wait)
        address = common.unwrap(await controller.connect())
        symbol, decimals = common.unwrap(await controller.load_token_metadata())
        symbol = symbol or "???"

        raw_amount = validate_amount(amount) if raw else parse_units(amount, decimals)

        click.echo(f"=== {symbol} Transfer ===")
        click.echo()
        click.echo(common.label("Token:") + token)
        click.echo(common.label("From:") + address)
        click.echo(common.label("To:") + recipient)
        click.echo(
            common.label("Amount:")
            + f"{format_units(raw_amount, decimals)} {symbol} ({raw_amount} raw, {decimals} decimals)"
        )
        click.echo()

        # Pre-flight: show the current balance
        current = await controller.check_balance()
        if current.ok and current.value < raw_amount:
            click.secho(
                f"  Warning: balance is {format_units(current.value, decimals)} {symbol}; "
                "the transfer will revert",
                fg="yellow",
            )

        click.echo("  Sending transaction...")
        submission = common.unwrap(await controller.submit_transfer(recipient, raw_amount))

        click.echo()
        if wait:
            click.secho("  Transfer confirmed!", fg="green", bold=True)
        else:
            click.secho("  Transfer submitted.", fg="green", bold=True)
        click.echo(common.label("TX:") + submission.tx_hash)
        if controller.display.balance_known:
            click.echo(
                common.label("Balance:")
                + f"{controller.display.formatted_balance} {symbol}"
            )
        await controller.disconnect()


@click.command()
@click.option("--token", "token_address", default=None,
              help="ERC-20 token contract address (default: OBOLUS_TOKEN_ADDRESS)")
@click.option("--to", "recipient", required=True, help="Recipient address (0x...)")
@click.option("--amount", required=True,
              help="Amount in human-readable units (e.g. 1.5)")
@click.option("--raw", is_flag=True, help="Treat --amount as base units")
@click.option("--wait", is_flag=True, help="Wait for inclusion and re-read the balance")
@click.option("--yes", "-y", is_flag=True, help="Do not ask before using the wallet")
def transfer(
    token_address: Optional[str],
    recipient: str,
    amount: str,
    raw: bool,
    wait: bool,
    yes: bool,
) -> None:
    """Transfer ERC-20 tokens from the wallet to a recipient.

    \b
    Examples:
      obolus transfer --to 0xAbc... --amount 10
      obolus transfer --token 0xDEF... --to 0xAbc... --amount 5.5 --wait
    """
    settings = common.load_settings()
    token = common.resolve_token(token_address, settings)

    try:
        asyncio.run(_transfer(settings, token, recipient, amount, raw, wait, yes))
    except ObolusError as exc:
        common.fail(exc)

    click.echo()
