"""
Chain commands - read-only network queries.

- block:     Show the hash of a block (default: latest)
- interface: Resolve a contract's interface and list its entry points
"""

from __future__ import annotations

import asyncio
from typing import Any

import click

from ..chain.abi import MethodTable
from ..chain.interface import resolve_interface
from ..config import Settings
from ..errors import ObolusError
from . import common


async def _block(settings: Settings, tag: str) -> dict[str, Any]:
    async with common.open_rpc(settings) as rpc:
        return await rpc.get_block(tag)


@click.command()
@click.option("--tag", default="latest", show_default=True,
              help="Block tag (latest, safe, finalized, ...) or number")
def block(tag: str) -> None:
    """Show a block's hash and number."""
    settings = common.load_settings()
    try:
        info = asyncio.run(_block(settings, tag))
    except ObolusError as exc:
        common.fail(exc)

    number = info.get("number")
    click.echo(common.label("Block:") + (str(int(number, 16)) if isinstance(number, str) else "?"))
    click.echo(common.label("Hash:") + str(info.get("hash")))


async def _interface(settings: Settings, address: str) -> MethodTable:
    async with common.open_rpc(settings) as rpc:
        return await resolve_interface(rpc, address, common.interface_sources(settings))


@click.command()
@click.argument("address")
def interface(address: str) -> None:
    """List the entry points of the contract at ADDRESS."""
    settings = common.load_settings()
    try:
        table = asyncio.run(_interface(settings, address))
    except ObolusError as exc:
        common.fail(exc)

    click.echo(f"=== Interface of {address} ===")
    click.echo()
    for fn in sorted(table.functions, key=lambda f: f.signature):
        kind = click.style("read ", fg="cyan") if fn.is_read else click.style("write", fg="yellow")
        returns = ",".join(fn.output_types)
        click.echo(f"  {kind}  {fn.signature}" + (f" -> ({returns})" if returns else ""))
    if table.events:
        click.echo()
        click.echo(click.style("  events: ", dim=True) + ", ".join(table.events))
    click.echo()
