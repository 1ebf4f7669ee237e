"""
Wallet commands - manage the local signing key.

- new:  Generate a key and store it in ~/.obolus/.env
- show: Print the wallet address
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from ..wallet import eth


@click.group()
def wallet() -> None:
    """Manage the local wallet key."""


@wallet.command("new")
@click.option("--force", is_flag=True, help="Replace an existing key")
@click.option("--env-file", "env_file", default=None,
              type=click.Path(dir_okay=False, path_type=Path),
              help="Where to store the key (default: ~/.obolus/.env)")
def wallet_new(force: bool, env_file: Optional[Path]) -> None:
    """Generate a new wallet key."""
    env_path = env_file or eth.OBOLUS_ENV

    try:
        existing = eth.get_address(eth.load_private_key(env_path))
    except ValueError:
        existing = None

    if existing and not force:
        click.secho(f"  Wallet already exists: {existing}", fg="yellow")
        click.echo("  Use --force to replace it (the old key is lost).")
        sys.exit(1)

    private_key, address = eth.generate_eoa()
    saved = eth.save_private_key(private_key, env_path)

    click.secho("  Wallet created.", fg="green", bold=True)
    click.echo(click.style("  Address:  ", dim=True) + address)
    click.echo(click.style("  Key file: ", dim=True) + str(saved))
    click.echo()
    click.echo("  Fund this address with test ETH before sending transactions.")


@wallet.command("show")
def wallet_show() -> None:
    """Show the wallet address."""
    try:
        click.echo(eth.get_address(eth.load_private_key()))
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Run 'obolus wallet new' to create one.")
        sys.exit(1)
