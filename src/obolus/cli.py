"""
Obolus CLI

Command-line interface for the Obolus ERC-20 token.

Identity = ECDSA/secp256k1 wallet key in ~/.obolus/.env.  Reads go
through the configured JSON-RPC node; writes are signed locally and
broadcast as raw transactions.

Commands:
  wallet     - Create or show the local wallet key
  whoami     - Show current wallet address
  balance    - Show token balance
  transfer   - Send tokens
  block      - Show the latest block hash
  interface  - List a contract's entry points
  deploy     - Deploy the ObolusToken contract
  console    - Interactive wallet session
  info       - Show configuration
"""

from __future__ import annotations

import logging
import sys

import click

from . import __version__
from .config import OBOLUS_ENV, Settings
from .errors import ValidationError
from .wallet.eth import get_address, load_private_key


# ============ Constants ============

VERSION = __version__

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("          O B O L U S", fg="bright_white", bold=True)
        + click.style(f"      v{VERSION}", dim=True)
    )
    click.secho("        ─── ERC-20 token client ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="obolus")
@click.option(
    "--log-level",
    default="WARNING",
    envvar="OBOLUS_LOG_LEVEL",
    show_default=True,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log verbosity (written to stderr)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Obolus: ERC-20 token client."""
    _configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .commands.chain import block, interface
from .commands.console import console
from .commands.deploy import deploy
from .commands.token import balance, transfer
from .commands.wallet import wallet

cli.add_command(wallet)
cli.add_command(balance)
cli.add_command(transfer)
cli.add_command(block)
cli.add_command(interface)
cli.add_command(deploy)
cli.add_command(console)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        pk = load_private_key()
        address = get_address(pk)
        click.echo(f"Address: {address}")
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Run 'obolus wallet new' to create one.")
        sys.exit(1)


# ============ Info ============


@cli.command()
def info() -> None:
    """Show configuration and wallet status."""
    _print_banner()

    click.secho("  Status ─────────────────────────────────", fg="cyan")
    click.echo()

    try:
        address = get_address(load_private_key())
        click.echo(
            click.style("  Address:     ", dim=True)
            + click.style(address, fg="bright_white")
        )
    except ValueError:
        click.echo(
            click.style("  Address:     ", dim=True)
            + click.style("not initialized", fg="yellow")
            + click.style("  (run: obolus wallet new)", dim=True)
        )

    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        click.secho(f"  Config error: {exc}", fg="red")
        sys.exit(exc.exit_code)

    rows = [
        ("RPC:", settings.rpc_url),
        ("Chain ID:", str(settings.chain_id)),
        ("Token:", settings.token_address or "not set"),
        ("Timeout:", f"{settings.rpc_timeout:g}s"),
        ("Explorer:", settings.explorer_url or "not set"),
        ("Artifacts:", str(settings.artifacts_dir) if settings.artifacts_dir else "not set"),
        ("Config:", str(OBOLUS_ENV)),
    ]
    for name, value in rows:
        click.echo(click.style(f"  {name:<13}", dim=True) + click.style(value, fg="bright_white"))

    click.echo()

    click.secho("  Commands ───────────────────────────────", fg="cyan")
    click.echo()

    commands = [
        ("wallet   ", "Create or show the wallet key"),
        ("balance  ", "Show token balance"),
        ("transfer ", "Send tokens"),
        ("block    ", "Show the latest block hash"),
        ("interface", "List a contract's entry points"),
        ("deploy   ", "Deploy ObolusToken"),
        ("console  ", "Interactive wallet session"),
        ("whoami   ", "Show current wallet address"),
    ]
    for cmd, desc in commands:
        click.echo(
            click.style("  ", dim=True)
            + click.style(cmd, fg="bright_white", bold=True)
            + click.style("  ◇  ", fg="cyan")
            + click.style(desc, dim=True)
        )

    click.echo()


# ============ Entry Points ============


def main() -> None:
    """Obolus CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
