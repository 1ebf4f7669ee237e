"""
Console - an interactive session over the interaction controller.

The terminal counterpart of a wallet-connected web page: connect,
check the balance, send transfers and watch the latest block hash, all
against one controller.  Transfers run in the background so the prompt
stays usable; while one is in flight a second one is refused.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import click

from ..config import Settings
from ..controller import InteractionController, OperationResult
from ..errors import ValidationError
from ..utils import parse_units
from . import common

HELP = """\
  connect                   connect the wallet
  disconnect                drop the session
  balance                   read your token balance
  transfer <to> <amount>    send tokens (amount in whole tokens)
  block                     refresh the latest block hash
  status                    show session and display state
  help                      this text
  quit                      leave the console"""


def _report(result: OperationResult, success: str) -> None:
    if result.ok:
        click.secho(f"  {success}", fg="green")
        if result.error is not None:
            click.secho(f"  warning: {result.error}", fg="yellow")
    else:
        click.secho(f"  {type(result.error).__name__}: {result.message}", fg="red")


def _status(controller: InteractionController) -> None:
    display = controller.display
    session = controller.session
    symbol = display.symbol or ""
    click.echo(common.label("State:") + controller.status.value)
    click.echo(common.label("Address:") + (session.address or "-"))
    balance = display.formatted_balance
    click.echo(common.label("Balance:") + (f"{balance} {symbol}" if balance is not None else "unknown"))
    click.echo(
        common.label("Transfer:")
        + ("in flight" if controller.transfer_in_flight else "idle")
    )
    if display.last_tx_hash:
        click.echo(common.label("Last TX:") + display.last_tx_hash)
    if display.block_hash:
        click.echo(common.label("Block:") + display.block_hash)
    elif display.block_error:
        click.echo(common.label("Block:") + click.style(display.block_error, fg="yellow"))


async def _submit(controller: InteractionController, recipient: str, amount: str) -> None:
    meta = await controller.load_token_metadata()
    if not meta.ok:
        _report(meta, "")
        return
    try:
        raw_amount = parse_units(amount, controller.display.decimals)
    except ValidationError as exc:
        _report(OperationResult.failure(exc), "")
        return
    controller.set_pending_input(recipient, str(raw_amount))
    result = await controller.submit_transfer()
    tx_hash = result.value.tx_hash if result.ok else ""
    _report(result, f"transfer submitted: {tx_hash}")


async def _dispatch(
    controller: InteractionController,
    line: str,
    pending: set[asyncio.Task],
) -> bool:
    """Run one console command; returns False when the user quits."""
    parts = line.split()
    if not parts:
        return True
    command, args = parts[0].lower(), parts[1:]

    if command in ("quit", "exit"):
        return False
    if command == "help":
        click.echo(HELP)
    elif command == "connect":
        result = await controller.connect()
        _report(result, f"connected as {result.value}")
    elif command == "disconnect":
        _report(await controller.disconnect(), "disconnected")
    elif command == "balance":
        result = await controller.check_balance()
        symbol = controller.display.symbol or ""
        _report(result, f"balance: {controller.display.formatted_balance} {symbol}")
    elif command == "transfer":
        if len(args) != 2:
            click.secho("  usage: transfer <to> <amount>", fg="yellow")
        elif not controller.can_transfer:
            reason = "a transfer is already in flight" if controller.transfer_in_flight else "not connected"
            click.secho(f"  transfer unavailable: {reason}", fg="yellow")
        else:
            task = asyncio.create_task(_submit(controller, args[0], args[1]))
            pending.add(task)
            task.add_done_callback(pending.discard)
            # let the submission claim the in-flight slot before the next prompt
            await asyncio.sleep(0)
    elif command == "block":
        result = await controller.refresh_block_hash()
        _report(result, f"latest block: {result.value}")
    elif command == "status":
        _status(controller)
    else:
        click.secho(f"  unknown command: {command} (try 'help')", fg="yellow")
    return True


async def _read_line() -> Optional[str]:
    try:
        return await asyncio.to_thread(
            click.prompt, "obolus", default="", show_default=False, prompt_suffix="> "
        )
    except (click.Abort, EOFError):
        return None


async def _console(settings: Settings, token: str) -> None:
    async with common.open_rpc(settings) as rpc:
        controller = common.make_controller(
            settings, rpc, token, approve=common.confirm_connection
        )
        controller.initialize()
        pending: set[asyncio.Task] = set()
        try:
            while True:
                line = await _read_line()
                if line is None or not await _dispatch(controller, line, pending):
                    break
            if pending:
                click.echo("  waiting for the in-flight transfer...")
                await asyncio.gather(*pending)
        finally:
            await controller.aclose()
            if controller.session.connected:
                await controller.disconnect()


@click.command()
@click.option("--token", "token_address", default=None,
              help="ERC-20 token contract address (default: OBOLUS_TOKEN_ADDRESS)")
def console(token_address: Optional[str]) -> None:
    """Interactive wallet session (connect, balance, transfer, ...)."""
    settings = common.load_settings()
    token = common.resolve_token(token_address, settings)

    click.echo(f"  Token: {token}")
    click.echo("  Type 'help' for commands.")
    click.echo()
    asyncio.run(_console(settings, token))
    click.echo("  bye")
