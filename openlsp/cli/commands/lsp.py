"""LSP channel purchase and forwarding report commands."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from openlsp.exceptions import OpenLSPError, PurchaseCancelledError, ValidationError
from openlsp.lsp.application.services import ChannelPurchaseService, ForwardingReportService
from openlsp.lsp.domain.enums import PaymentRail
from openlsp.lsp.domain.models import ProposedOrder, PurchaseRequest
from openlsp.lsp.domain.value_objects import PaymentOutcome, ProtocolConstants
from openlsp.lsp.infrastructure.lnd_client import LNDClient
from openlsp.lsp.infrastructure.prompts import CannedPrompt, QuestionaryPrompt
from openlsp.utils.config import get_settings
from openlsp.utils.logging import get_logger

app = typer.Typer(name="lsp", help="⚡ Buy inbound liquidity from an LSP", no_args_is_help=True)
console = Console()


def get_lnd_client() -> LNDClient:
    """Get the LND client configured from settings."""
    return LNDClient.from_settings(get_settings())


def _print_error(error: OpenLSPError) -> None:
    code = getattr(error, "code", None)
    label = f"{error.kind}: {code.value}" if code else error.kind
    console.print(f"[bold red]❌ {label}[/bold red]")
    console.print(f"   {error.message}")
    if error.original_error:
        console.print(f"   [dim]caused by {type(error.original_error).__name__}: "
                      f"{error.original_error}[/dim]")


def _print_outcome(outcome: PaymentOutcome) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("Rail", outcome.rail.value)
    for key, value in outcome.settlement.to_dict().items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))
    console.print("[bold green]✅ Payment sent[/bold green]")
    console.print(table)


@app.command("buy")
def buy_channel(
    order_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Order message received from the LSP (JSON)"
    ),
    capacity: int = typer.Option(..., "--capacity", "-c", help="Inbound capacity to buy, in sats"),
    priority: int = typer.Option(
        ..., "--priority", "-p", help="Blocks within which the channel open should confirm"
    ),
    pubkey: str = typer.Option(..., "--pubkey", help="Public key of the LSP"),
    private: bool = typer.Option(False, "--private", help="Request an unannounced channel"),
    rail_hint: str | None = typer.Option(None, "--rail-hint", help="Preferred rail, for the record"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Buy without asking for confirmation"),
    rail: PaymentRail | None = typer.Option(
        None, "--rail", help="Rail to pay with when the LSP accepts both (with --yes)"
    ),
):
    """🛒 Validate an LSP order and pay for the channel.

    Example:
        openlsp lsp buy order.json --capacity 1000000 --priority 6 --pubkey 02ab...
    """
    settings = get_settings()
    constants = ProtocolConstants.from_settings(settings)

    try:
        order = ProposedOrder.from_wire(order_file.read_bytes())
    except ValidationError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    if yes:
        answers: dict[str, object] = {"confirm": True}
        if rail is not None:
            answers["payment_type"] = rail.value
        prompt = CannedPrompt(answers)
    else:
        prompt = QuestionaryPrompt()

    async def _buy() -> PaymentOutcome:
        lnd_client = get_lnd_client()
        try:
            request = PurchaseRequest(
                capacity_sat=capacity,
                priority=priority,
                announce_channel=not private,
                pubkey=pubkey,
                ask=prompt,
                logger=get_logger("openlsp.purchase"),
                node=lnd_client,
                order=order,
                rail_hint=rail_hint,
            )
            return await ChannelPurchaseService(constants).execute(request)
        finally:
            await lnd_client.close()

    try:
        outcome = asyncio.run(_buy())
    except PurchaseCancelledError as e:
        console.print(f"[yellow]Purchase cancelled: {e.message}[/yellow]")
        raise typer.Exit(code=1)
    except OpenLSPError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    _print_outcome(outcome)


@app.command("forwards")
def forwards(
    days: int | None = typer.Option(None, "--days", "-d", help="Look-back window in days"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """📊 Show forwarding activity per peer."""
    settings = get_settings()

    async def _forwards():
        lnd_client = get_lnd_client()
        try:
            service = ForwardingReportService(
                lnd_client,
                default_days=settings.forwards_default_days,
                limit=settings.forwards_limit,
            )
            return await service.get_peer_forwarding(days)
        finally:
            await lnd_client.close()

    try:
        peers = asyncio.run(_forwards())
    except OpenLSPError as e:
        _print_error(e)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps({"peers": [p.to_dict() for p in peers]}, indent=2))
        return

    if not peers:
        console.print("No forwards in the selected window")
        return

    table = Table(title="Forwarding peers")
    table.add_column("Alias")
    table.add_column("Public key")
    table.add_column("In fees", justify="right")
    table.add_column("Out fees", justify="right")
    table.add_column("Last in")
    table.add_column("Last out")
    table.add_column("Inbound BTC", justify="right")
    table.add_column("Outbound BTC", justify="right")
    table.add_column("Blocks since close", justify="right")

    for peer in peers:
        table.add_row(
            peer.alias or "-",
            f"{peer.public_key[:16]}...",
            f"{peer.earned_inbound_fees_sat:,}",
            f"{peer.earned_outbound_fees_sat:,}",
            peer.last_inbound_at.strftime("%Y-%m-%d %H:%M") if peer.last_inbound_at else "-",
            peer.last_outbound_at.strftime("%Y-%m-%d %H:%M") if peer.last_outbound_at else "-",
            str(peer.liquidity_inbound_btc),
            str(peer.liquidity_outbound_btc),
            str(peer.blocks_since_last_close) if peer.blocks_since_last_close is not None else "-",
        )

    console.print(table)
