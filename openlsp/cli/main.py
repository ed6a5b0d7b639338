"""Main CLI entry point for OpenLSP."""

import typer
from rich.console import Console

from openlsp import __version__
from openlsp.exceptions import ConfigurationError
from openlsp.utils.config import get_settings
from openlsp.utils.logging import configure_logging

from .commands import lsp

app = typer.Typer(
    name="openlsp",
    help="⚡ Buy inbound Lightning liquidity from an LSP",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]OpenLSP[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """
    OpenLSP - buy inbound channel liquidity from a Lightning Service Provider.
    """
    try:
        settings = get_settings()
    except ConfigurationError as e:
        console.print(f"[bold red]❌ Configuration error:[/bold red] {e.message}")
        raise typer.Exit(code=1)

    configure_logging(
        log_level="DEBUG" if settings.debug else settings.log_level,
        json_logs=settings.log_json,
        dev_mode=not settings.log_json,
        log_file=settings.log_file,
    )


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold blue]OpenLSP[/bold blue] version {__version__}")


app.add_typer(lsp.app, name="lsp", help="⚡ Buy channels and inspect forwarding")


if __name__ == "__main__":
    app()
