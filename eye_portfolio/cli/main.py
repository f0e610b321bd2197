"""Eye Portfolio CLI - serve edge functions and inspect local snapshots."""

from pathlib import Path
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.table import Table

from .. import __version__

app = typer.Typer(
    name="eye-portfolio",
    help="Clinical trainee portfolio backend.",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def setup(
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="Load environment variables from this file (default: ./.env)",
    ),
):
    """Load .env configuration before any command runs."""
    from ..config import configure

    load_dotenv(env_file or find_dotenv(usecwd=True))
    # Settings may have been cached before the .env values were loaded
    configure(None)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """
    Serve the edge functions over HTTP.

    Routes: /send-notification-email, /validate-magic-link,
    /create-magic-link, /submit-magic-link-form
    """
    import uvicorn

    from ..config import get_settings
    from ..edge.app import create_app
    from ..utils.logging import setup_logging

    settings = get_settings()
    level = log_level or settings.log_level
    setup_logging(
        level=level,
        log_file=settings.log_file,
        debug_navigation=settings.portfolio.debug_navigation,
    )

    if not settings.supabase.is_configured:
        console.print("[yellow]Warning: SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set[/yellow]")
    if not settings.email.api_key:
        console.print("[yellow]Warning: RESEND_API_KEY not set; email delivery will fail[/yellow]")

    console.print(f"\n[bold]Eye Portfolio edge functions[/bold] on http://{host}:{port}\n")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=level.lower())


@app.command()
def status(
    data_dir: Optional[Path] = typer.Argument(
        None,
        help="Snapshot directory (default: EYE_PORTFOLIO_DATA_DIR or ./portfolio)",
    ),
):
    """
    Show evidence counts for a local portfolio snapshot.
    """
    from ..config import get_settings
    from ..portfolio import EvidenceStore, LinkRegistry, PortfolioStorage, SIACollection

    data_dir = data_dir or get_settings().data_dir
    storage = PortfolioStorage(data_dir)
    if not storage.exists():
        console.print(f"[red]Error: no portfolio snapshot in {data_dir}[/red]")
        raise typer.Exit(1)

    store, sias, links = EvidenceStore(), SIACollection(), LinkRegistry()
    storage.load(store, sias, links)
    index = storage.load_index()

    console.print(f"\n[bold]Portfolio: {index.get('trainee_name') or data_dir.name}[/bold]")
    console.print(f"Evidence Items: {len(store)}")
    for status_name, count in store.counts_by_status().items():
        console.print(f"  {status_name}: {count}")

    active_msf = store.active_msf()
    if active_msf:
        console.print(f"\nActive MSF: {active_msf.title} ({active_msf.status.value})")

    by_type = store.counts_by_type()
    if by_type:
        table = Table(title="By Type")
        table.add_column("Type", style="cyan")
        table.add_column("Count", justify="right")
        for type_name in sorted(by_type):
            table.add_row(type_name, str(by_type[type_name]))
        console.print(table)

    console.print(f"SIAs: {len(sias)}")
    for sia in sias:
        console.print(f"  {sia.specialty} (L{sia.level}) - {sia.supervisor_initials}")
    console.print(f"Linked requirements: {len([k for k in links.keys() if links.get(k)])}")


@app.command()
def version():
    """Show version information."""
    console.print(f"Eye Portfolio v{__version__}")
    console.print("Clinical trainee portfolio backend")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
