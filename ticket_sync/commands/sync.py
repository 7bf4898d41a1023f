"""Sync command for Jira Ticket Sync."""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config.auth import JiraCredentials
from ..config.settings import Settings
from ..exceptions import CredentialsError, JiraConnectionError, TicketSyncError
from ..logging_config import configure_logging
from ..models.ticket import SyncReport
from ..services.sync_service import run_sync
from ..utils.validators import validate_jql

console = Console()


def render_report(report: SyncReport) -> None:
    """Print a sync report as a summary table followed by any errors."""
    table = Table(title="Sync Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="yellow", justify="right")
    table.add_row("Issues fetched", str(report.issues_fetched))
    table.add_row("Tickets extracted", str(report.tickets_extracted))
    table.add_row("Skipped (not closed)", str(report.tickets_skipped))
    table.add_row("Tickets stored", str(report.tickets_persisted))
    table.add_row("Errors", str(len(report.errors)))
    table.add_row("Final state", report.state.value)
    console.print(table)

    if report.unmapped_statuses:
        console.print(f"[yellow]Unmapped statuses:[/yellow] {', '.join(report.unmapped_statuses)}")

    if report.errors:
        errors = Table(title="Errors", show_header=True, header_style="bold red")
        errors.add_column("Stage", style="red")
        errors.add_column("Ticket/Batch")
        errors.add_column("Message")
        for error in report.errors:
            where = error.ticket_id or (f"batch {error.batch_number}" if error.batch_number else "-")
            errors.add_row(error.stage, where, error.message)
        console.print(errors)


@click.command()
@click.option('--jql', type=str, help='JQL query selecting the tickets (default: JIRA_JQL)')
@click.option('--server', type=str, help='Jira server URL (default: JIRA_SERVER)')
@click.option('--username', type=str, help='Jira username or email (default: JIRA_USERNAME)')
@click.option('--api-token', type=str, help='Jira API token (default: JIRA_API_TOKEN)')
@click.option('--password', type=str, help='Legacy Jira password (default: JIRA_PASSWORD)')
@click.option('--database-url', type=str, help='SQLAlchemy database URL (default: DATABASE_URL)')
@click.option('--workers', type=click.IntRange(min=1), help='Concurrent detail batch requests (default: FETCH_WORKERS)')
@click.option('--timeout', type=float, help='Abort the sync after this many seconds (default: SYNC_TIMEOUT)')
@click.option('--verbose', is_flag=True, help='Show verbose output')
def sync(
    jql: Optional[str],
    server: Optional[str],
    username: Optional[str],
    api_token: Optional[str],
    password: Optional[str],
    database_url: Optional[str],
    workers: Optional[int],
    timeout: Optional[float],
    verbose: bool,
):
    """Fetch tickets matching a JQL query and store closed ones with status times.

    Examples:

    \b
    Sync using the configured JQL:
    $ ticket-sync sync

    \b
    Sync a specific query with four concurrent batches:
    $ ticket-sync sync --jql "project = PROJ" --workers 4
    """
    overrides = {}
    if workers is not None:
        overrides['fetch_workers'] = workers
    if timeout is not None:
        overrides['sync_timeout'] = timeout
    if verbose:
        overrides['log_level'] = 'DEBUG'
    settings = Settings(**overrides)
    configure_logging(settings.log_level, settings.log_file)

    jql = jql or settings.jira_jql
    if not jql or not validate_jql(jql):
        console.print(Panel(
            "[red]Error:[/red] A JQL query is required.\n\n"
            "Pass --jql or set JIRA_JQL in your .env file.",
            title="Sync Command",
            border_style="red"
        ))
        raise click.Abort()

    try:
        credentials = JiraCredentials.build(
            server=server or settings.jira_server,
            username=username or settings.jira_username,
            api_token=api_token or settings.jira_api_token,
            password=password or settings.jira_password,
        )
        with console.status("[cyan]Syncing Jira tickets...[/cyan]"):
            report = run_sync(jql, credentials, settings=settings, database=database_url)
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync cancelled by user.[/yellow]")
        raise click.Abort()
    except (CredentialsError, JiraConnectionError) as e:
        console.print(Panel(f"[red]✗[/red] {e}", title="Sync Failed", border_style="red"))
        raise click.Abort()
    except TicketSyncError as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise click.Abort()

    render_report(report)
    if report.cancelled:
        console.print("[yellow]Sync was cancelled before completion; results are partial.[/yellow]")
    elif report.success:
        console.print("[green]✓[/green] Sync completed successfully")
