"""Main CLI entry point for Jira Ticket Sync."""

import click
from rich.console import Console
from rich.panel import Panel

from .commands.sync import sync
from .config.auth import JiraAuth
from .config.settings import Settings
from .exceptions import CredentialsError, JiraConnectionError
from .logging_config import configure_logging

console = Console()


@click.group(invoke_without_command=True)
@click.pass_context
@click.version_option(version="0.1.0", prog_name="ticket-sync")
def cli(ctx: click.Context):
    """Jira Ticket Sync - Store closed Jira tickets with time spent per status.

    Examples:

    \b
    Test connection:
    $ ticket-sync test

    \b
    Sync tickets matching a JQL query:
    $ ticket-sync sync --jql "project = PROJ AND resolved >= -30d"
    """
    if ctx.invoked_subcommand is None:
        console.print(Panel(
            "[bold cyan]Jira Ticket Sync[/bold cyan]\n\n"
            "Fetch Jira tickets, compute time per status bucket and store them.\n\n"
            "[yellow]Available Commands:[/yellow]\n"
            "  test  - Test connection to Jira server\n"
            "  sync  - Sync tickets matching a JQL query\n\n"
            "[dim]Use --help with any command for detailed help.[/dim]",
            title="Welcome",
            border_style="cyan"
        ))
        console.print(ctx.get_help())


@cli.command()
def test():
    """Test connection to Jira server with current credentials.

    Reads JIRA_SERVER, JIRA_USERNAME and JIRA_API_TOKEN (or JIRA_PASSWORD)
    from the environment or .env file.
    """
    settings = Settings()
    configure_logging(settings.log_level, settings.log_file)
    try:
        auth = JiraAuth(settings=settings)
        try:
            check = auth.test_connection()
        finally:
            auth.close()
    except (CredentialsError, JiraConnectionError) as e:
        console.print(Panel(
            f"[red]✗[/red] {e}\n\n[yellow]Please check your .env file configuration.[/yellow]",
            title="Connection Test Failed",
            border_style="red"
        ))
        raise click.Abort()

    console.print(Panel(
        f"[green]✓[/green] Connected to {check.server}\n\n"
        f"User: {check.display_name or 'N/A'}\n"
        f"Email: {check.email or 'N/A'}\n"
        f"Account ID: {check.account_id or 'N/A'}",
        title="Connection Test Success",
        border_style="green"
    ))


cli.add_command(sync)


if __name__ == '__main__':
    cli()
