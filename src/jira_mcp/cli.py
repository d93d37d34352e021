"""Main CLI for JIRA MCP."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .jira_client import AuthenticationError, JiraConfig, JiraError
from .markup import markdown_to_jira
from .output import format_response, render_cli
from .services import resolve_context_info
from .services.context import get_client as svc_get_client
from .services.tickets import get_ticket as svc_get_ticket
from .services.hierarchy import validate_project_structure as svc_validate_project_structure
from .services.stories import (
    analyze_story_status as svc_analyze_story_status,
    update_all_story_statuses as svc_update_all_story_statuses,
)

app = typer.Typer(
    name="jira-mcp",
    help="JIRA MCP - JIRA ticket management for AI assistants",
)
console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Send logs to stderr; stdout carries the MCP stdio transport."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    configure_logging(verbose)


def get_client():
    """Get configured JIRA client + context or exit with error."""
    try:
        return svc_get_client()
    except AuthenticationError as e:
        console.print(f"[red]Authentication Error:[/red] {e}")
        console.print("")
        console.print(JiraConfig.get_auth_help_message())
        raise typer.Exit(1)


def _print(result: dict, output_format: str) -> None:
    typer.echo(render_cli(format_response(result, output_format)))


# ============================================================================
# Server and setup
# ============================================================================


@app.command("serve")
def serve():
    """Run the MCP server over stdio."""
    from .mcp_server import main as run_server

    run_server()


@app.command("setup")
def setup(
    force: bool = typer.Option(False, "--force", help="Replace existing jira-mcp entries without asking"),
):
    """Run interactive setup and configure Claude Code / Claude Desktop."""
    from .setup_wizard import SetupWizard

    if not SetupWizard(console=console, force=force).run():
        raise typer.Exit(1)


@app.command("context")
def show_context(
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (json|text)"),
):
    """Show the resolved JIRA configuration."""
    data = resolve_context_info()
    if output_format == "text":
        console.print(data["help"])
        return
    _print(data, output_format)


@app.command("check")
def check():
    """Verify credentials against the JIRA server."""
    client, context = get_client()
    try:
        user = client.get_myself() or {}
    except JiraError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(
        f"[green]Connected[/green] to {context.base_url} as "
        f"{user.get('displayName')} ({user.get('emailAddress')})"
    )


# ============================================================================
# Tickets
# ============================================================================

ticket_app = typer.Typer(help="Ticket commands")
app.add_typer(ticket_app, name="ticket")


@ticket_app.command("show")
def ticket_show(
    key: str = typer.Argument(..., help="Ticket key (e.g., PROJ-123)"),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format (json|text)"),
):
    """Show a ticket."""
    client, _ = get_client()
    try:
        result = svc_get_ticket(client, key)
    except JiraError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _print(result, output_format)


# ============================================================================
# Stories and epics
# ============================================================================

story_app = typer.Typer(help="Story status automation")
app.add_typer(story_app, name="story")


@story_app.command("analyze")
def story_analyze(
    key: str = typer.Argument(..., help="Story key (e.g., PROJ-123)"),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format (json|text)"),
):
    """Compare a story's status with its linked tasks."""
    client, context = get_client()
    try:
        result = svc_analyze_story_status(client, context, key)
    except JiraError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _print(result, output_format)


@story_app.command("update-all")
def story_update_all(
    epic_key: str = typer.Argument(..., help="Epic key (e.g., PROJ-100)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show changes without applying them"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (json|text)"),
):
    """Update every story in an epic based on its tasks."""
    client, context = get_client()
    try:
        result = svc_update_all_story_statuses(client, context, epic_key, dry_run=dry_run)
    except JiraError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if output_format != "text":
        _print(result, output_format)
        return

    prefix = "[yellow]Dry run:[/yellow] " if dry_run else ""
    console.print(f"{prefix}{result['summary']}")
    for update in result["updates"]:
        console.print(
            f"  [cyan]{update['key']}[/cyan] {update['oldStatus']} -> "
            f"[green]{update['newStatus']}[/green] ({update['reason']})"
        )
    for failure in result["failures"]:
        console.print(f"  [red]{failure['key']}[/red] skipped: {failure['error']}")


epic_app = typer.Typer(help="Epic commands")
app.add_typer(epic_app, name="epic")


@epic_app.command("validate")
def epic_validate(
    epic_key: str = typer.Argument(..., help="Epic key (e.g., PROJ-100)"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (json|text)"),
):
    """Validate an epic's story/task structure."""
    client, _ = get_client()
    try:
        result = svc_validate_project_structure(client, epic_key)
    except JiraError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if output_format != "text":
        _print(result, output_format)
    else:
        color = "green" if result["isValid"] else "red"
        console.print(f"[{color}]{result['status']}[/{color}] ({epic_key})")
        for issue in result["issues"]:
            console.print(f"  [red]Issue:[/red] {issue}")
        for warning in result["warnings"]:
            console.print(f"  [yellow]Warning:[/yellow] {warning}")

    if not result["isValid"]:
        raise typer.Exit(1)


# ============================================================================
# Markup
# ============================================================================

markup_app = typer.Typer(help="Markdown to JIRA markup conversion")
app.add_typer(markup_app, name="markup")


@markup_app.command("convert")
def markup_convert(
    file: Optional[Path] = typer.Argument(None, help="Markdown file (reads stdin if omitted)"),
):
    """Convert markdown to JIRA markup."""
    if file:
        if not file.exists():
            console.print(f"[red]Error:[/red] File not found: {file}")
            raise typer.Exit(1)
        text = file.read_text()
    else:
        text = sys.stdin.read()
    typer.echo(markdown_to_jira(text))


def main():
    app()


if __name__ == "__main__":
    main()
