"""Interactive first-run setup.

Collects JIRA credentials, checks them against the server, and registers the
``jira-mcp`` server in the MCP config of Claude Code (``~/.claude.json``) and
Claude Desktop (``claude_desktop_config.json``).
"""

import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .config import load_user_config, save_user_config
from .jira_client import JiraClient, JiraConfig, JiraError

logger = logging.getLogger(__name__)

SERVER_NAME = "jira-mcp"
SERVER_COMMAND = "jira-mcp"
SERVER_ARGS = ["serve"]

AVAILABLE_TOOLS = [
    ("get_jira_ticket", "Fetch ticket details"),
    ("create_jira_ticket", "Create new tickets"),
    ("post_jira_comment", "Add comments to tickets"),
    ("link_jira_issues", "Link issues with relationships"),
    ("set_epic_link", "Link stories/tasks to epics"),
    ("create_project_hierarchy", "Create epic/story/task trees"),
    ("validate_project_structure", "Check an epic's structure"),
    ("update_story_statuses", "Auto-update story statuses"),
    ("analyze_story_status", "Preview story status changes"),
]


@dataclass
class SetupSettings:
    """Answers collected by the wizard."""

    base_url: str
    email: str
    api_token: str
    project_key: Optional[str] = None

    def to_env(self) -> dict:
        """Environment block for the MCP server entry."""
        return {
            "JIRA_BASE_URL": self.base_url,
            "JIRA_EMAIL": self.email,
            "JIRA_API_TOKEN": self.api_token,
            "JIRA_PROJECT_KEY": self.project_key or "",
        }


def server_entry(settings: SetupSettings) -> dict:
    return {
        "command": SERVER_COMMAND,
        "args": list(SERVER_ARGS),
        "env": settings.to_env(),
    }


def claude_code_config_path(home: Optional[Path] = None) -> Path:
    return (home or Path.home()) / ".claude.json"


def claude_desktop_config_path(
    platform: Optional[str] = None,
    environ: Optional[dict] = None,
    home: Optional[Path] = None,
) -> Optional[Path]:
    """Locate the Claude Desktop config file.

    Returns None where Claude Desktop is not available (Linux) or the
    location cannot be determined (Windows without APPDATA).
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ
    home = home or Path.home()

    if platform == "darwin":
        return home / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
    if platform == "win32":
        app_data = environ.get("APPDATA")
        if not app_data:
            return None
        return Path(app_data) / "Claude" / "claude_desktop_config.json"
    return None


def load_host_config(config_path: Path) -> dict:
    """Load an MCP host config, starting fresh if it is missing or unreadable."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not parse {config_path}, creating new config: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def has_server_entry(config_path: Path) -> bool:
    servers = load_host_config(config_path).get("mcpServers") or {}
    return SERVER_NAME in servers


def write_server_entry(config_path: Path, settings: SetupSettings) -> Path:
    """Add or replace the jira-mcp entry, keeping the rest of the file intact."""
    data = load_host_config(config_path)
    servers = data.get("mcpServers")
    if not isinstance(servers, dict):
        servers = {}
    servers[SERVER_NAME] = server_entry(settings)
    data["mcpServers"] = servers

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        json.dump(data, f, indent=2)
    return config_path


def save_settings(settings: SetupSettings, config_file: Optional[Path] = None) -> Path:
    """Store the non-secret settings in the user config file.

    Existing keys (e.g. ``transitions``) are kept. The API token only goes
    into the MCP host entries.
    """
    data = load_user_config(config_file) or {}
    data["base_url"] = settings.base_url
    data["email"] = settings.email
    if settings.project_key:
        data["project_key"] = settings.project_key
    return save_user_config(data, config_file)


def validate_connection(settings: SetupSettings) -> dict:
    """Return the authenticated JIRA user, raising JiraError on failure."""
    client = JiraClient(JiraConfig(
        base_url=settings.base_url,
        api_token=settings.api_token,
        email=settings.email,
    ))
    return client.get_myself() or {}


class SetupWizard:
    """Prompts for JIRA settings and writes the MCP host configs."""

    def __init__(
        self,
        console: Optional[Console] = None,
        force: bool = False,
        home: Optional[Path] = None,
        platform: Optional[str] = None,
        environ: Optional[dict] = None,
        config_file: Optional[Path] = None,
    ):
        self.console = console or Console()
        self.force = force
        self.home = home
        self.platform = platform
        self.environ = environ
        self.config_file = config_file

    def _required(self, label: str, hide_input: bool = False) -> str:
        value = typer.prompt(label, hide_input=hide_input).strip()
        if not value:
            self.console.print(f"[red]Error:[/red] {label} is required")
            raise typer.Exit(1)
        return value

    def prompt_settings(self) -> SetupSettings:
        self.console.print("[bold]JIRA Configuration[/bold]")
        base_url = self._required("JIRA Base URL (e.g., https://yourcompany.atlassian.net)")
        email = self._required("JIRA Email")
        api_token = self._required("JIRA API Token", hide_input=True)
        project_key = typer.prompt(
            "Default JIRA Project Key (optional, press Enter to skip)", default=""
        ).strip()
        return SetupSettings(
            base_url=base_url.rstrip("/"),
            email=email,
            api_token=api_token,
            project_key=project_key or None,
        )

    def _write(self, label: str, config_path: Path, settings: SetupSettings) -> Optional[Path]:
        if not self.force and has_server_entry(config_path):
            if not typer.confirm(f"{label} already has a {SERVER_NAME} server. Overwrite?"):
                self.console.print(f"[yellow]Skipped:[/yellow] {label}")
                return None
        try:
            written = write_server_entry(config_path, settings)
        except OSError as e:
            self.console.print(f"[yellow]Warning:[/yellow] Failed to configure {label}: {e}")
            self.console.print("   You can manually add the MCP server configuration later.")
            return None
        self.console.print(f"[green]Updated:[/green] {label} configuration at {written}")
        return written

    def configure_hosts(self, settings: SetupSettings) -> list[Path]:
        """Write the server entry for every host available on this platform."""
        written = []

        path = self._write("Claude Code", claude_code_config_path(self.home), settings)
        if path:
            written.append(path)

        desktop_path = claude_desktop_config_path(self.platform, self.environ, self.home)
        if desktop_path is None:
            self.console.print("[dim]Claude Desktop is not available on this platform, skipping.[/dim]")
        else:
            path = self._write("Claude Desktop", desktop_path, settings)
            if path:
                written.append(path)

        return written

    def run(self) -> bool:
        """Run the wizard. Returns False if the user gave up."""
        self.console.print("[bold]Welcome to JIRA-MCP Setup[/bold]")
        self.console.print("This will configure the JIRA MCP server for Claude Code and Claude Desktop.\n")

        while True:
            settings = self.prompt_settings()
            self.console.print("\nTesting JIRA connection...")
            try:
                user = validate_connection(settings)
                break
            except JiraError as e:
                self.console.print(f"[red]JIRA connection failed:[/red] {e}")
                if not typer.confirm("Would you like to retry with different credentials?"):
                    self.console.print("[red]Setup cancelled[/red]")
                    return False

        self.console.print(
            f"[green]Connected as:[/green] {user.get('displayName')} ({user.get('emailAddress')})"
        )

        try:
            saved = save_settings(settings, self.config_file)
            self.console.print(f"[green]Saved:[/green] settings to {saved}")
        except (OSError, ValueError) as e:
            self.console.print(f"[yellow]Warning:[/yellow] Could not save settings: {e}")

        self.console.print("\nConfiguring Claude integrations...")
        self.configure_hosts(settings)

        self.console.print("\n[bold green]Setup complete![/bold green]")
        self.console.print("\nNext steps:")
        self.console.print("  - Restart Claude Code and Claude Desktop if they were running")
        self.console.print("  - Try the JIRA tools from Claude")
        self.console.print("\nAvailable tools:")
        for name, description in AVAILABLE_TOOLS:
            self.console.print(f"  [cyan]{name}[/cyan] - {description}")
        return True
