"""JIRA connection configuration.

Settings come from three places, later ones winning:

1. ``.env`` in the working directory, only when ``DEBUG=true`` or
   ``ENVIRONMENT=development`` (local debugging)
2. The user config file, ``config.json`` in the platform config directory
3. Environment variables

### config.json Structure

```json
{
  "base_url": "https://yourcompany.atlassian.net",
  "email": "you@example.com",
  "project_key": "PROJ",
  "legacy_api": false,
  "transitions": {"in_progress": "21", "done": "31"},
  "epic_link_field": "customfield_10014"
}
```

The API token is only ever read from ``JIRA_API_TOKEN``; it is not stored in
the user config file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from platformdirs import user_config_dir

from .jira_client import DEFAULT_EPIC_LINK_FIELD
from .status import TransitionMap

USER_CONFIG_DIR = Path(user_config_dir("jira-mcp"))
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.json"


@dataclass
class JiraContext:
    """Resolved JIRA configuration."""

    # Source of file-based config
    config_path: Optional[Path] = None
    config_source: str = "none"  # "user", "environment", "none"

    # Connection
    base_url: Optional[str] = None
    email: Optional[str] = None
    api_token: Optional[str] = None
    legacy_mode: bool = False  # JIRA Server / Data Center

    # Defaults
    project_key: Optional[str] = None
    epic_link_field: str = DEFAULT_EPIC_LINK_FIELD
    transitions: TransitionMap = field(default_factory=TransitionMap)

    def missing_settings(self) -> list[str]:
        """Return the environment variables that still need to be set."""
        missing = []
        if not self.base_url:
            missing.append("JIRA_BASE_URL")
        if not self.api_token:
            missing.append("JIRA_API_TOKEN")
        if not self.legacy_mode and not self.email:
            # Cloud uses basic auth with email + token
            missing.append("JIRA_EMAIL")
        return missing

    def is_configured(self) -> bool:
        return not self.missing_settings()

    def browse_url(self, key: str) -> Optional[str]:
        """Web URL of an issue."""
        if not self.base_url:
            return None
        return f"{self.base_url}/browse/{key}"


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def load_debug_env() -> bool:
    """Load a local .env file when running in debug/development mode."""
    if _env_flag(os.environ.get("DEBUG")) or os.environ.get("ENVIRONMENT") == "development":
        return load_dotenv(find_dotenv(usecwd=True))
    return False


def load_user_config(config_file: Optional[Path] = None) -> Optional[dict]:
    """Load the user-level config file, if present."""
    config_file = config_file or USER_CONFIG_FILE
    if config_file.exists():
        with open(config_file) as f:
            return json.load(f) or {}
    return None


def save_user_config(data: dict, config_file: Optional[Path] = None) -> Path:
    """Write the user-level config file. Any API token is dropped."""
    config_file = config_file or USER_CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    data = {k: v for k, v in data.items() if k not in ("api_token", "JIRA_API_TOKEN")}
    with open(config_file, "w") as f:
        json.dump(data, f, indent=2)
    return config_file


def resolve_context(
    environ: Optional[dict] = None,
    config_file: Optional[Path] = None,
) -> JiraContext:
    """Resolve JIRA configuration from the user config file and environment.

    Args:
        environ: Environment mapping (default: os.environ, after optional .env load)
        config_file: User config file (default: platform config dir)

    Returns:
        JiraContext with resolved configuration
    """
    if environ is None:
        load_debug_env()
        environ = os.environ

    context = JiraContext()
    in_progress_id = TransitionMap.in_progress
    done_id = TransitionMap.done

    # Step 1: user config file
    data = load_user_config(config_file)
    if data:
        context.config_path = config_file or USER_CONFIG_FILE
        context.config_source = "user"
        context.base_url = data.get("base_url")
        context.email = data.get("email")
        context.project_key = data.get("project_key")
        context.legacy_mode = bool(data.get("legacy_api", False))
        context.epic_link_field = data.get("epic_link_field") or DEFAULT_EPIC_LINK_FIELD

        transitions = data.get("transitions") or {}
        in_progress_id = str(transitions.get("in_progress", in_progress_id))
        done_id = str(transitions.get("done", done_id))

    # Step 2: environment overrides
    if environ.get("JIRA_BASE_URL"):
        context.base_url = environ["JIRA_BASE_URL"]
        if context.config_source == "none":
            context.config_source = "environment"
    context.email = environ.get("JIRA_EMAIL") or context.email
    context.api_token = environ.get("JIRA_API_TOKEN")
    context.project_key = environ.get("JIRA_PROJECT_KEY") or context.project_key
    context.epic_link_field = environ.get("JIRA_EPIC_LINK_FIELD") or context.epic_link_field
    if "JIRA_LEGACY_API" in environ:
        context.legacy_mode = _env_flag(environ["JIRA_LEGACY_API"])

    in_progress_id = environ.get("JIRA_TRANSITION_IN_PROGRESS") or in_progress_id
    done_id = environ.get("JIRA_TRANSITION_DONE") or done_id
    context.transitions = TransitionMap(in_progress=in_progress_id, done=done_id)

    if context.base_url:
        context.base_url = context.base_url.rstrip("/")

    return context


def get_context_help_message(context: JiraContext) -> str:
    """Generate a helpful message about the current configuration."""
    missing = context.missing_settings()
    if missing:
        return f"""JIRA is not fully configured. Missing: {", ".join(missing)}

To configure, use one of these methods:

1. Run the setup wizard:
   $ jira-mcp setup

2. Set environment variables:
   $ export JIRA_BASE_URL=https://yourcompany.atlassian.net
   $ export JIRA_EMAIL=you@example.com
   $ export JIRA_API_TOKEN=xxxxxxxx

   For JIRA Server / Data Center, use a personal access token and:
   $ export JIRA_LEGACY_API=true

To create an API token:
   https://id.atlassian.com/manage-profile/security/api-tokens
"""

    lines = [f"JIRA Context (from {context.config_source}):"]
    if context.config_path:
        lines.append(f"  Config: {context.config_path}")
    lines.append(f"  Server: {context.base_url}")
    lines.append(f"  Mode: {'Server (legacy API)' if context.legacy_mode else 'Cloud'}")
    if context.email:
        lines.append(f"  Email: {context.email}")
    lines.append(f"  Default project: {context.project_key or 'Not configured'}")
    lines.append(
        f"  Transitions: In Progress={context.transitions.in_progress}, "
        f"Done={context.transitions.done}"
    )
    lines.append("  Auth: JIRA_API_TOKEN (configured)")
    return "\n".join(lines)
