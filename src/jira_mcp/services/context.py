"""Context and client resolution helpers shared by CLI and MCP."""

from __future__ import annotations

from typing import Optional

from ..config import JiraContext, get_context_help_message, resolve_context
from ..jira_client import JiraClient


def resolve_context_info(context: Optional[JiraContext] = None) -> dict:
    """Return context info and help text if not configured."""
    context = context or resolve_context()
    return {
        "config_source": context.config_source,
        "config_path": str(context.config_path) if context.config_path else None,
        "base_url": context.base_url,
        "email": context.email,
        "legacy_mode": context.legacy_mode,
        "project_key": context.project_key,
        "transitions": {
            "in_progress": context.transitions.in_progress,
            "done": context.transitions.done,
        },
        "api_token_configured": context.api_token is not None,
        "missing": context.missing_settings(),
        "help": get_context_help_message(context),
    }


def get_client(context: Optional[JiraContext] = None) -> tuple[JiraClient, JiraContext]:
    """Return JIRA client + resolved context.

    Raises AuthenticationError if required settings are missing.
    """
    context = context or resolve_context()
    return JiraClient.from_context(context), context
