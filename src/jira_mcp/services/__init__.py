"""Shared service layer for CLI and MCP."""

from .context import resolve_context_info, get_client
from .tickets import (
    get_ticket,
    create_ticket,
    post_comment,
    update_description,
    update_status,
    list_transitions,
)
from .links import link_issues, set_epic_link, get_issue_links, list_link_types
from .hierarchy import create_project_hierarchy, validate_project_structure
from .stories import analyze_story_status, update_story_status, update_all_story_statuses

__all__ = [
    "resolve_context_info",
    "get_client",
    "get_ticket",
    "create_ticket",
    "post_comment",
    "update_description",
    "update_status",
    "list_transitions",
    "link_issues",
    "set_epic_link",
    "get_issue_links",
    "list_link_types",
    "create_project_hierarchy",
    "validate_project_structure",
    "analyze_story_status",
    "update_story_status",
    "update_all_story_statuses",
]
