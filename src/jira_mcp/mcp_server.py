"""MCP Server for JIRA MCP - JIRA ticket management.

This MCP server exposes JIRA tickets, comments, transitions, issue links and
the epic -> story -> task hierarchy to AI assistants.

The JIRA client is created on each tool call, so the server starts (and
``--help`` works) without any credentials configured.
"""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import JiraContext, resolve_context
from .jira_client import (
    AuthenticationError,
    JiraApiError,
    JiraClient,
    JiraConfig,
    JiraError,
    NotFoundError,
)
from .markup import markdown_to_jira
from .output import format_response
from .services.context import get_client, resolve_context_info
from .services.tickets import (
    create_ticket as svc_create_ticket,
    get_ticket as svc_get_ticket,
    list_transitions as svc_list_transitions,
    post_comment as svc_post_comment,
    update_description as svc_update_description,
    update_status as svc_update_status,
)
from .services.links import (
    get_issue_links as svc_get_issue_links,
    link_issues as svc_link_issues,
    list_link_types as svc_list_link_types,
    set_epic_link as svc_set_epic_link,
)
from .services.hierarchy import (
    create_project_hierarchy as svc_create_project_hierarchy,
    validate_project_structure as svc_validate_project_structure,
)
from .services.stories import (
    analyze_story_status as svc_analyze_story_status,
    update_all_story_statuses as svc_update_all_story_statuses,
)

# Create the MCP server
mcp = FastMCP(
    "jira-mcp",
    instructions="""JIRA MCP - ticket management for JIRA Cloud and JIRA Server

## Quick Reference

| Goal | Tool |
|------|------|
| Read a ticket | `get_jira_ticket(ticket_id)` |
| Create a ticket | `create_jira_ticket(summary, issue_type)` |
| Comment | `post_jira_comment(ticket_id, comment)` |
| Move a ticket | `get_available_transitions` then `update_ticket_status` |
| Link tickets | `link_jira_issues(from_issue, to_issue, link_type)` |
| Build an epic | `create_project_hierarchy(hierarchy)` |
| Check an epic | `validate_project_structure(epic_key)` |
| Sync stories with tasks | `update_story_statuses(epic_key)` |

## Formatting
Descriptions and comments accept markdown (headers, **bold**, `code`,
fenced code blocks, [links](url), - lists). It is converted to JIRA
markup before it is sent.

## Story status automation
A story moves To Do -> In Progress once any linked task is started or done,
and -> Done once all linked tasks are done. Stories never move backward.
Use `analyze_story_status` to preview.""",
)


def _get_client_safe() -> tuple[Optional[JiraClient], Optional[JiraContext], Optional[dict]]:
    """Get client with proper error handling."""
    try:
        client, context = get_client()
        return client, context, None
    except AuthenticationError as e:
        return None, None, {
            "error": "authentication_required",
            "message": str(e),
            "suggestions": e.suggestions,
            "help": JiraConfig.get_auth_help_message(),
        }


def _error_payload(e: Exception) -> dict:
    """Map a failed call to an error response."""
    if isinstance(e, NotFoundError):
        return {"error": "not_found", "message": str(e)}
    if isinstance(e, JiraApiError):
        return {"error": "api_error", "message": str(e), "status": e.status}
    if isinstance(e, AuthenticationError):
        return {"error": "authentication_required", "message": str(e), "suggestions": e.suggestions}
    return {"error": "invalid_request", "message": str(e)}


@mcp.tool()
def check_auth(format: str = "json") -> dict:
    """Check JIRA configuration and credentials.

    Returns the resolved configuration and, if configured, the authenticated user.
    """
    context = resolve_context()
    info = resolve_context_info(context)

    if not context.is_configured():
        return format_response({"authenticated": False, **info}, format)

    try:
        client = JiraClient.from_context(context)
        user = client.get_myself() or {}
    except JiraError as e:
        return format_response({"authenticated": False, "error": str(e), **info}, format)

    result = {
        **info,
        "authenticated": True,
        "user": user.get("displayName"),
        "email": user.get("emailAddress"),
    }
    return format_response(result, format)


@mcp.tool()
def get_jira_ticket(ticket_id: str, format: str = "json") -> dict:
    """Fetch JIRA ticket details by ID.

    Args:
        ticket_id: JIRA ticket ID (e.g., PROJ-123)

    Returns key, summary, description, status, assignee and issue type.
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_get_ticket(client, ticket_id)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def post_jira_comment(ticket_id: str, comment: str, format: str = "json") -> dict:
    """Post a comment to a JIRA ticket.

    Args:
        ticket_id: JIRA ticket ID (e.g., PROJ-123)
        comment: Comment text to post (markdown is converted to JIRA markup)
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_post_comment(client, ticket_id, comment)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def create_jira_ticket(
    summary: str,
    description: Optional[str] = None,
    issue_type: str = "Task",
    project_key: Optional[str] = None,
    assignee: Optional[str] = None,
    priority: Optional[str] = None,
    epic_key: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Create a new JIRA ticket in the specified project.

    Args:
        summary: Ticket summary/title
        description: Ticket description (markdown supported)
        issue_type: Issue type (e.g., 'Task', 'Story', 'Bug', 'Epic')
        project_key: Project key (uses JIRA_PROJECT_KEY if not provided)
        assignee: Assignee username
        priority: Priority (e.g., 'High', 'Medium', 'Low')
        epic_key: Parent epic to attach the ticket to
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_create_ticket(
            client,
            context,
            summary,
            issue_type=issue_type,
            project_key=project_key,
            description=description,
            assignee=assignee,
            priority=priority,
            epic_key=epic_key,
        )
    except (JiraError, ValueError) as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def link_jira_issues(
    from_issue: str,
    to_issue: str,
    link_type: str,
    comment: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Create a link between two JIRA issues.

    Args:
        from_issue: Source issue key (e.g., PROJ-123)
        to_issue: Target issue key (e.g., PROJ-124)
        link_type: Link type name (e.g., 'Blocks', 'Relates', 'Duplicate')
        comment: Optional comment posted with the link
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_link_issues(client, from_issue, to_issue, link_type, comment)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def set_epic_link(issue_key: str, epic_key: str, format: str = "json") -> dict:
    """Attach a story or task to a parent epic.

    Args:
        issue_key: Issue to attach (e.g., PROJ-124)
        epic_key: Epic key (e.g., PROJ-123)
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_set_epic_link(client, issue_key, epic_key)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def get_issue_links(
    ticket_id: str,
    limit: int = 50,
    offset: int = 0,
    format: str = "json",
) -> dict:
    """Retrieve existing links for an issue.

    Args:
        ticket_id: JIRA ticket ID (e.g., PROJ-123)

    Returns each link's type, direction, related issue and relationship verb.
    List responses include `pagination: {has_more, next_offset}`.
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_get_issue_links(client, ticket_id, limit=limit, offset=offset)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def get_link_types(format: str = "json") -> dict:
    """List the issue link types configured on the server.

    Use a type's `name` as `link_type` in link_jira_issues.
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_list_link_types(client)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def create_project_hierarchy(
    hierarchy: dict,
    project_key: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Bulk create an epic with its stories and tasks.

    Args:
        hierarchy: {"epic": {"summary", "description"},
                    "stories": [{"summary", "description",
                                 "tasks": [{"summary", "description"}]}]}
        project_key: Project key (uses JIRA_PROJECT_KEY if not provided)
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_create_project_hierarchy(client, context, hierarchy, project_key)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def validate_project_structure(epic_key: str, format: str = "json") -> dict:
    """Verify an epic's hierarchy.

    Args:
        epic_key: Epic key to validate (e.g., PROJ-123)

    Reports an issue when the key is not an Epic, and warnings for an empty
    epic or stories without linked tasks.
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_validate_project_structure(client, epic_key)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def update_ticket_description(ticket_id: str, description: str, format: str = "json") -> dict:
    """Replace a ticket's description.

    Args:
        ticket_id: JIRA ticket ID (e.g., PROJ-123)
        description: New description (markdown is converted to JIRA markup)
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_update_description(client, ticket_id, description)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def update_ticket_status(ticket_id: str, transition_id: str, format: str = "json") -> dict:
    """Move a ticket through its workflow.

    Args:
        ticket_id: JIRA ticket ID (e.g., PROJ-123)
        transition_id: Transition ID (see get_available_transitions;
            '21' is In Progress and '31' is Done in the default workflow)
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_update_status(client, ticket_id, transition_id)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def get_available_transitions(ticket_id: str, format: str = "json") -> dict:
    """List the transitions available from a ticket's current status.

    Args:
        ticket_id: JIRA ticket ID (e.g., PROJ-123)
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_list_transitions(client, ticket_id)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def update_story_statuses(epic_key: str, dry_run: bool = False, format: str = "json") -> dict:
    """Update every story in an epic based on its linked tasks.

    Args:
        epic_key: Epic whose stories should be updated (e.g., PROJ-123)
        dry_run: Report the changes without applying them

    Each moved story gets a comment explaining the change. Stories that
    fail are skipped and listed under `failures`.
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_update_all_story_statuses(client, context, epic_key, dry_run=dry_run)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def analyze_story_status(story_key: str, format: str = "json") -> dict:
    """Analyze a story's status against its linked tasks.

    Args:
        story_key: Story key to analyze (e.g., PROJ-123)

    Returns task counts, whether the story should be In Progress or Done,
    and the transition that would be applied.
    """
    client, context, error = _get_client_safe()
    if error:
        return format_response(error, format)

    try:
        result = svc_analyze_story_status(client, context, story_key)
    except JiraError as e:
        return format_response(_error_payload(e), format)
    return format_response(result, format)


@mcp.tool()
def convert_markdown(text: str, format: str = "json") -> dict:
    """Preview how markdown will be converted to JIRA markup.

    Args:
        text: Markdown text
    """
    return format_response({"markup": markdown_to_jira(text)}, format)


def main():
    """Run the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
