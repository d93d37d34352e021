"""Shared JIRA ticket operations for CLI and MCP."""

from __future__ import annotations

from typing import Optional

from ..config import JiraContext
from ..jira_client import JiraClient


def get_ticket(client: JiraClient, key: str) -> dict:
    return client.get_work_item(key).to_dict()


def create_ticket(
    client: JiraClient,
    context: JiraContext,
    summary: str,
    issue_type: str = "Task",
    project_key: Optional[str] = None,
    description: Optional[str] = None,
    assignee: Optional[str] = None,
    priority: Optional[str] = None,
    epic_key: Optional[str] = None,
) -> dict:
    item = client.create_issue(
        summary,
        issue_type=issue_type,
        project_key=project_key,
        description=description,
        assignee=assignee,
        priority=priority,
        epic_key=epic_key,
    )
    result = item.to_dict()
    result["url"] = context.browse_url(item.key)
    return result


def post_comment(client: JiraClient, key: str, comment: str) -> dict:
    client.add_comment(key, comment)
    return {"success": True, "message": f"Comment posted to {key}"}


def update_description(client: JiraClient, key: str, description: str) -> dict:
    client.update_description(key, description)
    return {"success": True, "message": f"Successfully updated description for {key}"}


def update_status(client: JiraClient, key: str, transition_id: str) -> dict:
    client.transition_issue(key, transition_id)
    return {"success": True, "message": f"Successfully updated status for {key}"}


def list_transitions(client: JiraClient, key: str) -> dict:
    transitions = client.get_transitions(key)
    summary = [
        {
            "id": t.get("id"),
            "name": t.get("name"),
            "to": {
                "name": (t.get("to") or {}).get("name", "Unknown"),
                "id": (t.get("to") or {}).get("id", "Unknown"),
            },
        }
        for t in transitions
    ]
    return {
        "ticketId": key,
        "availableTransitions": summary,
        "totalTransitions": len(summary),
    }
