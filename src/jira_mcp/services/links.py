"""Shared issue relationship operations for CLI and MCP."""

from __future__ import annotations

from typing import Optional

from ..jira_client import JiraClient
from ..output import paginate


def link_issues(
    client: JiraClient,
    from_issue: str,
    to_issue: str,
    link_type: str,
    comment: Optional[str] = None,
) -> dict:
    client.link_issues(from_issue, to_issue, link_type, comment)
    return {
        "success": True,
        "message": f'Successfully linked {from_issue} to {to_issue} with relationship "{link_type}"',
    }


def set_epic_link(client: JiraClient, issue_key: str, epic_key: str) -> dict:
    client.set_epic_link(issue_key, epic_key)
    return {"success": True, "message": f"Successfully linked {issue_key} to epic {epic_key}"}


def get_issue_links(client: JiraClient, key: str, limit: int = 50, offset: int = 0) -> dict:
    links = [link.to_dict() for link in client.get_issue_links(key)]
    page, pagination = paginate(links, limit, offset)
    return {
        "ticket": key,
        "links": page,
        "totalLinks": len(links),
        "pagination": pagination,
    }


def list_link_types(client: JiraClient) -> dict:
    types = client.get_link_types()
    return {
        "linkTypes": [
            {"id": t.id, "name": t.name, "inward": t.inward, "outward": t.outward}
            for t in types
        ]
    }
