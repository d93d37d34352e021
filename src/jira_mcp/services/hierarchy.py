"""Epic -> story -> task hierarchy operations shared by CLI and MCP."""

from __future__ import annotations

from typing import Optional

from ..config import JiraContext
from ..hierarchy import validate_hierarchy
from ..jira_client import AuthenticationError, JiraApiError, JiraClient, JiraError


def _prefixed(error: Exception, prefix: str) -> JiraError:
    """Copy ``error`` with ``prefix`` added, keeping its class and status."""
    message = f"{prefix}: {error}"
    if isinstance(error, JiraApiError):
        return type(error)(message, status=error.status)
    if isinstance(error, AuthenticationError):
        return AuthenticationError(message, error.suggestions)
    return JiraError(message)


def create_project_hierarchy(
    client: JiraClient,
    context: JiraContext,
    hierarchy: dict,
    project_key: Optional[str] = None,
) -> dict:
    """Create an epic with its stories and their tasks.

    ``hierarchy`` has the shape::

        {"epic": {"summary": ..., "description": ...},
         "stories": [{"summary": ..., "description": ...,
                      "tasks": [{"summary": ..., "description": ...}]}]}

    Stories are parented to the epic and tasks to their story once created.
    """
    project_key = project_key or context.project_key
    try:
        epic_data = hierarchy["epic"]
        epic = client.create_issue(
            epic_data["summary"],
            issue_type="Epic",
            project_key=project_key,
            description=epic_data.get("description"),
        )

        stories = []
        total_created = 1
        for story_data in hierarchy.get("stories", []):
            story = client.create_issue(
                story_data["summary"],
                issue_type="Story",
                project_key=project_key,
                description=story_data.get("description"),
            )
            client.set_epic_link(story.key, epic.key)
            total_created += 1

            tasks = []
            for task_data in story_data.get("tasks") or []:
                task = client.create_issue(
                    task_data["summary"],
                    issue_type="Task",
                    project_key=project_key,
                    description=task_data.get("description"),
                )
                client.set_epic_link(task.key, story.key)
                total_created += 1
                tasks.append({
                    "key": task.key,
                    "summary": task.summary,
                    "url": context.browse_url(task.key),
                })

            stories.append({
                "key": story.key,
                "summary": story.summary,
                "url": context.browse_url(story.key),
                "tasks": tasks,
            })
    except (JiraError, KeyError, ValueError) as e:
        raise _prefixed(e, "Failed to create project hierarchy") from e

    return {
        "epic": {
            "key": epic.key,
            "summary": epic.summary,
            "url": context.browse_url(epic.key),
        },
        "stories": stories,
        "totalCreated": total_created,
    }


def validate_project_structure(client: JiraClient, epic_key: str) -> dict:
    """Check an epic's structure and report issues and warnings."""
    warnings = []
    if client.config.legacy_mode:
        warnings.append("Running in legacy JIRA Server mode - some features may be limited")

    try:
        epic = client.get_work_item(epic_key)
        children = client.get_epic_issues(epic_key)
        report = validate_hierarchy(
            epic,
            children,
            client.get_issue_links,
            extra_warnings=warnings,
            check_links=client.supports_issue_links(),
        )
    except JiraError as e:
        raise _prefixed(e, "Failed to validate project structure") from e

    return {
        "epic": epic_key,
        "status": "Valid project structure" if report.is_valid else "Issues found in project structure",
        **report.to_dict(),
    }
