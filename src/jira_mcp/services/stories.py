"""Story status operations shared by CLI and MCP."""

from __future__ import annotations

from ..config import JiraContext
from ..jira_client import JiraClient
from ..status import analyze_status, apply_recommendation, update_all_children


def analyze_story_status(client: JiraClient, context: JiraContext, story_key: str) -> dict:
    """Compare a story's status with the progress of its linked tasks."""
    story = client.get_work_item(story_key)
    tasks = client.get_related_tasks(story_key)
    analysis = analyze_status(story, tasks, context.transitions)

    result = analysis.to_dict()
    result["storySummary"] = story.summary
    return result


def update_story_status(client: JiraClient, context: JiraContext, story_key: str) -> dict:
    """Move one story forward if its tasks warrant it."""
    story = client.get_work_item(story_key)
    tasks = client.get_related_tasks(story_key)
    update = apply_recommendation(
        story, tasks, client.transition_issue, client.add_comment, context.transitions
    )
    if update is None:
        return {
            "updated": False,
            "oldStatus": story.status,
            "newStatus": story.status,
            "reason": "No status change needed",
        }
    return {
        "updated": True,
        "oldStatus": update["oldStatus"],
        "newStatus": update["newStatus"],
        "reason": update["reason"],
    }


def update_all_story_statuses(
    client: JiraClient,
    context: JiraContext,
    epic_key: str,
    dry_run: bool = False,
) -> dict:
    """Move every story of an epic forward based on its tasks.

    With ``dry_run`` the would-be updates are reported but nothing is
    transitioned or commented.
    """
    stories = client.get_epic_issues(epic_key)

    if dry_run:
        def apply_transition(key: str, transition_id: str) -> None:
            pass

        def post_comment(key: str, comment: str) -> None:
            pass
    else:
        apply_transition = client.transition_issue
        post_comment = client.add_comment

    result = update_all_children(
        epic_key,
        stories,
        client.get_related_tasks,
        apply_transition,
        post_comment,
        context.transitions,
    ).to_dict()
    result["epic"] = epic_key
    result["dryRun"] = dry_run
    return result
