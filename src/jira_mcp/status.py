"""Story status inference from child task progress.

A story moves forward through To Do -> In Progress -> Done as its linked tasks
are started and finished. Stories are never moved backward, and a story with
no tasks is never touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .models import (
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_TO_DO,
    BatchResult,
    StatusAnalysis,
    TaskSummary,
    Transition,
    WorkItem,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionMap:
    """Workflow transition IDs used to move a story forward.

    The defaults are the IDs of JIRA's default software workflow. Instances
    with a customized workflow override them through configuration.
    """

    in_progress: str = "21"
    done: str = "31"

    def id_for(self, status: str) -> Optional[str]:
        """Return the transition ID that leads to ``status``, if known."""
        return {
            STATUS_IN_PROGRESS: self.in_progress,
            STATUS_DONE: self.done,
        }.get(status)


DEFAULT_TRANSITIONS = TransitionMap()


def summarize_tasks(children: Iterable[WorkItem]) -> TaskSummary:
    """Count children per recognized status."""
    summary = TaskSummary()
    for child in children:
        summary.total += 1
        if child.status == STATUS_DONE:
            summary.done += 1
        elif child.status == STATUS_IN_PROGRESS:
            summary.in_progress += 1
        elif child.status == STATUS_TO_DO:
            summary.to_do += 1
    return summary


def analyze_status(
    parent: WorkItem,
    children: list[WorkItem],
    transitions: Optional[TransitionMap] = None,
) -> StatusAnalysis:
    """Compare a parent's status against the progress of its child tasks."""
    summary = summarize_tasks(children)
    should_be_done = summary.total > 0 and summary.done == summary.total
    should_be_in_progress = not should_be_done and summary.started > 0

    analysis = StatusAnalysis(
        parent_key=parent.key,
        current_status=parent.status,
        child_summary=summary,
        should_be_done=should_be_done,
        should_be_in_progress=should_be_in_progress,
        children=list(children),
    )
    analysis.recommended_transition = recommend_transition(parent, analysis, transitions)
    return analysis


def recommend_transition(
    parent: WorkItem,
    analysis: StatusAnalysis,
    transitions: Optional[TransitionMap] = None,
) -> Optional[Transition]:
    """Pick the forward transition a parent should take, if any."""
    transitions = transitions or DEFAULT_TRANSITIONS
    summary = analysis.child_summary

    if analysis.should_be_done and parent.status != STATUS_DONE:
        return Transition(
            id=transitions.id_for(STATUS_DONE),
            target_status=STATUS_DONE,
            reason=f"All {summary.total} related tasks are completed",
        )

    if analysis.should_be_in_progress and parent.status == STATUS_TO_DO:
        return Transition(
            id=transitions.id_for(STATUS_IN_PROGRESS),
            target_status=STATUS_IN_PROGRESS,
            reason=f"{summary.started} of {summary.total} tasks are started/completed",
        )

    return None


def build_audit_comment(
    old_status: str,
    new_status: str,
    reason: str,
    summary: TaskSummary,
) -> str:
    """Render the comment posted on a story after an automatic transition.

    The text is already JIRA markup.
    """
    return f"""Story Status Updated Automatically

*Previous Status:* {old_status}
*New Status:* {new_status}
*Reason:* {reason}

*Task Summary:*
* Total Tasks: {summary.total}
* Done: {summary.done}
* In Progress: {summary.in_progress}
* To Do: {summary.to_do}

Status updated automatically based on related task completion."""


def apply_recommendation(
    story: WorkItem,
    tasks: list[WorkItem],
    apply_transition: Callable[[str, str], None],
    post_comment: Callable[[str, str], None],
    transitions: Optional[TransitionMap] = None,
) -> Optional[dict]:
    """Analyze one story and move it forward if its tasks warrant it.

    Returns the update record, or None when no change was needed.
    """
    analysis = analyze_status(story, tasks, transitions)
    transition = analysis.recommended_transition
    if transition is None or transition.target_status == story.status:
        return None

    apply_transition(story.key, transition.id)
    post_comment(
        story.key,
        build_audit_comment(
            story.status,
            transition.target_status,
            transition.reason,
            analysis.child_summary,
        ),
    )
    logger.info(f"{story.key}: {story.status} -> {transition.target_status} ({transition.reason})")
    return {
        "key": story.key,
        "oldStatus": story.status,
        "newStatus": transition.target_status,
        "reason": transition.reason,
    }


def update_all_children(
    epic_key: str,
    stories: list[WorkItem],
    fetch_tasks: Callable[[str], list[WorkItem]],
    apply_transition: Callable[[str, str], None],
    post_comment: Callable[[str, str], None],
    transitions: Optional[TransitionMap] = None,
) -> BatchResult:
    """Bring every story of an epic in line with its tasks.

    Stories are processed one at a time so audit comments land in a
    predictable order. A failing story is logged and skipped; the rest of the
    batch still runs and nothing is retried.

    Args:
        epic_key: Epic the stories belong to (used for logging)
        stories: Issues in the epic; non-story issues are ignored
        fetch_tasks: Returns the tasks linked to a story key
        apply_transition: Called with (story key, transition ID)
        post_comment: Called with (story key, JIRA markup comment)
        transitions: Transition IDs to use (defaults to JIRA's default workflow)
    """
    result = BatchResult()
    story_items = [s for s in stories if s.is_story]
    result.checked = len(story_items)

    for story in story_items:
        try:
            tasks = fetch_tasks(story.key)
            update = apply_recommendation(
                story, tasks, apply_transition, post_comment, transitions
            )
        except Exception as e:
            logger.warning(f"Failed to update story {story.key} in {epic_key}: {e}")
            result.failures.append({"key": story.key, "error": str(e)})
            continue

        if update:
            result.updates.append(update)
            result.updated += 1

    return result
