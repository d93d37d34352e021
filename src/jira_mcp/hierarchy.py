"""Structural checks for an epic -> story -> task hierarchy."""

from __future__ import annotations

from typing import Callable, Optional

from .models import HierarchyReport, Link, WorkItem


def validate_hierarchy(
    epic: WorkItem,
    children: list[WorkItem],
    fetch_links: Callable[[str], list[Link]],
    extra_warnings: Optional[list[str]] = None,
    check_links: bool = True,
) -> HierarchyReport:
    """Check that an epic is an Epic and that its stories have tasks.

    Only a root that is not an Epic makes the hierarchy invalid. An empty
    epic, or a story without linked tasks, is reported as a warning.

    Args:
        epic: The root issue
        children: Issues parented to the root
        fetch_links: Returns the links of an issue key
        extra_warnings: Warnings to report ahead of the structural ones
        check_links: Set False when the server cannot list issue links
    """
    issues: list[str] = []
    warnings: list[str] = list(extra_warnings or [])

    if not epic.is_epic:
        issues.append(f"{epic.key} is not an Epic (type: {epic.issue_type})")

    if not children:
        warnings.append(f"Epic {epic.key} has no linked stories or tasks")

    if check_links:
        for child in children:
            if not child.is_story:
                continue
            links = fetch_links(child.key)
            if not any(link.issue.is_task for link in links):
                warnings.append(f"Story {child.key} has no linked tasks")

    return HierarchyReport(is_valid=not issues, issues=issues, warnings=warnings)
