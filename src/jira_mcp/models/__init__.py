"""Data models for JIRA MCP."""

from .issue import (
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_TO_DO,
    TYPE_EPIC,
    TYPE_STORY,
    TYPE_TASK,
    BatchResult,
    HierarchyReport,
    Link,
    LinkType,
    StatusAnalysis,
    TaskSummary,
    Transition,
    WorkItem,
)

__all__ = [
    "STATUS_DONE",
    "STATUS_IN_PROGRESS",
    "STATUS_TO_DO",
    "TYPE_EPIC",
    "TYPE_STORY",
    "TYPE_TASK",
    "BatchResult",
    "HierarchyReport",
    "Link",
    "LinkType",
    "StatusAnalysis",
    "TaskSummary",
    "Transition",
    "WorkItem",
]
