"""Issue data models for JIRA MCP.

Status and issue type names are open strings: JIRA instances can define any
workflow states and issue types. Only the names below are reasoned about;
everything else passes through untouched.
"""

from dataclasses import dataclass, field
from typing import Optional

# Workflow states the status inference understands
STATUS_TO_DO = "To Do"
STATUS_IN_PROGRESS = "In Progress"
STATUS_DONE = "Done"

# Issue types that make up the epic -> story -> task hierarchy
TYPE_EPIC = "Epic"
TYPE_STORY = "Story"
TYPE_TASK = "Task"


@dataclass
class WorkItem:
    """A single JIRA issue."""

    key: str  # e.g. "PROJ-123"
    summary: str = ""
    description: Optional[str] = None
    status: str = ""
    issue_type: str = ""
    parent_key: Optional[str] = None
    assignee: Optional[str] = None

    @property
    def is_epic(self) -> bool:
        return self.issue_type == TYPE_EPIC

    @property
    def is_story(self) -> bool:
        return self.issue_type == TYPE_STORY

    @property
    def is_task(self) -> bool:
        return self.issue_type == TYPE_TASK

    def to_dict(self) -> dict:
        """Convert to dictionary for tool responses."""
        return {
            "key": self.key,
            "summary": self.summary,
            "description": self.description,
            "status": self.status,
            "issueType": self.issue_type,
            "parent": self.parent_key,
            "assignee": self.assignee or "Unassigned",
        }

    @classmethod
    def from_api(cls, issue: dict) -> "WorkItem":
        """Create WorkItem from a JIRA REST issue payload."""
        fields = issue.get("fields") or {}
        parent = fields.get("parent") or {}
        assignee = fields.get("assignee") or {}
        return cls(
            key=issue.get("key", ""),
            summary=fields.get("summary") or "",
            description=fields.get("description"),
            status=(fields.get("status") or {}).get("name", ""),
            issue_type=(fields.get("issuetype") or {}).get("name", ""),
            parent_key=parent.get("key"),
            assignee=assignee.get("displayName"),
        )


@dataclass
class LinkType:
    """An issue link type, e.g. Blocks with its inward/outward verbs."""

    name: str
    inward: str = ""
    outward: str = ""
    id: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "LinkType":
        return cls(
            name=data.get("name", ""),
            inward=data.get("inward", ""),
            outward=data.get("outward", ""),
            id=data.get("id"),
        )


@dataclass
class Link:
    """A typed, directional link from the queried issue to another issue."""

    type: LinkType
    direction: str  # "inward" or "outward"
    issue: WorkItem
    id: Optional[str] = None

    @property
    def relationship(self) -> str:
        """The verb describing this link from the queried issue's side."""
        return self.type.inward if self.direction == "inward" else self.type.outward

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.name,
            "direction": self.direction,
            "relatedIssue": self.issue.key,
            "relatedSummary": self.issue.summary,
            "relationship": self.relationship,
        }

    @classmethod
    def from_api(cls, data: dict) -> "Link":
        """Create Link from an entry of an issue's ``issuelinks`` field."""
        if data.get("inwardIssue"):
            direction = "inward"
            related = data["inwardIssue"]
        else:
            direction = "outward"
            related = data.get("outwardIssue") or {}
        return cls(
            id=data.get("id"),
            type=LinkType.from_api(data.get("type") or {}),
            direction=direction,
            issue=WorkItem.from_api(related),
        )


@dataclass
class TaskSummary:
    """Counts of child tasks per recognized status.

    Tasks in unrecognized states count toward ``total`` only.
    """

    total: int = 0
    done: int = 0
    in_progress: int = 0
    to_do: int = 0

    @property
    def started(self) -> int:
        return self.in_progress + self.done

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "done": self.done,
            "inProgress": self.in_progress,
            "toDo": self.to_do,
        }


@dataclass
class Transition:
    """A recommended workflow transition."""

    id: str
    target_status: str
    reason: str

    def to_dict(self) -> dict:
        return {"id": self.id, "targetStatus": self.target_status, "reason": self.reason}


@dataclass
class StatusAnalysis:
    """Result of comparing a parent issue's status to its child tasks."""

    parent_key: str
    current_status: str
    child_summary: TaskSummary
    should_be_done: bool = False
    should_be_in_progress: bool = False
    recommended_transition: Optional[Transition] = None
    children: list[WorkItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "storyKey": self.parent_key,
            "currentStatus": self.current_status,
            "shouldBeInProgress": self.should_be_in_progress,
            "shouldBeDone": self.should_be_done,
            "tasksSummary": self.child_summary.to_dict(),
            "recommendedTransition": (
                self.recommended_transition.to_dict() if self.recommended_transition else None
            ),
            "relatedTasks": [
                {"key": t.key, "summary": t.summary, "status": t.status}
                for t in self.children
            ],
        }


@dataclass
class HierarchyReport:
    """Outcome of validating an epic's structure."""

    is_valid: bool
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "issues": self.issues,
            "warnings": self.warnings,
        }


@dataclass
class BatchResult:
    """Outcome of updating every story in an epic."""

    checked: int = 0
    updated: int = 0
    updates: list[dict] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "summary": f"Updated {self.updated} of {self.checked} stories",
            "storiesChecked": self.checked,
            "storiesUpdated": self.updated,
            "updates": self.updates,
            "failures": self.failures,
        }
