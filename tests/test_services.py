"""Tests for the service layer shared by CLI and MCP."""

import pytest
from unittest.mock import Mock

from jira_mcp.config import JiraContext
from jira_mcp.jira_client import JiraApiError, JiraError, NotFoundError
from jira_mcp.models import Link, LinkType, WorkItem
from jira_mcp.services import (
    analyze_story_status,
    create_project_hierarchy,
    create_ticket,
    get_issue_links,
    list_transitions,
    resolve_context_info,
    update_all_story_statuses,
    update_story_status,
    validate_project_structure,
)
from jira_mcp.status import TransitionMap


def item(key, issue_type="Task", status="To Do"):
    return WorkItem(key=key, summary=f"{issue_type} {key}", status=status, issue_type=issue_type)


def relates_to(key, issue_type="Task"):
    return Link(
        type=LinkType(name="Relates", inward="relates to", outward="relates to"),
        direction="outward",
        issue=item(key, issue_type),
        id=key,
    )


@pytest.fixture
def context():
    return JiraContext(
        base_url="https://example.atlassian.net",
        email="dev@example.com",
        api_token="secret",
        project_key="PROJ",
    )


@pytest.fixture
def client():
    client = Mock()
    client.config.legacy_mode = False
    client.supports_issue_links.return_value = True
    return client


class TestTickets:
    """Tests for ticket services."""

    def test_create_ticket_adds_url(self, client, context):
        client.create_issue.return_value = item("PROJ-5")

        result = create_ticket(client, context, "Write docs", description="**now**")

        assert result["key"] == "PROJ-5"
        assert result["url"] == "https://example.atlassian.net/browse/PROJ-5"
        client.create_issue.assert_called_once_with(
            "Write docs",
            issue_type="Task",
            project_key=None,
            description="**now**",
            assignee=None,
            priority=None,
            epic_key=None,
        )

    def test_list_transitions(self, client):
        client.get_transitions.return_value = [
            {"id": "21", "name": "Start", "to": {"name": "In Progress", "id": "3"}},
            {"id": "31", "name": "Finish"},
        ]

        result = list_transitions(client, "PROJ-1")

        assert result["ticketId"] == "PROJ-1"
        assert result["totalTransitions"] == 2
        assert result["availableTransitions"][0]["to"] == {"name": "In Progress", "id": "3"}
        assert result["availableTransitions"][1]["to"] == {"name": "Unknown", "id": "Unknown"}


class TestIssueLinks:
    """Tests for get_issue_links."""

    def test_paginates(self, client):
        client.get_issue_links.return_value = [relates_to(f"T-{i}") for i in range(5)]

        result = get_issue_links(client, "S-1", limit=2, offset=2)

        assert result["totalLinks"] == 5
        assert [link["relatedIssue"] for link in result["links"]] == ["T-2", "T-3"]
        assert result["pagination"]["has_more"] is True
        assert result["pagination"]["next_offset"] == 4


class TestCreateProjectHierarchy:
    """Tests for create_project_hierarchy."""

    def _numbered(self, client):
        counter = iter(range(1, 100))

        def create_issue(summary, issue_type="Task", **kwargs):
            return WorkItem(key=f"PROJ-{next(counter)}", summary=summary, issue_type=issue_type)

        client.create_issue.side_effect = create_issue

    def test_creates_and_links_every_level(self, client, context):
        self._numbered(client)
        hierarchy = {
            "epic": {"summary": "Checkout", "description": "# Goal"},
            "stories": [
                {"summary": "Cart", "tasks": [{"summary": "API"}, {"summary": "UI"}]},
                {"summary": "Payment"},
            ],
        }

        result = create_project_hierarchy(client, context, hierarchy)

        assert result["epic"] == {
            "key": "PROJ-1",
            "summary": "Checkout",
            "url": "https://example.atlassian.net/browse/PROJ-1",
        }
        assert result["totalCreated"] == 5
        assert [s["key"] for s in result["stories"]] == ["PROJ-2", "PROJ-5"]
        assert [t["key"] for t in result["stories"][0]["tasks"]] == ["PROJ-3", "PROJ-4"]
        assert result["stories"][1]["tasks"] == []
        assert [c.args for c in client.set_epic_link.call_args_list] == [
            ("PROJ-2", "PROJ-1"),
            ("PROJ-3", "PROJ-2"),
            ("PROJ-4", "PROJ-2"),
            ("PROJ-5", "PROJ-1"),
        ]
        epic_call = client.create_issue.call_args_list[0]
        assert epic_call.kwargs["issue_type"] == "Epic"
        assert epic_call.kwargs["project_key"] == "PROJ"

    def test_explicit_project_key(self, client, context):
        self._numbered(client)

        create_project_hierarchy(client, context, {"epic": {"summary": "E"}}, project_key="OTHER")

        assert client.create_issue.call_args.kwargs["project_key"] == "OTHER"

    def test_failure_keeps_error_kind(self, client, context):
        client.create_issue.side_effect = JiraApiError("Invalid data: summary: required", status=400)

        with pytest.raises(JiraApiError, match="Failed to create project hierarchy: Invalid data") as exc_info:
            create_project_hierarchy(client, context, {"epic": {"summary": ""}})

        assert exc_info.value.status == 400

    def test_missing_epic_is_wrapped(self, client, context):
        with pytest.raises(JiraError, match="Failed to create project hierarchy"):
            create_project_hierarchy(client, context, {"stories": []})


class TestValidateProjectStructure:
    """Tests for validate_project_structure."""

    def test_valid(self, client):
        client.get_work_item.return_value = item("E-1", "Epic")
        client.get_epic_issues.return_value = [item("S-1", "Story")]
        client.get_issue_links.return_value = [relates_to("T-1")]

        result = validate_project_structure(client, "E-1")

        assert result == {
            "epic": "E-1",
            "isValid": True,
            "status": "Valid project structure",
            "issues": [],
            "warnings": [],
        }

    def test_not_an_epic(self, client):
        client.get_work_item.return_value = item("S-1", "Story")
        client.get_epic_issues.return_value = []

        result = validate_project_structure(client, "S-1")

        assert result["isValid"] is False
        assert result["status"] == "Issues found in project structure"
        assert result["issues"] == ["S-1 is not an Epic (type: Story)"]

    def test_legacy_mode_warning(self, client):
        client.config.legacy_mode = True
        client.supports_issue_links.return_value = False
        client.get_work_item.return_value = item("E-1", "Epic")
        client.get_epic_issues.return_value = [item("S-1", "Story")]

        result = validate_project_structure(client, "E-1")

        assert result["warnings"] == [
            "Running in legacy JIRA Server mode - some features may be limited"
        ]
        client.get_issue_links.assert_not_called()

    def test_missing_epic_stays_not_found(self, client):
        client.get_work_item.side_effect = NotFoundError("JIRA ticket E-404 not found", status=404)

        with pytest.raises(NotFoundError) as exc_info:
            validate_project_structure(client, "E-404")

        assert str(exc_info.value) == "Failed to validate project structure: JIRA ticket E-404 not found"
        assert exc_info.value.status == 404


class TestStoryStatus:
    """Tests for the story status services."""

    def test_analyze(self, client, context):
        client.get_work_item.return_value = item("S-1", "Story")
        client.get_related_tasks.return_value = [item("T-1", status="In Progress")]

        result = analyze_story_status(client, context, "S-1")

        assert result["storyKey"] == "S-1"
        assert result["storySummary"] == "Story S-1"
        assert result["shouldBeInProgress"] is True
        assert result["recommendedTransition"]["id"] == "21"
        client.transition_issue.assert_not_called()

    def test_analyze_uses_configured_transitions(self, client, context):
        context.transitions = TransitionMap(in_progress="11", done="41")
        client.get_work_item.return_value = item("S-1", "Story")
        client.get_related_tasks.return_value = [item("T-1", status="Done")]

        result = analyze_story_status(client, context, "S-1")

        assert result["recommendedTransition"]["id"] == "41"

    def test_update_single_story(self, client, context):
        client.get_work_item.return_value = item("S-1", "Story")
        client.get_related_tasks.return_value = [item("T-1", status="Done")]

        result = update_story_status(client, context, "S-1")

        assert result == {
            "updated": True,
            "oldStatus": "To Do",
            "newStatus": "Done",
            "reason": "All 1 related tasks are completed",
        }
        client.transition_issue.assert_called_once_with("S-1", "31")
        assert client.add_comment.call_args.args[0] == "S-1"

    def test_update_single_story_no_change(self, client, context):
        client.get_work_item.return_value = item("S-1", "Story", status="Done")
        client.get_related_tasks.return_value = [item("T-1", status="To Do")]

        result = update_story_status(client, context, "S-1")

        assert result["updated"] is False
        assert result["newStatus"] == "Done"
        client.transition_issue.assert_not_called()

    def _epic(self, client):
        client.get_epic_issues.return_value = [
            item("S-1", "Story"),
            item("S-2", "Story"),
            item("T-9", "Task"),
        ]
        client.get_related_tasks.side_effect = lambda key: {
            "S-1": [item("T-1", status="Done")],
            "S-2": [item("T-2", status="To Do")],
        }[key]

    def test_update_all(self, client, context):
        self._epic(client)

        result = update_all_story_statuses(client, context, "E-1")

        assert result["epic"] == "E-1"
        assert result["dryRun"] is False
        assert result["summary"] == "Updated 1 of 2 stories"
        client.transition_issue.assert_called_once_with("S-1", "31")
        client.add_comment.assert_called_once()

    def test_update_all_dry_run(self, client, context):
        self._epic(client)

        result = update_all_story_statuses(client, context, "E-1", dry_run=True)

        assert result["dryRun"] is True
        assert result["storiesUpdated"] == 1
        assert result["updates"][0]["key"] == "S-1"
        client.transition_issue.assert_not_called()
        client.add_comment.assert_not_called()


class TestContextInfo:
    """Tests for resolve_context_info."""

    def test_reports_missing_and_hides_token(self, context):
        context.email = None

        info = resolve_context_info(context)

        assert info["missing"] == ["JIRA_EMAIL"]
        assert info["api_token_configured"] is True
        assert "secret" not in str(info)
        assert info["transitions"] == {"in_progress": "21", "done": "31"}
