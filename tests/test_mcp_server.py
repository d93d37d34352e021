"""Tests for MCP server tools."""

import pytest
from unittest.mock import Mock, patch

from jira_mcp.config import JiraContext
from jira_mcp.jira_client import AuthenticationError, JiraApiError, NotFoundError
from jira_mcp.mcp_server import (
    _get_client_safe,
    analyze_story_status,
    check_auth,
    convert_markdown,
    create_jira_ticket,
    get_issue_links,
    get_jira_ticket,
    get_link_types,
    link_jira_issues,
    update_story_statuses,
    validate_project_structure,
)
from jira_mcp.models import LinkType, WorkItem


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


@pytest.fixture
def connected(client, context):
    with patch("jira_mcp.mcp_server._get_client_safe") as mock_get_client:
        mock_get_client.return_value = (client, context, None)
        yield client


class TestGetClientSafe:
    """Tests for _get_client_safe."""

    @patch("jira_mcp.mcp_server.get_client")
    def test_missing_credentials(self, mock_get_client):
        mock_get_client.side_effect = AuthenticationError(
            "Missing required JIRA settings: JIRA_API_TOKEN",
            suggestions=["Run: jira-mcp setup"],
        )

        client, context, error = _get_client_safe()

        assert client is None
        assert context is None
        assert error["error"] == "authentication_required"
        assert error["suggestions"] == ["Run: jira-mcp setup"]
        assert "jira-mcp setup" in error["help"]

    @patch("jira_mcp.mcp_server.get_client")
    def test_tool_reports_auth_error(self, mock_get_client):
        mock_get_client.side_effect = AuthenticationError("Missing required JIRA settings")

        result = get_jira_ticket("PROJ-1")

        assert result["format"] == "json"
        assert result["content"]["error"] == "authentication_required"


class TestGetJiraTicket:
    """Tests for get_jira_ticket MCP tool."""

    def test_returns_ticket(self, connected):
        connected.get_work_item.return_value = WorkItem(
            key="PROJ-1", summary="Fix login", status="In Progress", issue_type="Bug"
        )

        result = get_jira_ticket("PROJ-1")

        assert result["format"] == "json"
        content = result["content"]
        assert content["key"] == "PROJ-1"
        assert content["status"] == "In Progress"
        assert content["assignee"] == "Unassigned"

    def test_not_found(self, connected):
        connected.get_work_item.side_effect = NotFoundError("JIRA ticket PROJ-9 not found", status=404)

        result = get_jira_ticket("PROJ-9")

        assert result["content"] == {"error": "not_found", "message": "JIRA ticket PROJ-9 not found"}

    def test_text_format(self, connected):
        connected.get_work_item.return_value = WorkItem(key="PROJ-1", summary="Fix login")

        result = get_jira_ticket("PROJ-1", format="text")

        assert result["format"] == "text"
        assert "key: PROJ-1" in result["content"]
        assert "summary: Fix login" in result["content"]


class TestCreateJiraTicket:
    """Tests for create_jira_ticket MCP tool."""

    def test_creates_ticket(self, connected):
        connected.create_issue.return_value = WorkItem(key="PROJ-2", summary="New", issue_type="Task")

        result = create_jira_ticket("New", description="**hi**")

        assert result["content"]["key"] == "PROJ-2"
        assert result["content"]["url"] == "https://example.atlassian.net/browse/PROJ-2"

    def test_missing_project_key(self, connected):
        connected.create_issue.side_effect = ValueError("Project key is required.")

        result = create_jira_ticket("New")

        assert result["content"]["error"] == "invalid_request"

    def test_api_error_includes_status(self, connected):
        connected.create_issue.side_effect = JiraApiError(
            "Insufficient permissions to create tickets in this project.", status=403
        )

        result = create_jira_ticket("New")

        assert result["content"] == {
            "error": "api_error",
            "message": "Insufficient permissions to create tickets in this project.",
            "status": 403,
        }


class TestLinkTools:
    """Tests for link tools."""

    def test_link_issues(self, connected):
        result = link_jira_issues("PROJ-1", "PROJ-2", "Blocks")

        connected.link_issues.assert_called_once_with("PROJ-1", "PROJ-2", "Blocks", None)
        assert result["content"]["success"] is True
        assert '"Blocks"' in result["content"]["message"]

    def test_get_issue_links_empty(self, connected):
        connected.get_issue_links.return_value = []

        result = get_issue_links("PROJ-1")

        assert result["content"]["totalLinks"] == 0
        assert result["content"]["pagination"]["has_more"] is False


class TestHierarchyTools:
    """Tests for validate_project_structure MCP tool."""

    def test_validate(self, connected):
        connected.get_work_item.return_value = WorkItem(key="E-1", issue_type="Epic")
        connected.get_epic_issues.return_value = []

        result = validate_project_structure("E-1")

        assert result["content"]["isValid"] is True
        assert result["content"]["warnings"] == ["Epic E-1 has no linked stories or tasks"]

    def test_validate_missing_epic(self, connected):
        connected.get_work_item.side_effect = NotFoundError("JIRA ticket E-404 not found", status=404)

        result = validate_project_structure("E-404")

        assert result["content"] == {
            "error": "not_found",
            "message": "Failed to validate project structure: JIRA ticket E-404 not found",
        }

    def test_validate_server_error_keeps_status(self, connected):
        connected.get_work_item.return_value = WorkItem(key="E-1", issue_type="Epic")
        connected.get_epic_issues.side_effect = JiraApiError("JIRA API error: 500 Server Error", status=500)

        result = validate_project_structure("E-1")

        assert result["content"]["error"] == "api_error"
        assert result["content"]["status"] == 500


class TestStoryTools:
    """Tests for story status tools."""

    def test_analyze(self, connected):
        connected.get_work_item.return_value = WorkItem(key="S-1", status="To Do", issue_type="Story")
        connected.get_related_tasks.return_value = [
            WorkItem(key="T-1", status="Done", issue_type="Task"),
        ]

        result = analyze_story_status("S-1")

        assert result["content"]["shouldBeDone"] is True
        assert result["content"]["recommendedTransition"]["targetStatus"] == "Done"

    def test_update_story_statuses_dry_run(self, connected):
        connected.get_epic_issues.return_value = [
            WorkItem(key="S-1", status="To Do", issue_type="Story"),
        ]
        connected.get_related_tasks.return_value = [
            WorkItem(key="T-1", status="In Progress", issue_type="Task"),
        ]

        result = update_story_statuses("E-1", dry_run=True)

        content = result["content"]
        assert content["summary"] == "Updated 1 of 1 stories"
        assert content["updates"][0]["newStatus"] == "In Progress"
        connected.transition_issue.assert_not_called()

    def test_update_story_statuses_epic_not_found(self, connected):
        connected.get_epic_issues.side_effect = NotFoundError("Resource not found", status=404)

        result = update_story_statuses("E-404")

        assert result["content"]["error"] == "not_found"


class TestConvertMarkdown:
    """Tests for convert_markdown MCP tool."""

    def test_converts(self):
        result = convert_markdown("## Notes\n- **one**")

        assert result["content"] == {"markup": "h2. Notes\n* *one*"}


class TestCheckAuth:
    """Tests for check_auth MCP tool."""

    @patch("jira_mcp.mcp_server.resolve_context")
    def test_not_configured(self, mock_resolve):
        mock_resolve.return_value = JiraContext()

        result = check_auth()

        assert result["content"]["authenticated"] is False
        assert "JIRA_BASE_URL" in result["content"]["missing"]

    @patch("jira_mcp.mcp_server.JiraClient")
    @patch("jira_mcp.mcp_server.resolve_context")
    def test_authenticated(self, mock_resolve, mock_client_cls, context):
        mock_resolve.return_value = context
        mock_client_cls.from_context.return_value.get_myself.return_value = {
            "displayName": "Dev",
            "emailAddress": "dev@example.com",
        }

        result = check_auth()

        assert result["content"]["authenticated"] is True
        assert result["content"]["user"] == "Dev"


class TestGetLinkTypes:
    """Tests for get_link_types MCP tool."""

    def test_lists_types(self, connected):
        connected.get_link_types.return_value = [
            LinkType(name="Blocks", inward="is blocked by", outward="blocks", id="10000"),
        ]

        result = get_link_types()

        assert result["content"] == {"linkTypes": [
            {"id": "10000", "name": "Blocks", "inward": "is blocked by", "outward": "blocks"},
        ]}
