"""Tests for the jira-mcp command line."""

import json

import pytest
from unittest.mock import Mock, patch
from typer.testing import CliRunner

from jira_mcp.cli import app
from jira_mcp.config import JiraContext
from jira_mcp.jira_client import AuthenticationError
from jira_mcp.models import WorkItem

runner = CliRunner()


@pytest.fixture
def connected():
    client = Mock()
    client.config.legacy_mode = False
    client.supports_issue_links.return_value = True
    context = JiraContext(
        base_url="https://example.atlassian.net",
        email="dev@example.com",
        api_token="secret",
    )
    with patch("jira_mcp.cli.svc_get_client", return_value=(client, context)):
        yield client


class TestMarkupConvert:
    """Tests for `jira-mcp markup convert`."""

    def test_reads_stdin(self):
        result = runner.invoke(app, ["markup", "convert"], input="# Title\n- **item**\n")

        assert result.exit_code == 0
        assert "h1. Title\n* *item*" in result.output

    def test_reads_file(self, tmp_path):
        source = tmp_path / "notes.md"
        source.write_text("See [docs](https://example.com)")

        result = runner.invoke(app, ["markup", "convert", str(source)])

        assert result.exit_code == 0
        assert "See [docs|https://example.com]" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["markup", "convert", str(tmp_path / "nope.md")])

        assert result.exit_code == 1


class TestTicketShow:
    """Tests for `jira-mcp ticket show`."""

    def test_prints_json(self, connected):
        connected.get_work_item.return_value = WorkItem(
            key="PROJ-1", summary="Fix login", status="Done", issue_type="Bug"
        )

        result = runner.invoke(app, ["ticket", "show", "PROJ-1"])

        assert result.exit_code == 0
        assert json.loads(result.output)["summary"] == "Fix login"

    @patch("jira_mcp.cli.svc_get_client")
    def test_not_configured(self, mock_get_client):
        mock_get_client.side_effect = AuthenticationError("Missing required JIRA settings: JIRA_BASE_URL")

        result = runner.invoke(app, ["ticket", "show", "PROJ-1"])

        assert result.exit_code == 1
        assert "Authentication Error" in result.output


class TestStoryCommands:
    """Tests for `jira-mcp story`."""

    def test_update_all_dry_run(self, connected):
        connected.get_epic_issues.return_value = [WorkItem(key="S-1", status="To Do", issue_type="Story")]
        connected.get_related_tasks.return_value = [WorkItem(key="T-1", status="Done", issue_type="Task")]

        result = runner.invoke(app, ["story", "update-all", "E-1", "--dry-run"])

        assert result.exit_code == 0
        assert "Updated 1 of 1 stories" in result.output
        assert "S-1" in result.output
        connected.transition_issue.assert_not_called()

    def test_analyze_json(self, connected):
        connected.get_work_item.return_value = WorkItem(key="S-1", status="To Do", issue_type="Story")
        connected.get_related_tasks.return_value = []

        result = runner.invoke(app, ["story", "analyze", "S-1"])

        assert result.exit_code == 0
        assert json.loads(result.output)["recommendedTransition"] is None


class TestEpicValidate:
    """Tests for `jira-mcp epic validate`."""

    def test_invalid_epic_exits_nonzero(self, connected):
        connected.get_work_item.return_value = WorkItem(key="S-1", issue_type="Story")
        connected.get_epic_issues.return_value = []

        result = runner.invoke(app, ["epic", "validate", "S-1"])

        assert result.exit_code == 1
        assert "S-1 is not an Epic (type: Story)" in result.output

    def test_valid_epic_json(self, connected):
        connected.get_work_item.return_value = WorkItem(key="E-1", issue_type="Epic")
        connected.get_epic_issues.return_value = []

        result = runner.invoke(app, ["epic", "validate", "E-1", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["isValid"] is True


class TestContextCommand:
    """Tests for `jira-mcp context`."""

    @patch("jira_mcp.services.context.resolve_context")
    def test_json(self, mock_resolve):
        mock_resolve.return_value = JiraContext()

        result = runner.invoke(app, ["context", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["config_source"] == "none"
        assert "JIRA_BASE_URL" in data["missing"]
