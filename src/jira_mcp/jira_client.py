"""JIRA REST API client for JIRA MCP."""

import base64
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import NoReturn, Optional, TYPE_CHECKING

from .markup import markdown_to_jira
from .models import Link, LinkType, WorkItem

if TYPE_CHECKING:
    from .config import JiraContext

logger = logging.getLogger(__name__)

DEFAULT_EPIC_LINK_FIELD = "customfield_10014"
REQUEST_TIMEOUT = 30


class JiraError(Exception):
    """Base class for JIRA MCP errors."""


class AuthenticationError(JiraError):
    """Raised when JIRA authentication fails or is not configured."""

    def __init__(self, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class JiraApiError(JiraError):
    """Raised when the JIRA API rejects a request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(JiraApiError):
    """Raised when an issue or resource does not exist."""


def api_error_message(
    status: Optional[int],
    reason: str,
    body: Optional[dict],
    operation: str,
    ticket_id: Optional[str] = None,
    issue_keys: Optional[list[str]] = None,
    custom_messages: Optional[dict[int, str]] = None,
) -> str:
    """Build a consistent error message for a failed JIRA API call."""
    custom_messages = custom_messages or {}
    body = body or {}

    if status == 404:
        if ticket_id:
            return f"JIRA ticket {ticket_id} not found"
        if issue_keys:
            if len(issue_keys) == 1:
                return f"Issue {issue_keys[0]} not found"
            return f"One or both issues not found: {', '.join(issue_keys)}"
        return f"Resource not found for {operation}"

    if status == 401:
        return "JIRA authentication failed. Check your credentials."

    if status == 403:
        return custom_messages.get(403, "Insufficient permissions to perform this operation.")

    if status == 400:
        if 400 in custom_messages:
            return custom_messages[400]
        details = body.get("errors") or body.get("errorMessages")
        if isinstance(details, list) and details:
            return f"Invalid data: {', '.join(str(d) for d in details)}"
        if isinstance(details, dict) and details:
            fields = ", ".join(f"{name}: {message}" for name, message in details.items())
            return f"Invalid data: {fields}"
        return f"Invalid request for {operation}: {reason}"

    if status in custom_messages:
        return custom_messages[status]
    return f"JIRA API error: {status} {reason}"


@dataclass
class JiraConfig:
    """JIRA API configuration."""
    base_url: str
    api_token: str
    email: Optional[str] = None
    legacy_mode: bool = False  # JIRA Server: bearer token, API v2 only
    project_key: Optional[str] = None
    epic_link_field: str = DEFAULT_EPIC_LINK_FIELD

    @classmethod
    def from_context(cls, context: "JiraContext") -> "JiraConfig":
        """Create JiraConfig from a resolved JiraContext."""
        missing = context.missing_settings()
        if missing:
            raise AuthenticationError(
                f"Missing required JIRA settings: {', '.join(missing)}",
                suggestions=[
                    "Run: jira-mcp setup",
                    "Or set: " + ", ".join(f"{name}=..." for name in missing),
                ],
            )
        return cls(
            base_url=context.base_url,
            api_token=context.api_token,
            email=context.email,
            legacy_mode=context.legacy_mode,
            project_key=context.project_key,
            epic_link_field=context.epic_link_field,
        )

    @classmethod
    def get_auth_help_message(cls) -> str:
        """Get helpful message about authentication options."""
        return """JIRA authentication not configured.

To authenticate, use one of these methods:

1. Run the setup wizard:
   $ jira-mcp setup

2. Environment variables (JIRA Cloud):
   $ export JIRA_BASE_URL=https://yourcompany.atlassian.net
   $ export JIRA_EMAIL=you@example.com
   $ export JIRA_API_TOKEN=xxxxxxxx

3. Environment variables (JIRA Server / Data Center):
   $ export JIRA_BASE_URL=https://jira.yourcompany.com
   $ export JIRA_API_TOKEN=<personal access token>
   $ export JIRA_LEGACY_API=true

To get an API token:
   https://id.atlassian.com/manage-profile/security/api-tokens
"""


class JiraClient:
    """Client for the JIRA REST API (v2, with v3 for issue links on Cloud)."""

    def __init__(self, config: JiraConfig):
        self.config = config
        self._epic_field: Optional[str] = None
        self._capabilities: Optional[dict] = None

    @classmethod
    def from_context(cls, context: Optional["JiraContext"] = None) -> "JiraClient":
        """Create a JiraClient from a resolved context (default: current environment)."""
        from .config import resolve_context

        if context is None:
            context = resolve_context()
        return cls(JiraConfig.from_context(context))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.config.legacy_mode:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        else:
            credentials = f"{self.config.email}:{self.config.api_token}".encode("utf-8")
            headers["Authorization"] = f"Basic {base64.b64encode(credentials).decode('ascii')}"
        return headers

    def _url(self, path: str, params: Optional[dict] = None, v3: bool = False) -> str:
        # Server instances only speak v2
        version = "3" if v3 and not self.config.legacy_mode else "2"
        url = f"{self.config.base_url}/rest/api/{version}{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        return url

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
        v3: bool = False,
        ticket_id: Optional[str] = None,
        issue_keys: Optional[list[str]] = None,
        custom_messages: Optional[dict[int, str]] = None,
    ):
        """Make a JSON request to the JIRA API.

        Returns the decoded JSON body, or None for empty responses.
        Raises JiraApiError (NotFoundError for 404) on failure.
        """
        url = self._url(path, params, v3)
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(url, data=data, headers=self._headers(), method=method)
        logger.debug(f"{method} {url}")

        try:
            with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT) as response:
                raw = response.read()
                status = response.status
        except urllib.error.HTTPError as e:
            self._raise_http_error(e, operation, ticket_id, issue_keys, custom_messages)
        except urllib.error.URLError as e:
            raise JiraApiError(f"Failed to {operation}: {e.reason}") from e

        if not raw:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            # Usually an SSO or login page served for a wrong base URL
            raise JiraApiError(f"Failed to {operation}: response was not JSON", status=status) from e

    @staticmethod
    def _raise_http_error(
        error: urllib.error.HTTPError,
        operation: str,
        ticket_id: Optional[str],
        issue_keys: Optional[list[str]],
        custom_messages: Optional[dict[int, str]],
    ) -> NoReturn:
        try:
            body = json.loads(error.read().decode("utf-8") or "{}")
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = api_error_message(
            error.code,
            str(error.reason),
            body,
            operation,
            ticket_id=ticket_id,
            issue_keys=issue_keys,
            custom_messages=custom_messages,
        )
        error_cls = NotFoundError if error.code == 404 else JiraApiError
        raise error_cls(message, status=error.code) from error

    # ------------------------------------------------------------------
    # Server discovery (JIRA Server only)
    # ------------------------------------------------------------------

    def _ensure_server_info(self) -> None:
        """Discover the epic link field and capabilities of a JIRA Server instance."""
        if self._epic_field is not None:
            return

        try:
            fields = self._request("GET", "/field", operation="fetch field definitions") or []
            self._epic_field = (
                self._find_field(fields, ["Epic Link", "Parent Link"]) or self.config.epic_link_field
            )
            self._capabilities = self._detect_capabilities()
        except JiraApiError as e:
            if e.status == 403:
                logger.warning("Limited JIRA permissions: using the configured epic link field")
            else:
                logger.warning(f"Could not discover the epic link field: {e}")
            self._epic_field = self.config.epic_link_field
            self._capabilities = {"version": "unknown", "hasEpics": True, "hasIssueLinks": True}

    @staticmethod
    def _find_field(fields: list[dict], names: list[str]) -> Optional[str]:
        for name in names:
            lowered = name.lower()
            for f in fields:
                custom = (f.get("schema") or {}).get("custom") or ""
                if (f.get("name") or "").lower() == lowered or lowered in custom:
                    return f.get("id")
        return None

    def _detect_capabilities(self) -> dict:
        try:
            info = self._request("GET", "/serverInfo", operation="fetch server info") or {}
            version = info.get("version", "unknown")
        except JiraApiError as e:
            logger.warning(f"Could not detect server capabilities: {e}")
            return {"version": "unknown", "hasEpics": True, "hasIssueLinks": True}

        try:
            self._request("GET", "/issueLinkType", operation="fetch link types")
            has_links = True
        except JiraApiError:
            has_links = False

        return {"version": version, "hasEpics": True, "hasIssueLinks": has_links}

    @property
    def epic_link_field(self) -> str:
        if not self.config.legacy_mode:
            return "parent"
        self._ensure_server_info()
        return self._epic_field

    def supports_issue_links(self) -> bool:
        """Whether the server can list and create issue links."""
        if not self.config.legacy_mode:
            return True
        self._ensure_server_info()
        return bool(self._capabilities.get("hasIssueLinks", True))

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def get_myself(self) -> dict:
        """Get the authenticated user."""
        return self._request("GET", "/myself", operation="verify credentials")

    def get_issue(self, key: str) -> dict:
        """Get the raw issue payload."""
        return self._request(
            "GET", f"/issue/{key}", operation="fetch JIRA ticket", ticket_id=key
        )

    def get_work_item(self, key: str) -> WorkItem:
        return WorkItem.from_api(self.get_issue(key))

    def _resolve_project_key(self, project_key: Optional[str]) -> str:
        project_key = project_key or self.config.project_key
        if not project_key:
            raise ValueError(
                "Project key is required. Either provide it in the request "
                "or set JIRA_PROJECT_KEY environment variable."
            )
        return project_key

    def create_issue(
        self,
        summary: str,
        issue_type: str = "Task",
        project_key: Optional[str] = None,
        description: Optional[str] = None,
        assignee: Optional[str] = None,
        priority: Optional[str] = None,
        epic_key: Optional[str] = None,
    ) -> WorkItem:
        """Create an issue and return it as stored by JIRA."""
        fields: dict = {
            "project": {"key": self._resolve_project_key(project_key)},
            "summary": summary,
            "issuetype": {"name": issue_type},
        }
        if description:
            fields["description"] = markdown_to_jira(description)
        if assignee:
            fields["assignee"] = {"name": assignee}
        if priority:
            fields["priority"] = {"name": priority}
        if epic_key:
            field_name = self.epic_link_field
            fields[field_name] = {"key": epic_key} if field_name == "parent" else epic_key

        created = self._request(
            "POST",
            "/issue",
            operation="create JIRA ticket",
            payload={"fields": fields},
            custom_messages={403: "Insufficient permissions to create tickets in this project."},
        )
        return self.get_work_item(created["key"])

    def update_description(self, key: str, description: str) -> None:
        self._request(
            "PUT",
            f"/issue/{key}",
            operation="update ticket description",
            payload={"fields": {"description": markdown_to_jira(description)}},
            ticket_id=key,
        )

    def add_comment(self, key: str, comment: str) -> None:
        """Post a comment; markdown is converted to JIRA markup."""
        self._request(
            "POST",
            f"/issue/{key}/comment",
            operation="add comment to JIRA ticket",
            payload={"body": markdown_to_jira(comment)},
            ticket_id=key,
        )

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def get_transitions(self, key: str) -> list[dict]:
        """Get the transitions available from an issue's current status."""
        result = self._request(
            "GET",
            f"/issue/{key}/transitions",
            operation="get available transitions",
            ticket_id=key,
        )
        return result.get("transitions", []) if result else []

    def transition_issue(self, key: str, transition_id: str) -> None:
        self._request(
            "POST",
            f"/issue/{key}/transitions",
            operation="update ticket status",
            payload={"transition": {"id": transition_id}},
            ticket_id=key,
        )

    # ------------------------------------------------------------------
    # Links and epics
    # ------------------------------------------------------------------

    def get_link_types(self) -> list[LinkType]:
        result = self._request(
            "GET", "/issueLinkType", operation="fetch link types", v3=True
        ) or {}
        return [LinkType.from_api(t) for t in result.get("issueLinkTypes", [])]

    def link_issues(
        self,
        from_issue: str,
        to_issue: str,
        link_type: str,
        comment: Optional[str] = None,
    ) -> None:
        """Link two issues, e.g. ``link_issues("A-1", "A-2", "Blocks")``."""
        if not self.supports_issue_links():
            raise JiraApiError("Issue linking not supported in this JIRA Server version")

        payload: dict = {
            "type": {"name": link_type},
            "inwardIssue": {"key": from_issue},
            "outwardIssue": {"key": to_issue},
        }
        if comment:
            payload["comment"] = {"body": markdown_to_jira(comment)}

        self._request(
            "POST",
            "/issueLink",
            operation="link issues",
            payload=payload,
            v3=True,
            issue_keys=[from_issue, to_issue],
            custom_messages={400: "Invalid link request"},
        )

    def get_issue_links(self, key: str) -> list[Link]:
        result = self._request(
            "GET",
            f"/issue/{key}",
            operation="get issue links",
            params={"fields": "issuelinks"},
            v3=True,
            ticket_id=key,
        ) or {}
        raw_links = (result.get("fields") or {}).get("issuelinks") or []
        return [Link.from_api(link) for link in raw_links]

    def set_epic_link(self, issue_key: str, epic_key: str) -> None:
        """Make ``epic_key`` the parent of ``issue_key``."""
        field_name = self.epic_link_field
        value = {"key": epic_key} if field_name == "parent" else epic_key
        self._request(
            "PUT",
            f"/issue/{issue_key}",
            operation="set epic link",
            payload={"fields": {field_name: value}},
            issue_keys=[issue_key, epic_key],
            custom_messages={
                400: "Invalid epic link custom field" if self.config.legacy_mode else "Invalid parent link"
            },
        )

    def get_epic_issues(self, epic_key: str) -> list[WorkItem]:
        """Get all issues parented to an epic (or story)."""
        if self.config.legacy_mode:
            jql = f'"{self.epic_link_field}" = {epic_key}'
        else:
            jql = f"parent = {epic_key}"

        result = self._request(
            "GET",
            "/search",
            operation="get epic issues",
            params={"jql": jql, "maxResults": 1000},
        ) or {}
        return [WorkItem.from_api(issue) for issue in result.get("issues", [])]

    def get_related_tasks(self, story_key: str) -> list[WorkItem]:
        """Get full details of the tasks linked to a story.

        Tasks that cannot be fetched are logged and left out.
        """
        task_keys = [
            link.issue.key
            for link in self.get_issue_links(story_key)
            if link.issue.is_task and link.issue.key
        ]

        tasks = []
        for key in task_keys:
            try:
                tasks.append(self.get_work_item(key))
            except JiraApiError as e:
                logger.warning(f"Could not fetch task {key}: {e}")
        return tasks
