"""JIRA MCP - JIRA ticket management for AI assistants."""

__version__ = "1.1.2"
