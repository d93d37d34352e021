"""Markdown to JIRA wiki markup conversion.

Descriptions and comments are written in lightweight markdown and stored in
JIRA's own markup. The rules run in a fixed order; later rules would misread
the output of earlier ones if reordered:

1. ``# Header``         -> ``h1. Header`` (up to ``###``)
2. ``**bold**``         -> ``*bold*``
3. fenced code blocks   -> ``{code}...{code}`` (language tag dropped)
4. ```inline```         -> ``{{inline}}``
5. ``[label](url)``     -> ``[label|url]``
6. ``- item``           -> ``* item``

Italics are left alone: ``_text_`` is already JIRA italic, and single-asterisk
italics would collide with JIRA bold.
"""

from __future__ import annotations

import re

_HEADER = re.compile(r"^(#{1,3}) (.+)$", re.MULTILINE)
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_CODE_BLOCK = re.compile(r"```\w*\n?([\s\S]*?)\n?```")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_LIST_ITEM = re.compile(r"^- (.+)$", re.MULTILINE)


def _header(match: re.Match) -> str:
    return f"h{len(match.group(1))}. {match.group(2)}"


def markdown_to_jira(text: str) -> str:
    """Convert markdown text to JIRA wiki markup.

    Never fails: anything that matches no rule is returned unchanged.
    """
    if not text:
        return text

    result = _HEADER.sub(_header, text)
    result = _BOLD.sub(r"*\1*", result)
    result = _CODE_BLOCK.sub(r"{code}\1{code}", result)
    result = _INLINE_CODE.sub(r"{{\1}}", result)
    result = _LINK.sub(r"[\1|\2]", result)
    result = _LIST_ITEM.sub(r"* \1", result)
    return result
