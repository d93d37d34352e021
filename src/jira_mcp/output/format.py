"""Output formatting utilities for CLI and MCP."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Sequence


def _render_text(payload: Any, indent: int = 0) -> str:
    """Render nested dicts/lists as indented ``key: value`` lines."""
    pad = "  " * indent
    lines = []
    if isinstance(payload, dict):
        for key, value in payload.items():
            if isinstance(value, (dict, list)) and value:
                lines.append(f"{pad}{key}:")
                lines.append(_render_text(value, indent + 1))
            else:
                lines.append(f"{pad}{key}: {value}")
    elif isinstance(payload, list):
        for item in payload:
            if isinstance(item, (dict, list)):
                lines.append(f"{pad}-")
                lines.append(_render_text(item, indent + 1))
            else:
                lines.append(f"{pad}- {item}")
    else:
        lines.append(f"{pad}{payload}")
    return "\n".join(lines)


def format_response(
    payload: Any,
    output_format: str = "json",
    text_renderer: Optional[Callable[[Any], str]] = None,
) -> dict:
    """Normalize response with format metadata and content.

    Args:
        payload: Data to serialize.
        output_format: "json" or "text".
        text_renderer: Optional renderer for text output.
    """
    output_format = (output_format or "json").lower()

    if output_format == "text":
        content = text_renderer(payload) if text_renderer else _render_text(payload)
        return {"format": "text", "content": content}

    return {"format": "json", "content": payload}


def render_cli(response: dict) -> str:
    """Render a formatted response into a CLI string."""
    if response.get("format") == "json":
        return json.dumps(response.get("content"), indent=2)
    return str(response.get("content"))


def paginate(items: Sequence[Any], limit: int, offset: int) -> tuple[list[Any], dict]:
    """Slice ``items`` for a list response.

    Negative limits and offsets are treated as zero.
    """
    limit = max(limit, 0)
    offset = max(offset, 0)
    page = list(items[offset:offset + limit])
    end = offset + len(page)
    has_more = end < len(items)
    return page, {
        "total_count": len(items),
        "limit": limit,
        "offset": offset,
        "has_more": has_more,
        "next_offset": end if has_more else None,
    }
