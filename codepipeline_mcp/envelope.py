"""envelope.py — Success and error envelopes for MCP tool responses."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from mcp.types import TextContent


def _error_payload(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
    }


def wrap_success(payload: Any) -> List[TextContent]:
    """Format a result as a single pretty-printed TextContent block."""
    if isinstance(payload, str):
        return [TextContent(type="text", text=payload)]
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


def wrap_error(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> List[TextContent]:
    return wrap_success(_error_payload(code, message, details))


def result_status(content: List[TextContent]) -> str:
    if not content:
        return "error"
    try:
        parsed = json.loads(content[0].text)
    except (TypeError, ValueError):
        return "success"
    if isinstance(parsed, dict) and parsed.get("success") is False and parsed.get("error"):
        return "error"
    return "success"


def result_error_code(content: List[TextContent]) -> str:
    try:
        parsed = json.loads(content[0].text)
        return str(parsed["error"]["code"])
    except (IndexError, KeyError, TypeError, ValueError):
        return ""
