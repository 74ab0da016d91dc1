"""Mapping of OpenAI finish reasons onto the provider-neutral enum."""

from typing import Optional

_FINISH_REASON_MAP = {
    "stop": "stop",
    "length": "length",
    "content_filter": "content-filter",
    "tool_calls": "tool-calls",
    "function_call": "tool-calls",
}


def map_finish_reason(finish_reason: Optional[str]) -> str:
    """Convert an OpenAI ``finish_reason`` to the neutral finish reason.

    OpenAI: stop, length, tool_calls, content_filter, function_call
    Neutral: stop, length, tool-calls, content-filter, unknown
    """
    if not finish_reason:
        return "unknown"
    return _FINISH_REASON_MAP.get(finish_reason, "unknown")
