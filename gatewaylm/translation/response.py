"""Non-streaming chat completion response parsing."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..core.exceptions import create_gateway_error
from ..core.finish_reason import map_finish_reason
from ..stream.state import Usage

logger = logging.getLogger("gatewaylm")


@dataclass
class GenerateResult:
    """Result of a single-shot generation."""

    content: list[dict[str, Any]] = field(default_factory=list)
    finish_reason: str = "unknown"
    usage: Usage = field(default_factory=Usage)
    warnings: list[str] = field(default_factory=list)
    raw_call: dict[str, Any] = field(default_factory=dict)


def _parse_tool_arguments(arguments: Any) -> Any:
    if not arguments:
        return {}
    if not isinstance(arguments, str):
        return arguments
    try:
        return json.loads(arguments)
    except json.JSONDecodeError:
        logger.debug(f"Tool call arguments are not valid JSON: {arguments[:100]}")
        return {}


def _parse_usage(usage: Any) -> Usage:
    if not isinstance(usage, Mapping):
        return Usage()
    input_tokens = usage.get("prompt_tokens") or 0
    output_tokens = usage.get("completion_tokens") or 0
    total_tokens = usage.get("total_tokens")
    if total_tokens is None:
        total_tokens = input_tokens + output_tokens
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
    )


def parse_chat_completion(data: Mapping[str, Any]) -> GenerateResult:
    """Translate an OpenAI chat completion into a GenerateResult.

    Content parts:
        {"type": "text", "text": "..."}
        {"type": "tool-call", "toolCallId": "...", "toolName": "...", "input": {...}}
    """
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise create_gateway_error(
            "Gateway response contained no choices",
            response_body=json.dumps(data, ensure_ascii=False, default=str),
        )

    choice = choices[0]
    message = choice.get("message") or {}

    content: list[dict[str, Any]] = []
    if message.get("content"):
        content.append({"type": "text", "text": message["content"]})

    for tool_call in message.get("tool_calls") or []:
        function = tool_call.get("function") or {}
        content.append({
            "type": "tool-call",
            "toolCallId": tool_call.get("id", ""),
            "toolName": function.get("name", ""),
            "input": _parse_tool_arguments(function.get("arguments")),
        })

    return GenerateResult(
        content=content,
        finish_reason=map_finish_reason(choice.get("finish_reason")),
        usage=_parse_usage(data.get("usage")),
    )
