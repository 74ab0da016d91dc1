"""Neutral prompt -> OpenAI Chat Completions message translation.

Neutral prompt messages:
    {"role": "system", "content": "You are terse."}
    {"role": "user", "content": [{"type": "text", "text": "Hi"}]}
    {"role": "assistant", "content": [{"type": "tool-call", "toolCallId": "call_1",
                                       "toolName": "f", "input": {...}}]}
    {"role": "tool", "content": [{"type": "tool-result", "toolCallId": "call_1",
                                  "toolName": "f", "output": {"type": "json", "value": {...}}}]}

OpenAI messages:
    {"role": "system", "content": "..."}
    {"role": "user", "content": "..." | [{"type": "text", ...}, {"type": "image_url", ...}]}
    {"role": "assistant", "content": "...", "tool_calls": [...]}
    {"role": "tool", "tool_call_id": "call_1", "content": "..."}
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Mapping, Sequence

logger = logging.getLogger("gatewaylm")


def _serialize_tool_input(input_data: Any) -> str:
    """Serialize tool input to JSON string for OpenAI format."""
    if isinstance(input_data, str):
        return input_data
    return json.dumps(input_data, ensure_ascii=False)


def _convert_file_part(part: Mapping[str, Any]) -> dict[str, Any] | None:
    """Convert a neutral file part to an OpenAI image_url content part.

    Only images are representable in Chat Completions user content.
    """
    media_type = str(part.get("mediaType") or "")
    if not media_type.startswith("image/"):
        logger.warning(f"Unsupported file media type in user content: {media_type!r}")
        return None

    data = part.get("data")
    if isinstance(data, (bytes, bytearray)):
        url = f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"
    elif isinstance(data, str) and data.startswith(("http://", "https://", "data:")):
        url = data
    elif isinstance(data, str):
        # Already base64-encoded
        url = f"data:{media_type};base64,{data}"
    else:
        logger.warning("File part without usable data, skipping")
        return None

    return {"type": "image_url", "image_url": {"url": url}}


def _convert_user_content(content: Any) -> str | list[dict[str, Any]]:
    if isinstance(content, str):
        return content

    parts: list[dict[str, Any]] = []
    for part in content or []:
        part_type = part.get("type", "")
        if part_type == "text":
            parts.append({"type": "text", "text": part.get("text", "")})
        elif part_type == "file":
            converted = _convert_file_part(part)
            if converted is not None:
                parts.append(converted)
        else:
            logger.warning(f"Unknown user content part type: {part_type}")

    # Simplify content if it's just text
    if len(parts) == 1 and parts[0]["type"] == "text":
        return parts[0]["text"]
    return parts


def _convert_assistant_message(content: Any) -> dict[str, Any]:
    message: dict[str, Any] = {"role": "assistant"}
    if isinstance(content, str):
        message["content"] = content
        return message

    text_parts: list[str] = []
    tool_calls: list[dict[str, Any]] = []
    for part in content or []:
        part_type = part.get("type", "")
        if part_type == "text":
            text_parts.append(part.get("text", ""))
        elif part_type == "tool-call":
            tool_calls.append({
                "id": part.get("toolCallId", ""),
                "type": "function",
                "function": {
                    "name": part.get("toolName", ""),
                    "arguments": _serialize_tool_input(part.get("input", {})),
                },
            })
        elif part_type == "reasoning":
            logger.debug("Dropping reasoning part during translation")
        else:
            logger.warning(f"Unknown assistant content part type: {part_type}")

    message["content"] = "".join(text_parts) if text_parts else None
    if tool_calls:
        message["tool_calls"] = tool_calls
    return message


def _convert_tool_output(output: Any) -> str:
    """Render a tool-result output as the string content of a tool message."""
    if isinstance(output, str):
        return output
    if isinstance(output, Mapping):
        output_type = output.get("type")
        value = output.get("value")
        if output_type in ("text", "error-text"):
            return "" if value is None else str(value)
        if output_type in ("json", "error-json"):
            return json.dumps(value, ensure_ascii=False)
    return json.dumps(output, ensure_ascii=False, default=str)


def _convert_tool_messages(content: Any) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for part in content or []:
        if part.get("type") != "tool-result":
            logger.warning(f"Unexpected part in tool message: {part.get('type')}")
            continue
        messages.append({
            "role": "tool",
            "tool_call_id": part.get("toolCallId", ""),
            "content": _convert_tool_output(part.get("output")),
        })
    return messages


def convert_to_chat_messages(prompt: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Translate a neutral prompt into OpenAI Chat Completions messages.

    Args:
        prompt: Neutral prompt messages (system, user, assistant, tool)

    Returns:
        OpenAI ``messages`` array
    """
    messages: list[dict[str, Any]] = []

    for msg in prompt:
        role = msg.get("role", "user")
        content = msg.get("content")

        if role == "system":
            messages.append({"role": "system", "content": content if isinstance(content, str) else ""})
        elif role == "user":
            messages.append({"role": "user", "content": _convert_user_content(content)})
        elif role == "assistant":
            messages.append(_convert_assistant_message(content))
        elif role == "tool":
            messages.extend(_convert_tool_messages(content))
        else:
            raise ValueError(f"Unsupported prompt role: {role!r}")

    return messages
