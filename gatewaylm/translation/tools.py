"""Tool definition and tool choice translation for chat completion requests."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, Optional, Sequence

from ..core.exceptions import InvalidToolSchemaError

logger = logging.getLogger("gatewaylm")

_JSON_SCHEMA_KEYS = ("type", "properties", "oneOf", "anyOf", "allOf", "$ref")


def _tool_name(tool: Mapping[str, Any]) -> str:
    return str(tool.get("name") or tool.get("toolName") or "")


def normalize_tool_parameters(tool: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a tool's parameter schema into a JSON Schema object.

    Accepts, in order of preference:
    - no schema at all (an empty object schema is used)
    - a schema wrapper exposing ``json_schema``
    - a pydantic model class or instance (``model_json_schema``)
    - a mapping that already looks like JSON Schema
    - any other mapping, coerced into an object schema
    """
    source = tool.get("parameters")
    if source is None:
        source = tool.get("inputSchema")

    if source is None:
        return {"type": "object", "properties": {}}

    if isinstance(source, Mapping) and isinstance(source.get("json_schema"), Mapping):
        return copy.deepcopy(dict(source["json_schema"]))
    wrapped = getattr(source, "json_schema", None)
    if isinstance(wrapped, Mapping):
        return copy.deepcopy(dict(wrapped))

    model_json_schema = getattr(source, "model_json_schema", None)
    if callable(model_json_schema):
        return dict(model_json_schema())

    if isinstance(source, Mapping):
        schema = copy.deepcopy(dict(source))
        if any(key in schema for key in _JSON_SCHEMA_KEYS):
            return schema
        return {"type": "object", **schema}

    raise InvalidToolSchemaError(
        f"Unsupported schema for function '{_tool_name(tool)}': {type(source).__name__}"
    )


def build_tools(tools: Optional[Sequence[Mapping[str, Any]]]) -> list[dict[str, Any]] | None:
    """Convert neutral tool definitions to OpenAI ``tools``.

    Neutral: {"type": "function", "name": "...", "description": "...", "inputSchema": {...}}
    OpenAI: {"type": "function", "function": {"name": "...", "description": "...", "parameters": {...}}}
    """
    if not tools:
        return None

    openai_tools = []
    for tool in tools:
        name = _tool_name(tool)
        parameters = normalize_tool_parameters(tool)

        if not isinstance(parameters.get("type"), str) or parameters.get("type") == "None":
            parameters["type"] = "object"

        if "properties" not in parameters and "additionalProperties" not in parameters:
            parameters["properties"] = {}

        if parameters["type"] != "object":
            raise InvalidToolSchemaError(
                f"Invalid schema for function '{name}': schema must be a JSON Schema "
                f"of 'type: \"object\"', got 'type: \"{parameters['type']}\"'."
            )

        openai_tools.append({
            "type": "function",
            "function": {
                "name": name,
                "description": tool.get("description") or "",
                "parameters": parameters,
            },
        })

    return openai_tools


def convert_tool_choice(tool_choice: Optional[Mapping[str, Any]]) -> str | dict[str, Any] | None:
    """Convert a neutral tool choice to OpenAI format.

    Neutral: {"type": "auto" | "required" | "none"} | {"type": "tool", "toolName": "..."}
    OpenAI: "auto" | "required" | "none" | {"type": "function", "function": {"name": "..."}}
    """
    if not tool_choice:
        return None

    choice_type = tool_choice.get("type", "")
    if choice_type in ("auto", "required", "none"):
        return choice_type
    if choice_type == "tool":
        return {
            "type": "function",
            "function": {"name": tool_choice.get("toolName", "")},
        }

    logger.warning(f"Ignoring unknown tool choice type: {choice_type!r}")
    return None
