"""Chat completion request body construction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from .prompt import convert_to_chat_messages
from .tools import build_tools, convert_tool_choice

# extra_body keys that are consumed here rather than merged into the body
_RESERVED_EXTRA_KEYS = ("helicone", "prompt_id", "inputs", "environment")


@dataclass
class CallOptions:
    """Provider-neutral options for a single language model call."""

    prompt: list[dict[str, Any]] = field(default_factory=list)
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop_sequences: Optional[Sequence[str]] = None
    seed: Optional[int] = None
    tools: Optional[list[dict[str, Any]]] = None
    tool_choice: Optional[dict[str, Any]] = None


def build_request_body(
    model_id: str,
    options: CallOptions,
    extra_body: Optional[Mapping[str, Any]] = None,
    *,
    stream: bool = False,
) -> dict[str, Any]:
    """Build the JSON body for ``/v1/chat/completions``.

    Gateway prompt integration: when ``extra_body["prompt_id"]`` is set the
    gateway renders the stored prompt from ``inputs``, so no ``messages`` are
    sent.
    """
    extra = dict(extra_body or {})
    prompt_id = extra.get("prompt_id")
    inputs = extra.get("inputs")
    environment = extra.get("environment")
    other_extra = {k: v for k, v in extra.items() if k not in _RESERVED_EXTRA_KEYS}

    body: dict[str, Any] = {"model": model_id, "stream": stream}

    optional_params = {
        "temperature": options.temperature,
        "max_tokens": options.max_output_tokens,
        "top_p": options.top_p,
        "top_k": options.top_k,
        "frequency_penalty": options.frequency_penalty,
        "presence_penalty": options.presence_penalty,
        "stop": list(options.stop_sequences) if options.stop_sequences is not None else None,
        "seed": options.seed,
    }
    for key, value in optional_params.items():
        if value is not None:
            body[key] = value

    body.update(other_extra)
    # extra_body must not flip streaming mode
    body["stream"] = stream

    if prompt_id:
        body["prompt_id"] = prompt_id
        if environment:
            body["environment"] = environment
        if inputs:
            body["inputs"] = inputs
    elif options.prompt:
        body["messages"] = convert_to_chat_messages(options.prompt)

    tool_choice = convert_tool_choice(options.tool_choice)
    if tool_choice is not None:
        body["tool_choice"] = tool_choice

    tools = build_tools(options.tools)
    if tools:
        body["tools"] = tools

    return body
