"""Translation between neutral call options and OpenAI Chat Completions payloads."""

from .prompt import convert_to_chat_messages
from .request import CallOptions, build_request_body
from .response import GenerateResult, parse_chat_completion
from .tools import build_tools, convert_tool_choice, normalize_tool_parameters

__all__ = [
    "CallOptions",
    "GenerateResult",
    "build_request_body",
    "build_tools",
    "convert_to_chat_messages",
    "convert_tool_choice",
    "normalize_tool_parameters",
    "parse_chat_completion",
]
