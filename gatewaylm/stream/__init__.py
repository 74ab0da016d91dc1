"""Streaming translation from OpenAI chat completion chunks to neutral stream parts."""

from .adapter import ChatStreamTransformer, transform_chat_stream
from .events import (
    Finish,
    StreamPart,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCall,
    ToolInputDelta,
    ToolInputEnd,
    ToolInputStart,
)
from .state import (
    EMPTY_ARGUMENTS,
    StreamSession,
    TextSpanState,
    ToolCallIndex,
    ToolCallState,
    Usage,
)

__all__ = [
    "ChatStreamTransformer",
    "EMPTY_ARGUMENTS",
    "Finish",
    "StreamPart",
    "StreamSession",
    "TextDelta",
    "TextEnd",
    "TextSpanState",
    "TextStart",
    "ToolCall",
    "ToolCallIndex",
    "ToolCallState",
    "ToolInputDelta",
    "ToolInputEnd",
    "ToolInputStart",
    "Usage",
    "transform_chat_stream",
]
