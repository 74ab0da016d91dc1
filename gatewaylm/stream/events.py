"""Provider-neutral stream parts emitted by the chat stream transformer.

Every part serializes to the camelCase wire shape via ``to_dict()``:

    {"type": "text-delta", "id": "text-0", "delta": "Hello"}
    {"type": "tool-call", "toolCallId": "call_1", "toolName": "f", "input": "{}"}
    {"type": "finish", "usage": {...}, "finishReason": "stop"}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from .state import Usage


@dataclass
class TextStart:
    type: ClassVar[str] = "text-start"
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id}


@dataclass
class TextDelta:
    type: ClassVar[str] = "text-delta"
    id: str
    delta: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id, "delta": self.delta}


@dataclass
class TextEnd:
    type: ClassVar[str] = "text-end"
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id}


@dataclass
class ToolInputStart:
    type: ClassVar[str] = "tool-input-start"
    id: str
    tool_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id, "toolName": self.tool_name}


@dataclass
class ToolInputDelta:
    type: ClassVar[str] = "tool-input-delta"
    id: str
    delta: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id, "delta": self.delta}


@dataclass
class ToolInputEnd:
    type: ClassVar[str] = "tool-input-end"
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id}


@dataclass
class ToolCall:
    """A fully assembled tool invocation; ``input`` is the raw argument text."""

    type: ClassVar[str] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "input": self.input,
        }


@dataclass
class Finish:
    """Terminal part; always the last one a stream produces."""

    type: ClassVar[str] = "finish"
    usage: Usage = field(default_factory=Usage)
    finish_reason: str = "stop"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "usage": self.usage.to_dict(),
            "finishReason": self.finish_reason,
        }


StreamPart = Union[
    TextStart,
    TextDelta,
    TextEnd,
    ToolInputStart,
    ToolInputDelta,
    ToolInputEnd,
    ToolCall,
    Finish,
]
