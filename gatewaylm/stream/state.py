"""Mutable state owned by a single streaming call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

# Argument buffer value meaning "no fragment received yet"
EMPTY_ARGUMENTS = "{}"

TEXT_SPAN_ID = "text-0"


@dataclass
class Usage:
    """Token accounting reported by the gateway."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_openai(cls, usage: Mapping[str, Any]) -> "Usage":
        return cls(
            input_tokens=usage.get("prompt_tokens") or 0,
            output_tokens=usage.get("completion_tokens") or 0,
            total_tokens=usage.get("total_tokens") or 0,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class ToolCallState:
    id: str
    name: str = ""
    arguments: str = EMPTY_ARGUMENTS
    started: bool = False
    completed: bool = False
    # Argument fragments received before tool-input-start was emitted
    held_deltas: list[str] = field(default_factory=list)

    def append_arguments(self, fragment: str) -> None:
        if self.arguments == EMPTY_ARGUMENTS:
            self.arguments = fragment
        else:
            self.arguments += fragment


@dataclass
class TextSpanState:
    id: str
    started: bool = False
    ended: bool = False


class ToolCallIndex:
    """Maps the positional ``index`` of streamed tool-call fragments to ids.

    Providers name a call's id only on its first fragment; later fragments
    carry just the index. An id supplied with an index always (re)binds that
    index, and an index-only fragment resolves through the existing binding.
    """

    def __init__(self) -> None:
        self._ids: dict[int, str] = {}

    def assign(self, index: int, call_id: str) -> None:
        self._ids[index] = call_id

    def resolve(self, index: Optional[int], call_id: Optional[str]) -> Optional[str]:
        """Return the id a fragment belongs to, or None if it can't be correlated."""
        if call_id:
            if index is not None:
                self.assign(index, call_id)
            return call_id
        if index is not None:
            return self._ids.get(index)
        return None


@dataclass
class StreamSession:
    """All state for one transformer invocation."""

    usage: Usage = field(default_factory=Usage)
    finish_reason: str = "stop"
    # Insertion ordered: flush order is creation order
    tool_calls: dict[str, ToolCallState] = field(default_factory=dict)
    index: ToolCallIndex = field(default_factory=ToolCallIndex)
    text_spans: dict[str, TextSpanState] = field(default_factory=dict)
    finished: bool = False

    def tool_call(self, call_id: str) -> ToolCallState:
        """Get or create the state for a tool call id."""
        state = self.tool_calls.get(call_id)
        if state is None:
            state = ToolCallState(id=call_id)
            self.tool_calls[call_id] = state
        return state

    def text_span(self, span_id: str = TEXT_SPAN_ID) -> TextSpanState:
        span = self.text_spans.get(span_id)
        if span is None:
            span = TextSpanState(id=span_id)
            self.text_spans[span_id] = span
        return span
