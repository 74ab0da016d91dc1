"""Stream adapter turning OpenAI Chat Completions SSE into neutral stream parts.

OpenAI Chat Completion chunks:
    data: {"choices":[{"delta":{"content":"Hello"},"index":0}]}
    data: {"choices":[{"delta":{"tool_calls":[{"index":0,"id":"call_1","function":{"name":"f","arguments":"{\\"a\\":"}}]}}]}
    data: {"choices":[{"delta":{"tool_calls":[{"index":0,"function":{"arguments":"1}"}}]}}]}
    data: {"choices":[{"delta":{},"finish_reason":"tool_calls"}],"usage":{...}}
    data: [DONE]

Stream parts:
    text-start, text-delta, text-end
    tool-input-start, tool-input-delta, tool-input-end, tool-call
    finish (always last)

Text normally uses the single span id ``text-0``. Text that arrives after a
finish signal already closed that span opens ``text-1``, ``text-2`` and so
on, so consumers should key text by the part's ``id``.

A tool call's tool-input-start always comes first for its id: argument
fragments seen before the name are held and replayed after the start, and
a call that is never named is started with an empty name when flushed.
"""

import logging
from dataclasses import replace
from typing import Any, AsyncIterable, AsyncIterator, Mapping

from ..core.finish_reason import map_finish_reason
from ..core.sse import aiter_sse_frames
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
from .state import TEXT_SPAN_ID, StreamSession, ToolCallState, Usage

logger = logging.getLogger("gatewaylm")


class ChatStreamTransformer:
    """Converts an OpenAI chat completion SSE stream into neutral stream parts.

    One transformer owns one StreamSession and serves exactly one stream:
    - usage is overwritten by whichever frame carries it last
    - text is bracketed into a single start/delta/end span
    - tool-call fragments are correlated by id, then by positional index
    - a finish signal flushes open tool calls and text, the end of the
      stream flushes again and emits the single finish part
    """

    def __init__(self) -> None:
        self.session = StreamSession()
        self._text_span_count = 0
        self._text_span_id = TEXT_SPAN_ID

    async def transform(
        self,
        byte_stream: AsyncIterable[bytes],
    ) -> AsyncIterator[StreamPart]:
        """Transform raw SSE bytes into stream parts.

        Args:
            byte_stream: The response body of a streaming chat completion

        Yields:
            Stream parts, terminated by exactly one Finish
        """
        frames = aiter_sse_frames(byte_stream)
        try:
            async for frame in frames:
                for part in self.process_frame(frame):
                    yield part
        finally:
            await frames.aclose()
            # Stops the upstream reader when the consumer walks away early
            aclose = getattr(byte_stream, "aclose", None)
            if aclose is not None:
                await aclose()

        for part in self.finalize():
            yield part

    def process_frame(self, frame: Mapping[str, Any]) -> list[StreamPart]:
        """Apply one decoded chunk to the session and return the parts it produces."""
        parts: list[StreamPart] = []

        usage = frame.get("usage")
        if isinstance(usage, Mapping):
            self.session.usage = Usage.from_openai(usage)

        choices = frame.get("choices")
        if not isinstance(choices, list) or not choices:
            return parts
        choice = choices[0]
        if not isinstance(choice, Mapping):
            return parts

        # A delta sharing a frame with the finish signal lands before the flush
        delta = choice.get("delta")
        if isinstance(delta, Mapping):
            parts.extend(self._process_delta(delta))

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            self.session.finish_reason = map_finish_reason(finish_reason)
            parts.extend(self.flush())

        return parts

    def _process_delta(self, delta: Mapping[str, Any]) -> list[StreamPart]:
        parts: list[StreamPart] = []

        content = delta.get("content")
        if isinstance(content, str) and content:
            parts.extend(self._process_text_delta(content))

        tool_calls = delta.get("tool_calls")
        if isinstance(tool_calls, list):
            for fragment in tool_calls:
                if isinstance(fragment, Mapping):
                    parts.extend(self._process_tool_call_delta(fragment))

        return parts

    def _process_text_delta(self, content: str) -> list[StreamPart]:
        parts: list[StreamPart] = []
        span = self.session.text_span(self._text_span_id)
        if span.ended:
            # Text arriving after a finish signal closed the span opens a new one
            self._text_span_count += 1
            self._text_span_id = f"text-{self._text_span_count}"
            span = self.session.text_span(self._text_span_id)
        if not span.started:
            span.started = True
            parts.append(TextStart(id=span.id))
        parts.append(TextDelta(id=span.id, delta=content))
        return parts

    def _process_tool_call_delta(self, fragment: Mapping[str, Any]) -> list[StreamPart]:
        index = fragment.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            index = None
        call_id = fragment.get("id")
        if not isinstance(call_id, str):
            call_id = None

        tool_id = self.session.index.resolve(index, call_id)
        if tool_id is None:
            logger.debug(
                "Dropping tool call fragment without id for unmapped index %s", index
            )
            return []

        state = self.session.tool_call(tool_id)
        if state.completed:
            logger.debug("Dropping tool call fragment for completed call %s", tool_id)
            return []

        parts: list[StreamPart] = []
        function = fragment.get("function")
        if not isinstance(function, Mapping):
            return parts

        name = function.get("name")
        if isinstance(name, str) and name and not state.name:
            state.name = name
            parts.extend(self._start_tool_call(state))

        arguments = function.get("arguments")
        if isinstance(arguments, str) and arguments:
            state.append_arguments(arguments)
            if state.started:
                parts.append(ToolInputDelta(id=tool_id, delta=arguments))
            else:
                # Held until the name arrives so tool-input-start stays first
                state.held_deltas.append(arguments)

        return parts

    @staticmethod
    def _start_tool_call(state: ToolCallState) -> list[StreamPart]:
        """Emit tool-input-start, then any argument fragments held back for it."""
        if state.started:
            return []
        state.started = True
        parts: list[StreamPart] = [ToolInputStart(id=state.id, tool_name=state.name)]
        parts.extend(ToolInputDelta(id=state.id, delta=delta) for delta in state.held_deltas)
        state.held_deltas.clear()
        return parts

    def flush(self) -> list[StreamPart]:
        """Close every open tool call and text span. Repeat calls are no-ops."""
        parts: list[StreamPart] = []

        for state in self.session.tool_calls.values():
            if state.completed:
                continue
            # A call that was never named still opens before it closes
            parts.extend(self._start_tool_call(state))
            parts.append(ToolInputEnd(id=state.id))
            parts.append(
                ToolCall(
                    tool_call_id=state.id,
                    tool_name=state.name,
                    input=state.arguments,
                )
            )
            state.completed = True

        for span in self.session.text_spans.values():
            if span.started and not span.ended:
                parts.append(TextEnd(id=span.id))
                span.ended = True

        return parts

    def finalize(self) -> list[StreamPart]:
        """Flush and emit the terminal Finish part, once per session."""
        if self.session.finished:
            return []
        parts = self.flush()
        parts.append(
            Finish(
                usage=replace(self.session.usage),
                finish_reason=self.session.finish_reason,
            )
        )
        self.session.finished = True
        return parts


async def transform_chat_stream(
    byte_stream: AsyncIterable[bytes],
) -> AsyncIterator[StreamPart]:
    """Convenience function to transform a chat completion SSE byte stream.

    Args:
        byte_stream: Raw SSE response body

    Yields:
        Neutral stream parts
    """
    parts = ChatStreamTransformer().transform(byte_stream)
    try:
        async for part in parts:
            yield part
    finally:
        await parts.aclose()
