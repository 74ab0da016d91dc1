"""Tests for the OpenAI Chat -> neutral stream part transformer."""

import pytest

from conftest import aiter_chunks, collect, sse

from gatewaylm.stream import (
    ChatStreamTransformer,
    Finish,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCall,
    ToolInputDelta,
    ToolInputEnd,
    ToolInputStart,
    transform_chat_stream,
)
from gatewaylm.testing import build_stream_chunk


def _types(parts) -> list[str]:
    return [part.type for part in parts]


def _tool_fragment(index=0, call_id=None, name=None, arguments=None) -> dict:
    fragment: dict = {"index": index}
    if call_id is not None:
        fragment["id"] = call_id
        fragment["type"] = "function"
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    if function:
        fragment["function"] = function
    return fragment


async def _run(*events, done: bool = True) -> list:
    return await collect(transform_chat_stream(aiter_chunks(sse(*events, done=done))))


class TestTextStreaming:
    """Tests for text span bracketing."""

    @pytest.mark.asyncio
    async def test_simple_text_stream(self):
        """Text fragments share one start/end pair and are passed verbatim."""
        parts = await _run(
            build_stream_chunk("Hello"),
            build_stream_chunk(" world"),
            build_stream_chunk(finish_reason="stop"),
        )

        assert _types(parts) == ["text-start", "text-delta", "text-delta", "text-end", "finish"]
        assert parts[0] == TextStart(id="text-0")
        assert parts[1] == TextDelta(id="text-0", delta="Hello")
        assert parts[2] == TextDelta(id="text-0", delta=" world")
        assert parts[3] == TextEnd(id="text-0")
        assert parts[4].finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_malformed_frame_between_text_frames_is_dropped(self):
        """A frame that isn't JSON is skipped without breaking the span."""
        parts = await _run(
            build_stream_chunk("one"),
            "{invalid json}",
            build_stream_chunk("two"),
        )

        assert _types(parts) == ["text-start", "text-delta", "text-delta", "text-end", "finish"]
        assert [p.delta for p in parts if isinstance(p, TextDelta)] == ["one", "two"]

    @pytest.mark.asyncio
    async def test_empty_content_emits_nothing(self):
        """Empty-string content (e.g. the role chunk) doesn't open a span."""
        parts = await _run(
            {"choices": [{"delta": {"role": "assistant", "content": ""}, "index": 0}]},
        )

        assert _types(parts) == ["finish"]

    @pytest.mark.asyncio
    async def test_text_after_finish_signal_opens_new_span(self):
        """Content delivered after a flush is bracketed by a fresh span."""
        parts = await _run(
            build_stream_chunk("before", finish_reason="stop"),
            build_stream_chunk("after"),
        )

        assert _types(parts) == [
            "text-start", "text-delta", "text-end",
            "text-start", "text-delta", "text-end",
            "finish",
        ]
        assert parts[0].id == "text-0"
        assert parts[3].id == "text-1"
        assert parts[4] == TextDelta(id="text-1", delta="after")


class TestToolCallStreaming:
    """Tests for tool-call reassembly."""

    @pytest.mark.asyncio
    async def test_tool_call_scenario(self):
        """Id on first mention, index-only afterwards, finish on the last frame."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "c1", "f", '{"a":')]),
            build_stream_chunk(
                tool_calls=[_tool_fragment(0, arguments="1}")],
                finish_reason="tool_calls",
            ),
        )

        assert parts == [
            ToolInputStart(id="c1", tool_name="f"),
            ToolInputDelta(id="c1", delta='{"a":'),
            ToolInputDelta(id="c1", delta="1}"),
            ToolInputEnd(id="c1"),
            ToolCall(tool_call_id="c1", tool_name="f", input='{"a":1}'),
            parts[-1],
        ]
        assert isinstance(parts[-1], Finish)
        assert parts[-1].finish_reason == "tool-calls"

    def test_fragment_after_finish_frame_is_dropped(self):
        """A completed call ignores fragments that arrive in later frames."""
        transformer = ChatStreamTransformer()
        parts = transformer.process_frame(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "c1", "f", '{"a":')], finish_reason="tool_calls")
        )
        late = transformer.process_frame(
            build_stream_chunk(tool_calls=[_tool_fragment(0, arguments="1}")])
        )

        assert _types(parts) == ["tool-input-start", "tool-input-delta", "tool-input-end", "tool-call"]
        assert parts[-1].input == '{"a":'
        assert late == []
        assert transformer.session.tool_calls["c1"].arguments == '{"a":'

    @pytest.mark.asyncio
    async def test_arguments_concatenate_in_arrival_order(self):
        """The tool-call input is the raw concatenation of all fragments."""
        fragments = ['{"loc', 'ation": "San', ' Francisco", ', '"unit": "fahrenheit"}']
        events = [build_stream_chunk(tool_calls=[_tool_fragment(0, "call_1", "getWeather", fragments[0])])]
        events += [build_stream_chunk(tool_calls=[_tool_fragment(0, arguments=f)]) for f in fragments[1:]]
        events.append(build_stream_chunk(finish_reason="tool_calls"))

        parts = await _run(*events)

        deltas = [p.delta for p in parts if isinstance(p, ToolInputDelta)]
        assert deltas == fragments
        tool_call = next(p for p in parts if isinstance(p, ToolCall))
        assert tool_call.input == "".join(fragments)

    @pytest.mark.asyncio
    async def test_tool_call_without_arguments_reports_empty_object(self):
        """A call that never receives arguments reports the '{}' sentinel."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_2", "getCurrentTime")]),
            build_stream_chunk(finish_reason="tool_calls"),
        )

        tool_call = next(p for p in parts if isinstance(p, ToolCall))
        assert tool_call.tool_call_id == "call_2"
        assert tool_call.tool_name == "getCurrentTime"
        assert tool_call.input == "{}"
        assert not any(isinstance(p, ToolInputDelta) for p in parts)

    @pytest.mark.asyncio
    async def test_empty_object_arguments_fragment(self):
        """A literal '{}' fragment replaces the sentinel and is forwarded."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_2", "now", "{}")]),
        )

        assert ToolInputDelta(id="call_2", delta="{}") in parts
        assert next(p for p in parts if isinstance(p, ToolCall)).input == "{}"

    @pytest.mark.asyncio
    async def test_malformed_arguments_pass_through(self):
        """Argument text is never validated as JSON."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_bad", "t", '{"invalid": json}')]),
            build_stream_chunk(finish_reason="tool_calls"),
        )

        assert next(p for p in parts if isinstance(p, ToolCall)).input == '{"invalid": json}'

    @pytest.mark.asyncio
    async def test_multiple_tool_calls_flush_in_creation_order(self):
        """Concurrent calls are tracked per index and flushed in creation order."""
        parts = await _run(
            build_stream_chunk(tool_calls=[
                _tool_fragment(0, "call_multi_1", "getWeather", '{"location": '),
                _tool_fragment(1, "call_multi_2", "calculate", '{"a": 42, '),
            ]),
            build_stream_chunk(tool_calls=[
                _tool_fragment(1, arguments='"b": 17, "operation": "multiply"}'),
                _tool_fragment(0, arguments='"San Francisco"}'),
            ]),
            build_stream_chunk(finish_reason="tool_calls"),
        )

        calls = [p for p in parts if isinstance(p, ToolCall)]
        assert [c.tool_call_id for c in calls] == ["call_multi_1", "call_multi_2"]
        assert calls[0].input == '{"location": "San Francisco"}'
        assert calls[1].input == '{"a": 42, "b": 17, "operation": "multiply"}'
        ends = [p.id for p in parts if isinstance(p, ToolInputEnd)]
        assert ends == ["call_multi_1", "call_multi_2"]

    @pytest.mark.asyncio
    async def test_uncorrelated_fragment_is_dropped(self):
        """A fragment with no id and an unmapped index is ignored."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(3, arguments='{"x": 1}')]),
            build_stream_chunk(tool_calls=[{"function": {"arguments": "{}"}}]),
        )

        assert _types(parts) == ["finish"]

    @pytest.mark.asyncio
    async def test_first_name_wins(self):
        """A second name for the same call is ignored."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "c1", "first")]),
            build_stream_chunk(tool_calls=[_tool_fragment(0, name="second")]),
        )

        starts = [p for p in parts if isinstance(p, ToolInputStart)]
        assert starts == [ToolInputStart(id="c1", tool_name="first")]
        assert next(p for p in parts if isinstance(p, ToolCall)).tool_name == "first"

    @pytest.mark.asyncio
    async def test_repeated_id_keeps_appending(self):
        """Fragments repeating the id resolve to the same call."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_order", "orderTool", '{"test":')]),
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_order", arguments='"value"}')]),
        )

        calls = [p for p in parts if isinstance(p, ToolCall)]
        assert len(calls) == 1
        assert calls[0].input == '{"test":"value"}'

    @pytest.mark.asyncio
    async def test_name_after_arguments_still_starts_first(self):
        """Fragments that arrive before the name are held until the start."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "c1", arguments='{"a":')]),
            build_stream_chunk(tool_calls=[_tool_fragment(0, name="f", arguments="1}")]),
            build_stream_chunk(finish_reason="tool_calls"),
        )

        assert parts == [
            ToolInputStart(id="c1", tool_name="f"),
            ToolInputDelta(id="c1", delta='{"a":'),
            ToolInputDelta(id="c1", delta="1}"),
            ToolInputEnd(id="c1"),
            ToolCall(tool_call_id="c1", tool_name="f", input='{"a":1}'),
            parts[-1],
        ]
        assert parts[-1].finish_reason == "tool-calls"

    @pytest.mark.asyncio
    async def test_unnamed_call_is_opened_on_flush(self):
        """A call that never gets a name is started with an empty name."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "c1")]),
            build_stream_chunk(tool_calls=[_tool_fragment(1, "c2", arguments="{}")]),
        )

        assert parts[:-1] == [
            ToolInputStart(id="c1", tool_name=""),
            ToolInputEnd(id="c1"),
            ToolCall(tool_call_id="c1", tool_name="", input="{}"),
            ToolInputStart(id="c2", tool_name=""),
            ToolInputDelta(id="c2", delta="{}"),
            ToolInputEnd(id="c2"),
            ToolCall(tool_call_id="c2", tool_name="", input="{}"),
        ]
        assert isinstance(parts[-1], Finish)

    @pytest.mark.asyncio
    async def test_mixed_text_and_tool_calls(self):
        """Text and tool parts interleave in arrival order; tools flush before text."""
        parts = await _run(
            build_stream_chunk("Let me check the weather for you. "),
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_mixed_1", "getWeather", '{"location": "New York"')]),
            build_stream_chunk(tool_calls=[_tool_fragment(0, arguments=', "unit": "celsius"}')]),
            build_stream_chunk(finish_reason="tool_calls"),
        )

        assert _types(parts) == [
            "text-start",
            "text-delta",
            "tool-input-start",
            "tool-input-delta",
            "tool-input-delta",
            "tool-input-end",
            "tool-call",
            "text-end",
            "finish",
        ]
        assert parts[6].input == '{"location": "New York", "unit": "celsius"}'


class TestFinalization:
    """Tests for finish handling and end-of-stream flushing."""

    @pytest.mark.asyncio
    async def test_defaults_without_finish_or_usage(self):
        """No finish signal and no usage leave the defaults in place."""
        parts = await _run(build_stream_chunk("Hi"), done=False)

        finish = parts[-1]
        assert isinstance(finish, Finish)
        assert finish.finish_reason == "stop"
        assert finish.usage.to_dict() == {"inputTokens": 0, "outputTokens": 0, "totalTokens": 0}

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        """A stream with just [DONE] still produces a finish part."""
        parts = await collect(transform_chat_stream(aiter_chunks([b"data: [DONE]\n\n"])))

        assert _types(parts) == ["finish"]

    @pytest.mark.asyncio
    async def test_stream_end_completes_open_tool_calls(self):
        """Tool calls are completed at stream end when no finish_reason arrives."""
        parts = await _run(
            build_stream_chunk(tool_calls=[_tool_fragment(0, "call_stream_end", "endTool", '{"data": "test"}')]),
        )

        assert _types(parts) == [
            "tool-input-start", "tool-input-delta", "tool-input-end", "tool-call", "finish",
        ]
        assert parts[3].input == '{"data": "test"}'
        assert parts[-1].finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_flush_is_idempotent(self):
        """Finish signal followed by stream end emits each completion once."""
        parts = await _run(
            build_stream_chunk("Hi", tool_calls=[_tool_fragment(0, "c1", "f", "{}")]),
            build_stream_chunk(finish_reason="tool_calls"),
            build_stream_chunk(finish_reason="tool_calls"),
        )

        assert _types(parts).count("tool-input-end") == 1
        assert _types(parts).count("tool-call") == 1
        assert _types(parts).count("text-end") == 1
        assert _types(parts).count("finish") == 1

    def test_finalize_twice_returns_nothing(self):
        """Only the first finalize emits the finish part."""
        transformer = ChatStreamTransformer()
        first = transformer.finalize()
        second = transformer.finalize()

        assert _types(first) == ["finish"]
        assert second == []

    @pytest.mark.asyncio
    async def test_usage_is_last_writer_wins(self):
        """Usage is replaced wholesale by each frame that carries it."""
        parts = await _run(
            build_stream_chunk("Hi", usage={"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6}),
            build_stream_chunk(finish_reason="tool_calls", usage={"prompt_tokens": 100, "completion_tokens": 50}),
        )

        assert parts[-1].usage.to_dict() == {"inputTokens": 100, "outputTokens": 50, "totalTokens": 0}
        assert parts[-1].finish_reason == "tool-calls"

    @pytest.mark.asyncio
    async def test_usage_only_frame_without_choices(self):
        """A trailing usage frame with an empty choices list is applied."""
        parts = await _run(
            build_stream_chunk("Hi", finish_reason="stop"),
            build_stream_chunk(choices=False, usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}),
        )

        assert parts[-1].usage.to_dict() == {"inputTokens": 10, "outputTokens": 5, "totalTokens": 15}

    @pytest.mark.asyncio
    async def test_finish_reason_length(self):
        """length maps onto the neutral 'length' reason."""
        parts = await _run(build_stream_chunk("Hi"), build_stream_chunk(finish_reason="length"))

        assert parts[-1].finish_reason == "length"

    @pytest.mark.asyncio
    async def test_finish_reason_unknown_value(self):
        """Unrecognized finish reasons map to 'unknown'."""
        parts = await _run(build_stream_chunk(finish_reason="eos_token"))

        assert parts[-1].finish_reason == "unknown"

    @pytest.mark.asyncio
    async def test_ordering_invariants(self):
        """Per-id ordering holds and finish is the last part."""
        parts = await _run(
            build_stream_chunk("a"),
            build_stream_chunk(tool_calls=[_tool_fragment(0, "x", "fx", "{")]),
            build_stream_chunk(tool_calls=[_tool_fragment(1, "y", "fy", "[")]),
            build_stream_chunk("b", tool_calls=[_tool_fragment(0, arguments="}"), _tool_fragment(1, arguments="]")]),
        )

        for call_id in ("x", "y"):
            start = next(i for i, p in enumerate(parts) if isinstance(p, ToolInputStart) and p.id == call_id)
            deltas = [i for i, p in enumerate(parts) if isinstance(p, ToolInputDelta) and p.id == call_id]
            end = next(i for i, p in enumerate(parts) if isinstance(p, ToolInputEnd) and p.id == call_id)
            call = next(i for i, p in enumerate(parts) if isinstance(p, ToolCall) and p.tool_call_id == call_id)
            assert start < min(deltas)
            assert max(deltas) < end < call
        assert isinstance(parts[-1], Finish)
        assert _types(parts).count("finish") == 1


class TestChunking:
    """Tests for SSE framing across byte chunk boundaries."""

    @pytest.mark.asyncio
    async def test_frame_split_across_chunks(self):
        """A data line split over several reads is reassembled."""
        raw = b"".join(sse(build_stream_chunk("Hello"), build_stream_chunk(" there")))
        chunks = [raw[i:i + 7] for i in range(0, len(raw), 7)]

        parts = await collect(transform_chat_stream(aiter_chunks(chunks)))

        assert [p.delta for p in parts if isinstance(p, TextDelta)] == ["Hello", " there"]

    @pytest.mark.asyncio
    async def test_multiple_frames_in_one_chunk(self):
        """Several frames in a single read are all processed in order."""
        raw = b"".join(sse(build_stream_chunk("a"), build_stream_chunk("b"), build_stream_chunk("c")))

        parts = await collect(transform_chat_stream(aiter_chunks([raw])))

        assert [p.delta for p in parts if isinstance(p, TextDelta)] == ["a", "b", "c"]


class TestCancellation:
    """Tests for consumer abandonment."""

    @pytest.mark.asyncio
    async def test_closing_consumer_closes_source(self):
        """Closing the part stream stops reading and closes the byte source."""
        reads = 0
        closed = False

        async def source():
            nonlocal reads, closed
            try:
                while True:
                    reads += 1
                    yield b'data: {"choices":[{"delta":{"content":"x"}}]}\n\n'
            finally:
                closed = True

        stream = transform_chat_stream(source())
        first = await stream.__anext__()
        second = await stream.__anext__()
        await stream.aclose()

        assert isinstance(first, TextStart)
        assert isinstance(second, TextDelta)
        assert closed is True
        assert reads == 1

    @pytest.mark.asyncio
    async def test_source_error_propagates_without_finish(self):
        """A failing byte source surfaces its error; no finish part is produced."""
        seen = []

        async def source():
            yield b'data: {"choices":[{"delta":{"content":"partial"}}]}\n\n'
            raise ConnectionResetError("connection reset")

        with pytest.raises(ConnectionResetError):
            async for part in transform_chat_stream(source()):
                seen.append(part)

        assert _types(seen) == ["text-start", "text-delta"]
