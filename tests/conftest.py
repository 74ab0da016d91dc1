"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, AsyncIterator, Iterable

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


async def aiter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    """Helper to create async iterator from list of bytes."""
    for chunk in chunks:
        yield chunk


def sse(*events: Any, done: bool = True) -> list[bytes]:
    """Encode chunk dicts (or raw strings) as one SSE frame per byte chunk."""
    frames = []
    for event in events:
        data = event if isinstance(event, str) else json.dumps(event)
        frames.append(f"data: {data}\n\n".encode("utf-8"))
    if done:
        frames.append(b"data: [DONE]\n\n")
    return frames


async def collect(stream) -> list[Any]:
    return [part async for part in stream]


@pytest.fixture
def fake_gateway():
    """A fresh in-process fake gateway."""
    from gatewaylm.testing import FakeGateway

    return FakeGateway()


@pytest.fixture
def model_factory(fake_gateway):
    """Build GatewayLanguageModel instances wired to the fake gateway."""
    from gatewaylm import GatewayLanguageModel, GatewaySettings

    def _build(model_id: str = "gpt-4o-mini", **kwargs: Any):
        settings = kwargs.pop(
            "settings",
            GatewaySettings(base_url="http://gateway.test", api_key="test-key"),
        )
        return GatewayLanguageModel(
            model_id, settings, transport=fake_gateway.transport, **kwargs
        )

    return _build
