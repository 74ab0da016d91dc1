"""Testing utilities for in-process gateway simulations."""

from .fake_gateway import FakeGateway, GatewayResponse, build_stream_chunk, encode_sse_event

__all__ = [
    "FakeGateway",
    "GatewayResponse",
    "build_stream_chunk",
    "encode_sse_event",
]
