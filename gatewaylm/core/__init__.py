"""Core module initialization."""

from .exceptions import (
    ConfigurationError,
    GatewayAPIError,
    GatewayError,
    GatewayStreamError,
    InvalidToolSchemaError,
    create_gateway_error,
)
from .finish_reason import map_finish_reason
from .sse import SSELineDecoder, aiter_sse_frames, decode_frame

__all__ = [
    "ConfigurationError",
    "GatewayAPIError",
    "GatewayError",
    "GatewayStreamError",
    "InvalidToolSchemaError",
    "SSELineDecoder",
    "aiter_sse_frames",
    "create_gateway_error",
    "decode_frame",
    "map_finish_reason",
]
