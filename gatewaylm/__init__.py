"""gatewaylm - a provider-neutral client for OpenAI-compatible chat gateways

Sends chat completion requests to an OpenAI-compatible gateway and turns
the answers, streamed or not, into provider-neutral parts.

This module provides:
- GatewayLanguageModel: do_generate / do_stream against /v1/chat/completions
- ChatStreamTransformer: SSE chunk stream -> text, tool-call and finish parts
- Request translation: neutral prompts, tools and tool choice -> OpenAI body

Example:
    >>> from gatewaylm import CallOptions, GatewayLanguageModel, GatewaySettings
    >>> model = GatewayLanguageModel("gpt-4o-mini", GatewaySettings(api_key="..."))
    >>> result = await model.do_stream(CallOptions(prompt=[{"role": "user", "content": "Hi"}]))
    >>> async for part in result.stream:
    ...     print(part.to_dict())
"""

from .config_loader import GatewaySettings, load_config, settings_from_config
from .core import (
    ConfigurationError,
    GatewayAPIError,
    GatewayError,
    GatewayStreamError,
    InvalidToolSchemaError,
    map_finish_reason,
)
from .logging import logger, setup_logging
from .model import GatewayLanguageModel, StreamResult
from .stream import ChatStreamTransformer, StreamPart, Usage, transform_chat_stream
from .translation import CallOptions, GenerateResult

__all__ = [
    "CallOptions",
    "ChatStreamTransformer",
    "ConfigurationError",
    "GatewayAPIError",
    "GatewayError",
    "GatewayLanguageModel",
    "GatewaySettings",
    "GatewayStreamError",
    "GenerateResult",
    "InvalidToolSchemaError",
    "StreamPart",
    "StreamResult",
    "Usage",
    "load_config",
    "logger",
    "map_finish_reason",
    "settings_from_config",
    "setup_logging",
    "transform_chat_stream",
]
