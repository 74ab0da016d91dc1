"""Gateway endpoint helpers: URLs, outbound headers and error formatting."""

import json
import logging
from typing import Any, Mapping, Optional

import httpx

from ..config_loader import DEFAULT_TIMEOUT, GatewaySettings

logger = logging.getLogger("gatewaylm")

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


def build_url(base_url: str, path: str = CHAT_COMPLETIONS_PATH) -> str:
    """Join the gateway base URL and an API path without doubling ``/v1``."""
    base = base_url.rstrip("/")
    normalized_path = path or ""
    if not normalized_path.startswith("/"):
        normalized_path = f"/{normalized_path}"
    if base.endswith("/v1") and normalized_path.startswith("/v1"):
        normalized_path = normalized_path[len("/v1"):]
    return f"{base}{normalized_path}"


def build_request_headers(
    settings: GatewaySettings, extra_body: Optional[Mapping[str, Any]] = None
) -> dict[str, str]:
    """Build headers for a chat completion request.

    Gateway metadata from ``extra_body["helicone"]`` travels as headers,
    never in the JSON body.
    """
    headers: dict[str, str] = {"Content-Type": "application/json"}
    headers.update(settings.headers or {})

    if settings.api_key:
        headers["Authorization"] = f"Bearer {settings.api_key}"

    metadata = (extra_body or {}).get("helicone")
    if not isinstance(metadata, Mapping):
        return headers

    if metadata.get("sessionId"):
        headers["Helicone-Session-Id"] = str(metadata["sessionId"])
    if metadata.get("userId"):
        headers["Helicone-User-Id"] = str(metadata["userId"])

    properties = metadata.get("properties")
    if isinstance(properties, Mapping):
        for key, value in properties.items():
            headers[f"Helicone-Property-{key}"] = _header_value(value)

    for tag in metadata.get("tags") or []:
        headers[f"Helicone-Property-Tag-{tag}"] = "true"

    if metadata.get("cache") is not None:
        headers["Helicone-Cache-Enabled"] = _header_value(metadata["cache"])

    return headers


def _header_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_error_body(
    body: bytes, status_code: int, reason_phrase: str = ""
) -> dict[str, Any]:
    """Decode an error response body, wrapping non-JSON text in OpenAI shape."""
    text = body.decode("utf-8", errors="replace") if body else ""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed
    message = text or f"HTTP {status_code}: {reason_phrase}".rstrip(": ")
    return {
        "error": {
            "message": message,
            "type": "http_error",
            "code": str(status_code),
        }
    }


def format_httpx_error(exc: Any, url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = getattr(exc, "request", None)
    except RuntimeError:
        # httpx raises when .request was never attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException):
        parts.append(f"timeout={timeout or DEFAULT_TIMEOUT}s")

    return "; ".join(parts)
