"""Exceptions raised by the gateway client."""

from typing import Any, Optional

RETRYABLE_STATUSES = {408, 409, 429, 500, 502, 503, 504}


class GatewayError(Exception):
    """Base exception for gateway client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class GatewayAPIError(GatewayError):
    """A request to the gateway failed or returned an error status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        data: Optional[dict[str, Any]] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.data = data or {}
        self.response_body = response_body

    @property
    def is_retryable(self) -> bool:
        return self.status_code in RETRYABLE_STATUSES


class GatewayStreamError(GatewayError):
    """The response body failed while a stream was being consumed."""
    pass


class InvalidToolSchemaError(GatewayError):
    """Raised when a tool's parameter schema cannot be sent to the gateway."""
    pass


class ConfigurationError(GatewayError):
    """Raised when there's an issue with the configuration."""
    pass


def create_gateway_error(
    message: Optional[str] = None,
    *,
    data: Optional[dict[str, Any]] = None,
    status_code: Optional[int] = None,
    response_body: Optional[str] = None,
    cause: Optional[BaseException] = None,
) -> GatewayAPIError:
    """Build a GatewayAPIError from whatever the failed exchange left behind.

    The message is taken from, in order: the explicit ``message``, the
    ``error.message`` field of an OpenAI-style error body, or the status code.
    """
    resolved = message
    if not resolved and isinstance(data, dict):
        error_obj = data.get("error")
        if isinstance(error_obj, dict) and error_obj.get("message"):
            resolved = str(error_obj["message"])
        elif isinstance(error_obj, str) and error_obj:
            resolved = error_obj
    if not resolved:
        resolved = f"HTTP {status_code}" if status_code is not None else "Unknown gateway error"

    error = GatewayAPIError(
        resolved,
        status_code=status_code,
        data=data,
        response_body=response_body,
    )
    if cause is not None:
        error.__cause__ = cause
    return error
