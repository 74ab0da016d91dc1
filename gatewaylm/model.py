"""Language model client for an OpenAI-compatible chat completion gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Optional

import httpx

from .config_loader import GatewaySettings
from .core.backend import build_request_headers, build_url, format_httpx_error, parse_error_body
from .core.exceptions import GatewayStreamError, create_gateway_error
from .logging import mask_headers
from .stream.adapter import ChatStreamTransformer
from .stream.events import StreamPart
from .translation.request import CallOptions, build_request_body
from .translation.response import GenerateResult, parse_chat_completion

logger = logging.getLogger("gatewaylm")


@dataclass
class StreamResult:
    """A live stream of parts plus the request that produced it."""

    stream: AsyncIterator[StreamPart]
    raw_call: dict[str, Any] = field(default_factory=dict)


class GatewayLanguageModel:
    """Calls ``/v1/chat/completions`` and speaks the neutral part protocol."""

    provider = "helicone"

    def __init__(
        self,
        model_id: str,
        settings: Optional[GatewaySettings] = None,
        extra_body: Optional[Mapping[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.model_id = model_id
        self.settings = settings or GatewaySettings()
        self.extra_body = dict(extra_body or {})
        self._transport = transport

    @property
    def url(self) -> str:
        return build_url(self.settings.base_url)

    def _headers(self) -> dict[str, str]:
        return build_request_headers(self.settings, self.extra_body)

    def _client(self, stream: bool) -> httpx.AsyncClient:
        timeout = self.settings.timeout
        if stream:
            # Streams may idle between tokens; only bound connect/write/pool
            client_timeout = httpx.Timeout(connect=timeout, read=None, write=timeout, pool=timeout)
        else:
            client_timeout = httpx.Timeout(timeout)
        return httpx.AsyncClient(timeout=client_timeout, transport=self._transport)

    @staticmethod
    def _raw_call(body: Mapping[str, Any]) -> dict[str, Any]:
        return {"raw_prompt": body.get("messages"), "raw_settings": dict(body)}

    async def do_generate(self, options: CallOptions) -> GenerateResult:
        """Run a single-shot completion."""
        body = build_request_body(self.model_id, options, self.extra_body, stream=False)
        headers = self._headers()
        url = self.url

        logger.info(f"Sending completion request for model {self.model_id} to {url}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Request headers: %s", mask_headers(headers))

        try:
            async with self._client(stream=False) as client:
                resp = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url=url, timeout=self.settings.timeout)
            logger.error(f"Completion request to {url} failed: {detail}")
            raise create_gateway_error(
                f"Failed to generate response: {detail}", cause=exc
            ) from exc

        if resp.status_code >= 400:
            logger.warning(f"Completion request to {url} returned error status {resp.status_code}")
            data = parse_error_body(resp.content, resp.status_code, resp.reason_phrase)
            raise create_gateway_error(
                data=data, status_code=resp.status_code, response_body=resp.text
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise create_gateway_error(
                f"Failed to generate response: invalid JSON body ({exc})",
                status_code=resp.status_code,
                response_body=resp.text,
                cause=exc,
            ) from exc

        result = parse_chat_completion(payload)
        result.raw_call = self._raw_call(body)
        return result

    async def do_stream(self, options: CallOptions) -> StreamResult:
        """Start a streaming completion.

        The initial response status is checked here, so a failed request
        raises before any stream part exists.
        """
        body = build_request_body(self.model_id, options, self.extra_body, stream=True)
        headers = self._headers()
        url = self.url

        logger.info(f"Sending streaming request for model {self.model_id} to {url}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Request headers: %s", mask_headers(headers))

        client = self._client(stream=True)
        try:
            request = client.build_request("POST", url, headers=headers, json=body)
            resp = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            detail = format_httpx_error(exc, url=url, timeout=self.settings.timeout)
            logger.error(f"Failed to send streaming request to {url}: {detail}")
            raise create_gateway_error(
                f"Failed to stream response: {detail}", cause=exc
            ) from exc
        except BaseException:
            await client.aclose()
            raise

        if resp.status_code >= 400:
            logger.warning(f"Streaming request to {url} returned error status {resp.status_code}")
            try:
                data = await resp.aread()
            finally:
                await resp.aclose()
                await client.aclose()
            error_data = parse_error_body(data, resp.status_code, resp.reason_phrase)
            raise create_gateway_error(
                data=error_data,
                status_code=resp.status_code,
                response_body=data.decode("utf-8", errors="replace"),
            )

        logger.debug(f"Streaming request to {url} accepted, status {resp.status_code}")
        return StreamResult(
            stream=self._iter_parts(client, resp, url),
            raw_call=self._raw_call(body),
        )

    async def _iter_parts(
        self,
        client: httpx.AsyncClient,
        resp: httpx.Response,
        url: str,
    ) -> AsyncIterator[StreamPart]:
        parts = ChatStreamTransformer().transform(resp.aiter_bytes())
        try:
            async for part in parts:
                yield part
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url=url, timeout=self.settings.timeout)
            logger.error(f"Stream from {url} failed: {detail}")
            raise GatewayStreamError(f"Stream failed: {detail}") from exc
        finally:
            logger.debug(f"Closing stream for {url}")
            await parts.aclose()
            await resp.aclose()
            await client.aclose()
