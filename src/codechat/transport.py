"""HTTP transport for the chat service, built on httpx."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from typing import Any

import httpx

from .exceptions import ChatConnectionError, ChatHTTPError, ChatStreamingError, CodeChatError

LOGGER = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class ChatTransport:
    """Thin async wrapper around ``httpx.AsyncClient`` for chat endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 90.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url, timeout=httpx.Timeout(timeout)
        )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ChatTransport:
        api = config.get("api", {})
        return cls(
            base_url=str(api.get("base_url", "http://localhost:3000")),
            timeout=float(api.get("timeout_seconds", 90.0)),
        )

    def map_exception(self, exc: Exception) -> CodeChatError:
        if isinstance(exc, CodeChatError):
            return exc
        if isinstance(exc, (httpx.TransportError, TimeoutError)):
            return ChatConnectionError(
                f"Unable to reach chat service at {self.base_url}: {exc}"
            )
        return ChatStreamingError(f"Chat request to {self.base_url} failed: {exc}")

    @staticmethod
    def raise_for_status(response: httpx.Response) -> None:
        if not response.is_success:
            raise ChatHTTPError(response.status_code)

    @asynccontextmanager
    async def stream_post(
        self, path: str, body: dict[str, Any]
    ) -> AsyncIterator[httpx.Response]:
        """POST ``body`` and yield the response with its body still unread."""
        try:
            async with self._client.stream(
                "POST", path, json=body, headers=JSON_HEADERS
            ) as response:
                self.raise_for_status(response)
                yield response
        except httpx.HTTPError as exc:
            raise self.map_exception(exc) from exc

    async def post_json(
        self,
        path: str,
        body: dict[str, Any],
        timeout: float | None = None,
    ) -> Any:
        """POST ``body`` and decode the JSON reply.

        The whole call is aborted after ``timeout`` seconds (defaults to the
        transport timeout), independent of httpx's per-phase timeouts.
        """
        limit = self.timeout if timeout is None else timeout
        try:
            async with asyncio.timeout(limit):
                response = await self._client.post(path, json=body, headers=JSON_HEADERS)
        except (httpx.HTTPError, TimeoutError) as exc:
            LOGGER.warning(
                "transport.request.failed",
                extra={
                    "event": "transport.request.failed",
                    "path": path,
                    "error_type": type(exc).__name__,
                },
            )
            raise self.map_exception(exc) from exc

        self.raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            raise ChatStreamingError(f"Invalid JSON from {path}: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
