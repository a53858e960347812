# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Raw byte stream handed back for streaming chat completions.

ProviderStream forwards the provider's own framing (OpenAI and Anthropic
both use server-sent events, with different event shapes) without
re-framing. The HTTP layer relays bytes as they arrive and must close the
stream on every exit path; iterating to the end or hitting an error closes
it automatically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from types import TracebackType

import httpx

from ..exceptions import TransportError
from .context import StreamContext

logger = logging.getLogger(__name__)

CloseCallback = Callable[[StreamContext], None]


class ProviderStream(AsyncIterator[bytes]):
    """
    Async iterator over the raw bytes of an upstream streaming response.

    Usage:
        async with await gateway.stream_chat_completion(req, client_key=k) as stream:
            async for chunk in stream:
                await send(chunk)

    Note:
        Breaking out of ``async for`` without the context manager leaves the
        connection open until ``aclose()`` is called.
    """

    __slots__ = (
        "__weakref__",
        "_closed",
        "_ctx",
        "_iterator",
        "_on_close",
        "_response",
    )

    def __init__(
        self,
        response: httpx.Response,
        context: StreamContext,
        on_close: CloseCallback | None = None,
    ) -> None:
        """
        Initialize the stream wrapper.

        Args:
            response: An httpx response opened with ``stream=True``
            context: Bookkeeping for this stream
            on_close: Called once with the context after the stream closes
        """
        self._response = response
        self._ctx = context
        self._on_close = on_close
        self._iterator: AsyncIterator[bytes] | None = None
        self._closed = False

    @property
    def context(self) -> StreamContext:
        return self._ctx

    @property
    def provider(self) -> str:
        return self._ctx.provider

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def content_type(self) -> str:
        return self._response.headers.get("content-type", "text/event-stream")

    @property
    def started(self) -> bool:
        return self._ctx.started

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> ProviderStream:
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        if self._iterator is None:
            self._iterator = self._response.aiter_bytes()

        try:
            chunk = await self._iterator.__anext__()
        except StopAsyncIteration:
            await self._finish("complete")
            raise
        except httpx.TransportError as e:
            logger.warning(
                f"Stream {self._ctx.request_id} from {self._ctx.provider} failed "
                f"after {self._ctx.chunk_count} chunk(s): {type(e).__name__}: {e}"
            )
            await self._finish("error")
            raise TransportError(
                f"{self._ctx.provider} stream interrupted: {e}",
                provider=self._ctx.provider,
                timeout=isinstance(e, httpx.TimeoutException),
            ) from e
        except (Exception, asyncio.CancelledError):
            await self._finish("error")
            raise

        self._ctx.record_chunk(len(chunk))
        return chunk

    async def aclose(self) -> None:
        """
        Close the upstream connection.

        Idempotent. A stream closed before it was exhausted is recorded with
        reason ``closed_early``.
        """
        await self._finish("closed_early")

    async def _finish(self, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        self._ctx.close_reason = reason

        try:
            await self._response.aclose()
        except httpx.HTTPError as e:
            logger.debug(
                f"Error closing stream {self._ctx.request_id}: "
                f"{type(e).__name__}: {e}"
            )

        logger.debug(
            f"Stream {self._ctx.request_id} from {self._ctx.provider} closed "
            f"({reason}, {self._ctx.chunk_count} chunks, "
            f"{self._ctx.bytes_forwarded} bytes)"
        )
        if self._on_close is not None:
            self._on_close(self._ctx)

    async def __aenter__(self) -> ProviderStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = ["ProviderStream"]
