# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Gateway: the single entry point an HTTP layer calls.

Every request goes through the same front half:

1. validate the canonical request (InvalidRequestError)
2. admit the client (RateLimitedError, before any provider is touched)
3. resolve the provider, by explicit name or through the routing table
   (UnknownProviderError)
4. check the provider's own requests-per-minute budget, if configured
5. call the adapter under a deadline, normalizing every failure into the
   error taxonomy
6. account usage and estimated cost
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from types import TracebackType
from typing import Any, TypeVar

from typing_extensions import Self

from ..backends.memory import MemoryBackend
from ..config import GatewayConfig
from ..exceptions import (
    AggregatorError,
    DecodeError,
    InvalidRequestError,
    RateLimitedError,
    TransportError,
    UpstreamError,
    truncate_body,
)
from ..observability.metrics import GatewayMetrics
from ..providers.base import ProviderAdapter
from ..providers.registry import ProviderRegistry
from ..providers.routing import ModelRoutingTable
from ..ratelimit.limiter import RateLimiter
from ..streaming import ProviderStream, StreamContext
from ..types import (
    CanonicalRequest,
    CanonicalResponse,
    CompletionChoice,
    CompletionRequest,
    CompletionResponse,
    Cost,
    EmbeddingRequest,
    EmbeddingResponse,
    ModelInfo,
    Usage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROVIDER_WINDOW_SECONDS = 60.0


class Gateway:
    """
    Routes canonical requests to provider adapters.

    The gateway holds no per-request state. Shared state is limited to the
    rate limiter's visitor table and the registry's adapter mapping, both of
    which are safe for concurrent use.

    Example:
        registry = build_registry({"openai": {"api_key": key}})
        async with Gateway(registry) as gateway:
            response = await gateway.chat_completion(
                {"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]},
                client_key=derive_client_key(headers, remote_addr),
            )
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        limiter: RateLimiter | None = None,
        *,
        config: GatewayConfig | None = None,
        routing: ModelRoutingTable | None = None,
        metrics: GatewayMetrics | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            registry: Provider adapters by name
            limiter: Per-client limiter. Built from ``config.rate_limiter``
                when omitted.
            config: Gateway configuration
            routing: Model routing table. Built from ``config.routes`` and
                ``config.route_prefixes`` when omitted.
            metrics: Optional Prometheus metrics
            sleep: Awaitable used for retry backoff (tests pass a fake)
        """
        self.config = config or GatewayConfig()
        self.registry = registry
        self.metrics = metrics
        self.limiter = limiter or RateLimiter(self.config.rate_limiter, metrics=metrics)
        self.routing = routing or ModelRoutingTable(
            self.config.routes, self.config.route_prefixes
        )
        self._provider_limits = MemoryBackend(namespace="provider_rpm")
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Front half
    # ------------------------------------------------------------------

    async def _admit(self, client_key: str) -> None:
        if not client_key:
            raise InvalidRequestError("client_key is required", param="client_key")
        decision = await self.limiter.check(client_key)
        if not decision.allowed:
            raise RateLimitedError(retry_after=decision.retry_after)

    def _route(
        self, model: str, provider: str | None
    ) -> tuple[ProviderAdapter, str]:
        """Pick the adapter and the model id to send it."""
        if provider is not None:
            adapter = self.registry.resolve(provider)
            prefix = f"{provider}/"
            if model.startswith(prefix) and len(model) > len(prefix):
                model = model[len(prefix) :]
            return adapter, model

        route = self.routing.resolve(model, frozenset(self.registry.names()))
        adapter = self.registry.resolve(route.provider)
        logger.debug(f"Routing model '{model}' to provider '{adapter.name}'")
        return adapter, route.model

    async def _admit_provider(self, adapter: ProviderAdapter) -> None:
        rpm = adapter.config.rate_limit.requests_per_minute
        if not self.config.enforce_provider_rate_limits or rpm <= 0:
            return
        decision = await self._provider_limits.hit(
            adapter.name, rpm, PROVIDER_WINDOW_SECONDS
        )
        if self.metrics is not None:
            self.metrics.record_rate_limit(
                "provider", "allowed" if decision.allowed else "rejected"
            )
        if not decision.allowed:
            raise RateLimitedError(
                f"Rate limit exceeded for provider {adapter.name}",
                retry_after=decision.retry_after,
                scope="provider",
                provider=adapter.name,
            )

    def _timeout(self, adapter: ProviderAdapter, timeout: float | None) -> float:
        if timeout is not None:
            return timeout
        if self.config.default_timeout_seconds is not None:
            return self.config.default_timeout_seconds
        return adapter.config.timeout_seconds

    # ------------------------------------------------------------------
    # Upstream calls
    # ------------------------------------------------------------------

    def _normalize(
        self, adapter: ProviderAdapter, exc: Exception, timeout: float
    ) -> AggregatorError:
        """Map any adapter failure into the error taxonomy."""
        limit = self.config.max_error_body_chars
        if isinstance(exc, UpstreamError) and exc.body != truncate_body(
            exc.raw_body, limit
        ):
            return UpstreamError(
                exc.status_code, exc.raw_body, provider=exc.provider, body_limit=limit
            )
        if isinstance(exc, AggregatorError):
            return exc
        if isinstance(exc, asyncio.TimeoutError):
            return TransportError(
                f"{adapter.name} call exceeded the {timeout:g}s deadline",
                provider=adapter.name,
                timeout=True,
            )
        if isinstance(exc, (KeyError, TypeError, ValueError)):
            return DecodeError(
                f"{adapter.name} reply could not be translated: "
                f"{type(exc).__name__}: {exc}",
                provider=adapter.name,
            )
        return TransportError(
            f"{adapter.name} call failed: {type(exc).__name__}: {exc}",
            provider=adapter.name,
        )

    async def _call(
        self,
        adapter: ProviderAdapter,
        operation: str,
        call: Callable[[], Awaitable[T]],
        timeout: float,
        *,
        retry: bool,
    ) -> T:
        """
        Run one adapter call under a deadline.

        With ``retry`` set, retryable failures (429/5xx upstream statuses and
        transport errors) are repeated with exponential backoff, up to the
        adapter's ``max_retries``. Cancellation is never caught.
        """
        attempts = 1 + (adapter.config.max_retries if retry else 0)
        attempt = 0
        while True:
            attempt += 1
            started = time.monotonic()
            try:
                result = await asyncio.wait_for(call(), timeout)
            except Exception as exc:
                error = self._normalize(adapter, exc, timeout)
                if not (retry and error.retryable and attempt < attempts):
                    if error is exc:
                        raise
                    raise error from exc
                delay = self.config.retry.delay(attempt)
                logger.warning(
                    f"{adapter.name} {operation} attempt {attempt}/{attempts} failed "
                    f"({error}); retrying in {delay:.2f}s"
                )
                if self.metrics is not None:
                    self.metrics.record_retry(adapter.name, operation)
                await self._sleep(delay)
                continue
            finally:
                if self.metrics is not None:
                    self.metrics.observe_latency(
                        adapter.name, operation, time.monotonic() - started
                    )
            return result

    def _account(self, adapter: ProviderAdapter, model: str, usage: Usage) -> Cost:
        cost = adapter.get_pricing(model).cost_for(usage)
        if self.metrics is not None:
            self.metrics.record_usage(adapter.name, usage, cost)
        logger.debug(
            f"{adapter.name}/{model}: {usage.total_tokens} tokens, "
            f"~{cost.total:.6f} {cost.currency}"
        )
        return cost

    def _record(self, provider: str | None, operation: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_request(provider or "none", operation, outcome)

    def _record_error(
        self, provider: str | None, operation: str, error: AggregatorError
    ) -> None:
        outcome = error.kind.value if error.kind else "error"
        self._record(provider, operation, outcome)

    async def _chat(
        self,
        request: CanonicalRequest,
        *,
        client_key: str,
        provider: str | None,
        timeout: float | None,
        operation: str,
    ) -> CanonicalResponse:
        adapter_name = provider
        try:
            await self._admit(client_key)
            adapter, model = self._route(request.model, provider)
            adapter_name = adapter.name
            if model != request.model:
                request = request.model_copy(update={"model": model})
            await self._admit_provider(adapter)
            deadline = self._timeout(adapter, timeout)
            response = await self._call(
                adapter,
                operation,
                lambda: adapter.send_request(request, timeout=deadline),
                deadline,
                retry=self.config.retry.retry_completions,
            )
            self._account(adapter, model, response.usage)
        except AggregatorError as e:
            self._record_error(adapter_name, operation, e)
            raise
        self._record(adapter_name, operation, "success")
        return response

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def chat_completion(
        self,
        request: CanonicalRequest | Mapping[str, Any],
        *,
        client_key: str,
        provider: str | None = None,
        timeout: float | None = None,
    ) -> CanonicalResponse:
        """
        Serve a non-streaming chat completion.

        Args:
            request: Canonical request or its JSON-like payload
            client_key: Rate-limit identity (see ``derive_client_key``)
            provider: Explicit provider name; bypasses model routing
            timeout: Deadline override in seconds

        Raises:
            InvalidRequestError: Malformed request, or ``stream`` set
            RateLimitedError: Client or provider budget exhausted
            UnknownProviderError: No adapter for the name or model
            UpstreamError, TransportError, DecodeError: Provider failures
        """
        try:
            req = self._coerce_chat(request)
            if req.stream:
                raise InvalidRequestError(
                    "stream=true requires stream_chat_completion", param="stream"
                )
        except AggregatorError as e:
            self._record_error(provider, "chat", e)
            raise
        return await self._chat(
            req,
            client_key=client_key,
            provider=provider,
            timeout=timeout,
            operation="chat",
        )

    async def stream_chat_completion(
        self,
        request: CanonicalRequest | Mapping[str, Any],
        *,
        client_key: str,
        provider: str | None = None,
        timeout: float | None = None,
    ) -> ProviderStream:
        """
        Open a streaming chat completion and return the raw provider stream.

        Only opening the stream is retried (and only with
        ``retry.retry_completions``); once bytes flow, errors reach the
        caller. The caller must close the returned stream.
        """
        adapter_name = provider
        try:
            req = self._coerce_chat(request)
            if not req.stream:
                req = req.model_copy(update={"stream": True})
            await self._admit(client_key)
            adapter, model = self._route(req.model, provider)
            adapter_name = adapter.name
            if model != req.model:
                req = req.model_copy(update={"model": model})
            await self._admit_provider(adapter)
            deadline = self._timeout(adapter, timeout)
            stream = await self._call(
                adapter,
                "stream",
                lambda: adapter.send_stream_request(
                    req, timeout=deadline, on_close=self._on_stream_close
                ),
                deadline,
                retry=self.config.retry.retry_completions,
            )
        except AggregatorError as e:
            self._record_error(adapter_name, "stream", e)
            raise

        self._record(adapter_name, "stream", "success")
        if self.metrics is not None:
            self.metrics.record_stream_opened(adapter.name)
        return stream

    def _on_stream_close(self, context: StreamContext) -> None:
        if self.metrics is not None:
            self.metrics.record_stream_closed(
                context.provider,
                context.close_reason or "closed_early",
                context.bytes_forwarded,
            )

    async def completion(
        self,
        request: CompletionRequest | Mapping[str, Any],
        *,
        client_key: str,
        provider: str | None = None,
        timeout: float | None = None,
    ) -> CompletionResponse:
        """Serve a prompt-style completion through the chat path."""
        try:
            if not isinstance(request, CompletionRequest):
                request = CompletionRequest.parse(request)
            chat_request = request.to_chat_request()
        except AggregatorError as e:
            self._record_error(provider, "completion", e)
            raise
        response = await self._chat(
            chat_request,
            client_key=client_key,
            provider=provider,
            timeout=timeout,
            operation="completion",
        )
        return CompletionResponse(
            id=response.id,
            created=response.created,
            model=response.model,
            choices=[
                CompletionChoice(
                    index=choice.index,
                    text=choice.message.content,
                    finish_reason=choice.finish_reason,
                )
                for choice in response.choices
            ],
            usage=response.usage,
            provider=response.provider,
        )

    async def embeddings(
        self,
        request: EmbeddingRequest | Mapping[str, Any],
        *,
        client_key: str,
        provider: str | None = None,
        timeout: float | None = None,
    ) -> EmbeddingResponse:
        """Embed input strings. Embedding calls are idempotent and retried."""
        adapter_name = provider
        try:
            if not isinstance(request, EmbeddingRequest):
                request = EmbeddingRequest.parse(request)
            await self._admit(client_key)
            adapter, model = self._route(request.model, provider)
            adapter_name = adapter.name
            if model != request.model:
                request = request.model_copy(update={"model": model})
            await self._admit_provider(adapter)
            deadline = self._timeout(adapter, timeout)
            embed_request = request
            response = await self._call(
                adapter,
                "embeddings",
                lambda: adapter.create_embeddings(embed_request, timeout=deadline),
                deadline,
                retry=True,
            )
            self._account(adapter, model, response.usage)
        except AggregatorError as e:
            self._record_error(adapter_name, "embeddings", e)
            raise
        self._record(adapter_name, "embeddings", "success")
        return response

    async def list_models(self, provider: str | None = None) -> list[ModelInfo]:
        """
        List models of one provider, or of every registered provider.

        Catalog calls are retried with backoff. The first provider failure
        propagates.
        """
        if provider is not None:
            adapters = [self.registry.resolve(provider)]
        else:
            snapshot = self.registry.snapshot()
            adapters = [snapshot[name] for name in sorted(snapshot)]

        models: list[ModelInfo] = []
        for adapter in adapters:
            models.extend(
                await self._call(
                    adapter,
                    "models",
                    adapter.get_models,
                    self._timeout(adapter, None),
                    retry=True,
                )
            )
        return models

    async def get_model(self, model_id: str, provider: str | None = None) -> ModelInfo:
        """
        Look up one model, routing by model id when no provider is given.

        Raises:
            ModelNotFoundError: The provider does not offer the model
            UnknownProviderError: No provider matches
        """
        adapter, model = self._route(model_id, provider)
        return await self._call(
            adapter,
            "models",
            lambda: adapter.get_model_info(model),
            self._timeout(adapter, None),
            retry=True,
        )

    def estimate_cost(self, provider: str, model: str, usage: Usage) -> Cost:
        """Price a usage record with the provider's table (never fails on model)."""
        return self.registry.resolve(provider).get_pricing(model).cost_for(usage)

    @staticmethod
    def error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
        """
        Map an exception to an HTTP status and OpenAI-compatible error body.

        Anything outside the taxonomy is reported as an opaque 500.
        """
        if isinstance(exc, AggregatorError):
            return exc.http_status, exc.to_dict()
        return 500, {
            "error": {"message": "Internal server error", "type": "internal_error"}
        }

    @staticmethod
    def _coerce_chat(request: CanonicalRequest | Mapping[str, Any]) -> CanonicalRequest:
        if isinstance(request, CanonicalRequest):
            return request
        return CanonicalRequest.parse(request)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the limiter's background sweep."""
        await self.limiter.start()

    async def close(self) -> None:
        """Stop the limiter sweep and close every adapter."""
        await self.limiter.stop()
        await self.registry.close_all()
        await self._provider_limits.close()
        logger.info("Gateway closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = ["Gateway"]
