# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""AI Aggregator - one OpenAI-compatible gateway in front of many LLM providers.

This library is the core of an AI API gateway: it accepts provider-agnostic
chat requests, admits them through a per-client rate limiter, routes them to
a provider adapter and returns provider-agnostic responses.

Key Features:
    - Canonical request/response model (OpenAI-compatible JSON)
    - OpenAI and Anthropic adapters over httpx
    - Copy-on-write provider registry and model routing table
    - Fixed-window per-client rate limiting (memory or Redis backend)
    - Raw upstream streaming with guaranteed connection cleanup
    - Prometheus metrics for requests, tokens, cost and rate limiting

Quick Start:
    >>> from ai_aggregator import Gateway, build_registry, derive_client_key
    >>>
    >>> registry = build_registry({"openai": {"api_key": "sk-..."}})
    >>> async with Gateway(registry) as gateway:
    ...     response = await gateway.chat_completion(
    ...         {"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]},
    ...         client_key=derive_client_key(headers, remote_addr),
    ...     )

Note: RedisBackend requires the 'redis' extra. Install with:
    pip install ai-aggregator[redis]

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING

from .backends import MemoryBackend, RateLimitBackend
from .config import GatewayConfig, RateLimiterConfig, RetryConfig
from .exceptions import (
    AggregatorError,
    ConfigurationError,
    DecodeError,
    DuplicateProviderError,
    ErrorKind,
    InvalidRequestError,
    ModelNotFoundError,
    RateLimitedError,
    TransportError,
    UnknownProviderError,
    UpstreamError,
)
from .gateway import Gateway
from .observability import GatewayMetrics
from .providers import (
    AnthropicAdapter,
    ModelRoute,
    ModelRoutingTable,
    OpenAIAdapter,
    ProviderAdapter,
    ProviderConfig,
    ProviderRateLimit,
    ProviderRegistry,
    build_adapter,
    build_registry,
)
from .ratelimit import RateLimiter, derive_client_key
from .streaming import ProviderStream, StreamContext
from .types import (
    CanonicalRequest,
    CanonicalResponse,
    Choice,
    CompletionRequest,
    CompletionResponse,
    Cost,
    EmbeddingRequest,
    EmbeddingResponse,
    Message,
    ModelInfo,
    Pricing,
    RateLimitDecision,
    RateLimitVisitor,
    Role,
    Usage,
)

# Lazy import for optional redis backend
if TYPE_CHECKING:
    from .backends import RedisBackend

__all__ = [
    # Exceptions
    "AggregatorError",
    # Providers
    "AnthropicAdapter",
    # Types
    "CanonicalRequest",
    "CanonicalResponse",
    "Choice",
    "CompletionRequest",
    "CompletionResponse",
    "ConfigurationError",
    "Cost",
    "DecodeError",
    "DuplicateProviderError",
    "EmbeddingRequest",
    "EmbeddingResponse",
    "ErrorKind",
    # Gateway
    "Gateway",
    # Config
    "GatewayConfig",
    # Observability
    "GatewayMetrics",
    "InvalidRequestError",
    # Backends
    "MemoryBackend",
    "Message",
    "ModelInfo",
    "ModelNotFoundError",
    "ModelRoute",
    "ModelRoutingTable",
    "OpenAIAdapter",
    "Pricing",
    "ProviderAdapter",
    "ProviderConfig",
    "ProviderRateLimit",
    "ProviderRegistry",
    # Streaming
    "ProviderStream",
    "RateLimitBackend",
    "RateLimitDecision",
    "RateLimitVisitor",
    "RateLimitedError",
    # Rate limiting
    "RateLimiter",
    "RateLimiterConfig",
    "RedisBackend",  # Lazy loaded - requires redis extra
    "RetryConfig",
    "Role",
    "StreamContext",
    "TransportError",
    "UnknownProviderError",
    "UpstreamError",
    "Usage",
    "build_adapter",
    "build_registry",
    "derive_client_key",
]


def __getattr__(name: str) -> type:
    """Lazy import for optional redis backend."""
    if name == "RedisBackend":
        from .backends import RedisBackend

        return RedisBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
