# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the AI aggregator gateway.

Every failure that can reach a caller is one of seven kinds (see ErrorKind).
The HTTP layer only needs ``http_status`` and ``to_dict()`` to render an
OpenAI-compatible error envelope, so it never needs provider-specific
knowledge.

Client-error kinds (4xx):
    InvalidRequestError, UnknownProviderError, ModelNotFoundError,
    RateLimitedError

Server-error kinds (5xx):
    UpstreamError, TransportError, DecodeError

ConfigurationError (and DuplicateProviderError) are raised while wiring the
gateway together at startup, never while serving a request.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

MAX_ERROR_BODY_CHARS = 2048
"""Upstream bodies are cut to this many characters in messages and envelopes."""


class ErrorKind(str, Enum):
    """Taxonomy of request-time failures."""

    INVALID_REQUEST = "invalid_request"
    UNKNOWN_PROVIDER = "unknown_provider"
    MODEL_NOT_FOUND = "model_not_found"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_ERROR = "transport_error"
    DECODE_ERROR = "decode_error"

    @property
    def is_client_error(self) -> bool:
        return self in _CLIENT_KINDS


_CLIENT_KINDS = frozenset(
    {
        ErrorKind.INVALID_REQUEST,
        ErrorKind.UNKNOWN_PROVIDER,
        ErrorKind.MODEL_NOT_FOUND,
        ErrorKind.RATE_LIMITED,
    }
)


def truncate_body(body: str | bytes | None, limit: int = MAX_ERROR_BODY_CHARS) -> str:
    """Decode and shorten an upstream body for diagnostics."""
    if body is None:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if len(body) <= limit:
        return body
    return f"{body[:limit]}... [truncated {len(body) - limit} chars]"


class AggregatorError(Exception):
    """Base exception for all gateway errors.

    Catch this exception to handle any error originating from the gateway.

    Attributes:
        provider: Name of the provider involved, if any.
        code: Optional machine-readable code placed in the error envelope.

    Example:
        try:
            response = await gateway.chat_completion(request, client_key=key)
        except AggregatorError as e:
            status, body = e.http_status, e.to_dict()
    """

    kind: ClassVar[ErrorKind | None] = None
    default_status: ClassVar[int] = 500

    def __init__(
        self,
        message: str = "",
        *,
        provider: str | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.code = code

    @property
    def http_status(self) -> int:
        """HTTP status the outer transport surface should answer with."""
        return self.default_status

    @property
    def retryable(self) -> bool:
        """Whether repeating the same call may succeed."""
        return False

    def to_dict(self) -> dict[str, Any]:
        """Render an OpenAI-compatible error envelope."""
        error: dict[str, Any] = {
            "message": str(self) or type(self).__name__,
            "type": self.kind.value if self.kind else "internal_error",
        }
        if self.code is not None:
            error["code"] = self.code
        if self.provider is not None:
            error["provider"] = self.provider
        return {"error": error}


class ConfigurationError(AggregatorError, ValueError):
    """Raised when gateway or provider configuration is invalid.

    Common causes include:
    - Non-positive rate limits or timeouts
    - Unknown provider names in a factory call
    - Malformed routing tables
    """


class DuplicateProviderError(ConfigurationError):
    """Raised when a provider name is registered twice.

    Silently replacing an adapter would hide configuration mistakes, so the
    registry refuses and keeps the adapter that was registered first.
    """

    kind = ErrorKind.UNKNOWN_PROVIDER

    def __init__(self, name: str):
        super().__init__(f"Provider already registered: {name}", provider=name)
        self.name = name


class InvalidRequestError(AggregatorError):
    """Raised for missing or malformed canonical request fields.

    This is always the caller's fault and is never retried.

    Attributes:
        param: Name of the offending field, if known.
    """

    kind = ErrorKind.INVALID_REQUEST
    default_status = 400

    def __init__(
        self,
        message: str,
        *,
        param: str | None = None,
        provider: str | None = None,
    ):
        super().__init__(message, provider=provider, code="invalid_request")
        self.param = param

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.param is not None:
            body["error"]["param"] = self.param
        return body


class UnknownProviderError(AggregatorError):
    """Raised when no adapter is registered or routed for a name or model."""

    kind = ErrorKind.UNKNOWN_PROVIDER
    default_status = 400

    def __init__(self, name: str, message: str | None = None):
        super().__init__(
            message or f"Unknown provider: {name}",
            provider=name,
            code="unknown_provider",
        )
        self.name = name


class ModelNotFoundError(AggregatorError):
    """Raised when a known provider does not offer the requested model."""

    kind = ErrorKind.MODEL_NOT_FOUND
    default_status = 404

    def __init__(self, model_id: str, provider: str | None = None):
        suffix = f" for provider {provider}" if provider else ""
        super().__init__(
            f"Model not found: {model_id}{suffix}",
            provider=provider,
            code="model_not_found",
        )
        self.model_id = model_id


class RateLimitedError(AggregatorError):
    """Raised when admission control rejects a request.

    Rate limiting is resolved before any upstream call, so this never wraps
    an upstream failure. The client key is deliberately not part of the
    message because it may be an API key or bearer token.

    Attributes:
        retry_after: Seconds until the current window closes, if known.
        scope: ``"client"`` for per-client limits, ``"provider"`` for a
            provider's configured requests-per-minute budget.
    """

    kind = ErrorKind.RATE_LIMITED
    default_status = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float | None = None,
        scope: str = "client",
        provider: str | None = None,
    ):
        super().__init__(message, provider=provider, code="rate_limit_exceeded")
        self.retry_after = retry_after
        self.scope = scope

    @property
    def retryable(self) -> bool:
        return True


class UpstreamError(AggregatorError):
    """Raised when a provider answers with a non-success HTTP status.

    Attributes:
        status_code: HTTP status returned by the provider.
        body: Provider response body, truncated for diagnostics.
        raw_body: The full decoded body, kept off the error message.
    """

    kind = ErrorKind.UPSTREAM_ERROR
    default_status = 502

    def __init__(
        self,
        status_code: int,
        body: str | bytes | None = None,
        *,
        provider: str | None = None,
        body_limit: int = MAX_ERROR_BODY_CHARS,
    ):
        self.status_code = status_code
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        self.raw_body = body or ""
        self.body = truncate_body(self.raw_body, limit=body_limit)
        who = provider or "provider"
        message = f"{who} request failed with status {status_code}"
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(message, provider=provider, code=f"upstream_{status_code}")

    @property
    def retryable(self) -> bool:
        return self.status_code in (408, 429) or self.status_code >= 500


class TransportError(AggregatorError):
    """Raised when the provider cannot be reached or the call times out.

    Attributes:
        timeout: True when the failure was a deadline or read timeout.
    """

    kind = ErrorKind.TRANSPORT_ERROR
    default_status = 502

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        timeout: bool = False,
    ):
        super().__init__(
            message,
            provider=provider,
            code="timeout" if timeout else "transport_error",
        )
        self.timeout = timeout

    @property
    def http_status(self) -> int:
        return 504 if self.timeout else 502

    @property
    def retryable(self) -> bool:
        return True


class DecodeError(AggregatorError):
    """Raised when a provider reply cannot be parsed or translated.

    Treated as a provider-side defect, not the caller's fault.
    """

    kind = ErrorKind.DECODE_ERROR
    default_status = 502

    def __init__(self, message: str, *, provider: str | None = None):
        super().__init__(message, provider=provider, code="decode_error")


__all__ = [
    "MAX_ERROR_BODY_CHARS",
    "AggregatorError",
    "ConfigurationError",
    "DecodeError",
    "DuplicateProviderError",
    "ErrorKind",
    "InvalidRequestError",
    "ModelNotFoundError",
    "RateLimitedError",
    "TransportError",
    "UnknownProviderError",
    "UpstreamError",
    "truncate_body",
]
