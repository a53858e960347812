# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Gateway Configuration for the AI Aggregator

This module provides the configuration classes for the per-client rate
limiter, upstream retry behaviour and the gateway itself. Provider
credentials and endpoints live in ``ai_aggregator.providers.config``.
"""

import random
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .exceptions import MAX_ERROR_BODY_CHARS, ConfigurationError


def _known_fields(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    """Reject keys that are not dataclass fields of ``cls``."""
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} option(s): {', '.join(sorted(unknown))}"
        )
    return dict(data)


@dataclass
class RateLimiterConfig:
    """
    Configuration for the per-client fixed-window rate limiter.
    """

    rate: int = 100
    """Requests admitted per client per window."""

    window_seconds: float = 1.0
    """Length of one fixed window in seconds."""

    sweep_interval_seconds: float = 60.0
    """Interval between background sweeps of idle visitors."""

    inactive_after_seconds: float = 300.0
    """A visitor whose window started longer ago than this is removed."""

    fail_open: bool = True
    """Admit requests when the backend itself fails (Redis only)."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.rate < 1:
            raise ConfigurationError("rate must be at least 1")
        if self.window_seconds <= 0:
            raise ConfigurationError("window_seconds must be positive")
        if self.sweep_interval_seconds <= 0:
            raise ConfigurationError("sweep_interval_seconds must be positive")
        if self.inactive_after_seconds < self.window_seconds:
            raise ConfigurationError(
                "inactive_after_seconds must be at least window_seconds"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RateLimiterConfig":
        return cls(**_known_fields(cls, data))


@dataclass
class RetryConfig:
    """
    Exponential backoff for idempotent upstream calls.

    Delay for attempt ``n`` (1-based) is
    ``min(initial_delay * backoff_base ** (n - 1), max_backoff)`` plus up to
    ``jitter`` of that value.
    """

    initial_delay: float = 0.5
    """Delay before the first retry in seconds."""

    backoff_base: float = 2.0
    """Base for exponential backoff calculation."""

    max_backoff: float = 30.0
    """Maximum backoff time in seconds."""

    jitter: float = 0.1
    """Fraction of the delay added at random (0 disables jitter)."""

    retry_completions: bool = False
    """Also retry chat/completion calls and stream opening."""

    def __post_init__(self) -> None:
        if self.initial_delay < 0:
            raise ConfigurationError("initial_delay must be non-negative")
        if self.backoff_base < 1.0:
            raise ConfigurationError("backoff_base must be at least 1.0")
        if self.max_backoff < self.initial_delay:
            raise ConfigurationError("max_backoff must be >= initial_delay")
        if not 0.0 <= self.jitter <= 1.0:
            raise ConfigurationError("jitter must be between 0.0 and 1.0")

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (1-based)."""
        base = min(
            self.initial_delay * self.backoff_base ** max(attempt - 1, 0),
            self.max_backoff,
        )
        if self.jitter:
            base += random.uniform(0, base * self.jitter)  # noqa: S311  # nosec B311
        return base

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RetryConfig":
        return cls(**_known_fields(cls, data))


@dataclass
class GatewayConfig:
    """
    Top-level gateway configuration.
    """

    rate_limiter: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    """Per-client admission control."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    """Backoff used for catalog, embedding and (optionally) chat calls."""

    default_timeout_seconds: float | None = None
    """Deadline override for every call. None uses each provider's timeout."""

    enforce_provider_rate_limits: bool = True
    """Apply each provider's configured requests-per-minute budget."""

    max_error_body_chars: int = MAX_ERROR_BODY_CHARS
    """Upstream error bodies are cut to this length in errors and envelopes."""

    routes: dict[str, str] = field(default_factory=dict)
    """Exact model id -> provider name."""

    route_prefixes: dict[str, str] | None = None
    """Model id prefix -> provider name. None uses the built-in prefixes."""

    def __post_init__(self) -> None:
        timeout = self.default_timeout_seconds
        if timeout is not None and timeout <= 0:
            raise ConfigurationError("default_timeout_seconds must be positive")
        if self.max_error_body_chars <= 0:
            raise ConfigurationError("max_error_body_chars must be positive")
        for table in (self.routes, self.route_prefixes or {}):
            for key, provider in table.items():
                if not key or not provider:
                    raise ConfigurationError(
                        "Routing entries need a non-empty model and provider"
                    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GatewayConfig":
        """
        Build a config from plain data, e.g. parsed JSON or YAML.

        Nested ``rate_limiter`` and ``retry`` sections may be mappings.
        """
        values = _known_fields(cls, data)
        if isinstance(values.get("rate_limiter"), Mapping):
            values["rate_limiter"] = RateLimiterConfig.from_mapping(
                values["rate_limiter"]
            )
        if isinstance(values.get("retry"), Mapping):
            values["retry"] = RetryConfig.from_mapping(values["retry"])
        if "routes" in values:
            values["routes"] = dict(values["routes"])
        if values.get("route_prefixes") is not None:
            values["route_prefixes"] = dict(values["route_prefixes"])
        return cls(**values)


__all__ = ["GatewayConfig", "RateLimiterConfig", "RetryConfig"]
