# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider configuration.

One immutable ProviderConfig per adapter. The API key is excluded from
``repr`` so configs can be logged safely.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any

from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class ProviderRateLimit:
    """
    Provider-side budget. Zero means unlimited.
    """

    requests_per_minute: int = 0
    """Maximum calls the gateway makes to this provider per minute."""

    tokens_per_minute: int = 0
    """Informational; token budgets are not enforced by the gateway."""

    def __post_init__(self) -> None:
        if self.requests_per_minute < 0 or self.tokens_per_minute < 0:
            raise ConfigurationError("Provider rate limits must be non-negative")


@dataclass(frozen=True)
class ProviderConfig:
    """
    Credentials and transport settings for one provider.
    """

    api_key: str = field(repr=False)
    """Secret credential. Never logged."""

    base_url: str | None = None
    """Override for the provider's default endpoint."""

    extra_headers: Mapping[str, str] = field(default_factory=dict)
    """Headers added to every upstream request."""

    timeout_seconds: float = 30.0
    """Per-call deadline."""

    max_retries: int = 3
    """Retry budget for idempotent calls made through the gateway."""

    rate_limit: ProviderRateLimit = field(default_factory=ProviderRateLimit)
    """Provider-side budget."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.api_key:
            raise ConfigurationError("api_key is required")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative")
        if self.base_url is not None and not self.base_url.startswith(
            ("http://", "https://")
        ):
            raise ConfigurationError("base_url must be an http(s) URL")
        object.__setattr__(
            self, "extra_headers", MappingProxyType(dict(self.extra_headers))
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProviderConfig":
        """
        Build a config from plain data.

        Accepts ``timeout`` as an alias of ``timeout_seconds`` and
        ``headers`` as an alias of ``extra_headers``. Zero or missing
        timeout and retry values fall back to the defaults (30 seconds and
        3 retries).
        """
        values = dict(data)
        if "timeout" in values:
            values.setdefault("timeout_seconds", values.pop("timeout"))
        if "headers" in values:
            values.setdefault("extra_headers", values.pop("headers"))
        if not values.get("timeout_seconds"):
            values.pop("timeout_seconds", None)
        if not values.get("max_retries"):
            values.pop("max_retries", None)
        rate_limit = values.get("rate_limit")
        if isinstance(rate_limit, Mapping):
            values["rate_limit"] = ProviderRateLimit(**rate_limit)

        names = {f.name for f in fields(cls)}
        unknown = set(values) - names
        if unknown:
            raise ConfigurationError(
                f"Unknown ProviderConfig option(s): {', '.join(sorted(unknown))}"
            )
        return cls(**values)


__all__ = ["ProviderConfig", "ProviderRateLimit"]
