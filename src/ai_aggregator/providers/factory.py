# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Factory for the built-in provider adapters."""

from collections.abc import Mapping
from typing import Any

import httpx

from ..exceptions import ConfigurationError
from .anthropic import AnthropicAdapter
from .base import ProviderAdapter
from .config import ProviderConfig
from .openai import OpenAIAdapter
from .registry import ProviderRegistry

ADAPTERS: Mapping[str, type[ProviderAdapter]] = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
}


def build_adapter(
    name: str,
    config: ProviderConfig | Mapping[str, Any],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderAdapter:
    """
    Create a built-in adapter.

    Args:
        name: "openai" or "anthropic"
        config: ProviderConfig or a plain mapping accepted by
            ``ProviderConfig.from_mapping``
        transport: Optional httpx transport (tests use MockTransport)

    Raises:
        ConfigurationError: If ``name`` is not a built-in provider.
    """
    adapter_cls = ADAPTERS.get(name)
    if adapter_cls is None:
        raise ConfigurationError(
            f"Unknown provider type '{name}'. "
            f"Available: {', '.join(sorted(ADAPTERS))}"
        )
    if not isinstance(config, ProviderConfig):
        config = ProviderConfig.from_mapping(config)
    return adapter_cls(config, transport=transport)


def build_registry(
    configs: Mapping[str, ProviderConfig | Mapping[str, Any]],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderRegistry:
    """Build a registry with one built-in adapter per configured provider."""
    registry = ProviderRegistry()
    for name, config in configs.items():
        registry.register(name, build_adapter(name, config, transport=transport))
    return registry


__all__ = ["ADAPTERS", "build_adapter", "build_registry"]
