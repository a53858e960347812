# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Provider adapters, their registry and model routing."""

from .anthropic import AnthropicAdapter
from .base import ProviderAdapter
from .config import ProviderConfig, ProviderRateLimit
from .factory import ADAPTERS, build_adapter, build_registry
from .openai import OpenAIAdapter
from .registry import ProviderRegistry
from .routing import DEFAULT_ROUTE_PREFIXES, ModelRoute, ModelRoutingTable

__all__ = [
    "ADAPTERS",
    "DEFAULT_ROUTE_PREFIXES",
    "AnthropicAdapter",
    "ModelRoute",
    "ModelRoutingTable",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ProviderConfig",
    "ProviderRateLimit",
    "ProviderRegistry",
    "build_adapter",
    "build_registry",
]
