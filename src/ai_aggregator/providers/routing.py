# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Model -> provider routing.

Lookup order for a model id:
1. ``provider/model`` syntax, when ``provider`` is a known route target
2. An exact entry in the routes table
3. The longest matching prefix
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..exceptions import UnknownProviderError

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_PREFIXES: Mapping[str, str] = MappingProxyType(
    {
        "gpt-": "openai",
        "chatgpt-": "openai",
        "o1": "openai",
        "o3": "openai",
        "text-embedding-": "openai",
        "text-davinci-": "openai",
        "dall-e": "openai",
        "whisper": "openai",
        "claude-": "anthropic",
    }
)


@dataclass(frozen=True)
class ModelRoute:
    """Where a request goes: provider name plus the model id to send."""

    provider: str
    model: str


class ModelRoutingTable:
    """
    Resolve a model id to a provider.

    Args:
        routes: Exact model id -> provider name
        prefixes: Model id prefix -> provider name. Defaults to
            ``DEFAULT_ROUTE_PREFIXES``; pass ``{}`` to disable prefix routing.
    """

    def __init__(
        self,
        routes: Mapping[str, str] | None = None,
        prefixes: Mapping[str, str] | None = None,
    ):
        self._routes = dict(routes or {})
        prefix_table = DEFAULT_ROUTE_PREFIXES if prefixes is None else prefixes
        # Longest prefix first so "gpt-4o" style overrides beat "gpt-".
        self._prefixes = sorted(
            prefix_table.items(), key=lambda item: len(item[0]), reverse=True
        )
        self._providers = set(self._routes.values()) | {
            provider for _, provider in self._prefixes
        }

    @property
    def providers(self) -> frozenset[str]:
        """Every provider name this table can route to."""
        return frozenset(self._providers)

    def resolve(
        self, model: str, known_providers: frozenset[str] | None = None
    ) -> ModelRoute:
        """
        Pick the provider for ``model``.

        Args:
            model: Model id, optionally as ``provider/model``
            known_providers: Extra provider names accepted in the
                ``provider/model`` form (typically the registry's names)

        Raises:
            UnknownProviderError: If no rule matches.
        """
        if "/" in model:
            provider, _, bare = model.partition("/")
            accepted = self._providers | (known_providers or frozenset())
            if provider in accepted and bare:
                return ModelRoute(provider, bare)

        provider_name = self._routes.get(model)
        if provider_name is not None:
            return ModelRoute(provider_name, model)

        for prefix, provider_name in self._prefixes:
            if model.startswith(prefix):
                return ModelRoute(provider_name, model)

        logger.debug(f"No route for model '{model}'")
        raise UnknownProviderError(
            model, message=f"No provider is configured for model: {model}"
        )


__all__ = ["DEFAULT_ROUTE_PREFIXES", "ModelRoute", "ModelRoutingTable"]
