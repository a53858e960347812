# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider registry: name -> adapter.

Reads vastly outnumber writes (registration normally happens once at
startup), so the registry publishes an immutable snapshot that readers use
without locking. Writers build a new mapping under a lock and swap it in,
which keeps runtime registration (hot reload) possible.
"""

import asyncio
import logging
import threading
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from ..exceptions import DuplicateProviderError, UnknownProviderError
from .base import ProviderAdapter

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Thread-safe, copy-on-write registry of provider adapters.

    Example:
        registry = ProviderRegistry()
        registry.register("openai", OpenAIAdapter(config))
        adapter = registry.resolve("openai")
    """

    def __init__(self, adapters: Mapping[str, ProviderAdapter] | None = None):
        self._write_lock = threading.Lock()
        self._adapters: Mapping[str, ProviderAdapter] = MappingProxyType({})
        for name, adapter in (adapters or {}).items():
            self.register(name, adapter)

    def register(self, name: str, adapter: ProviderAdapter) -> None:
        """
        Register an adapter under ``name``.

        Raises:
            DuplicateProviderError: If ``name`` is already registered. The
                existing adapter stays in place.
            ValueError: If ``name`` is empty.
        """
        if not name:
            raise ValueError("Provider name must be non-empty")
        with self._write_lock:
            if name in self._adapters:
                raise DuplicateProviderError(name)
            updated = dict(self._adapters)
            updated[name] = adapter
            self._adapters = MappingProxyType(updated)
        logger.info(f"Registered provider '{name}' ({type(adapter).__name__})")

    def unregister(self, name: str) -> ProviderAdapter:
        """
        Remove and return the adapter for ``name``. The caller closes it.

        Raises:
            UnknownProviderError: If ``name`` is not registered.
        """
        with self._write_lock:
            if name not in self._adapters:
                raise UnknownProviderError(name)
            updated = dict(self._adapters)
            adapter = updated.pop(name)
            self._adapters = MappingProxyType(updated)
        logger.info(f"Unregistered provider '{name}'")
        return adapter

    def resolve(self, name: str) -> ProviderAdapter:
        """
        Return the adapter for ``name``.

        Raises:
            UnknownProviderError: If ``name`` is not registered.
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            raise UnknownProviderError(name)
        return adapter

    def names(self) -> list[str]:
        """Registered provider names, sorted."""
        return sorted(self._adapters)

    def snapshot(self) -> Mapping[str, ProviderAdapter]:
        """Read-only view of the current name -> adapter mapping."""
        return self._adapters

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    async def close_all(self) -> None:
        """Close every registered adapter, logging (not raising) failures."""
        adapters = list(self._adapters.items())
        results = await asyncio.gather(
            *(adapter.close() for _, adapter in adapters), return_exceptions=True
        )
        for (name, _), result in zip(adapters, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Error closing provider '{name}': {result}", exc_info=result
                )


__all__ = ["ProviderRegistry"]
