# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Model catalog and pricing types.

These are plain frozen dataclasses: they are produced by adapters from static
tables or already-validated provider payloads, never from raw caller input.
"""

from dataclasses import dataclass, field
from typing import Any

from .chat import Usage


@dataclass(frozen=True)
class ModelInfo:
    """
    Catalog entry for one model.

    Attributes:
        id: Model identifier as the provider knows it
        owned_by: Owning organisation reported by the provider
        max_tokens: Maximum completion tokens (0 when unknown)
        context_size: Context window in tokens (0 when unknown)
        permission: Provider permission tags, usually empty
        object: Always "model"
    """

    id: str
    owned_by: str = ""
    max_tokens: int = 0
    context_size: int = 0
    permission: tuple[str, ...] = ()
    object: str = "model"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "object": self.object,
            "owned_by": self.owned_by,
            "permission": list(self.permission),
            "max_tokens": self.max_tokens,
            "context_size": self.context_size,
        }


@dataclass(frozen=True)
class Cost:
    """Estimated spend for one call, split by direction."""

    input_cost: float
    output_cost: float
    currency: str = "usd"

    @property
    def total(self) -> float:
        return self.input_cost + self.output_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_cost": self.input_cost,
            "output_cost": self.output_cost,
            "total_cost": self.total,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class Pricing:
    """
    Per-1K-token prices for a model.

    Attributes:
        input_cost_per_k_tokens: Price of 1000 prompt tokens
        output_cost_per_k_tokens: Price of 1000 completion tokens
        currency: ISO-ish currency code, lowercase
    """

    input_cost_per_k_tokens: float
    output_cost_per_k_tokens: float
    currency: str = field(default="usd")

    def __post_init__(self) -> None:
        if self.input_cost_per_k_tokens < 0 or self.output_cost_per_k_tokens < 0:
            raise ValueError("Prices must be non-negative")

    def cost_for(self, usage: Usage) -> Cost:
        """Price a usage record."""
        return Cost(
            input_cost=usage.prompt_tokens / 1000 * self.input_cost_per_k_tokens,
            output_cost=usage.completion_tokens
            / 1000
            * self.output_cost_per_k_tokens,
            currency=self.currency,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_cost": self.input_cost_per_k_tokens,
            "output_cost": self.output_cost_per_k_tokens,
            "currency": self.currency,
        }


__all__ = ["Cost", "ModelInfo", "Pricing"]
