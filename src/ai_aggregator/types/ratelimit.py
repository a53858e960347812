# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Rate limiter state and decision types."""

from dataclasses import dataclass


@dataclass
class RateLimitVisitor:
    """
    Per-client fixed-window counter.

    Attributes:
        client_key: Identity the window belongs to
        window_start: Clock reading when the current window opened
        count: Requests admitted in the current window (never negative)
    """

    client_key: str
    window_start: float
    count: int = 0

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("count must be non-negative")


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Outcome of one admission check.

    Attributes:
        allowed: Whether the request was admitted
        key: Client key that was checked
        count: Window count after the check
        limit: Configured rate
        retry_after: Seconds until the window closes (0.0 when allowed)
    """

    allowed: bool
    key: str
    count: int
    limit: int
    retry_after: float = 0.0

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


__all__ = ["RateLimitDecision", "RateLimitVisitor"]
