# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Per-client admission control."""

from ..types import RateLimitDecision, RateLimitVisitor
from .keys import derive_client_key
from .limiter import RateLimiter

__all__ = [
    "RateLimitDecision",
    "RateLimitVisitor",
    "RateLimiter",
    "derive_client_key",
]
