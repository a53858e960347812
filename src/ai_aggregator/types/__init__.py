# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Canonical data types shared by adapters, the limiter and the gateway."""

from .catalog import Cost, ModelInfo, Pricing
from .chat import (
    APIErrorDetail,
    CanonicalRequest,
    CanonicalResponse,
    Choice,
    Message,
    Role,
    Usage,
)
from .completions import (
    CompletionChoice,
    CompletionRequest,
    CompletionResponse,
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
)
from .ratelimit import RateLimitDecision, RateLimitVisitor

__all__ = [
    "APIErrorDetail",
    "CanonicalRequest",
    "CanonicalResponse",
    "Choice",
    "CompletionChoice",
    "CompletionRequest",
    "CompletionResponse",
    "Cost",
    "EmbeddingData",
    "EmbeddingRequest",
    "EmbeddingResponse",
    "Message",
    "ModelInfo",
    "Pricing",
    "RateLimitDecision",
    "RateLimitVisitor",
    "Role",
    "Usage",
]
