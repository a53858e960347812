# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Anthropic Messages API adapter."""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ..exceptions import InvalidRequestError
from ..types import (
    CanonicalRequest,
    CanonicalResponse,
    Choice,
    Message,
    ModelInfo,
    Pricing,
    Role,
    Usage,
)
from .base import ProviderAdapter

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_MAX_TOKENS = 4096
"""Sent when the caller gives no max_tokens; Anthropic requires one."""

ANTHROPIC_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(
        id="claude-3-5-sonnet-20241022",
        owned_by="anthropic",
        max_tokens=4096,
        context_size=200000,
    ),
    ModelInfo(
        id="claude-3-5-haiku-20241022",
        owned_by="anthropic",
        max_tokens=4096,
        context_size=200000,
    ),
    ModelInfo(
        id="claude-3-opus-20240229",
        owned_by="anthropic",
        max_tokens=4096,
        context_size=200000,
    ),
)

ANTHROPIC_PRICING = MappingProxyType(
    {
        "claude-3-5-sonnet-20241022": Pricing(0.003, 0.015),
        "claude-3-5-haiku-20241022": Pricing(0.0008, 0.004),
        "claude-3-opus-20240229": Pricing(0.015, 0.075),
    }
)
"""USD per 1K tokens."""

ANTHROPIC_DEFAULT_PRICING = Pricing(0.003, 0.015)

FINISH_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
}


class AnthropicAdapter(ProviderAdapter):
    """
    Adapter for the Anthropic Messages API.

    Translation rules:
    - ``system`` messages move, in order, to the top-level ``system`` field
      as one text block each. The API has no in-conversation system role,
      so their position relative to other messages is not kept
    - at least one user or assistant message is required
    - ``max_tokens`` defaults to 4096
    - ``stop`` is sent as ``stop_sequences``
    - text content blocks are joined into one assistant choice
    - ``input_tokens``/``output_tokens`` become prompt/completion tokens
    """

    default_base_url = "https://api.anthropic.com/v1"
    chat_path = "/messages"
    pricing_table = ANTHROPIC_PRICING
    default_pricing = ANTHROPIC_DEFAULT_PRICING

    @property
    def name(self) -> str:
        return "anthropic"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def validate_request(self, request: CanonicalRequest) -> None:
        super().validate_request(request)
        if all(m.role is Role.SYSTEM for m in request.messages):
            raise InvalidRequestError(
                "messages must include a user or assistant message",
                param="messages",
                provider=self.name,
            )

    def _to_provider_payload(
        self, request: CanonicalRequest, *, stream: bool
    ) -> dict[str, Any]:
        system = [
            {"type": "text", "text": m.content}
            for m in request.messages
            if m.role is Role.SYSTEM
        ]
        payload: dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [
                {"role": m.role.value, "content": m.content}
                for m in request.messages
                if m.role is not Role.SYSTEM
            ],
        }
        if system:
            payload["system"] = system
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.stop:
            payload["stop_sequences"] = request.stop_sequences
        if request.user is not None:
            payload["metadata"] = {"user_id": request.user}
        if stream:
            payload["stream"] = True
        return payload

    def messages_from_payload(self, payload: Mapping[str, Any]) -> list[Message]:
        system = payload.get("system") or []
        if isinstance(system, str):
            system = [{"type": "text", "text": system}]
        messages = [
            Message(role=Role.SYSTEM, content=block["text"]) for block in system
        ]
        messages.extend(
            Message(role=Role(m["role"]), content=m["content"])
            for m in payload["messages"]
        )
        return messages

    def _convert_response(
        self, data: Any, request: CanonicalRequest
    ) -> CanonicalResponse:
        text = "".join(
            block["text"] for block in data["content"] if block.get("type") == "text"
        )
        stop_reason = data.get("stop_reason")
        usage = data.get("usage") or {}
        return CanonicalResponse(
            id=data["id"],
            model=data.get("model") or request.model,
            choices=[
                Choice(
                    index=0,
                    message=Message(role=Role.ASSISTANT, content=text),
                    finish_reason=FINISH_REASONS.get(stop_reason, stop_reason),
                )
            ],
            usage=Usage.of(
                int(usage.get("input_tokens", 0)),
                int(usage.get("output_tokens", 0)),
            ),
            provider=self.name,
        )

    async def get_models(self) -> list[ModelInfo]:
        # No catalog endpoint is used; the static table is returned each call.
        return list(ANTHROPIC_MODELS)


__all__ = [
    "ANTHROPIC_DEFAULT_PRICING",
    "ANTHROPIC_MODELS",
    "ANTHROPIC_PRICING",
    "AnthropicAdapter",
]
