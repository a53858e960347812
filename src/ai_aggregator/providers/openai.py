# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""OpenAI chat-completions adapter."""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ..exceptions import ModelNotFoundError, UpstreamError
from ..types import (
    CanonicalRequest,
    CanonicalResponse,
    Choice,
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
    Message,
    ModelInfo,
    Pricing,
    Role,
    Usage,
)
from .base import ProviderAdapter

logger = logging.getLogger(__name__)


OPENAI_PRICING = MappingProxyType(
    {
        "gpt-4": Pricing(0.03, 0.06),
        "gpt-4-turbo": Pricing(0.01, 0.03),
        "gpt-3.5-turbo": Pricing(0.0005, 0.0015),
        "gpt-3.5-turbo-16k": Pricing(0.003, 0.004),
        "text-davinci-003": Pricing(0.02, 0.02),
        "text-curie-001": Pricing(0.002, 0.002),
        "text-babbage-001": Pricing(0.0005, 0.0005),
        "text-ada-001": Pricing(0.0004, 0.0004),
        "dall-e-3": Pricing(0.04, 0.08),
        "whisper-1": Pricing(0.006, 0.006),
    }
)
"""USD per 1K tokens."""

OPENAI_DEFAULT_PRICING = Pricing(0.01, 0.03)


def _usage(data: Any) -> Usage:
    usage = data.get("usage") or {}
    return Usage.of(
        int(usage.get("prompt_tokens", 0)),
        int(usage.get("completion_tokens", 0)),
    )


class OpenAIAdapter(ProviderAdapter):
    """
    Adapter for the OpenAI API.

    The canonical model already uses OpenAI's field names, so requests pass
    through almost unchanged. Usage totals are recomputed from
    ``prompt_tokens + completion_tokens`` rather than trusted.
    """

    default_base_url = "https://api.openai.com/v1"
    chat_path = "/chat/completions"
    pricing_table = OPENAI_PRICING
    default_pricing = OPENAI_DEFAULT_PRICING

    @property
    def name(self) -> str:
        return "openai"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def _to_provider_payload(
        self, request: CanonicalRequest, *, stream: bool
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [
                {"role": m.role.value, "content": m.content} for m in request.messages
            ],
        }
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.stop:
            payload["stop"] = request.stop_sequences
        if request.user is not None:
            payload["user"] = request.user
        if stream:
            payload["stream"] = True
        return payload

    def messages_from_payload(self, payload: Mapping[str, Any]) -> list[Message]:
        return [
            Message(role=Role(m["role"]), content=m["content"])
            for m in payload["messages"]
        ]

    def _convert_response(
        self, data: Any, request: CanonicalRequest
    ) -> CanonicalResponse:
        choices = [
            Choice(
                index=choice.get("index", i),
                message=Message(
                    role=choice["message"]["role"],
                    content=choice["message"].get("content") or "",
                ),
                finish_reason=choice.get("finish_reason"),
            )
            for i, choice in enumerate(data["choices"])
        ]
        return CanonicalResponse(
            id=data["id"],
            object=data.get("object") or "chat.completion",
            created=data["created"],
            model=data.get("model") or request.model,
            choices=choices,
            usage=_usage(data),
            error=data.get("error"),
            provider=self.name,
        )

    @staticmethod
    def _model_info(item: Any) -> ModelInfo:
        return ModelInfo(
            id=item["id"],
            owned_by=item.get("owned_by", ""),
            object=item.get("object") or "model",
        )

    async def get_models(self) -> list[ModelInfo]:
        response = await self._request("GET", "/models")
        data = self._json(response)
        return self._decode(lambda: [self._model_info(item) for item in data["data"]])

    async def get_model_info(self, model_id: str) -> ModelInfo:
        """Fetch one model from ``/models/{id}``; 404 means not found."""
        try:
            response = await self._request("GET", f"/models/{model_id}")
        except UpstreamError as e:
            if e.status_code == 404:
                raise ModelNotFoundError(model_id, provider=self.name) from e
            raise
        data = self._json(response)
        return self._decode(lambda: self._model_info(data))

    async def create_embeddings(
        self, request: EmbeddingRequest, *, timeout: float | None = None
    ) -> EmbeddingResponse:
        payload: dict[str, Any] = {"model": request.model, "input": request.input}
        if request.user is not None:
            payload["user"] = request.user
        response = await self._request(
            "POST", "/embeddings", json=payload, timeout=timeout
        )
        data = self._json(response)

        def convert() -> EmbeddingResponse:
            return EmbeddingResponse(
                data=[
                    EmbeddingData(
                        embedding=item["embedding"],
                        index=item.get("index", i),
                    )
                    for i, item in enumerate(data["data"])
                ],
                model=data.get("model") or request.model,
                usage=_usage(data),
                provider=self.name,
            )

        return self._decode(convert)


__all__ = ["OPENAI_DEFAULT_PRICING", "OPENAI_PRICING", "OpenAIAdapter"]
