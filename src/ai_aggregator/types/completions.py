# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Legacy text-completion and embedding models (OpenAI-compatible shapes)."""

import time
from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    ValidationError,
    field_validator,
)

from ..exceptions import InvalidRequestError
from .chat import (
    CanonicalRequest,
    Message,
    Role,
    Usage,
    _first_error,
    _model_not_blank,
)


class CompletionRequest(BaseModel):
    """A prompt-style completion, served through the chat path."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    model: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    max_tokens: PositiveInt | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    stop: frozenset[str] | None = None
    user: str | None = None

    @field_validator("model")
    @classmethod
    def _check_model(cls, value: str) -> str:
        return _model_not_blank(value)

    @field_validator("stop", mode="before")
    @classmethod
    def _coerce_stop(cls, value: Any) -> Any:
        if isinstance(value, str):
            return frozenset({value})
        return value

    @classmethod
    def parse(cls, payload: Mapping[str, Any]) -> "CompletionRequest":
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            message, param = _first_error(exc)
            raise InvalidRequestError(message, param=param) from exc

    def to_chat_request(self) -> CanonicalRequest:
        """
        The prompt becomes a single user message.

        Raises:
            InvalidRequestError: If the fields do not form a valid chat request.
        """
        return CanonicalRequest.parse(
            {
                "model": self.model,
                "messages": [Message(role=Role.USER, content=self.prompt)],
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "top_p": self.top_p,
                "stop": self.stop,
                "user": self.user,
            }
        )


class CompletionChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: NonNegativeInt
    text: str
    finish_reason: str | None = None


class CompletionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    object: str = "text_completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[CompletionChoice]
    usage: Usage = Field(default_factory=Usage)
    provider: str | None = Field(default=None, exclude=True)

    def to_openai_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class EmbeddingRequest(BaseModel):
    """Embed one or more input strings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    model: str = Field(min_length=1)
    input: list[str] = Field(min_length=1)
    user: str | None = None

    @field_validator("model")
    @classmethod
    def _check_model(cls, value: str) -> str:
        return _model_not_blank(value)

    @field_validator("input", mode="before")
    @classmethod
    def _coerce_input(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @classmethod
    def parse(cls, payload: Mapping[str, Any]) -> "EmbeddingRequest":
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            message, param = _first_error(exc)
            raise InvalidRequestError(message, param=param) from exc


class EmbeddingData(BaseModel):
    model_config = ConfigDict(frozen=True)

    object: str = "embedding"
    embedding: list[float]
    index: NonNegativeInt


class EmbeddingResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    object: str = "list"
    data: list[EmbeddingData]
    model: str
    usage: Usage = Field(default_factory=Usage)
    provider: str | None = Field(default=None, exclude=True)

    def to_openai_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


__all__ = [
    "CompletionChoice",
    "CompletionRequest",
    "CompletionResponse",
    "EmbeddingData",
    "EmbeddingRequest",
    "EmbeddingResponse",
]
