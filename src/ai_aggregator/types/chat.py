# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Canonical chat request and response models.

These models are provider-agnostic. Their JSON field names follow the de facto
OpenAI chat-completion schema so the gateway can be used as a drop-in
OpenAI-compatible endpoint regardless of which provider serves the request.
"""

import time
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    ValidationError,
    field_validator,
    model_validator,
)

from ..exceptions import InvalidRequestError


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single chat message."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


def _first_error(exc: ValidationError) -> tuple[str, str | None]:
    """Summarize a pydantic error as (message, param)."""
    errors = exc.errors()
    if not errors:
        return str(exc), None
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return (f"{loc}: {message}" if loc else message), (loc or None)


def _model_not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("model must be a non-empty string")
    return value


class CanonicalRequest(BaseModel):
    """
    Provider-agnostic chat completion request.

    Attributes:
        model: Target model identifier. Also selects the provider through the
            routing table (or an explicit ``provider/model`` prefix).
        messages: Ordered conversation, at least one entry.
        max_tokens: Optional positive completion budget.
        temperature: Optional sampling temperature (provider default if absent).
        top_p: Optional nucleus sampling value (provider default if absent).
        stream: Whether the caller wants a streamed reply.
        stop: Optional set of stop sequences.
        user: Optional end-user identifier forwarded to providers that accept it.
        metadata: Free-form caller metadata. Never forwarded upstream.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    model: str
    messages: list[Message] = Field(min_length=1)
    max_tokens: PositiveInt | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    stream: bool = False
    stop: frozenset[str] | None = None
    user: str | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("model")
    @classmethod
    def _check_model(cls, value: str) -> str:
        return _model_not_blank(value)

    @field_validator("stop", mode="before")
    @classmethod
    def _coerce_stop(cls, value: Any) -> Any:
        # OpenAI accepts a bare string as a single stop sequence
        if isinstance(value, str):
            return frozenset({value})
        return value

    @classmethod
    def parse(cls, payload: Mapping[str, Any]) -> "CanonicalRequest":
        """
        Validate a JSON-like payload into a request.

        Raises:
            InvalidRequestError: If any field is missing or malformed.
        """
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            message, param = _first_error(exc)
            raise InvalidRequestError(message, param=param) from exc

    @property
    def stop_sequences(self) -> list[str]:
        """Stop sequences in a stable order for wire payloads."""
        return sorted(self.stop) if self.stop else []


class Usage(BaseModel):
    """Token accounting for one call. ``total_tokens`` is always the sum."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: NonNegativeInt = 0
    completion_tokens: NonNegativeInt = 0
    total_tokens: NonNegativeInt = 0

    @model_validator(mode="after")
    def _check_total(self) -> "Usage":
        if self.total_tokens != self.prompt_tokens + self.completion_tokens:
            raise ValueError(
                "total_tokens must equal prompt_tokens + completion_tokens"
            )
        return self

    @classmethod
    def of(cls, prompt_tokens: int, completion_tokens: int) -> "Usage":
        """Build usage from the two native counters, computing the total."""
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )


class Choice(BaseModel):
    """One generated alternative."""

    model_config = ConfigDict(frozen=True)

    index: NonNegativeInt
    message: Message
    finish_reason: str | None = None


class APIErrorDetail(BaseModel):
    """Provider-reported error carried inside an otherwise successful envelope."""

    model_config = ConfigDict(frozen=True)

    message: str
    type: str
    code: str | None = None


class CanonicalResponse(BaseModel):
    """
    Provider-agnostic chat completion response.

    ``provider`` records which adapter produced the reply and is excluded
    from the OpenAI-compatible wire form.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    object: str = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[Choice]
    usage: Usage = Field(default_factory=Usage)
    error: APIErrorDetail | None = None
    provider: str | None = Field(default=None, exclude=True)

    def to_openai_dict(self) -> dict[str, Any]:
        """Serialize to the OpenAI chat-completion JSON shape."""
        return self.model_dump(mode="json", exclude_none=True)


__all__ = [
    "APIErrorDetail",
    "CanonicalRequest",
    "CanonicalResponse",
    "Choice",
    "Message",
    "Role",
    "Usage",
]
