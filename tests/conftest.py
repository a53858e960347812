"""Shared fixtures: provider configs and httpx MockTransport helpers."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from ai_aggregator.providers import (
    AnthropicAdapter,
    OpenAIAdapter,
    ProviderConfig,
)

Handler = Callable[[httpx.Request], httpx.Response]


def openai_chat_body(
    content: str = "Hello there!",
    *,
    prompt_tokens: int = 9,
    completion_tokens: int = 12,
    model: str = "gpt-4",
) -> dict[str, Any]:
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1_700_000_000,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


def anthropic_message_body(
    text: str = "Hello from Claude",
    *,
    input_tokens: int = 10,
    output_tokens: int = 5,
    stop_reason: str = "end_turn",
    model: str = "claude-3-5-sonnet-20241022",
) -> dict[str, Any]:
    return {
        "id": "msg_123",
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": [{"type": "text", "text": text}],
        "stop_reason": stop_reason,
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Handler):
        self.requests: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


def json_handler(body: Any, status_code: int = 200) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body)

    return handler


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(api_key="sk-test", max_retries=2)


@pytest.fixture
def anthropic_config() -> ProviderConfig:
    return ProviderConfig(api_key="sk-ant-test", max_retries=2)


@pytest.fixture
def make_openai(openai_config: ProviderConfig):
    def factory(
        handler: Handler, config: ProviderConfig | None = None
    ) -> tuple[OpenAIAdapter, RecordingTransport]:
        transport = RecordingTransport(handler)
        return OpenAIAdapter(config or openai_config, transport=transport), transport

    return factory


@pytest.fixture
def make_anthropic(anthropic_config: ProviderConfig):
    def factory(
        handler: Handler, config: ProviderConfig | None = None
    ) -> tuple[AnthropicAdapter, RecordingTransport]:
        transport = RecordingTransport(handler)
        return (
            AnthropicAdapter(config or anthropic_config, transport=transport),
            transport,
        )

    return factory


@pytest.fixture
def chat_payload() -> dict[str, Any]:
    return {"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]}


@pytest.fixture
def openai_body():
    return openai_chat_body


@pytest.fixture
def anthropic_body():
    return anthropic_message_body


@pytest.fixture
def transport_for():
    """Build a RecordingTransport from a handler."""
    return RecordingTransport


@pytest.fixture
def respond_json():
    return json_handler
