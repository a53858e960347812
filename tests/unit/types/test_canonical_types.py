"""Unit tests for the canonical data model."""

import pytest
from pydantic import ValidationError

from ai_aggregator.exceptions import InvalidRequestError
from ai_aggregator.types import (
    CanonicalRequest,
    CanonicalResponse,
    Choice,
    CompletionRequest,
    EmbeddingRequest,
    Message,
    ModelInfo,
    Pricing,
    RateLimitDecision,
    RateLimitVisitor,
    Role,
    Usage,
)


class TestCanonicalRequest:
    def test_parse_minimal(self):
        req = CanonicalRequest.parse(
            {"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]}
        )
        assert req.model == "gpt-4"
        assert req.messages == [Message(role=Role.USER, content="hi")]
        assert req.stream is False
        assert req.max_tokens is None

    def test_parse_all_fields(self):
        req = CanonicalRequest.parse(
            {
                "model": "gpt-4",
                "messages": [
                    {"role": "system", "content": "be brief"},
                    {"role": "user", "content": "hi"},
                ],
                "max_tokens": 50,
                "temperature": 0.7,
                "top_p": 0.9,
                "stream": True,
                "stop": ["b", "a"],
                "user": "u-1",
                "metadata": {"trace": "abc"},
            }
        )
        assert req.max_tokens == 50
        assert req.temperature == 0.7
        assert req.top_p == 0.9
        assert req.stream is True
        assert req.stop_sequences == ["a", "b"]
        assert req.metadata == {"trace": "abc"}

    def test_single_stop_string(self):
        req = CanonicalRequest.parse(
            {"model": "m", "messages": [{"role": "user", "content": "x"}], "stop": "END"}
        )
        assert req.stop == frozenset({"END"})

    @pytest.mark.parametrize(
        "payload,param",
        [
            ({"messages": [{"role": "user", "content": "x"}]}, "model"),
            ({"model": "  ", "messages": [{"role": "user", "content": "x"}]}, "model"),
            ({"model": "m", "messages": []}, "messages"),
            ({"model": "m", "messages": [{"role": "tool", "content": "x"}]}, "messages.0.role"),
            (
                {"model": "m", "messages": [{"role": "user", "content": "x"}], "max_tokens": 0},
                "max_tokens",
            ),
            (
                {"model": "m", "messages": [{"role": "user", "content": "x"}], "temperature": 3},
                "temperature",
            ),
            (
                {"model": "m", "messages": [{"role": "user", "content": "x"}], "top_p": 1.5},
                "top_p",
            ),
        ],
    )
    def test_invalid_payloads(self, payload, param):
        with pytest.raises(InvalidRequestError) as exc_info:
            CanonicalRequest.parse(payload)
        assert exc_info.value.param == param
        assert exc_info.value.http_status == 400

    def test_unknown_fields_ignored(self):
        req = CanonicalRequest.parse(
            {"model": "m", "messages": [{"role": "user", "content": "x"}], "n": 2}
        )
        assert not hasattr(req, "n")


class TestUsage:
    def test_of_computes_total(self):
        usage = Usage.of(3, 4)
        assert usage.total_tokens == 7

    def test_total_must_be_sum(self):
        with pytest.raises(ValidationError):
            Usage(prompt_tokens=1, completion_tokens=1, total_tokens=5)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            Usage.of(-1, 2)

    def test_default_is_zero(self):
        assert Usage() == Usage.of(0, 0)


class TestCanonicalResponse:
    def test_to_openai_dict_excludes_provider(self):
        response = CanonicalResponse(
            id="r1",
            created=123,
            model="gpt-4",
            choices=[
                Choice(
                    index=0,
                    message=Message(role=Role.ASSISTANT, content="hey"),
                    finish_reason="stop",
                )
            ],
            usage=Usage.of(1, 2),
            provider="openai",
        )
        assert response.to_openai_dict() == {
            "id": "r1",
            "object": "chat.completion",
            "created": 123,
            "model": "gpt-4",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": "hey"},
                    "finish_reason": "stop",
                }
            ],
            "usage": {"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3},
        }


class TestPricing:
    def test_cost_for_usage(self):
        cost = Pricing(0.03, 0.06).cost_for(Usage.of(1000, 500))
        assert cost.input_cost == pytest.approx(0.03)
        assert cost.output_cost == pytest.approx(0.03)
        assert cost.total == pytest.approx(0.06)
        assert cost.currency == "usd"

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            Pricing(-0.1, 0.1)


class TestModelInfo:
    def test_to_dict(self):
        info = ModelInfo(id="m", owned_by="o", max_tokens=10, context_size=20)
        assert info.to_dict() == {
            "id": "m",
            "object": "model",
            "owned_by": "o",
            "permission": [],
            "max_tokens": 10,
            "context_size": 20,
        }


class TestCompletionAndEmbeddingRequests:
    def test_completion_becomes_single_user_message(self):
        chat = CompletionRequest.parse(
            {"model": "gpt-4", "prompt": "Say hi", "max_tokens": 5}
        ).to_chat_request()
        assert chat.messages == [Message(role=Role.USER, content="Say hi")]
        assert chat.max_tokens == 5

    def test_completion_requires_prompt(self):
        with pytest.raises(InvalidRequestError):
            CompletionRequest.parse({"model": "gpt-4"})

    def test_embedding_input_string_is_wrapped(self):
        req = EmbeddingRequest.parse({"model": "text-embedding-3-small", "input": "a"})
        assert req.input == ["a"]

    def test_embedding_requires_input(self):
        with pytest.raises(InvalidRequestError):
            EmbeddingRequest.parse({"model": "text-embedding-3-small", "input": []})


class TestRateLimitTypes:
    def test_visitor_count_non_negative(self):
        with pytest.raises(ValueError):
            RateLimitVisitor("k", 0.0, -1)

    def test_decision_remaining(self):
        assert RateLimitDecision(True, "k", 3, 5).remaining == 2
        assert RateLimitDecision(False, "k", 5, 5).remaining == 0
