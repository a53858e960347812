import httpx
import pytest

from ai_aggregator.exceptions import (
    DecodeError,
    InvalidRequestError,
    ModelNotFoundError,
    UpstreamError,
)
from ai_aggregator.providers.anthropic import (
    ANTHROPIC_DEFAULT_PRICING,
    ANTHROPIC_MODELS,
    ANTHROPIC_VERSION,
)
from ai_aggregator.types import CanonicalRequest, EmbeddingRequest, Role


def claude_request(**overrides):
    payload = {
        "model": "claude-3-5-sonnet-20241022",
        "messages": [{"role": "user", "content": "hi"}],
    }
    payload.update(overrides)
    return CanonicalRequest.parse(payload)


class TestAnthropicPayload:
    @pytest.mark.asyncio
    async def test_headers_and_url(self, make_anthropic, respond_json, anthropic_body):
        adapter, transport = make_anthropic(respond_json(anthropic_body()))

        await adapter.send_request(claude_request())

        sent = transport.requests[0]
        assert str(sent.url) == "https://api.anthropic.com/v1/messages"
        assert sent.headers["x-api-key"] == "sk-ant-test"
        assert sent.headers["anthropic-version"] == ANTHROPIC_VERSION
        assert "Authorization" not in sent.headers
        await adapter.close()

    @pytest.mark.asyncio
    async def test_default_max_tokens(self, make_anthropic, respond_json, anthropic_body):
        adapter, transport = make_anthropic(respond_json(anthropic_body()))

        await adapter.send_request(claude_request())

        assert transport.last_json == {
            "model": "claude-3-5-sonnet-20241022",
            "max_tokens": 4096,
            "messages": [{"role": "user", "content": "hi"}],
        }
        await adapter.close()

    @pytest.mark.asyncio
    async def test_system_messages_lifted(self, make_anthropic, respond_json, anthropic_body):
        adapter, transport = make_anthropic(respond_json(anthropic_body()))

        await adapter.send_request(
            claude_request(
                messages=[
                    {"role": "system", "content": "Be terse."},
                    {"role": "system", "content": "Answer in English."},
                    {"role": "user", "content": "hi"},
                    {"role": "assistant", "content": "hello"},
                    {"role": "user", "content": "again"},
                ],
                max_tokens=100,
                stop=["END"],
                user="u-7",
                temperature=0.3,
            )
        )

        body = transport.last_json
        assert body["system"] == [
            {"type": "text", "text": "Be terse."},
            {"type": "text", "text": "Answer in English."},
        ]
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "user"]
        assert body["max_tokens"] == 100
        assert body["stop_sequences"] == ["END"]
        assert body["metadata"] == {"user_id": "u-7"}
        assert body["temperature"] == 0.3
        assert "stop" not in body
        await adapter.close()

    @pytest.mark.asyncio
    async def test_messages_survive_wire_conversion(
        self, make_anthropic, respond_json, anthropic_body
    ):
        adapter, transport = make_anthropic(respond_json(anthropic_body()))
        request = claude_request(
            messages=[
                {"role": "system", "content": "A"},
                {"role": "user", "content": "hi"},
                {"role": "system", "content": "B"},
                {"role": "assistant", "content": "hello"},
                {"role": "system", "content": "A"},
                {"role": "user", "content": ""},
            ]
        )

        await adapter.send_request(request)
        restored = adapter.messages_from_payload(transport.last_json)

        def split(messages):
            system = [(m.role, m.content) for m in messages if m.role is Role.SYSTEM]
            rest = [(m.role, m.content) for m in messages if m.role is not Role.SYSTEM]
            return system, rest

        assert len(restored) == len(request.messages)
        assert split(restored) == split(request.messages)
        await adapter.close()

    def test_plain_string_system_is_read_back(self, make_anthropic):
        adapter, _ = make_anthropic(lambda request: httpx.Response(200))

        restored = adapter.messages_from_payload(
            {"system": "Be terse.", "messages": [{"role": "user", "content": "hi"}]}
        )

        assert [(m.role, m.content) for m in restored] == [
            (Role.SYSTEM, "Be terse."),
            (Role.USER, "hi"),
        ]

    @pytest.mark.asyncio
    async def test_system_only_conversation_rejected_locally(self, make_anthropic):
        adapter, transport = make_anthropic(lambda request: httpx.Response(200))

        with pytest.raises(InvalidRequestError) as exc_info:
            await adapter.send_request(
                claude_request(messages=[{"role": "system", "content": "Be terse."}])
            )

        assert exc_info.value.param == "messages"
        assert exc_info.value.http_status == 400
        assert transport.requests == []
        await adapter.close()


class TestAnthropicResponse:
    @pytest.mark.asyncio
    async def test_usage_maps_input_output_tokens(
        self, make_anthropic, respond_json, anthropic_body
    ):
        adapter, _ = make_anthropic(
            respond_json(anthropic_body(input_tokens=10, output_tokens=5))
        )

        response = await adapter.send_request(claude_request())

        assert response.usage.prompt_tokens == 10
        assert response.usage.completion_tokens == 5
        assert response.usage.total_tokens == 15
        assert response.object == "chat.completion"
        assert response.provider == "anthropic"
        await adapter.close()

    @pytest.mark.asyncio
    async def test_text_blocks_joined(self, make_anthropic, respond_json, anthropic_body):
        body = anthropic_body()
        body["content"] = [
            {"type": "text", "text": "Hello "},
            {"type": "tool_use", "id": "t1", "name": "lookup", "input": {}},
            {"type": "text", "text": "world"},
        ]
        adapter, _ = make_anthropic(respond_json(body))

        response = await adapter.send_request(claude_request())

        assert len(response.choices) == 1
        assert response.choices[0].message.role is Role.ASSISTANT
        assert response.choices[0].message.content == "Hello world"
        await adapter.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stop_reason,finish_reason",
        [
            ("end_turn", "stop"),
            ("stop_sequence", "stop"),
            ("max_tokens", "length"),
            ("tool_use", "tool_calls"),
        ],
    )
    async def test_finish_reason_mapping(
        self, make_anthropic, respond_json, anthropic_body, stop_reason, finish_reason
    ):
        adapter, _ = make_anthropic(respond_json(anthropic_body(stop_reason=stop_reason)))

        response = await adapter.send_request(claude_request())

        assert response.choices[0].finish_reason == finish_reason
        await adapter.close()

    @pytest.mark.asyncio
    async def test_overloaded_is_retryable_upstream_error(self, make_anthropic, respond_json):
        adapter, _ = make_anthropic(
            respond_json({"type": "error", "error": {"type": "overloaded_error"}}, 529)
        )

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.send_request(claude_request())

        assert exc_info.value.status_code == 529
        assert exc_info.value.retryable is True
        await adapter.close()

    @pytest.mark.asyncio
    async def test_missing_content_is_decode_error(self, make_anthropic, respond_json):
        adapter, _ = make_anthropic(respond_json({"id": "msg_1", "usage": {}}))

        with pytest.raises(DecodeError):
            await adapter.send_request(claude_request())
        await adapter.close()


class TestAnthropicCatalog:
    @pytest.mark.asyncio
    async def test_static_models(self, make_anthropic):
        def handler(request):
            raise AssertionError("catalog must not hit the network")

        adapter, transport = make_anthropic(handler)

        models = await adapter.get_models()

        assert models == list(ANTHROPIC_MODELS)
        assert all(m.owned_by == "anthropic" for m in models)
        assert all(m.context_size == 200000 for m in models)
        assert transport.requests == []
        await adapter.close()

    @pytest.mark.asyncio
    async def test_model_lookup(self, make_anthropic):
        adapter, _ = make_anthropic(lambda request: httpx.Response(500))

        info = await adapter.get_model_info("claude-3-opus-20240229")
        assert info.max_tokens == 4096

        with pytest.raises(ModelNotFoundError):
            await adapter.get_model_info("claude-9")
        await adapter.close()

    @pytest.mark.asyncio
    async def test_embeddings_unsupported(self, make_anthropic):
        adapter, _ = make_anthropic(lambda request: httpx.Response(500))

        with pytest.raises(InvalidRequestError):
            await adapter.create_embeddings(EmbeddingRequest(model="claude-x", input=["a"]))
        await adapter.close()

    def test_pricing(self, make_anthropic):
        adapter, _ = make_anthropic(lambda request: httpx.Response(500))

        assert adapter.get_pricing("claude-3-opus-20240229").output_cost_per_k_tokens == 0.075
        assert adapter.get_pricing("claude-unknown") == ANTHROPIC_DEFAULT_PRICING
