"""Unit tests for the exceptions module.

Tests the error taxonomy defined in ai_aggregator.exceptions.
"""

import pytest

from ai_aggregator.exceptions import (
    MAX_ERROR_BODY_CHARS,
    AggregatorError,
    ConfigurationError,
    DecodeError,
    DuplicateProviderError,
    ErrorKind,
    InvalidRequestError,
    ModelNotFoundError,
    RateLimitedError,
    TransportError,
    UnknownProviderError,
    UpstreamError,
    truncate_body,
)


class TestAggregatorError:
    """Tests for the base AggregatorError exception."""

    def test_can_be_caught_as_exception(self):
        with pytest.raises(Exception):  # noqa: B017
            raise AggregatorError("test error")

    def test_defaults(self):
        error = AggregatorError("boom")
        assert str(error) == "boom"
        assert error.http_status == 500
        assert error.retryable is False
        assert error.to_dict() == {
            "error": {"message": "boom", "type": "internal_error"}
        }

    @pytest.mark.parametrize(
        "error",
        [
            InvalidRequestError("bad"),
            UnknownProviderError("nope"),
            ModelNotFoundError("m"),
            RateLimitedError(),
            UpstreamError(500),
            TransportError("down"),
            DecodeError("garbled"),
        ],
    )
    def test_every_kind_is_an_aggregator_error(self, error):
        assert isinstance(error, AggregatorError)
        assert error.kind is not None


class TestErrorKind:
    def test_client_kinds(self):
        client = {k for k in ErrorKind if k.is_client_error}
        assert client == {
            ErrorKind.INVALID_REQUEST,
            ErrorKind.UNKNOWN_PROVIDER,
            ErrorKind.MODEL_NOT_FOUND,
            ErrorKind.RATE_LIMITED,
        }

    def test_client_kinds_map_to_4xx(self):
        assert InvalidRequestError("x").http_status == 400
        assert UnknownProviderError("x").http_status == 400
        assert ModelNotFoundError("x").http_status == 404
        assert RateLimitedError().http_status == 429

    def test_server_kinds_map_to_5xx(self):
        assert UpstreamError(503).http_status == 502
        assert TransportError("x").http_status == 502
        assert TransportError("x", timeout=True).http_status == 504
        assert DecodeError("x").http_status == 502


class TestConfigurationErrors:
    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            raise ConfigurationError("bad config")

    def test_duplicate_provider(self):
        error = DuplicateProviderError("openai")
        assert isinstance(error, ConfigurationError)
        assert error.name == "openai"
        assert "openai" in str(error)
        assert error.kind is ErrorKind.UNKNOWN_PROVIDER


class TestInvalidRequestError:
    def test_param_in_envelope(self):
        body = InvalidRequestError("model is required", param="model").to_dict()
        assert body["error"]["param"] == "model"
        assert body["error"]["type"] == "invalid_request"
        assert body["error"]["code"] == "invalid_request"

    def test_not_retryable(self):
        assert InvalidRequestError("x").retryable is False


class TestModelNotFoundError:
    def test_message_names_model_and_provider(self):
        error = ModelNotFoundError("gpt-9", provider="openai")
        assert str(error) == "Model not found: gpt-9 for provider openai"
        assert error.model_id == "gpt-9"
        assert error.to_dict()["error"]["provider"] == "openai"


class TestRateLimitedError:
    def test_attributes(self):
        error = RateLimitedError(retry_after=0.5)
        assert error.retry_after == 0.5
        assert error.scope == "client"
        assert error.retryable is True
        assert error.to_dict()["error"]["code"] == "rate_limit_exceeded"

    def test_provider_scope(self):
        error = RateLimitedError(scope="provider", provider="openai")
        assert error.scope == "provider"
        assert error.provider == "openai"


class TestUpstreamError:
    def test_message_includes_status_and_body(self):
        error = UpstreamError(400, '{"error": "bad"}', provider="openai")
        assert "status 400" in str(error)
        assert '{"error": "bad"}' in str(error)
        assert error.code == "upstream_400"

    def test_bytes_body_is_decoded(self):
        error = UpstreamError(500, b"server exploded")
        assert error.body == "server exploded"

    def test_body_is_truncated(self):
        error = UpstreamError(500, "x" * (MAX_ERROR_BODY_CHARS + 100))
        assert len(error.body) < MAX_ERROR_BODY_CHARS + 50
        assert error.body.endswith("[truncated 100 chars]")

    def test_raw_body_kept_whole(self):
        body = "x" * (MAX_ERROR_BODY_CHARS + 100)
        error = UpstreamError(500, body)
        assert error.raw_body == body
        assert body not in str(error)

    def test_custom_body_limit(self):
        error = UpstreamError(502, "abcdefgh", body_limit=4)
        assert error.body == "abcd... [truncated 4 chars]"

    @pytest.mark.parametrize(
        "status,retryable",
        [(400, False), (401, False), (404, False), (408, True), (429, True), (500, True), (503, True)],
    )
    def test_retryable(self, status, retryable):
        assert UpstreamError(status).retryable is retryable


class TestTransportError:
    def test_codes(self):
        assert TransportError("x").code == "transport_error"
        assert TransportError("x", timeout=True).code == "timeout"
        assert TransportError("x").retryable is True


class TestTruncateBody:
    def test_none(self):
        assert truncate_body(None) == ""

    def test_short_body_unchanged(self):
        assert truncate_body("short") == "short"

    def test_custom_limit(self):
        assert truncate_body("abcdef", limit=3) == "abc... [truncated 3 chars]"
