# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Provider adapter interface and the HTTP plumbing shared by adapters."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any, ClassVar, TypeVar

import httpx
from typing_extensions import Self

from ..exceptions import (
    DecodeError,
    InvalidRequestError,
    ModelNotFoundError,
    TransportError,
    UpstreamError,
)
from ..streaming import CloseCallback, ProviderStream, StreamContext
from ..types import (
    CanonicalRequest,
    CanonicalResponse,
    EmbeddingRequest,
    EmbeddingResponse,
    Message,
    ModelInfo,
    Pricing,
)
from .config import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderAdapter(ABC):
    """
    Abstract adapter hiding one upstream AI service behind the canonical
    request/response contract.

    Adapters are responsible for:
    1. Translating a CanonicalRequest into the provider's payload and auth
    2. Translating the provider's reply (including usage field names) back
    3. Listing models and pricing for the provider

    Every adapter owns one ``httpx.AsyncClient``. Adapters make exactly one
    attempt per call; retry policy belongs to the gateway.

    Failures surface as:
        UpstreamError: the provider answered with a non-2xx status
        TransportError: the provider could not be reached or timed out
        DecodeError: the reply was not JSON or did not have the expected shape
    """

    default_base_url: ClassVar[str]
    chat_path: ClassVar[str]
    pricing_table: ClassVar[Mapping[str, Pricing]] = {}
    default_pricing: ClassVar[Pricing]

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            config: Credentials, endpoint and timeout for this provider
            client: Shared client to use instead of creating one. The
                adapter does not close a client it did not create.
            transport: Transport for the adapter's own client, e.g.
                ``httpx.MockTransport`` in tests
        """
        self.config = config
        self.base_url = (config.base_url or self.default_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds, transport=transport
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name (e.g., 'openai', 'anthropic')."""

    # ------------------------------------------------------------------
    # Provider-specific translation
    # ------------------------------------------------------------------

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying the credential."""

    @abstractmethod
    def _to_provider_payload(
        self, request: CanonicalRequest, *, stream: bool
    ) -> dict[str, Any]:
        """Build the provider's JSON body for a chat call."""

    @abstractmethod
    def messages_from_payload(self, payload: Mapping[str, Any]) -> list[Message]:
        """
        Read the conversation back out of a body built by ``_to_provider_payload``.

        Role and content survive the trip for every message. Order is kept
        except where the provider API itself dictates placement.
        """

    @abstractmethod
    def _convert_response(
        self, data: Any, request: CanonicalRequest
    ) -> CanonicalResponse:
        """Translate the provider's decoded reply."""

    @abstractmethod
    async def get_models(self) -> list[ModelInfo]:
        """List the provider's models. Each call re-fetches or re-returns."""

    # ------------------------------------------------------------------
    # Shared HTTP plumbing
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self._auth_headers()}
        headers.update(self.config.extra_headers)
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _build_request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        timeout: float | None = None,
    ) -> httpx.Request:
        return self._client.build_request(
            method,
            self._url(path),
            json=json,
            headers=self._headers(),
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )

    async def _send(
        self, http_request: httpx.Request, *, stream: bool = False
    ) -> httpx.Response:
        try:
            return await self._client.send(http_request, stream=stream)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"{self.name} request timed out: {type(e).__name__}",
                provider=self.name,
                timeout=True,
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                f"{self.name} request failed: {type(e).__name__}: {e}",
                provider=self.name,
            ) from e

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send one request and fail with UpstreamError on a non-2xx status."""
        response = await self._send(
            self._build_request(method, path, json=json, timeout=timeout)
        )
        logger.debug(f"{self.name} {method} {path} -> {response.status_code}")
        if not response.is_success:
            raise UpstreamError(response.status_code, response.text, provider=self.name)
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"{self.name} returned malformed JSON: {e}", provider=self.name
            ) from e

    def _decode(self, convert: Callable[[], T]) -> T:
        """Run a conversion, reporting shape mismatches as DecodeError."""
        try:
            return convert()
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(
                f"Unexpected {self.name} response shape: {type(e).__name__}: {e}",
                provider=self.name,
            ) from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def validate_request(self, request: CanonicalRequest) -> None:
        """Reject requests no provider could serve."""
        if not request.model:
            raise InvalidRequestError(
                "model is required", param="model", provider=self.name
            )
        if not request.messages:
            raise InvalidRequestError(
                "messages must not be empty", param="messages", provider=self.name
            )

    async def send_request(
        self, request: CanonicalRequest, *, timeout: float | None = None
    ) -> CanonicalResponse:
        """Send a chat request and return the canonical reply."""
        self.validate_request(request)
        payload = self._to_provider_payload(request, stream=False)
        response = await self._request(
            "POST", self.chat_path, json=payload, timeout=timeout
        )
        data = self._json(response)
        return self._decode(lambda: self._convert_response(data, request))

    async def send_stream_request(
        self,
        request: CanonicalRequest,
        *,
        timeout: float | None = None,
        on_close: CloseCallback | None = None,
    ) -> ProviderStream:
        """
        Open a streaming chat call and return the raw provider byte stream.

        The caller owns the returned stream and must close it.
        """
        self.validate_request(request)
        payload = self._to_provider_payload(request, stream=True)
        response = await self._send(
            self._build_request("POST", self.chat_path, json=payload, timeout=timeout),
            stream=True,
        )

        if not response.is_success:
            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                logger.debug(f"Could not read {self.name} error body: {e}")
                body = b""
            finally:
                await response.aclose()
            raise UpstreamError(response.status_code, body, provider=self.name)

        logger.debug(f"Opened {self.name} stream for model {request.model}")
        return ProviderStream(
            response,
            StreamContext(provider=self.name, model=request.model),
            on_close=on_close,
        )

    async def get_model_info(self, model_id: str) -> ModelInfo:
        """
        Look up one model.

        Raises:
            ModelNotFoundError: If the model is not in ``get_models()``.
        """
        for model in await self.get_models():
            if model.id == model_id:
                return model
        raise ModelNotFoundError(model_id, provider=self.name)

    async def validate_model(self, model_id: str) -> None:
        """Presence check only; raises ModelNotFoundError when absent."""
        await self.get_model_info(model_id)

    def get_pricing(self, model_id: str) -> Pricing:
        """
        Per-1K-token prices for a model.

        Unknown models fall back to the provider default instead of failing,
        so a missing price never blocks a request.
        """
        return self.pricing_table.get(model_id, self.default_pricing)

    async def create_embeddings(
        self, request: EmbeddingRequest, *, timeout: float | None = None
    ) -> EmbeddingResponse:
        """Embed input strings. Providers without an embeddings API refuse."""
        raise InvalidRequestError(
            f"{self.name} does not support embeddings",
            param="model",
            provider=self.name,
        )

    async def close(self) -> None:
        """Close the adapter's HTTP client (if it created it)."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            logger.info(f"Closed {self.name} adapter")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, base_url={self.base_url!r})"


__all__ = ["ProviderAdapter"]
