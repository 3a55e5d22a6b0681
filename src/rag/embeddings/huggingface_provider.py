# src/rag/embeddings/huggingface_provider.py — v1
"""HuggingFace Inference API embedding provider (hosted).

``POST {base_url}/pipeline/feature-extraction/{model}`` with bearer auth and
``{inputs, options: {wait_for_model: true}}``. The response body is the raw
vector; sentence-transformer pipelines may wrap it in a single-row list.
"""

from __future__ import annotations

import logging

import httpx

from learnhub.core.errors import ConfigurationError, MalformedResponse, ProviderUnavailable
from learnhub.rag.embeddings.base_provider import (
    ProviderResult,
    estimate_tokens,
    validate_vector,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-inference.huggingface.co"


class HuggingFaceProvider:
    """Embeddings via the HuggingFace feature-extraction pipeline."""

    def __init__(
        self,
        model: str = "sentence-transformers/all-mpnet-base-v2",
        api_key: str = "",
        base_url: str | None = None,
        dimensions: int = 768,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "HuggingFace API key is required for HuggingFace embeddings"
            )
        self._model = model
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._dimensions = dimensions
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            )
        return self._client

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/pipeline/feature-extraction/{self._model}"

    async def generate(self, text: str) -> ProviderResult:
        try:
            response = await self._http().post(
                self.endpoint,
                json={"inputs": text, "options": {"wait_for_model": True}},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.TimeoutException as e:
            raise ProviderUnavailable("huggingface", "request timed out") from e
        except httpx.HTTPError as e:
            raise ProviderUnavailable("huggingface", str(e) or type(e).__name__) from e

        if not response.is_success:
            raise ProviderUnavailable(
                "huggingface", response.text[:200], response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponse("huggingface", "response body is not JSON") from e

        if (
            isinstance(payload, list)
            and len(payload) == 1
            and isinstance(payload[0], list)
        ):
            payload = payload[0]

        vector = validate_vector(payload, "huggingface", self._dimensions)
        return ProviderResult(embedding=vector, tokens=estimate_tokens(text))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "huggingface"

    @property
    def model_name(self) -> str:
        return self._model
