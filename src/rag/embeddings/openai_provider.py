# src/rag/embeddings/openai_provider.py — v2
"""OpenAI embedding provider (hosted).

Uses the openai SDK against ``{base_url}/embeddings`` with bearer auth and
reads ``data[0].embedding`` plus ``usage.total_tokens``.
Models: text-embedding-3-small, text-embedding-3-large.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from learnhub.core.errors import ConfigurationError, MalformedResponse, ProviderUnavailable
from learnhub.rag.embeddings.base_provider import (
    ProviderResult,
    estimate_tokens,
    field_of,
    validate_vector,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIProvider:
    """Embeddings via the OpenAI API."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str = "",
        base_url: str | None = None,
        dimensions: int = 1536,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("OpenAI API key is required for OpenAI embeddings")
        self._model = model
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._dimensions = dimensions
        self._timeout_s = timeout_s
        self._http_client = http_client
        self.__client: Any = None

    @property
    def _client(self) -> Any:
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            # Retries happen per batch item in EmbeddingService, not per request.
            self.__client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout_s,
                max_retries=0,
                http_client=self._http_client,
            )
        return self.__client

    async def generate(self, text: str) -> ProviderResult:
        """Embed one text via the embeddings endpoint."""
        client = self._client
        import openai

        try:
            response = await client.embeddings.create(
                model=self._model, input=text, encoding_format="float"
            )
        except openai.APIStatusError as e:
            raise ProviderUnavailable("openai", e.message, e.status_code) from e
        except openai.APITimeoutError as e:
            raise ProviderUnavailable("openai", "request timed out") from e
        except openai.APIConnectionError as e:
            raise ProviderUnavailable("openai", str(e)) from e

        data = field_of(response, "data")
        if not data:
            raise MalformedResponse("openai", "missing data[0].embedding")
        vector = validate_vector(
            field_of(data[0], "embedding"), "openai", self._dimensions
        )
        tokens = field_of(field_of(response, "usage"), "total_tokens")
        return ProviderResult(
            embedding=vector,
            tokens=tokens if isinstance(tokens, int) and tokens > 0 else estimate_tokens(text),
        )

    async def aclose(self) -> None:
        if self.__client is not None:
            await self.__client.close()
            self.__client = None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
