# src/rag/embeddings/ollama_provider.py — v2
"""Ollama embedding provider (local inference).

Calls ``POST {base_url}/api/embeddings`` with ``{model, prompt}`` through the
ollama SDK and expects ``{embedding: number[]}`` back.
Models: nomic-embed-text, mxbai-embed-large, etc.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from learnhub.core.errors import MalformedResponse, ProviderUnavailable
from learnhub.rag.embeddings.base_provider import (
    ProviderResult,
    estimate_tokens,
    field_of,
    validate_vector,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaProvider:
    """Local embeddings via the Ollama REST API."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str | None = None,
        dimensions: int = 768,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model_name = model
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._dimensions = dimensions
        self._timeout_s = timeout_s
        self._transport = transport
        self.__client: Any = None

    @property
    def _client(self) -> Any:
        if self.__client is None:
            try:
                import ollama
            except ImportError as e:
                raise ImportError("ollama package required: pip install ollama") from e
            kwargs: dict[str, Any] = {"host": self._base_url, "timeout": self._timeout_s}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self.__client = ollama.AsyncClient(**kwargs)
        return self.__client

    async def generate(self, text: str) -> ProviderResult:
        """Call the Ollama embeddings endpoint for a single text."""
        client = self._client
        import ollama

        try:
            response = await client.embeddings(model=self._model_name, prompt=text)
        except ollama.ResponseError as e:
            raise ProviderUnavailable("ollama", e.error, e.status_code) from e
        except httpx.TimeoutException as e:
            raise ProviderUnavailable("ollama", "request timed out") from e
        except (httpx.HTTPError, ConnectionError) as e:
            raise ProviderUnavailable("ollama", str(e) or type(e).__name__) from e
        except ValidationError as e:
            raise MalformedResponse("ollama", "missing 'embedding' array") from e
        except (ValueError, TypeError) as e:
            # Non-JSON body (JSONDecodeError) or a JSON value that is not an object
            raise MalformedResponse("ollama", "response body is not a JSON object") from e

        vector = validate_vector(
            field_of(response, "embedding"), "ollama", self._dimensions
        )
        return ProviderResult(embedding=vector, tokens=estimate_tokens(text))

    async def aclose(self) -> None:
        if self.__client is not None:
            http_client = getattr(self.__client, "_client", None)
            if http_client is not None:
                await http_client.aclose()
            self.__client = None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model_name
