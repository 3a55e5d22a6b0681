# src/core/errors.py — v1
"""Error taxonomy shared by the embedding, store and engine modules.

Each error carries a ``status_class`` hint so the API gateway can map it
to an HTTP response without inspecting messages.
"""

from __future__ import annotations

from collections.abc import Iterable


class VectorServiceError(Exception):
    """Base class for every error raised by this package."""

    status_class: int = 500


class ConfigurationError(VectorServiceError):
    """Raised when configuration is missing or internally inconsistent."""

    status_class = 500


class ProviderUnavailable(VectorServiceError):
    """Network failure, non-success status or timeout calling an embedding backend."""

    status_class = 503

    def __init__(
        self, provider: str, reason: str, status_code: int | None = None
    ) -> None:
        self.provider = provider
        self.reason = reason
        self.status_code = status_code
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{provider} embedding failed{suffix}: {reason}")


class MalformedResponse(VectorServiceError):
    """Success status but the payload does not hold a usable vector."""

    status_class = 502

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"Invalid embedding response from {provider}: {reason}")


class StoreUnavailable(VectorServiceError):
    """Document store query failed or timed out."""

    status_class = 503

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Document store {operation} failed: {reason}")


class NotFound(VectorServiceError):
    """Requested document ids do not resolve to any document."""

    status_class = 404

    def __init__(self, ids: Iterable[str]) -> None:
        self.ids = list(ids)
        super().__init__(f"Documents not found: {', '.join(self.ids)}")
