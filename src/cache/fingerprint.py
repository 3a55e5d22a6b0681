# src/cache/fingerprint.py — v2
"""Content-addressed keys for embeddings.

The same digest serves as cache key and as a stable document fingerprint:
two texts that normalize identically under the same model share a key.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable

from learnhub.core.text import compose_document_text, normalize_text

# Separates text from model id so ("ab", "c") and ("a", "bc") never collide.
_SEPARATOR = "\x1f"


def compute_cache_key(text: str, model: str) -> str:
    """SHA-256 over the normalized text and the model identifier."""
    payload = f"{normalize_text(text)}{_SEPARATOR}{model}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def compute_document_fingerprint(
    question: str,
    answer: str,
    model: str,
    explanation: str | None = None,
    keywords: Iterable[str] | None = None,
) -> str:
    """Fingerprint of a question document's embedding text under ``model``."""
    text = compose_document_text(question, answer, explanation, keywords)
    return compute_cache_key(text, model)


def short_key(key: str, length: int = 8) -> str:
    """Abbreviated key for log lines."""
    return key[:length]
