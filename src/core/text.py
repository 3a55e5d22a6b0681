# src/core/text.py — v1
"""Text helpers shared by the cache, the engines and reindexing tools.

``compose_document_text`` is the canonical rule for what gets embedded for
a question document. Any tool that rebuilds embeddings must go through it.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"\W+")

SIGNIFICANT_WORD_MIN_LENGTH = 4


def normalize_text(text: str) -> str:
    """NFC-normalize and collapse whitespace. Case and punctuation are kept."""
    text = unicodedata.normalize("NFC", text)
    return _WHITESPACE.sub(" ", text).strip()


def compose_document_text(
    question: str,
    answer: str,
    explanation: str | None = None,
    keywords: Iterable[str] | None = None,
) -> str:
    """Join question, answer, explanation and keywords, skipping empty parts."""
    parts = [
        question,
        answer,
        explanation or "",
        " ".join(keywords) if keywords else "",
    ]
    return " ".join(p for p in parts if p.strip())


def split_words(text: str) -> list[str]:
    """Split on non-word characters, dropping empty tokens."""
    return [w for w in _NON_WORD.split(text) if w]


def significant_words(text: str) -> list[str]:
    """Lowercased words longer than three characters, in order of appearance."""
    return [
        w.lower()
        for w in split_words(text)
        if len(w) >= SIGNIFICANT_WORD_MIN_LENGTH
    ]


def common_significant_words(text_a: str, text_b: str) -> list[str]:
    """Significant words of ``text_a`` that also occur in ``text_b``.

    Order and repetitions follow ``text_a``.
    """
    words_b = set(significant_words(text_b))
    return [w for w in significant_words(text_a) if w in words_b]
