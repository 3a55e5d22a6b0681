# tests/unit/rag/embeddings/test_retry.py — v1
"""Tests for rag/embeddings/retry.py."""

from __future__ import annotations

import pytest

from learnhub.core.errors import MalformedResponse, ProviderUnavailable
from learnhub.rag.embeddings.retry import RetryExhausted, RetryPolicy, with_retry

_FAST = RetryPolicy(max_retries=2, base_delay_s=0.0, jitter=False)


class _Flaky:
    def __init__(self, failures: int, exc: Exception | None = None):
        self.failures = failures
        self.calls = 0
        self.exc = exc or ProviderUnavailable("fake", "busy", 503)

    async def __call__(self, value: str) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return value.upper()


class TestRetryPolicy:
    def test_exponential_delay(self):
        policy = RetryPolicy(base_delay_s=1.0, backoff_factor=2.0, jitter=False)
        assert [policy.delay_for(i) for i in range(3)] == [1.0, 2.0, 4.0]

    def test_jitter_bounds(self):
        policy = RetryPolicy(base_delay_s=1.0, jitter=True)
        for _ in range(20):
            assert 0.5 <= policy.delay_for(0) <= 1.5


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = _Flaky(0)
        assert await with_retry(fn, "ok", policy=_FAST) == "OK"
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        fn = _Flaky(2)
        assert await with_retry(fn, "ok", policy=_FAST) == "OK"
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted(self):
        fn = _Flaky(5)
        with pytest.raises(RetryExhausted) as exc_info:
            await with_retry(fn, "ok", policy=_FAST, label="item 3")
        assert fn.calls == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, ProviderUnavailable)
        assert "item 3" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self):
        fn = _Flaky(1, exc=MalformedResponse("fake", "bad"))
        with pytest.raises(MalformedResponse):
            await with_retry(fn, "ok", policy=_FAST)
        assert fn.calls == 1
