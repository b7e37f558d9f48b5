"""
Unit tests for services.retry module.
"""
import pytest

from voicebridge.core.errors import ProviderError, TranslationEmptyError
from voicebridge.services.retry import backoff_delay, call_with_backoff, is_retryable


class _Flaky:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestBackoff:
    def test_delay_doubles_and_is_capped(self):
        assert backoff_delay(0) == 0.5
        assert backoff_delay(1) == 1.0
        assert backoff_delay(2) == 2.0
        assert backoff_delay(10) == 8.0

    def test_only_flagged_provider_errors_are_retryable(self):
        assert is_retryable(ProviderError(retryable=True)) is True
        assert is_retryable(ProviderError(status=400)) is False
        assert is_retryable(TranslationEmptyError()) is False
        assert is_retryable(ValueError()) is False


class TestCallWithBackoff:
    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, no_backoff_sleep):
        fn = _Flaky(ProviderError(retryable=True), "ok")
        assert await call_with_backoff(fn) == "ok"
        assert fn.calls == 2
        assert no_backoff_sleep == [0.5]

    @pytest.mark.asyncio
    async def test_gives_up_after_bounded_attempts(self, no_backoff_sleep):
        errors = [ProviderError(retryable=True) for _ in range(3)]
        fn = _Flaky(*errors)
        with pytest.raises(ProviderError) as exc_info:
            await call_with_backoff(fn, retries=2)
        assert exc_info.value is errors[-1]
        assert fn.calls == 3
        assert no_backoff_sleep == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_terminal_error_is_not_retried(self, no_backoff_sleep):
        fn = _Flaky(TranslationEmptyError(), "never")
        with pytest.raises(TranslationEmptyError):
            await call_with_backoff(fn)
        assert fn.calls == 1
        assert no_backoff_sleep == []

    @pytest.mark.asyncio
    async def test_custom_predicate(self):
        fn = _Flaky(TranslationEmptyError(), "ok")
        result = await call_with_backoff(fn, should_retry=lambda e: isinstance(e, TranslationEmptyError))
        assert result == "ok"
