"""Tests for the retry policy."""

import pytest

from econfeed.config.settings import Settings
from econfeed.ingestion.exceptions import FormatError, ParseError, ProviderError, TransportError
from econfeed.ingestion.retry import RetryPolicy


class FlakyOperation:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or TransportError("boom", status_code=503)
        self.attempts = 0

    async def __call__(self) -> str:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        return "ok"


class TestRetryPolicy:
    """Tests for RetryPolicy.execute."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, fast_retry, sleeps):
        """Test that a successful operation runs once without sleeping."""
        operation = FlakyOperation(failures=0)

        assert await fast_retry.execute(operation) == "ok"
        assert operation.attempts == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_backoff_delays_then_success(self, fast_retry, sleeps):
        """Test three failures then success: 100ms, 200ms, 400ms."""
        operation = FlakyOperation(failures=3)

        assert await fast_retry.execute(operation) == "ok"
        assert operation.attempts == 4
        assert sleeps == pytest.approx([0.1, 0.2, 0.4])

    @pytest.mark.asyncio
    async def test_lambda_returning_coroutine(self, fast_retry, sleeps):
        """Test that a plain callable returning a coroutine is awaited and retried."""
        operation = FlakyOperation(failures=2)

        assert await fast_retry.execute(lambda: operation()) == "ok"
        assert operation.attempts == 3
        assert sleeps == pytest.approx([0.1, 0.2])

    @pytest.mark.asyncio
    async def test_stops_after_success(self, fast_retry, sleeps):
        """Test that no attempts follow a success."""
        operation = FlakyOperation(failures=1)

        await fast_retry.execute(operation)

        assert operation.attempts == 2
        assert len(sleeps) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_propagate_last_error(self, fast_retry, sleeps):
        """Test that an always-failing operation raises after max_retries retries."""
        operation = FlakyOperation(failures=100)

        with pytest.raises(TransportError) as exc_info:
            await fast_retry.execute(operation)

        assert exc_info.value is operation.error
        assert operation.attempts == fast_retry.max_retries + 1
        assert len(sleeps) == fast_retry.max_retries

    @pytest.mark.asyncio
    async def test_constant_delay_without_backoff(self, recording_sleep, sleeps):
        """Test constant delays when backoff is disabled."""
        policy = RetryPolicy(max_retries=3, initial_delay_ms=250, backoff=False, sleep=recording_sleep)

        with pytest.raises(TransportError):
            await policy.execute(FlakyOperation(failures=100))

        assert sleeps == pytest.approx([0.25, 0.25, 0.25])

    @pytest.mark.asyncio
    async def test_provider_error_is_retried(self, fast_retry):
        """Test that provider error envelopes retry like transport errors."""
        operation = FlakyOperation(failures=2, error=ProviderError("quota exceeded"))

        assert await fast_retry.execute(operation) == "ok"
        assert operation.attempts == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ParseError("bad shape"), FormatError("bad id"), KeyError("x")])
    async def test_non_transport_errors_not_retried(self, fast_retry, sleeps, error):
        """Test that parse, format and unexpected errors fail immediately."""
        operation = FlakyOperation(failures=1, error=error)

        with pytest.raises(type(error)):
            await fast_retry.execute(operation)

        assert operation.attempts == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_zero_retries(self, recording_sleep):
        """Test that max_retries=0 makes a single attempt."""
        policy = RetryPolicy(max_retries=0, sleep=recording_sleep)
        operation = FlakyOperation(failures=1)

        with pytest.raises(TransportError):
            await policy.execute(operation)

        assert operation.attempts == 1

    def test_delays_schedule(self):
        """Test planned delay schedule."""
        assert RetryPolicy(max_retries=4, initial_delay_ms=100).delays() == pytest.approx(
            [0.1, 0.2, 0.4, 0.8]
        )
        assert RetryPolicy(max_retries=2, initial_delay_ms=100, backoff=False).delays() == [0.1, 0.1]

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)

    def test_from_settings(self):
        """Test building from settings, including disabled retries."""
        settings = Settings(
            _env_file=None,
            retry_max_retries=5,
            retry_initial_delay_ms=200,
            retry_backoff_enabled=False,
        )
        policy = RetryPolicy.from_settings(settings)

        assert policy.max_retries == 5
        assert policy.initial_delay_ms == 200
        assert policy.backoff is False

        disabled = RetryPolicy.from_settings(Settings(_env_file=None, retry_enabled=False))
        assert disabled.max_retries == 0
