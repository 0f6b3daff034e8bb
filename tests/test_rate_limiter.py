import pytest

from cookfi.trader.utils.rate_limiter import (
    RateLimiter,
    RetryExhaustedError,
    RetryPolicy,
    retry_with_backoff,
    retry_with_escalation,
)


def _always_failing(calls):
    async def operation(value):
        calls.append(value)
        raise RuntimeError(f"failed at {value}")
    return operation


@pytest.mark.asyncio
async def test_escalation_stops_before_exceeding_ceiling():
    calls = []
    policy = RetryPolicy(max_attempts=10, delay=0.0, ceiling=30.0)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_with_escalation(_always_failing(calls), 3.0, policy)

    assert calls == [3.0, 6.0, 12.0, 24.0]
    assert exc_info.value.attempts == 4
    assert exc_info.value.final_value == 24.0
    assert exc_info.value.reason == "ceiling reached"
    assert "failed at 24" in str(exc_info.value.last_error)


@pytest.mark.asyncio
async def test_escalation_respects_attempt_cap():
    calls = []
    policy = RetryPolicy(max_attempts=3, delay=0.0, ceiling=30.0)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_with_escalation(_always_failing(calls), 1.0, policy)

    assert calls == [1.0, 2.0, 4.0]
    assert exc_info.value.attempts == 3
    assert exc_info.value.reason == "max attempts reached"


@pytest.mark.asyncio
async def test_escalation_evm_preset_sequence():
    calls = []
    policy = RetryPolicy(max_attempts=5, delay=0.0, ceiling=30.0)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_with_escalation(_always_failing(calls), 1.0, policy)

    assert calls == [1.0, 2.0, 4.0, 8.0, 16.0]
    assert exc_info.value.final_value == 16.0


@pytest.mark.asyncio
async def test_initial_value_above_ceiling_never_calls():
    calls = []
    policy = RetryPolicy(max_attempts=5, delay=0.0, ceiling=30.0)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_with_escalation(_always_failing(calls), 40.0, policy)

    assert calls == []
    assert exc_info.value.attempts == 0
    assert exc_info.value.reason == "initial value above ceiling"


@pytest.mark.asyncio
async def test_escalation_returns_first_success():
    calls = []

    async def succeeds_on_third(value):
        calls.append(value)
        if len(calls) < 3:
            raise RuntimeError("not yet")
        return "done"

    result = await retry_with_escalation(
        succeeds_on_third, 3.0, RetryPolicy(delay=0.0, ceiling=30.0)
    )

    assert result == "done"
    assert calls == [3.0, 6.0, 12.0]


@pytest.mark.asyncio
async def test_escalation_without_ceiling_uses_attempt_cap():
    calls = []
    policy = RetryPolicy(max_attempts=4, delay=0.0, escalate=lambda v: v + 1)

    with pytest.raises(RetryExhaustedError):
        await retry_with_escalation(_always_failing(calls), 1.0, policy)

    assert calls == [1.0, 2.0, 3.0, 4.0]


@pytest.mark.asyncio
async def test_retry_with_backoff_reraises_after_last_attempt():
    attempts = []

    async def flaky():
        attempts.append(1)
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await retry_with_backoff(flaky, max_attempts=2, base_delay=0.0)

    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_retry_with_backoff_returns_value():
    attempts = []

    async def flaky(x):
        attempts.append(x)
        if len(attempts) == 1:
            raise ValueError("transient")
        return x * 2

    assert await retry_with_backoff(flaky, 21, max_attempts=3, base_delay=0.0) == 42
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_retry_with_backoff_ignores_unlisted_errors():
    attempts = []

    async def broken():
        attempts.append(1)
        raise KeyError("bad payload")

    with pytest.raises(KeyError):
        await retry_with_backoff(broken, max_attempts=3, base_delay=0.0, retry_on=(ValueError,))

    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_retry_with_backoff_stops_when_predicate_rejects():
    attempts = []

    async def rejected(code):
        attempts.append(code)
        raise ValueError(code)

    with pytest.raises(ValueError, match="400"):
        await retry_with_backoff(
            rejected, "400", max_attempts=3, base_delay=0.0,
            retry_if=lambda e: str(e).startswith("5"),
        )
    assert attempts == ["400"]

    attempts.clear()
    with pytest.raises(ValueError, match="503"):
        await retry_with_backoff(
            rejected, "503", max_attempts=3, base_delay=0.0,
            retry_if=lambda e: str(e).startswith("5"),
        )
    assert attempts == ["503", "503", "503"]


@pytest.mark.asyncio
async def test_rate_limiter_consumes_tokens():
    limiter = RateLimiter(max_calls=5, period_seconds=60, name="cookie")
    for _ in range(3):
        await limiter.acquire()
    assert limiter.tokens < 3
    assert limiter.refill_rate == pytest.approx(5 / 60)
