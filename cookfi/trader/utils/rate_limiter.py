"""
Request pacing and retry helpers shared by every upstream client.

- ``RateLimiter``: per-vendor token bucket sized to its per-minute quota.
- ``retry_with_backoff``: exponential backoff for transient HTTP failures.
- ``retry_with_escalation``: bounded retry that loosens a numeric
  parameter on each attempt (swap slippage).
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """
    Token bucket shared by all calls to one upstream.

    The bucket starts full and refills continuously at
    ``max_calls / period_seconds`` tokens per second. A caller that finds
    it empty sleeps until one token has accrued.
    """

    def __init__(self, max_calls: int, period_seconds: float, name: str = "upstream"):
        self.name = name
        self.max_calls = max_calls
        self.period = period_seconds
        self.tokens: float = max_calls
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @property
    def refill_rate(self) -> float:
        return self.max_calls / self.period

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.max_calls, self.tokens + (now - self.last_refill) * self.refill_rate)
        self.last_refill = now

    async def acquire(self) -> None:
        """Take one token, sleeping first if the bucket is empty."""
        async with self._lock:
            self._refill()
            if self.tokens >= 1:
                self.tokens -= 1
                return

            wait_time = (1 - self.tokens) / self.refill_rate
            logger.info(
                f"{self.name} rate limit reached, waiting {wait_time:.1f}s",
                extra={"data": {"upstream": self.name, "wait_seconds": wait_time}},
            )
            await asyncio.sleep(wait_time)
            # The accrued token is spent by this caller
            self.tokens = 0
            self.last_refill = time.monotonic()


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retry_if: Callable[[BaseException], bool] | None = None,
    **kwargs: Any,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying failures listed in ``retry_on``.

    The delay doubles after each failure (1s, 2s, 4s, ...) up to
    ``max_delay``. The last exception is re-raised once ``max_attempts``
    calls have failed; exceptions outside ``retry_on``, or rejected by
    ``retry_if``, propagate at once.
    """
    name = getattr(func, "__name__", "call")
    attempt = 1
    while True:
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if retry_if is not None and not retry_if(e):
                raise
            if attempt >= max_attempts:
                logger.error(
                    f"{name} failed after {attempt} attempts",
                    extra={"data": {"error": str(e), "attempts": attempt}},
                )
                raise
            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            logger.warning(
                f"{name} attempt {attempt}/{max_attempts} failed, retrying in {delay:.1f}s",
                extra={"data": {"error": str(e), "delay": delay}},
            )
            await asyncio.sleep(delay)
            attempt += 1


def _double(value: float) -> float:
    return value * 2


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounds for an escalating retry.

    Attributes:
        max_attempts: Hard cap on calls, including the first.
        delay: Fixed pause between attempts in seconds.
        escalate: Maps the current parameter to the next one.
        ceiling: Largest parameter value that may be attempted (None = unbounded).
    """
    max_attempts: int = 10
    delay: float = 1.0
    escalate: Callable[[float], float] = _double
    ceiling: float | None = None


class RetryExhaustedError(Exception):
    """All attempts of an escalating retry failed."""

    def __init__(
        self,
        attempts: int,
        final_value: float,
        last_error: BaseException | None,
        reason: str = "max attempts reached",
    ):
        self.attempts = attempts
        self.final_value = final_value
        self.last_error = last_error
        self.reason = reason
        message = str(last_error) if last_error else "Unknown error"
        super().__init__(
            f"Failed after {attempts} attempts ({reason}). "
            f"Last error: {message}. Final value attempted: {final_value:g}"
        )


async def retry_with_escalation(
    func: Callable[[float], Awaitable[T]],
    initial: float,
    policy: RetryPolicy,
    *,
    label: str | None = None,
) -> T:
    """
    Call ``func(value)`` until it succeeds, escalating ``value`` between tries.

    Stops after ``policy.max_attempts`` calls, or as soon as the next value
    would exceed ``policy.ceiling``, whichever comes first. An initial value
    already above the ceiling fails without calling ``func``.

    Raises:
        RetryExhaustedError: with the attempt count, the last value actually
            attempted and the last underlying exception.
    """
    name = label or getattr(func, "__name__", "operation")

    if policy.ceiling is not None and initial > policy.ceiling:
        raise RetryExhaustedError(
            attempts=0,
            final_value=initial,
            last_error=ValueError(
                f"initial value {initial:g} exceeds ceiling {policy.ceiling:g}"
            ),
            reason="initial value above ceiling",
        )

    value = initial
    attempts = 0
    last_error: Exception | None = None
    reason = "max attempts reached"

    while attempts < policy.max_attempts:
        attempts += 1
        try:
            return await func(value)
        except Exception as e:
            last_error = e

        next_value = policy.escalate(value)
        if attempts >= policy.max_attempts:
            break
        if policy.ceiling is not None and next_value > policy.ceiling:
            reason = "ceiling reached"
            break

        logger.warning(
            f"{name} attempt {attempts}/{policy.max_attempts} failed, "
            f"retrying with {next_value:g}",
            extra={
                "data": {
                    "attempt": attempts,
                    "value": value,
                    "next_value": next_value,
                    "error": str(last_error),
                }
            },
        )
        value = next_value
        await asyncio.sleep(policy.delay)

    logger.error(
        f"{name} failed permanently after {attempts} attempts",
        extra={
            "data": {
                "attempts": attempts,
                "final_value": value,
                "reason": reason,
                "error": str(last_error),
            }
        },
    )
    raise RetryExhaustedError(attempts, value, last_error, reason)
