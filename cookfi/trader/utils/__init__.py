from cookfi.trader.utils.logger import get_logger
from cookfi.trader.utils.rate_limiter import (
    RateLimiter,
    RetryExhaustedError,
    RetryPolicy,
    retry_with_backoff,
    retry_with_escalation,
)

__all__ = [
    "get_logger",
    "RateLimiter",
    "RetryExhaustedError",
    "RetryPolicy",
    "retry_with_backoff",
    "retry_with_escalation",
]
