"""
Trading service — swap execution with slippage escalation.

A failed swap is retried with double the slippage tolerance, bounded by
an attempt cap and a slippage ceiling. Each attempt that lands on-chain
is final; nothing checks for a partial fill before the next attempt.
"""

from __future__ import annotations

from typing import Protocol

from cookfi.trader.config import config, SwapConfig
from cookfi.trader.schemas import StakeResult, SwapResult, TransferResult
from cookfi.trader.utils.logger import get_logger
from cookfi.trader.utils.rate_limiter import (
    RetryExhaustedError,
    RetryPolicy,
    retry_with_escalation,
)

logger = get_logger(__name__)


class SwapError(Exception):
    """A swap failed on every attempt the retry policy allowed."""

    def __init__(self, message: str, attempts: int, final_slippage: float):
        super().__init__(message)
        self.attempts = attempts
        self.final_slippage = final_slippage


class Wallet(Protocol):
    async def swap(
        self, output_mint: str, amount: float, input_mint: str, slippage_bps: int
    ) -> str: ...

    async def transfer(self, recipient: str, amount: float, mint: str | None = None) -> str: ...

    async def stake(self, amount: float) -> tuple[str, float]: ...


def slippage_to_bps(slippage_pct: float) -> int:
    """Percent to basis points: 1.5% -> 150."""
    return int(slippage_pct * 100)


class TradingService:
    """Wallet operations with the swap retry policy applied."""

    def __init__(self, wallet: Wallet, settings: SwapConfig | None = None):
        self.wallet = wallet
        self.settings = settings or config.swap
        self.policy = RetryPolicy(
            max_attempts=self.settings.max_attempts,
            delay=self.settings.retry_delay,
            ceiling=self.settings.max_slippage_pct,
        )

    async def swap(
        self,
        from_token: str,
        to_token: str,
        amount: float,
        slippage: float | None = None,
    ) -> SwapResult:
        """
        Swap ``amount`` of ``from_token`` into ``to_token``.

        ``slippage`` is in percent and defaults to the configured initial
        value. Raises SwapError once retries or the ceiling are exhausted.
        """
        initial = slippage if slippage is not None else self.settings.default_slippage_pct
        attempts = 0

        async def attempt(slippage_pct: float) -> str:
            nonlocal attempts
            attempts += 1
            logger.info(
                f"Swap attempt {attempts}/{self.policy.max_attempts}",
                extra={
                    "data": {
                        "from_token": from_token,
                        "to_token": to_token,
                        "amount": amount,
                        "slippage_pct": slippage_pct,
                    }
                },
            )
            return await self.wallet.swap(
                to_token, amount, from_token, slippage_to_bps(slippage_pct)
            )

        try:
            signature = await retry_with_escalation(
                attempt, initial, self.policy, label="swap"
            )
        except RetryExhaustedError as e:
            last = str(e.last_error) if e.last_error else "Unknown error"
            raise SwapError(
                f"Swap failed after {e.attempts} attempts. "
                f"Last error: {last}. "
                f"Final slippage attempted: {e.final_value:.1f}%",
                attempts=e.attempts,
                final_slippage=e.final_value,
            ) from e.last_error

        final_slippage = initial
        for _ in range(attempts - 1):
            final_slippage = self.policy.escalate(final_slippage)

        logger.info(
            "Swap successful",
            extra={
                "data": {
                    "signature": signature,
                    "attempts": attempts,
                    "final_slippage_pct": final_slippage,
                }
            },
        )
        return SwapResult(
            signature=signature,
            from_amount=amount,
            to_amount=amount,
            slippage_pct=final_slippage,
            attempts=attempts,
        )

    async def transfer(
        self, recipient: str, amount: float, token: str = "SOL"
    ) -> TransferResult:
        """Transfer SOL or an SPL token (by mint address)."""
        try:
            signature = await self.wallet.transfer(
                recipient, amount, None if token.upper() == "SOL" else token
            )
        except Exception as e:
            logger.error(f"Transfer failed: {e}", extra={"data": {"token": token}})
            raise
        return TransferResult(signature=signature, amount=amount)

    async def stake(self, amount: float) -> StakeResult:
        """Stake SOL for jupSOL."""
        try:
            signature, jupsol = await self.wallet.stake(amount)
        except Exception as e:
            logger.error(f"Staking failed: {e}", extra={"data": {"amount": amount}})
            raise
        return StakeResult(signature=signature, amount=amount, jupsol_amount=jupsol)
