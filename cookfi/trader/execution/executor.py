"""
Decision executor — turns a TradeDecision into at most one swap.

Low-confidence decisions are held regardless of the recommendation;
BUY size grows with confidence; SELL exits the whole position.
"""

from __future__ import annotations

from cookfi.trader.config import config, ExecutionConfig
from cookfi.trader.execution.sizing import calculate_buy_amount, passes_confidence_gate
from cookfi.trader.execution.trading import TradingService
from cookfi.trader.schemas import (
    ExecutionResult,
    Recommendation,
    Token,
    TokenPair,
    TradeDecision,
)
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)


class ExecutionService:
    """Executes decisions through the TradingService, or just logs them in dry run."""

    def __init__(
        self,
        trading: TradingService | None,
        settings: ExecutionConfig | None = None,
    ):
        self.settings = settings or config.execution
        self.trading = trading
        if self.trading is None and not self.settings.dry_run:
            raise ValueError("A TradingService is required unless dry_run is enabled")

    def calculate_buy_amount(self, confidence: float) -> float:
        return calculate_buy_amount(confidence, self.settings)

    async def execute_decision(
        self,
        token: Token,
        decision: TradeDecision,
        market_data: list[TokenPair] | None = None,
    ) -> ExecutionResult:
        """Act on ``decision`` for ``token``. Never raises for swap failures."""
        context = {
            "token": token,
            "decision": decision,
            "market_data": market_data or [],
        }

        if not passes_confidence_gate(decision.confidence, self.settings):
            logger.info(
                f"Holding {token.symbol}: confidence {decision.confidence:.0f} "
                f"below {self.settings.min_confidence:.0f}",
                extra={"data": {"recommendation": decision.recommendation.value}},
            )
            return ExecutionResult(
                success=True,
                action=Recommendation.HOLD,
                error="Confidence too low",
                **context,
            )

        if self.settings.dry_run:
            logger.info(
                f"[DRY RUN] Would execute {decision.recommendation.value} for {token.symbol}",
                extra={
                    "data": {
                        "confidence": decision.confidence,
                        "reasoning": decision.reasoning,
                    }
                },
            )
            return ExecutionResult(success=True, action=decision.recommendation, **context)

        try:
            if decision.recommendation == Recommendation.BUY:
                amount = self.calculate_buy_amount(decision.confidence)
                swap = await self.trading.swap(
                    from_token="SOL",
                    to_token=token.address,
                    amount=amount,
                    slippage=self.settings.slippage_pct,
                )
                logger.info(f"Executed BUY for {token.symbol} ({amount:.4f} SOL)")
                return ExecutionResult(
                    success=True,
                    action=Recommendation.BUY,
                    amount=amount,
                    signature=swap.signature,
                    **context,
                )

            if decision.recommendation == Recommendation.SELL:
                if not token.has_position:
                    return ExecutionResult(
                        success=False,
                        action=Recommendation.SELL,
                        error="No balance",
                        **context,
                    )
                amount = token.balance.amount
                swap = await self.trading.swap(
                    from_token=token.address,
                    to_token="SOL",
                    amount=amount,
                    slippage=self.settings.slippage_pct,
                )
                logger.info(f"Executed SELL for {token.symbol} ({amount} tokens)")
                return ExecutionResult(
                    success=True,
                    action=Recommendation.SELL,
                    amount=amount,
                    signature=swap.signature,
                    **context,
                )

            logger.info(f"Holding position in {token.symbol}")
            return ExecutionResult(success=True, action=Recommendation.HOLD, **context)

        except Exception as e:
            logger.error(
                f"Failed to execute {decision.recommendation.value} for {token.symbol}: {e}",
                extra={"data": {"address": token.address}},
            )
            return ExecutionResult(
                success=False,
                action=decision.recommendation,
                error=str(e),
                **context,
            )
