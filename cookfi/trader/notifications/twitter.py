"""
Twitter/X trade alerts via the v2 API.

After a cycle, successful BUY and SELL executions are summarised by the
small LLM into a short alert and posted from the agent's account.
"""

from __future__ import annotations

import httpx

from cookfi.trader.config import config, TwitterConfig
from cookfi.trader.schemas import ExecutionResult, RiskLevel, TradeAlert
from cookfi.trader.utils.llm import LLMClient
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)

TWITTER_API_BASE = "https://api.twitter.com/2"

LOSS_MARKERS = ("loss", "stop loss")


def calculate_risk_level(
    price_change_24h: float, liquidity_usd: float, confidence: float
) -> RiskLevel:
    """
    Count risk factors: big 24h move, thin liquidity, low confidence (0-1).

    Two or more factors is HIGH, one is MEDIUM.
    """
    factors = (
        int(abs(price_change_24h) > 20)
        + int(liquidity_usd < 10_000)
        + int(confidence < 0.6)
    )
    if factors >= 2:
        return RiskLevel.HIGH
    if factors == 1:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def is_loss_exit(result: ExecutionResult) -> bool:
    if result.action.value != "SELL" or result.decision is None:
        return False
    reasoning = result.decision.reasoning.lower()
    return any(marker in reasoning for marker in LOSS_MARKERS)


def build_alert(result: ExecutionResult) -> TradeAlert:
    """TradeAlert from an execution result that carries token and market data."""
    pair = result.market_data[0]
    confidence = (result.decision.confidence if result.decision else 0.0) / 100
    price_change = pair.price_change.get("h24", 0.0)
    liquidity = pair.liquidity_usd

    return TradeAlert(
        token=result.token.symbol,
        token_address=result.token.address,
        action=result.action.value,
        amount=result.amount or 0.0,
        confidence=confidence,
        risk_level=calculate_risk_level(price_change, liquidity, confidence),
        price=pair.price,
        price_change_24h=price_change,
        volume_24h=pair.volume.get("h24", 0.0),
        liquidity_usd=liquidity,
        signature=result.signature,
        reason=result.decision.reasoning if result.decision else None,
    )


def build_tweet_prompt(alert: TradeAlert) -> str:
    price = f"${alert.price:.6f}" if alert.price is not None else "n/a"
    return (
        f"Create a concise trading alert tweet (max 280 chars) for {alert.token} "
        "with the following data:\n\n"
        f"Action: {alert.action}\n"
        f"Price: {price}\n"
        f"24h Change: {alert.price_change_24h:.1f}%\n"
        f"Risk Level: {alert.risk_level.value}\n"
        f"Confidence: {alert.confidence * 100:.0f}%\n"
        f"Reasoning: {alert.reason or ''}\n"
        f"Transaction: {alert.signature or 'n/a'}\n\n"
        "Guidelines:\n"
        "- Never use emojis\n"
        f"- Include cashtag ${alert.token}\n"
        "- Include transaction link if available\n"
        "- Keep it professional and informative\n"
        "- Must be under 280 characters\n"
        "Reply with the tweet text only."
    )


class TwitterNotifier:
    """Posts trade alerts; in dry run the text is only logged."""

    def __init__(self, llm: LLMClient, settings: TwitterConfig | None = None):
        self.settings = settings or config.twitter
        self.llm = llm
        self.headers = {
            "Authorization": f"Bearer {self.settings.access_token}",
            "Content-Type": "application/json",
        }

    async def generate_tweet(self, alert: TradeAlert) -> str:
        text = await self.llm.complete(build_tweet_prompt(alert), small=True)
        text = text.strip().strip('"')
        return text[: self.settings.max_length]

    async def _send_tweet(self, text: str) -> str:
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(
                f"{TWITTER_API_BASE}/tweets",
                headers=self.headers,
                json={"text": text},
            )
            resp.raise_for_status()
            return resp.json().get("data", {}).get("id", "")

    async def post_trade_alert(self, alert: TradeAlert) -> bool:
        """Generate and post one alert. Failures are logged, not raised."""
        try:
            content = await self.generate_tweet(alert)
            if self.settings.dry_run:
                logger.info(
                    "Dry run - would have posted tweet",
                    extra={"data": {"content": content}},
                )
                return True

            tweet_id = await self._send_tweet(content)
            logger.info(
                "Posted trade alert",
                extra={"data": {"tweet_id": tweet_id, "content": content}},
            )
            return True
        except Exception as e:
            logger.error(
                f"Failed to post trade alert: {e}",
                extra={"data": {"token": alert.token, "action": alert.action}},
            )
            return False

    async def notify_successful_trades(self, executions: list[ExecutionResult]) -> int:
        """
        Post an alert for every successful BUY/SELL.

        Loss-taking SELLs are not announced. Returns the number posted.
        """
        eligible = [
            r for r in executions
            if r.success
            and r.is_trade
            and r.token is not None
            and r.market_data
            and not is_loss_exit(r)
        ]

        posted = 0
        for result in eligible:
            if await self.post_trade_alert(build_alert(result)):
                posted += 1
        return posted
