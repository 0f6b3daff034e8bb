"""
LLM-backed trade decisions.

Turns a token's market and social analysis into a structured
BUY/SELL/HOLD recommendation with a 0-100 confidence score.
"""

from __future__ import annotations

import asyncio
import json

import httpx
from pydantic import ValidationError

from cookfi.trader.schemas import Token, TokenAnalysis, TradeDecision
from cookfi.trader.utils.llm import LLMClient, LLMError
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)

MAX_SOCIAL_POSTS_IN_PROMPT = 10


def build_decision_prompt(analysis: TokenAnalysis) -> str:
    """Prompt asking for a JSON TradeDecision about ``analysis.token``."""
    token = analysis.token
    has_position = token.has_position
    allowed = '"BUY" | "SELL" | "HOLD"' if has_position else '"BUY"'
    position_note = (
        "" if has_position
        else "Note: We don't own this token yet, so only BUY is possible.\n"
    )

    data = {
        "token": token.model_dump(mode="json"),
        "marketAnalysis": [
            p.model_dump(mode="json", by_alias=True, exclude_none=True)
            for p in analysis.market_analysis
        ],
        "socialAnalysis": [
            p.text for p in analysis.social_analysis[:MAX_SOCIAL_POSTS_IN_PROMPT]
        ],
    }

    return (
        "Analyze the following token data and provide a trading recommendation.\n"
        f"{position_note}\n"
        "Return the response as a JSON object with the following structure:\n"
        "{\n"
        f'  "recommendation": {allowed},\n'
        '  "confidence": number (0-100),\n'
        '  "reasoning": string explaining the decision,\n'
        '  "risks": array of potential risks,\n'
        '  "opportunities": array of potential opportunities\n'
        "}\n\n"
        "Analysis Data:\n"
        f"{json.dumps(data, indent=2, default=str)}"
    )


class DecisionMaker:
    """Asks the large model for a decision per analyzed token."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def analyze_token(self, analysis: TokenAnalysis) -> TradeDecision | None:
        """
        Decision for one token, or None.

        None means no market data, an unreachable model, or output that
        does not validate as a TradeDecision.
        """
        token: Token = analysis.token
        if not analysis.market_analysis:
            logger.warning(f"No market data available for {token.symbol}")
            return None

        prompt = build_decision_prompt(analysis)
        try:
            raw = await self.llm.complete_json(prompt)
            decision = TradeDecision.model_validate(raw)
        except (LLMError, httpx.HTTPError, ValidationError) as e:
            logger.error(
                f"Decision making failed for {token.symbol}: {e}",
                extra={"data": {"address": token.address}},
            )
            return None

        logger.info(
            f"Trade decision for {token.symbol}: "
            f"{decision.recommendation.value} ({decision.confidence:.0f})",
            extra={"data": {"address": token.address, **decision.model_dump(mode="json")}},
        )
        return decision

    async def decide_all(
        self, analyses: list[TokenAnalysis]
    ) -> list[tuple[TokenAnalysis, TradeDecision]]:
        """Decide for every analysis concurrently; tokens without a decision drop out."""
        results = await asyncio.gather(
            *(self.analyze_token(a) for a in analyses), return_exceptions=True
        )

        decided: list[tuple[TokenAnalysis, TradeDecision]] = []
        for analysis, result in zip(analyses, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Decision task for {analysis.token.symbol} raised: {result}"
                )
                continue
            if result is not None:
                decided.append((analysis, result))
        return decided
