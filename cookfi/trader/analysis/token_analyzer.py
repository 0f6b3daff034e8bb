"""
Per-token analysis: market pairs plus recent social mentions.
"""

from __future__ import annotations

import asyncio

from cookfi.trader.collectors.cookie import CookieCollector
from cookfi.trader.collectors.dexscreener import DexScreenerCollector
from cookfi.trader.schemas import Token, TokenAnalysis, TokenPair
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)


def _refresh_identity(token: Token, pairs: list[TokenPair]) -> Token:
    """Take symbol and name from pair data when discovery only had the address."""
    if token.symbol and token.symbol != token.address:
        return token
    for pair in pairs:
        if pair.base_token.address == token.address and pair.base_token.symbol:
            return token.model_copy(
                update={
                    "symbol": pair.base_token.symbol,
                    "name": pair.base_token.name or token.name,
                }
            )
    return token


class TokenAnalyzer:
    """Fetches market and social data for tokens, concurrently."""

    def __init__(
        self,
        dexscreener: DexScreenerCollector,
        cookie: CookieCollector,
        social_results: int = 10,
    ):
        self.dexscreener = dexscreener
        self.cookie = cookie
        self.social_results = social_results

    @staticmethod
    def social_query(token: Token) -> str:
        if not token.symbol or token.symbol == token.address:
            return token.address
        return f"{token.symbol} ${token.symbol}"

    async def analyze_token(self, token: Token) -> TokenAnalysis:
        """
        Market pairs and social posts for one token.

        Either upstream failing raises; the caller drops the token for
        this cycle.
        """
        pairs, posts = await asyncio.gather(
            self.dexscreener.get_token_pairs(token.address, token.chain_id),
            self.cookie.search_tweets(self.social_query(token), self.social_results),
        )
        return TokenAnalysis(
            token=_refresh_identity(token, pairs),
            market_analysis=pairs,
            social_analysis=posts,
        )

    async def analyze_all(self, tokens: list[Token]) -> list[TokenAnalysis]:
        """Analyze every token concurrently, dropping those that fail."""
        results = await asyncio.gather(
            *(self.analyze_token(t) for t in tokens), return_exceptions=True
        )

        analyses: list[TokenAnalysis] = []
        for token, result in zip(tokens, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Analysis failed for {token.symbol}: {result}",
                    extra={"data": {"address": token.address, "error": str(result)}},
                )
                continue
            analyses.append(result)

        logger.info(
            f"Analyzed {len(analyses)}/{len(tokens)} tokens",
            extra={"data": {"analyzed": len(analyses), "requested": len(tokens)}},
        )
        return analyses
