"""
Token discovery: builds the candidate list for one cycle.

Candidates come from the wallet's own holdings (so open positions are
always re-evaluated) and from trending lists. The same token routinely
shows up in both, so the lists are merged by address.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable

from cookfi.trader.collectors.coinmarketcap import CoinMarketCapCollector
from cookfi.trader.collectors.dexscreener import DexScreenerCollector
from cookfi.trader.collectors.portfolio import PortfolioCollector
from cookfi.trader.config import config, DiscoveryConfig
from cookfi.trader.schemas import Token
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)


def merge_tokens(*token_lists: Iterable[Token]) -> list[Token]:
    """
    Merge token lists into one, keyed by address.

    First-seen order is preserved. When an address appears more than once,
    the entry carrying a balance wins over one without.
    """
    merged: dict[str, Token] = {}
    for tokens in token_lists:
        for token in tokens:
            existing = merged.get(token.address)
            if existing is None:
                merged[token.address] = token
            elif existing.balance is None and token.balance is not None:
                merged[token.address] = token
    return list(merged.values())


class TokenDiscovery:
    """Collects candidates from every configured source concurrently."""

    def __init__(
        self,
        portfolio: PortfolioCollector | None,
        dexscreener: DexScreenerCollector,
        coinmarketcap: CoinMarketCapCollector | None = None,
        settings: DiscoveryConfig | None = None,
    ):
        self.portfolio = portfolio
        self.dexscreener = dexscreener
        self.coinmarketcap = coinmarketcap
        self.settings = settings or config.discovery

    def _sources(self) -> list[tuple[str, Callable[[], Awaitable[list[Token]]]]]:
        sources: list[tuple[str, Callable[[], Awaitable[list[Token]]]]] = []
        if self.portfolio is not None:
            sources.append(("portfolio", self.portfolio.get_tokens))
        sources.append(
            (
                "dexscreener",
                lambda: self.dexscreener.get_trending_tokens(
                    max_results=self.settings.max_trending,
                    chain_id=self.settings.chain_id,
                ),
            )
        )
        if self.settings.use_latest_profiles:
            sources.append(
                (
                    "dexscreener_profiles",
                    lambda: self.dexscreener.get_latest_tokens(
                        max_results=self.settings.max_trending,
                        chain_id=self.settings.chain_id,
                    ),
                )
            )
        if self.coinmarketcap is not None:
            sources.append(("coinmarketcap", self.coinmarketcap.get_tokens_by_tag))
        return sources

    async def discover(self) -> list[Token]:
        """
        Portfolio holdings first, then trending tokens, deduplicated.

        A failing source is logged and contributes nothing.
        """
        sources = self._sources()
        results = await asyncio.gather(
            *(fn() for _, fn in sources), return_exceptions=True
        )

        lists: list[list[Token]] = []
        for (name, _), result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Token source {name} failed: {result}",
                    extra={"data": {"source": name, "error": str(result)}},
                )
                continue
            lists.append(result)

        tokens = merge_tokens(*lists)
        logger.info(
            f"Discovered {len(tokens)} candidate tokens",
            extra={
                "data": {
                    "total": len(tokens),
                    "held": sum(1 for t in tokens if t.has_position),
                }
            },
        )
        return tokens
