"""
DexScreener collector.

Supplies the trending (boosted) and newly profiled token lists used for
discovery, and the per-token pair data used for analysis and price
lookups. The public API needs no key.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from cookfi.trader.collectors.errors import is_transient_http_error
from cookfi.trader.config import config, DiscoveryConfig, RateLimitConfig
from cookfi.trader.schemas import BoostedToken, Token, TokenPair, TokenProfile
from cookfi.trader.utils.logger import get_logger
from cookfi.trader.utils.rate_limiter import RateLimiter, retry_with_backoff

logger = get_logger(__name__)

DEXSCREENER_BASE = "https://api.dexscreener.com"

EntryT = TypeVar("EntryT", BoostedToken, TokenProfile)


class DexScreenerCollector:
    """Maps DexScreener boosts, profiles and pairs into local Token/TokenPair models."""

    def __init__(
        self,
        discovery: DiscoveryConfig | None = None,
        rate_limit: RateLimitConfig | None = None,
    ):
        self.discovery = discovery or config.discovery
        self.limits = rate_limit or config.rate_limit
        self.rate_limiter = RateLimiter(
            max_calls=self.limits.dexscreener_requests_per_minute,
            period_seconds=60,
            name="dexscreener",
        )

    async def _fetch_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        await self.rate_limiter.acquire()
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(f"{DEXSCREENER_BASE}{path}", params=params)
            resp.raise_for_status()
            return resp.json()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await retry_with_backoff(
            self._fetch_json,
            path,
            params,
            max_attempts=self.limits.retry_max_attempts,
            base_delay=self.limits.retry_base_delay,
            retry_on=(httpx.HTTPError,),
            retry_if=is_transient_http_error,
        )

    @staticmethod
    def _parse_entries(payload: Any, model: type[EntryT], label: str) -> list[EntryT]:
        if not isinstance(payload, list):
            logger.warning(f"Unexpected {label} payload shape, ignoring")
            return []
        entries: list[EntryT] = []
        for item in payload:
            try:
                entries.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {label} entry: {e.error_count()} errors")
        return entries

    @staticmethod
    def _to_token(entry: BoostedToken | TokenProfile) -> Token:
        # Boosts and profiles carry no symbol; the address tail stands in
        # until pair data supplies a real one.
        return Token(
            symbol=entry.token_address.split("/")[-1],
            name=entry.description or entry.token_address,
            address=entry.token_address,
            chain_id=entry.chain_id,
        )

    def _select_tokens(
        self,
        entries: list[BoostedToken] | list[TokenProfile],
        max_results: int | None,
        chain_id: str | None,
    ) -> list[Token]:
        if chain_id:
            entries = [e for e in entries if e.chain_id == chain_id]
        limit = max_results or self.discovery.max_trending
        return [self._to_token(e) for e in entries[:limit]]

    async def get_trending_tokens(
        self,
        max_results: int | None = None,
        chain_id: str | None = None,
    ) -> list[Token]:
        """
        Top boosted tokens, limited to ``max_results``.

        When ``chain_id`` is given only tokens on that chain are kept;
        the limit applies after the chain filter.
        """
        payload = await self._get("/token-boosts/top/v1")
        boosts = self._parse_entries(payload, BoostedToken, "boost")
        tokens = self._select_tokens(boosts, max_results, chain_id)

        logger.info(
            f"DexScreener trending: {len(tokens)} tokens",
            extra={"data": {"count": len(tokens), "chain_id": chain_id}},
        )
        return tokens

    async def get_latest_boosted_tokens(self) -> list[BoostedToken]:
        """Most recently boosted tokens across all chains."""
        payload = await self._get("/token-boosts/latest/v1")
        return self._parse_entries(payload, BoostedToken, "boost")

    async def get_latest_token_profiles(self) -> list[TokenProfile]:
        """Most recently created or updated token profiles, newest first."""
        payload = await self._get("/token-profiles/latest/v1")
        return self._parse_entries(payload, TokenProfile, "profile")

    async def get_latest_tokens(
        self,
        max_results: int | None = None,
        chain_id: str | None = None,
    ) -> list[Token]:
        """Newly profiled tokens, filtered and limited like ``get_trending_tokens``."""
        profiles = await self.get_latest_token_profiles()
        tokens = self._select_tokens(profiles, max_results, chain_id)

        logger.info(
            f"DexScreener latest profiles: {len(tokens)} tokens",
            extra={"data": {"count": len(tokens), "chain_id": chain_id}},
        )
        return tokens

    async def get_token_pairs(
        self, token_address: str, chain_id: str = "solana"
    ) -> list[TokenPair]:
        """All pairs trading ``token_address`` on ``chain_id``."""
        payload = await self._get(f"/latest/dex/tokens/{token_address}")
        raw_pairs = (payload or {}).get("pairs") or []

        pairs: list[TokenPair] = []
        for raw in raw_pairs:
            if raw.get("chainId") != chain_id:
                continue
            try:
                pairs.append(TokenPair.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed pair for {token_address}",
                    extra={"data": {"errors": e.error_count()}},
                )
        return pairs

    async def get_token_price(
        self, token_address: str, chain_id: str = "solana"
    ) -> float | None:
        """USD price from the deepest-liquidity pair, or None."""
        pairs = await self.get_token_pairs(token_address, chain_id)
        priced = [p for p in pairs if p.price is not None]
        if not priced:
            return None
        best = max(priced, key=lambda p: p.liquidity_usd)
        return best.price
