"""
CoinMarketCap collector.

Pages through the latest listings, keeps non-stablecoin tokens carrying
a given tag, and resolves each one's contract address on the target
platform through the info endpoint.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from cookfi.trader.collectors.errors import UpstreamAPIError
from cookfi.trader.config import config, DiscoveryConfig, RateLimitConfig
from cookfi.trader.schemas import Token
from cookfi.trader.utils.logger import get_logger
from cookfi.trader.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

CMC_BASE = "https://pro-api.coinmarketcap.com"
LISTING_PAGE_SIZE = 1000


class CoinMarketCapCollector:
    """Tag-filtered token discovery backed by the CMC Pro API."""

    def __init__(
        self,
        api_key: str,
        discovery: DiscoveryConfig | None = None,
        rate_limit: RateLimitConfig | None = None,
    ):
        if not api_key:
            raise ValueError("CoinMarketCap API key is required (COOKFI_CMC_API_KEY)")
        self.discovery = discovery or config.discovery
        limits = rate_limit or config.rate_limit
        self.rate_limiter = RateLimiter(
            max_calls=limits.cmc_requests_per_minute,
            period_seconds=60,
            name="coinmarketcap",
        )
        self.headers = {
            "X-CMC_PRO_API_KEY": api_key,
            "Accept": "application/json",
        }

    async def _fetch_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        await self.rate_limiter.acquire()
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(
                f"{CMC_BASE}{path}", headers=self.headers, params=params
            )
            resp.raise_for_status()
            return self._check_status(resp.json())

    @staticmethod
    def _check_status(data: dict[str, Any]) -> dict[str, Any]:
        """CMC reports failures in ``status`` even on HTTP 200."""
        status = data.get("status") or {}
        error_code = status.get("error_code", 0)
        if error_code:
            raise UpstreamAPIError(
                "coinmarketcap",
                status.get("error_message") or "unknown error",
                status_code=error_code,
            )
        return data

    @staticmethod
    def _matches_tag(listing: dict[str, Any], tag: str) -> bool:
        tags = listing.get("tags") or []
        return "stablecoin" not in tags and tag in tags

    async def _collect_listings(self, tag: str) -> list[dict[str, Any]]:
        matched: list[dict[str, Any]] = []
        start = 1

        for page in range(self.discovery.cmc_max_pages):
            if page:
                await asyncio.sleep(self.discovery.cmc_page_delay)
            try:
                data = await self._fetch_json(
                    "/v1/cryptocurrency/listings/latest",
                    {"limit": LISTING_PAGE_SIZE, "start": start},
                )
            except (httpx.HTTPError, UpstreamAPIError) as e:
                logger.error(
                    f"CMC listings page failed, stopping pagination: {e}",
                    extra={"data": {"start": start}},
                )
                break

            listings = data.get("data") or []
            if not listings:
                break
            matched.extend(l for l in listings if self._matches_tag(l, tag))
            start += LISTING_PAGE_SIZE

        return matched

    @staticmethod
    def _contract_for_platform(
        info: dict[str, Any], platform_name: str
    ) -> dict[str, Any] | None:
        for contract in info.get("contract_address") or []:
            platform = contract.get("platform") or {}
            if platform.get("name") == platform_name:
                return contract
        return None

    async def get_tokens_by_tag(
        self,
        tag: str | None = None,
        chain_id: str | None = None,
        platform_name: str | None = None,
    ) -> list[Token]:
        """
        Tokens tagged ``tag`` that have a contract on ``platform_name``.

        Listings without a contract on the platform are dropped silently;
        a failing info batch is logged and skipped.
        """
        tag = tag or self.discovery.cmc_tag
        chain_id = chain_id or self.discovery.chain_id
        platform_name = platform_name or self.discovery.cmc_platform_name

        listings = await self._collect_listings(tag)
        tokens: list[Token] = []
        batch_size = self.discovery.cmc_batch_size

        for i in range(0, len(listings), batch_size):
            batch = listings[i : i + batch_size]
            if i:
                await asyncio.sleep(self.discovery.cmc_batch_delay)
            ids = ",".join(str(l["id"]) for l in batch)
            try:
                data = await self._fetch_json("/v2/cryptocurrency/info", {"id": ids})
            except (httpx.HTTPError, UpstreamAPIError) as e:
                logger.error(f"CMC info batch failed: {e}", extra={"data": {"ids": ids}})
                continue

            infos = data.get("data") or {}
            for listing in batch:
                info = infos.get(str(listing["id"]))
                if not info:
                    continue
                contract = self._contract_for_platform(info, platform_name)
                if not contract:
                    continue
                coin = (contract.get("platform") or {}).get("coin") or {}
                tokens.append(
                    Token(
                        symbol=listing.get("symbol") or coin.get("symbol", ""),
                        name=listing.get("name") or coin.get("name", ""),
                        address=contract["contract_address"],
                        chain_id=chain_id,
                    )
                )

        logger.info(
            f"CoinMarketCap '{tag}': {len(tokens)} tokens on {platform_name}",
            extra={"data": {"tag": tag, "listings": len(listings), "tokens": len(tokens)}},
        )
        return tokens
