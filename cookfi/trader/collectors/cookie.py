"""
Cookie.fun social collector.

Searches recent crypto-Twitter posts mentioning a token so the decision
step can weigh social momentum next to market data.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

import httpx

from cookfi.trader.config import config, RateLimitConfig
from cookfi.trader.schemas import SocialPost
from cookfi.trader.utils.logger import get_logger
from cookfi.trader.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

COOKIE_BASE = "https://api.cookie.fun"
SEARCH_TWEETS_PATH = "/v1/tweets/search"
SEARCH_WINDOW_DAYS = 3
DEFAULT_MAX_RESULTS = 10


def _parse_timestamp(raw: Any) -> datetime | None:
    if not raw or not isinstance(raw, str):
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


class CookieCollector:
    """
    Social search against the Cookie.fun API.

    Requests are spaced by a token bucket sized to the vendor's
    per-minute quota.
    """

    def __init__(self, api_key: str, rate_limit: RateLimitConfig | None = None):
        if not api_key:
            raise ValueError("COOKFI_COOKIE_API_KEY is not set")
        self.limits = rate_limit or config.rate_limit
        self.rate_limiter = RateLimiter(
            max_calls=self.limits.cookie_requests_per_minute,
            period_seconds=60,
            name="cookie",
        )
        self.headers = {
            "x-api-key": api_key,
            "Content-Type": "application/json",
        }

    async def _fetch_search(self, query: str, params: dict[str, Any]) -> dict[str, Any]:
        await self.rate_limiter.acquire()
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(
                f"{COOKIE_BASE}{SEARCH_TWEETS_PATH}/{quote(query, safe='')}",
                headers=self.headers,
                params=params,
            )
            resp.raise_for_status()
            return resp.json()

    @staticmethod
    def _to_posts(payload: dict[str, Any]) -> list[SocialPost]:
        hits = payload.get("ok") if isinstance(payload, dict) else None
        if not isinstance(hits, list):
            return []

        posts: list[SocialPost] = []
        for hit in hits:
            if not isinstance(hit, dict) or not hit.get("text"):
                continue
            posts.append(
                SocialPost(
                    text=hit["text"],
                    author=hit.get("authorUsername"),
                    created_at=_parse_timestamp(hit.get("createdAt")),
                    likes=int(hit.get("likesCount") or 0),
                    retweets=int(hit.get("retweetsCount") or 0),
                    metadata={
                        "impressions": hit.get("impressionsCount"),
                        "smart_engagement": hit.get("smartEngagementPoints"),
                    },
                )
            )
        return posts

    async def search_tweets(
        self, query: str, max_results: int = DEFAULT_MAX_RESULTS
    ) -> list[SocialPost]:
        """Posts matching ``query`` from the last three days."""
        now = datetime.now(timezone.utc)
        params = {
            "from": (now - timedelta(days=SEARCH_WINDOW_DAYS)).strftime("%Y-%m-%d"),
            "to": now.strftime("%Y-%m-%d"),
            "max_results": max_results,
        }
        payload = await self._fetch_search(query, params)
        posts = self._to_posts(payload)[:max_results]

        logger.info(
            f"Cookie search '{query}': {len(posts)} posts",
            extra={"data": {"query": query, "count": len(posts)}},
        )
        return posts

    async def search_multiple_queries(
        self, queries: list[str], max_results: int = DEFAULT_MAX_RESULTS
    ) -> list[SocialPost]:
        """
        Run several searches in small concurrent batches.

        The search endpoint is weighted heavily against the quota, so
        batches are separated by a fixed pause.
        """
        batch_size = self.limits.cookie_batch_size
        all_posts: list[SocialPost] = []

        for i in range(0, len(queries), batch_size):
            batch = queries[i : i + batch_size]
            results = await asyncio.gather(
                *(self.search_tweets(q, max_results) for q in batch),
                return_exceptions=True,
            )
            for query, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error(f"Cookie search failed for '{query}': {result}")
                    continue
                all_posts.extend(result)

            if i + batch_size < len(queries):
                await asyncio.sleep(self.limits.cookie_batch_pause)

        return all_posts
