"""
Wallet portfolio collectors.

Two interchangeable providers report the trading wallet's SPL holdings:
Moralis (amounts only) and Birdeye (amounts plus USD values). Both cache
the last response for a short TTL so repeated discovery calls within a
cycle hit the network once.
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from cookfi.trader.collectors.errors import UpstreamAPIError
from cookfi.trader.config import config, WalletConfig
from cookfi.trader.schemas import Token, TokenBalance
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)

MORALIS_SOLANA_BASE = "https://solana-gateway.moralis.io"
BIRDEYE_BASE = "https://public-api.birdeye.so"
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class _CachedPortfolio:
    """Shared TTL cache and Token mapping for the portfolio providers."""

    source = "portfolio"

    def __init__(self, wallet_address: str, settings: WalletConfig | None = None):
        self.settings = settings or config.wallet
        self.wallet_address = wallet_address
        if not self.wallet_address:
            logger.warning("COOKFI_SOLANA_PUBLIC_KEY is not set, portfolio will be empty")
        self._cached: dict[str, Any] | None = None
        self._fetched_at: float = 0.0

    def _should_refresh(self) -> bool:
        return (
            self._cached is None
            or time.monotonic() - self._fetched_at > self.settings.portfolio_cache_ttl
        )

    async def _fetch_portfolio(self) -> dict[str, Any]:
        raise NotImplementedError

    def _holdings(self, portfolio: dict[str, Any]) -> list[dict[str, Any]]:
        raise NotImplementedError

    async def get_portfolio(self) -> dict[str, Any]:
        """Raw provider payload, served from cache while fresh."""
        if not self._should_refresh():
            return self._cached  # type: ignore[return-value]
        portfolio = await self._fetch_portfolio()
        self._cached = portfolio
        self._fetched_at = time.monotonic()
        return portfolio

    def invalidate(self) -> None:
        """Force the next call to refetch, e.g. after a trade."""
        self._cached = None

    async def get_tokens(self) -> list[Token]:
        """
        Wallet holdings as Tokens with balances.

        Returns an empty list on any failure so discovery can continue
        with trending tokens alone.
        """
        if not self.wallet_address:
            return []
        try:
            portfolio = await self.get_portfolio()
            holdings = self._holdings(portfolio)
        except Exception as e:
            logger.warning(
                f"Failed to load {self.source} portfolio: {e}",
                extra={"data": {"wallet": self.wallet_address}},
            )
            return []

        tokens = [
            Token(
                symbol=h["symbol"],
                name=h["name"],
                address=h["address"],
                chain_id="solana",
                balance=TokenBalance(amount=h["amount"], usd_value=h["usd_value"]),
            )
            for h in holdings
            if h["address"] != WRAPPED_SOL_MINT
        ]
        logger.info(
            f"Portfolio ({self.source}): {len(tokens)} tokens",
            extra={"data": {"count": len(tokens)}},
        )
        return tokens


class MoralisPortfolio(_CachedPortfolio):
    """Holdings from the Moralis Solana API."""

    source = "moralis"

    def __init__(
        self,
        api_key: str,
        wallet_address: str,
        settings: WalletConfig | None = None,
    ):
        if not api_key:
            raise ValueError("Moralis API key is required (COOKFI_MORALIS_API_KEY)")
        super().__init__(wallet_address, settings)
        self.headers = {"X-API-Key": api_key, "Accept": "application/json"}

    async def _fetch_portfolio(self) -> dict[str, Any]:
        network = self.settings.portfolio_network
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(
                f"{MORALIS_SOLANA_BASE}/account/{network}/{self.wallet_address}/portfolio",
                headers=self.headers,
            )
            resp.raise_for_status()
            return resp.json()

    def _holdings(self, portfolio: dict[str, Any]) -> list[dict[str, Any]]:
        # Moralis reports no USD value for SPL balances
        return [
            {
                "symbol": t.get("symbol") or "",
                "name": t.get("name") or "",
                "address": t["mint"],
                "amount": _to_float(t.get("amount")),
                "usd_value": 0.0,
            }
            for t in portfolio.get("tokens") or []
            if t.get("mint")
        ]

    async def get_sol_balance(self) -> float:
        portfolio = await self.get_portfolio()
        native = portfolio.get("nativeBalance") or {}
        return _to_float(native.get("solana"))


class BirdeyePortfolio(_CachedPortfolio):
    """Holdings with USD valuations from Birdeye."""

    source = "birdeye"

    def __init__(
        self,
        api_key: str,
        wallet_address: str,
        settings: WalletConfig | None = None,
    ):
        if not api_key:
            raise ValueError("Birdeye API key is required (COOKFI_BIRDEYE_API_KEY)")
        super().__init__(wallet_address, settings)
        self.headers = {
            "X-API-KEY": api_key,
            "x-chain": "solana",
            "Accept": "application/json",
        }

    async def _fetch_portfolio(self) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(
                f"{BIRDEYE_BASE}/v1/wallet/token_list",
                headers=self.headers,
                params={"wallet": self.wallet_address},
            )
            resp.raise_for_status()
            data = resp.json()
        if not data.get("success", False):
            raise UpstreamAPIError("birdeye", data.get("message") or "request unsuccessful")
        return data

    def _holdings(self, portfolio: dict[str, Any]) -> list[dict[str, Any]]:
        items = (portfolio.get("data") or {}).get("items") or []
        return [
            {
                "symbol": item.get("symbol") or "",
                "name": item.get("name") or "",
                "address": item["address"],
                "amount": _to_float(item.get("uiAmount", item.get("amount"))),
                "usd_value": _to_float(item.get("valueUsd", item.get("value"))),
            }
            for item in items
            if item.get("address")
        ]

    async def get_sol_balance(self) -> float:
        portfolio = await self.get_portfolio()
        items = (portfolio.get("data") or {}).get("items") or []
        for item in items:
            if item.get("address") == WRAPPED_SOL_MINT:
                return _to_float(item.get("uiAmount", item.get("amount")))
        return 0.0


PortfolioCollector = MoralisPortfolio | BirdeyePortfolio
