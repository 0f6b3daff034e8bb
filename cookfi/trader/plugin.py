"""
Host integration: builds the workflow from config and exposes start/stop.

This is the only place service clients are constructed; everything
downstream receives its collaborators explicitly.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from cookfi.trader.analysis.decision_maker import DecisionMaker
from cookfi.trader.analysis.discovery import TokenDiscovery
from cookfi.trader.analysis.token_analyzer import TokenAnalyzer
from cookfi.trader.collectors.coinmarketcap import CoinMarketCapCollector
from cookfi.trader.collectors.cookie import CookieCollector
from cookfi.trader.collectors.dexscreener import DexScreenerCollector
from cookfi.trader.collectors.portfolio import (
    BirdeyePortfolio,
    MoralisPortfolio,
    PortfolioCollector,
)
from cookfi.trader.config import config as default_config, Config, validate_config
from cookfi.trader.execution.executor import ExecutionService
from cookfi.trader.execution.trading import TradingService
from cookfi.trader.notifications.twitter import TwitterNotifier
from cookfi.trader.schemas import ExecutionResult
from cookfi.trader.utils.llm import LLMClient
from cookfi.trader.utils.logger import get_logger
from cookfi.trader.workflow import TradingWorkflow

logger = get_logger(__name__)


def build_portfolio(cfg: Config) -> PortfolioCollector:
    if cfg.wallet.portfolio_provider == "birdeye":
        return BirdeyePortfolio(cfg.api_keys.birdeye_api_key, cfg.wallet.public_key, cfg.wallet)
    return MoralisPortfolio(cfg.api_keys.moralis_api_key, cfg.wallet.public_key, cfg.wallet)


def build_trading_service(cfg: Config) -> TradingService | None:
    """Wallet-backed trading service, or None in dry run."""
    if cfg.execution.dry_run:
        return None
    # Imported here so dry runs need no signing key material
    from cookfi.trader.execution.wallet import SolanaWallet

    return TradingService(SolanaWallet(cfg.wallet), cfg.swap)


def build_workflow(
    cfg: Config | None = None,
    cycle_callback: Callable[[list[ExecutionResult]], Awaitable[None]] | None = None,
) -> TradingWorkflow:
    """Validate ``cfg`` and wire every service the workflow needs."""
    cfg = cfg or default_config
    validate_config(cfg)

    dexscreener = DexScreenerCollector(cfg.discovery, cfg.rate_limit)
    cookie = CookieCollector(cfg.api_keys.cookie_api_key, cfg.rate_limit)
    coinmarketcap = (
        CoinMarketCapCollector(cfg.api_keys.coinmarketcap_api_key, cfg.discovery, cfg.rate_limit)
        if cfg.discovery.use_coinmarketcap
        else None
    )
    llm = LLMClient(cfg.api_keys.openai_api_key, cfg.llm, cfg.rate_limit)

    notifier = None
    if cfg.twitter.enabled:
        notifier = TwitterNotifier(llm, cfg.twitter)
    else:
        logger.warning("Twitter credentials not configured, notifications disabled")

    return TradingWorkflow(
        discovery=TokenDiscovery(build_portfolio(cfg), dexscreener, coinmarketcap, cfg.discovery),
        analyzer=TokenAnalyzer(dexscreener, cookie, cfg.discovery.social_results),
        decision_maker=DecisionMaker(llm),
        executor=ExecutionService(build_trading_service(cfg), cfg.execution),
        notifier=notifier,
        intervals=cfg.intervals,
        cycle_callback=cycle_callback,
    )


class CookfiPlugin:
    """Lifecycle shim the hosting agent runtime calls into."""

    name = "cookfi"
    description = "DeFi trading plugin"

    def __init__(self, cfg: Config | None = None):
        self.config = cfg or default_config
        self.workflow: TradingWorkflow | None = None

    async def start(self) -> TradingWorkflow:
        logger.info("Cookfi client started")
        if self.workflow is None:
            self.workflow = build_workflow(self.config)
        await self.workflow.start()
        return self.workflow

    async def stop(self) -> None:
        if self.workflow is None:
            return
        await self.workflow.stop()
