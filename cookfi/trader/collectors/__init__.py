from cookfi.trader.collectors.errors import UpstreamAPIError
from cookfi.trader.collectors.dexscreener import DexScreenerCollector
from cookfi.trader.collectors.coinmarketcap import CoinMarketCapCollector
from cookfi.trader.collectors.portfolio import BirdeyePortfolio, MoralisPortfolio
from cookfi.trader.collectors.cookie import CookieCollector

__all__ = [
    "UpstreamAPIError",
    "DexScreenerCollector",
    "CoinMarketCapCollector",
    "BirdeyePortfolio",
    "MoralisPortfolio",
    "CookieCollector",
]
