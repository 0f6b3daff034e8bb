import asyncio

import pytest

from cookfi.trader.analysis.discovery import TokenDiscovery, merge_tokens
from cookfi.trader.analysis.token_analyzer import TokenAnalyzer
from cookfi.trader.config import DiscoveryConfig
from cookfi.trader.schemas import SocialPost


class StubPortfolio:
    def __init__(self, tokens=None, error=None):
        self.tokens = tokens or []
        self.error = error

    async def get_tokens(self):
        if self.error:
            raise self.error
        return self.tokens


class StubDexScreener:
    def __init__(self, trending=None, pairs=None, error=None, cancelled=(), latest=None):
        self.trending = trending or []
        self.latest = latest or []
        self.pairs = pairs or {}
        self.error = error
        self.cancelled = set(cancelled)
        self.trending_calls = []

    async def get_trending_tokens(self, max_results=None, chain_id=None):
        self.trending_calls.append((max_results, chain_id))
        if self.error:
            raise self.error
        return self.trending

    async def get_latest_tokens(self, max_results=None, chain_id=None):
        return self.latest[:max_results]

    async def get_token_pairs(self, address, chain_id="solana"):
        if address in self.cancelled:
            raise asyncio.CancelledError()
        if address not in self.pairs:
            raise RuntimeError(f"no pairs for {address}")
        return self.pairs[address]


class StubCookie:
    def __init__(self):
        self.queries = []

    async def search_tweets(self, query, max_results=10):
        self.queries.append(query)
        return [SocialPost(text=f"talking about {query}")]


def test_merge_prefers_entry_with_balance(make_token):
    unheld = make_token("A", "AAA")
    held = make_token("A", "AAA", balance=5.0)

    merged = merge_tokens([unheld], [held])

    assert len(merged) == 1
    assert merged[0].balance.amount == 5.0


def test_merge_keeps_first_seen_order(make_token):
    a, b, c = make_token("A"), make_token("B"), make_token("C")

    merged = merge_tokens([b, a], [c, a])

    assert [t.address for t in merged] == ["B", "A", "C"]


def test_merge_keeps_first_balance_entry(make_token):
    merged = merge_tokens([make_token("A", balance=1.0)], [make_token("A", balance=9.0)])
    assert merged[0].balance.amount == 1.0


@pytest.mark.asyncio
async def test_discover_merges_portfolio_and_trending(make_token):
    portfolio = StubPortfolio([make_token("A", "AAA", balance=5.0)])
    dexscreener = StubDexScreener([make_token("A", "A"), make_token("B", "B")])
    discovery = TokenDiscovery(portfolio, dexscreener, settings=DiscoveryConfig(max_trending=7))

    tokens = await discovery.discover()

    assert [t.address for t in tokens] == ["A", "B"]
    assert tokens[0].balance.amount == 5.0
    assert dexscreener.trending_calls == [(7, "solana")]


@pytest.mark.asyncio
async def test_discover_adds_latest_profiles_when_enabled(make_token):
    dexscreener = StubDexScreener(
        [make_token("A")], latest=[make_token("A"), make_token("P1"), make_token("P2")]
    )

    default = TokenDiscovery(None, dexscreener, settings=DiscoveryConfig(use_latest_profiles=False))
    assert [t.address for t in await default.discover()] == ["A"]

    enabled = TokenDiscovery(
        None, dexscreener, settings=DiscoveryConfig(use_latest_profiles=True, max_trending=2)
    )
    assert [t.address for t in await enabled.discover()] == ["A", "P1"]


@pytest.mark.asyncio
async def test_discover_survives_failing_source(make_token):
    portfolio = StubPortfolio([make_token("A", balance=1.0)])
    dexscreener = StubDexScreener(error=RuntimeError("dexscreener 503"))
    discovery = TokenDiscovery(portfolio, dexscreener)

    tokens = await discovery.discover()

    assert [t.address for t in tokens] == ["A"]


@pytest.mark.asyncio
async def test_analyzer_refreshes_symbol_from_pairs(make_token, make_pair):
    boosted = make_token("MintXYZ", "MintXYZ")
    dexscreener = StubDexScreener(pairs={"MintXYZ": [make_pair("MintXYZ", symbol="XYZ")]})
    cookie = StubCookie()
    analyzer = TokenAnalyzer(dexscreener, cookie)

    analysis = await analyzer.analyze_token(boosted)

    assert analysis.token.symbol == "XYZ"
    assert cookie.queries == ["MintXYZ"]
    assert len(analysis.market_analysis) == 1
    assert len(analysis.social_analysis) == 1


@pytest.mark.asyncio
async def test_analyzer_uses_cashtag_query(make_token, make_pair):
    cookie = StubCookie()
    analyzer = TokenAnalyzer(StubDexScreener(pairs={"A": [make_pair("A")]}), cookie)

    await analyzer.analyze_token(make_token("A", "BONK"))

    assert cookie.queries == ["BONK $BONK"]


@pytest.mark.asyncio
async def test_analyze_all_drops_failed_tokens(make_token, make_pair):
    analyzer = TokenAnalyzer(StubDexScreener(pairs={"A": [make_pair("A")]}), StubCookie())

    analyses = await analyzer.analyze_all([make_token("A"), make_token("B")])

    assert [a.token.address for a in analyses] == ["A"]


@pytest.mark.asyncio
async def test_analyze_all_drops_cancelled_tokens(make_token, make_pair):
    dexscreener = StubDexScreener(
        pairs={"A": [make_pair("A")], "C": [make_pair("C")]}, cancelled={"B"}
    )
    analyzer = TokenAnalyzer(dexscreener, StubCookie())

    analyses = await analyzer.analyze_all([make_token("A"), make_token("B"), make_token("C")])

    assert [a.token.address for a in analyses] == ["A", "C"]


@pytest.mark.asyncio
async def test_discover_survives_cancelled_source(make_token):
    portfolio = StubPortfolio(error=asyncio.CancelledError())
    dexscreener = StubDexScreener([make_token("B")])
    discovery = TokenDiscovery(portfolio, dexscreener)

    tokens = await discovery.discover()

    assert [t.address for t in tokens] == ["B"]
