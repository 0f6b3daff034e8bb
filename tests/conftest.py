import pytest

from cookfi.trader.config import ExecutionConfig, SwapConfig, WorkflowIntervals
from cookfi.trader.schemas import (
    Recommendation,
    Token,
    TokenBalance,
    TokenPair,
    TradeDecision,
)


def _pair_payload(address, symbol="TKN", chain_id="solana", **overrides):
    payload = {
        "chainId": chain_id,
        "dexId": "raydium",
        "url": f"https://dexscreener.com/{chain_id}/{address}-pair",
        "pairAddress": f"{address}-pair",
        "baseToken": {"address": address, "name": f"{symbol} Token", "symbol": symbol},
        "quoteToken": {"address": "So11111111111111111111111111111111111111112", "symbol": "SOL"},
        "priceNative": "0.0001",
        "priceUsd": "0.02",
        "txns": {"h24": {"buys": 120, "sells": 80}},
        "volume": {"h24": 50000.0, "h1": 1200.0},
        "priceChange": {"h24": 5.0, "h1": 0.5},
        "liquidity": {"usd": 80000.0, "base": 1000000.0, "quote": 400.0},
        "fdv": 2000000.0,
        "marketCap": 1500000.0,
    }
    payload.update(overrides)
    return payload


class FakeWallet:
    """Wallet double that fails a set number of swaps before succeeding."""

    def __init__(self, failures=0, error="Slippage tolerance exceeded"):
        self.failures = failures
        self.error = error
        self.swaps = []
        self.transfers = []
        self.stakes = []

    async def swap(self, output_mint, amount, input_mint, slippage_bps):
        self.swaps.append((input_mint, output_mint, amount, slippage_bps))
        if len(self.swaps) <= self.failures:
            raise RuntimeError(self.error)
        return f"sig-{len(self.swaps)}"

    async def transfer(self, recipient, amount, mint=None):
        self.transfers.append((recipient, amount, mint))
        return "transfer-sig"

    async def stake(self, amount):
        self.stakes.append(amount)
        return "stake-sig", amount * 0.95


class FakeLLM:
    """Returns canned completions and records the prompts it saw."""

    def __init__(self, json_response=None, text_response="Bought $TKN", error=None):
        self.json_response = json_response
        self.text_response = text_response
        self.error = error
        self.prompts = []

    async def complete_json(self, prompt, *, small=False):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.json_response

    async def complete(self, prompt, *, small=False, json_mode=False, system=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.text_response


@pytest.fixture
def pair_payload():
    return _pair_payload


@pytest.fixture
def make_pair():
    def _make(address="TokenMint111", **overrides):
        return TokenPair.model_validate(_pair_payload(address, **overrides))
    return _make


@pytest.fixture
def make_token():
    def _make(address="TokenMint111", symbol="TKN", balance=None):
        return Token(
            symbol=symbol,
            name=f"{symbol} Token",
            address=address,
            chain_id="solana",
            balance=TokenBalance(amount=balance) if balance is not None else None,
        )
    return _make


@pytest.fixture
def make_decision():
    def _make(recommendation="BUY", confidence=85, reasoning="Strong volume and mentions"):
        return TradeDecision(
            recommendation=Recommendation(recommendation),
            confidence=confidence,
            reasoning=reasoning,
            risks=["Low liquidity"],
            opportunities=["Growing community"],
        )
    return _make


@pytest.fixture
def wallet_factory():
    return FakeWallet


@pytest.fixture
def llm_factory():
    return FakeLLM


@pytest.fixture
def fake_wallet():
    return FakeWallet()


@pytest.fixture
def execution_settings():
    return ExecutionConfig(dry_run=False)


@pytest.fixture
def fast_swap_settings():
    return SwapConfig(retry_delay=0.0)


@pytest.fixture
def no_sleep_intervals():
    return WorkflowIntervals(analysis=0.0, error_backoff=0.0)
