"""
Pydantic models for all data flowing through the trading workflow.

Vendor payloads (DexScreener, Cookie.fun, portfolio APIs) are mapped
into these shapes at the collector boundary so the analysis and
execution steps never see raw JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Recommendation(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TokenBalance(BaseModel):
    amount: float
    usd_value: float = 0.0


class Token(BaseModel):
    """A tradeable token. Identity is (address, chain_id)."""
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    name: str
    address: str
    chain_id: str = Field(default="solana", alias="chainId")
    balance: TokenBalance | None = None

    @property
    def has_position(self) -> bool:
        return self.balance is not None and self.balance.amount > 0


# ---------------------------------------------------------------------------
# DexScreener
# ---------------------------------------------------------------------------

class PairToken(BaseModel):
    address: str
    name: str = ""
    symbol: str = ""


class TxnCount(BaseModel):
    buys: int = 0
    sells: int = 0


class PairLiquidity(BaseModel):
    usd: float | None = None
    base: float | None = None
    quote: float | None = None


class TokenPair(BaseModel):
    """One DEX pool as reported by DexScreener."""
    model_config = ConfigDict(populate_by_name=True)

    chain_id: str = Field(alias="chainId")
    dex_id: str = Field(default="", alias="dexId")
    url: str = ""
    pair_address: str = Field(default="", alias="pairAddress")
    base_token: PairToken = Field(alias="baseToken")
    quote_token: PairToken | None = Field(default=None, alias="quoteToken")
    price_native: str | None = Field(default=None, alias="priceNative")
    price_usd: str | None = Field(default=None, alias="priceUsd")
    txns: dict[str, TxnCount] = Field(default_factory=dict)
    volume: dict[str, float] = Field(default_factory=dict)
    price_change: dict[str, float] = Field(default_factory=dict, alias="priceChange")
    liquidity: PairLiquidity | None = None
    fdv: float | None = None
    market_cap: float | None = Field(default=None, alias="marketCap")

    @property
    def price(self) -> float | None:
        if self.price_usd is None:
            return None
        try:
            return float(self.price_usd)
        except ValueError:
            return None

    @property
    def liquidity_usd(self) -> float:
        if self.liquidity is None or self.liquidity.usd is None:
            return 0.0
        return self.liquidity.usd


class BoostedToken(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: str = Field(alias="chainId")
    token_address: str = Field(alias="tokenAddress")
    url: str = ""
    total_amount: float = Field(default=0.0, alias="totalAmount")
    amount: float | None = None
    description: str | None = None


class ProfileLink(BaseModel):
    type: str | None = None
    label: str | None = None
    url: str = ""


class TokenProfile(BaseModel):
    """A newly listed or updated DexScreener token profile."""
    model_config = ConfigDict(populate_by_name=True)

    chain_id: str = Field(alias="chainId")
    token_address: str = Field(alias="tokenAddress")
    url: str = ""
    icon: str | None = None
    header: str | None = None
    description: str | None = None
    links: list[ProfileLink] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------

class SocialPost(BaseModel):
    """A single Cookie.fun search hit."""
    text: str
    author: str | None = None
    created_at: datetime | None = None
    likes: int = 0
    retweets: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Analysis & decisions
# ---------------------------------------------------------------------------

class TokenAnalysis(BaseModel):
    """Market and social data gathered for one token in one cycle."""
    token: Token
    market_analysis: list[TokenPair] = Field(default_factory=list)
    social_analysis: list[SocialPost] = Field(default_factory=list)
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TradeDecision(BaseModel):
    """Structured recommendation returned by the LLM."""
    recommendation: Recommendation
    confidence: float = Field(ge=0.0, le=100.0)
    reasoning: str
    risks: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    """Outcome of acting on one decision. Lives for a single cycle."""
    success: bool
    action: Recommendation
    amount: float | None = None
    signature: str | None = None
    error: str | None = None

    # Context for the notification step
    token: Token | None = None
    decision: TradeDecision | None = None
    market_data: list[TokenPair] = Field(default_factory=list)

    @property
    def is_trade(self) -> bool:
        return self.action in (Recommendation.BUY, Recommendation.SELL)


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------

class SwapResult(BaseModel):
    signature: str
    from_amount: float
    to_amount: float
    slippage_pct: float
    attempts: int = 1


class TransferResult(BaseModel):
    signature: str
    amount: float


class StakeResult(BaseModel):
    signature: str
    amount: float
    jupsol_amount: float


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class TradeAlert(BaseModel):
    """Input for a trade alert tweet."""
    token: str
    token_address: str
    action: Literal["BUY", "SELL"]
    amount: float = 0.0
    confidence: float = Field(ge=0.0, le=1.0)     # 0-1 scale
    risk_level: RiskLevel
    price: float | None = None
    price_change_24h: float = 0.0
    volume_24h: float = 0.0
    liquidity_usd: float = 0.0
    signature: str | None = None
    reason: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
