"""
Configuration for the CookFi trading workflow.

All secrets are loaded from environment variables.
Thresholds, intervals and retry policies mirror the values the
trading loop was tuned with on Solana mainnet.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


class ConfigError(Exception):
    """Raised when required settings are missing at startup."""


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# API keys, loaded from env vars only
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class APIKeys:
    cookie_api_key: str = os.getenv("COOKFI_COOKIE_API_KEY", "")
    coinmarketcap_api_key: str = os.getenv("COOKFI_CMC_API_KEY", "")
    moralis_api_key: str = os.getenv("COOKFI_MORALIS_API_KEY", "")
    birdeye_api_key: str = os.getenv("COOKFI_BIRDEYE_API_KEY", "")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WalletConfig:
    private_key: str = os.getenv("COOKFI_SOLANA_PRIVATE_KEY", "")     # base58 keypair
    public_key: str = os.getenv("COOKFI_SOLANA_PUBLIC_KEY", "")
    rpc_url: str = os.getenv("COOKFI_SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
    portfolio_provider: str = os.getenv("COOKFI_PORTFOLIO_PROVIDER", "moralis")  # moralis | birdeye
    portfolio_network: str = "mainnet"
    portfolio_cache_ttl: float = 60.0                                  # seconds
    priority_fee_lamports: int = 10_000


# ---------------------------------------------------------------------------
# Workflow intervals (seconds)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkflowIntervals:
    analysis: float = 300.0       # 5 minutes between successful cycles
    error_backoff: float = 30.0   # pause after a failed cycle


# ---------------------------------------------------------------------------
# Decision execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExecutionConfig:
    min_confidence: float = 80.0      # below this, always HOLD
    max_confidence: float = 100.0
    min_buy_amount: float = 0.01      # SOL
    max_buy_amount: float = 0.1       # SOL
    slippage_pct: float = 1.0         # initial slippage handed to the swap
    dry_run: bool = _env_bool("COOKFI_DRY_RUN", False)


# ---------------------------------------------------------------------------
# Swap retry policies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapConfig:
    max_attempts: int = 10
    default_slippage_pct: float = 3.0
    max_slippage_pct: float = 30.0
    retry_delay: float = 1.0          # seconds between attempts


SOLANA_SWAP = SwapConfig()
EVM_SWAP = SwapConfig(
    max_attempts=5,
    default_slippage_pct=1.0,
    max_slippage_pct=30.0,
    retry_delay=5.0,
)


# ---------------------------------------------------------------------------
# Token discovery
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DiscoveryConfig:
    chain_id: str = "solana"
    max_trending: int = 10
    use_latest_profiles: bool = _env_bool("COOKFI_USE_LATEST_PROFILES", False)
    social_results: int = 10
    use_coinmarketcap: bool = _env_bool("COOKFI_USE_CMC", False)
    cmc_tag: str = os.getenv("COOKFI_CMC_TAG", "solana-ecosystem")
    cmc_platform_name: str = "Solana"
    cmc_max_pages: int = 5
    cmc_page_delay: float = 5.0
    cmc_batch_size: int = 40
    cmc_batch_delay: float = 0.5


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LLMConfig:
    base_url: str = os.getenv("COOKFI_LLM_BASE_URL", "https://api.openai.com/v1")
    model: str = os.getenv("COOKFI_LLM_MODEL", "gpt-4o")
    small_model: str = os.getenv("COOKFI_LLM_SMALL_MODEL", "gpt-4o-mini")
    temperature: float = 0.2
    max_tokens: int = 800
    timeout: float = 60.0


# ---------------------------------------------------------------------------
# Twitter notifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TwitterConfig:
    access_token: str = os.getenv("COOKFI_TWITTER_ACCESS_TOKEN", "")  # OAuth2 user-context token
    dry_run: bool = _env_bool("COOKFI_TWITTER_DRY_RUN", False)
    max_length: int = 280

    @property
    def enabled(self) -> bool:
        return bool(self.access_token) or self.dry_run


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RateLimitConfig:
    cookie_requests_per_minute: int = 60
    cookie_batch_size: int = 3
    cookie_batch_pause: float = 20.0
    cmc_requests_per_minute: int = 30
    dexscreener_requests_per_minute: int = 60
    openai_requests_per_minute: int = 20
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0               # seconds, doubles each retry


# ---------------------------------------------------------------------------
# Master config
# ---------------------------------------------------------------------------

@dataclass
class Config:
    api_keys: APIKeys = field(default_factory=APIKeys)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    intervals: WorkflowIntervals = field(default_factory=WorkflowIntervals)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    swap: SwapConfig = field(default_factory=SwapConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    twitter: TwitterConfig = field(default_factory=TwitterConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


def validate_config(cfg: Config) -> None:
    """
    Check that every setting the workflow cannot run without is present.

    Raises ConfigError naming every missing or invalid environment
    variable at once.
    """
    missing: list[str] = []
    invalid: list[str] = []

    if not cfg.api_keys.cookie_api_key:
        missing.append("COOKFI_COOKIE_API_KEY")
    if not cfg.api_keys.openai_api_key:
        missing.append("OPENAI_API_KEY")

    provider = cfg.wallet.portfolio_provider
    if provider == "moralis" and not cfg.api_keys.moralis_api_key:
        missing.append("COOKFI_MORALIS_API_KEY")
    elif provider == "birdeye" and not cfg.api_keys.birdeye_api_key:
        missing.append("COOKFI_BIRDEYE_API_KEY")
    elif provider not in ("moralis", "birdeye"):
        invalid.append(
            f"COOKFI_PORTFOLIO_PROVIDER='{provider}' (expected moralis or birdeye)"
        )

    if not cfg.wallet.public_key:
        missing.append("COOKFI_SOLANA_PUBLIC_KEY")
    if not cfg.execution.dry_run:
        if not cfg.wallet.private_key:
            missing.append("COOKFI_SOLANA_PRIVATE_KEY")
        if not cfg.wallet.rpc_url:
            missing.append("COOKFI_SOLANA_RPC_URL")

    if cfg.discovery.use_coinmarketcap and not cfg.api_keys.coinmarketcap_api_key:
        missing.append("COOKFI_CMC_API_KEY")

    problems: list[str] = []
    if missing:
        problems.append("missing: " + ", ".join(missing))
    if invalid:
        problems.append("invalid: " + ", ".join(invalid))
    if problems:
        raise ConfigError("CookFi configuration validation failed, " + "; ".join(problems))


# Global config instance
config = Config()
