"""Compact text renderings of market data for the CLI."""

from __future__ import annotations

from cookfi.trader.schemas import TokenPair


def format_number(num: float | None) -> str:
    """1234567 -> '1.23M'. None renders as '0'."""
    if num is None:
        return "0"
    if num >= 1e9:
        return f"{num / 1e9:.2f}B"
    if num >= 1e6:
        return f"{num / 1e6:.2f}M"
    if num >= 1e3:
        return f"{num / 1e3:.2f}K"
    return f"{num:.2f}"


def format_pair(pair: TokenPair) -> str:
    return (
        f"{pair.base_token.symbol} | ${pair.price_usd or '?'} | "
        f"Vol: ${format_number(pair.volume.get('h24'))} | "
        f"Liq: ${format_number(pair.liquidity_usd)} | "
        f"{pair.dex_id} | {pair.chain_id}"
    )
