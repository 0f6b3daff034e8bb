"""Confidence gate and confidence-scaled position sizing."""

from __future__ import annotations

from cookfi.trader.config import ExecutionConfig


def passes_confidence_gate(confidence: float, settings: ExecutionConfig) -> bool:
    """True when a decision is confident enough to act on."""
    return confidence >= settings.min_confidence


def calculate_buy_amount(confidence: float, settings: ExecutionConfig) -> float:
    """
    SOL to spend on a BUY at ``confidence``.

    Linear from ``min_buy_amount`` at the confidence threshold to
    ``max_buy_amount`` at ``max_confidence``, clamped to that range.
    """
    span = settings.max_confidence - settings.min_confidence
    scale = (confidence - settings.min_confidence) / span if span > 0 else 1.0
    amount = settings.min_buy_amount + (
        settings.max_buy_amount - settings.min_buy_amount
    ) * scale
    return min(settings.max_buy_amount, max(settings.min_buy_amount, amount))
