"""
CookFi Trader.

Polls market-data and social APIs for Solana tokens, asks a language
model for BUY/SELL/HOLD decisions, executes confident ones as Jupiter
swaps and announces successful trades.
"""

__version__ = "0.1.0"
