from cookfi.trader.execution.sizing import calculate_buy_amount, passes_confidence_gate
from cookfi.trader.execution.trading import SwapError, TradingService
from cookfi.trader.execution.executor import ExecutionService

__all__ = [
    "calculate_buy_amount",
    "passes_confidence_gate",
    "SwapError",
    "TradingService",
    "ExecutionService",
]
