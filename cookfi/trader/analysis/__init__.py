from cookfi.trader.analysis.discovery import TokenDiscovery, merge_tokens
from cookfi.trader.analysis.token_analyzer import TokenAnalyzer
from cookfi.trader.analysis.decision_maker import DecisionMaker

__all__ = [
    "TokenDiscovery",
    "merge_tokens",
    "TokenAnalyzer",
    "DecisionMaker",
]
