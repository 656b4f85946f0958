"""
Historical Pattern Service

CONTRACT:
    Input:  symbol code + current IndicatorSnapshot
    Output: Optional[HistoricalContext]

RESPONSIBILITIES:
    - Find past generations for the same symbol in a similar indicator regime
      (RSI within a band, same MACD direction, outcome evaluated, recent)
    - Summarize their outcomes into success rate, return statistics and an insight

The outcome store is external and read-only; it is reached through the
ReportHistorySource protocol. "No matches" is None, never an error.
"""

from tradeplan.services.history.analyzer import (
    HistoricalOutcome,
    HistoricalPatternAnalyzer,
    ReportHistorySource,
    summarize_outcomes,
)

__all__ = [
    "HistoricalOutcome",
    "HistoricalPatternAnalyzer",
    "ReportHistorySource",
    "summarize_outcomes",
]
