from .base import ResearchSource, SourceResult, to_float
from .earnings_calls import EarningsCallSource
from .financials import FinancialSnapshotSource
from .movers import MarketMovers, session_date
from .sec_filings import SecFilingSource
from .web_research import WebResearchSource

__all__ = [
    "EarningsCallSource", "FinancialSnapshotSource", "MarketMovers", "ResearchSource",
    "SecFilingSource", "SourceResult", "WebResearchSource", "session_date", "to_float",
]
