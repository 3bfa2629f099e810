"""
Coverage Desk — Cache Categories & TTL Configuration
──────────────────────────────────────────────────────
Single source of truth for cache durations and on-disk layout.
Organised by data type, by how fast the underlying research goes stale.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class CacheCategory(str, Enum):
    REPORT              = "report"
    SEC_FILING          = "sec-filing"
    EARNINGS_TRANSCRIPT = "earnings-transcript"
    WEB_RESEARCH        = "web-research"
    FINANCIAL_SNAPSHOT  = "financial-snapshot"
    PORTFOLIO_SNAPSHOT  = "portfolio-snapshot"


DAY = 24 * 3600

# ── Per category TTL (seconds) ────────────────────────────────

TTL: Dict[CacheCategory, int] = {
    # Slow-changing: a 10-K is filed once a year
    CacheCategory.SEC_FILING:          90 * DAY,

    # Monthly: memos and the inputs they are built from
    CacheCategory.REPORT:              30 * DAY,
    CacheCategory.EARNINGS_TRANSCRIPT: 30 * DAY,
    CacheCategory.FINANCIAL_SNAPSHOT:  30 * DAY,

    # Weekly: web narrative moves faster than filings
    CacheCategory.WEB_RESEARCH:        7 * DAY,

    # Intraday: movers list is only useful while it is current
    CacheCategory.PORTFOLIO_SNAPSHOT:  15 * 60,
}


@dataclass(frozen=True)
class CategoryLayout:
    directory:       str    # sub-directory under the cache root ("" = root)
    filename:        str    # format string, {key} is the upper-cased key
    timestamp_field: str    # envelope field holding epoch-ms write time
    flat:            bool   # payload fields stored next to the key (no "data" wrapper)
    key_field:       str = "ticker"


# ── Physical layout per category ──────────────────────────────
#   cache/AVGO.json                          report
#   cache/sec/AVGO_10K.json                  sec-filing
#   cache/earnings/AVGO_earnings.json        earnings-transcript
#   cache/websearch/AVGO_research.json       web-research
#   cache/alphavantage/AVGO_financials.json  financial-snapshot
#   cache/portfolio/MOVERS_2026-10-16.json   portfolio-snapshot

LAYOUT: Dict[CacheCategory, CategoryLayout] = {
    CacheCategory.REPORT:              CategoryLayout("",             "{key}.json",            "timestamp", flat=True),
    CacheCategory.SEC_FILING:          CategoryLayout("sec",          "{key}_10K.json",        "cachedAt",  flat=False),
    CacheCategory.EARNINGS_TRANSCRIPT: CategoryLayout("earnings",     "{key}_earnings.json",   "cachedAt",  flat=False),
    CacheCategory.WEB_RESEARCH:        CategoryLayout("websearch",    "{key}_research.json",   "cachedAt",  flat=False),
    CacheCategory.FINANCIAL_SNAPSHOT:  CategoryLayout("alphavantage", "{key}_financials.json", "cachedAt",  flat=False),
    CacheCategory.PORTFOLIO_SNAPSHOT:  CategoryLayout("portfolio",    "{key}.json",            "timestamp", flat=False, key_field="key"),
}
