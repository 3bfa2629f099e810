"""
Coverage Desk — 📊 Financial Snapshot Source
──────────────────────────────────────────────
Alpha Vantage OVERVIEW + GLOBAL_QUOTE, flattened to the numbers the memo
cites (valuation multiples, margins, growth, price). Cached for 30 days.

Alpha Vantage answers rate limiting with HTTP 200 and a "Note" or
"Information" body, which counts as no data.
"""

import logging
from typing import Optional

import httpx

from coverage_engine import config
from coverage_engine.cache.ttl_config import CacheCategory
from coverage_engine.research.base import ResearchSource, to_float

log = logging.getLogger("cov.research.financials")

AV_BASE = "https://www.alphavantage.co/query"

# OVERVIEW field → snapshot field
OVERVIEW_FIELDS = {
    "MarketCapitalization":       "marketCap",
    "PERatio":                    "peRatio",
    "ForwardPE":                  "forwardPE",
    "PEGRatio":                   "pegRatio",
    "PriceToSalesRatioTTM":       "priceToSales",
    "EVToEBITDA":                 "evToEbitda",
    "RevenueTTM":                 "revenueTTM",
    "EBITDA":                     "ebitda",
    "ProfitMargin":               "profitMargin",
    "OperatingMarginTTM":         "operatingMargin",
    "ReturnOnEquityTTM":          "returnOnEquity",
    "QuarterlyRevenueGrowthYOY":  "revenueGrowthYoY",
    "QuarterlyEarningsGrowthYOY": "earningsGrowthYoY",
    "DividendYield":              "dividendYield",
    "Beta":                       "beta",
    "AnalystTargetPrice":         "analystTargetPrice",
    "52WeekHigh":                 "week52High",
    "52WeekLow":                  "week52Low",
}


def _rate_limited(data: dict) -> bool:
    return "Note" in data or "Information" in data or "Error Message" in data


async def av_query(client: httpx.AsyncClient, api_key: str, **params) -> Optional[dict]:
    params["apikey"] = api_key
    r = await client.get(AV_BASE, params=params)
    if r.status_code != 200:
        log.warning(f"Alpha Vantage HTTP {r.status_code} for {params.get('function')}")
        return None
    data = r.json()
    if not isinstance(data, dict):
        log.warning(f"Alpha Vantage returned no object for {params.get('function')}")
        return None
    if _rate_limited(data):
        reason = data.get("Note") or data.get("Information") or data.get("Error Message") or ""
        log.warning(f"Alpha Vantage refused {params.get('function')}: {reason[:80]}")
        return None
    return data


class FinancialSnapshotSource(ResearchSource):
    def __init__(self, api_key: str = None, timeout: float = None):
        self.api_key = config.ALPHA_VANTAGE_KEY if api_key is None else api_key
        self.timeout = timeout or config.REQUEST_TIMEOUT

    @property
    def name(self) -> str:
        return "Financials"

    @property
    def category(self) -> CacheCategory:
        return CacheCategory.FINANCIAL_SNAPSHOT

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _fetch(self, ticker: str) -> Optional[dict]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            overview = await av_query(client, self.api_key, function="OVERVIEW", symbol=ticker) or {}
            quote    = await av_query(client, self.api_key, function="GLOBAL_QUOTE", symbol=ticker) or {}

        quote = quote.get("Global Quote") or {}
        if not overview.get("Symbol") and not quote:
            return None

        snapshot = {
            "name":          overview.get("Name") or ticker,
            "sector":        overview.get("Sector"),
            "industry":      overview.get("Industry"),
            "price":         to_float(quote.get("05. price")),
            "changePercent": to_float(quote.get("10. change percent")),
        }
        for av_field, field_name in OVERVIEW_FIELDS.items():
            snapshot[field_name] = to_float(overview.get(av_field))
        return snapshot
