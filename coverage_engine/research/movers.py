"""
Coverage Desk — 🚀 Market Movers Snapshot
───────────────────────────────────────────
Top gainers / losers / most active from Alpha Vantage, stored in the
portfolio-snapshot category (15-minute TTL) under one key per session:

  MOVERS_2026-10-16

Before the US open (09:30 New York) the list still describes the previous
session, so the key uses yesterday's date. No weekend or holiday handling.
"""

import logging
from datetime import datetime, time as dtime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import httpx

from coverage_engine import config
from coverage_engine.cache.ttl_config import CacheCategory
from coverage_engine.research.base import ResearchSource, to_float
from coverage_engine.research.financials import av_query

log = logging.getLogger("cov.research.movers")

NEW_YORK    = ZoneInfo("America/New_York")
MARKET_OPEN = dtime(9, 30)
MOVERS_PER_LIST = 10


def session_date(now: datetime) -> str:
    local = now.astimezone(NEW_YORK) if now.tzinfo else now.replace(tzinfo=NEW_YORK)
    day = local.date()
    if local.time() < MARKET_OPEN:
        day -= timedelta(days=1)
    return day.isoformat()


def _mover(row: dict) -> dict:
    return {
        "ticker":        row.get("ticker"),
        "price":         to_float(row.get("price")),
        "change":        to_float(row.get("change_amount")),
        "changePercent": to_float(row.get("change_percentage")),
        "volume":        to_float(row.get("volume")),
    }


class MarketMovers(ResearchSource):
    def __init__(self, api_key: str = None, timeout: float = None,
                 now: Callable[[], datetime] = None):
        self.api_key = config.ALPHA_VANTAGE_KEY if api_key is None else api_key
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._now    = now or (lambda: datetime.now(tz=NEW_YORK))

    @property
    def name(self) -> str:
        return "MarketMovers"

    @property
    def category(self) -> CacheCategory:
        return CacheCategory.PORTFOLIO_SNAPSHOT

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def cache_key(self, ticker: str) -> str:
        return f"MOVERS_{session_date(self._now())}"

    async def _fetch(self, ticker: str) -> Optional[dict]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            data = await av_query(client, self.api_key, function="TOP_GAINERS_LOSERS")
        if not data:
            return None
        return {
            "session":     session_date(self._now()),
            "lastUpdated": data.get("last_updated"),
            "gainers":     [_mover(r) for r in (data.get("top_gainers") or [])[:MOVERS_PER_LIST]],
            "losers":      [_mover(r) for r in (data.get("top_losers") or [])[:MOVERS_PER_LIST]],
            "mostActive":  [_mover(r) for r in (data.get("most_actively_traded") or [])[:MOVERS_PER_LIST]],
        }
