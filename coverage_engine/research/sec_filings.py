"""
Coverage Desk — 📄 SEC Filing Source
──────────────────────────────────────
Latest 10-K for a ticker via sec-api.io:
  1. Query API      → most recent 10-K filing metadata
  2. Extractor API  → plain-text Items 1 (Business), 1A (Risk Factors), 7 (MD&A)

Cached for 90 days since a 10-K is filed once a year.

Produces:
  {companyName, filedAt, fiscalYear, sections: {business, riskFactors, mdAndA}}

US-listed stocks only; anything else comes back empty.
"""

import logging
from typing import Dict, Optional

import httpx

from coverage_engine import config
from coverage_engine.cache.ttl_config import CacheCategory
from coverage_engine.research.base import ResearchSource

log = logging.getLogger("cov.research.sec")

QUERY_URL     = "https://api.sec-api.io"
EXTRACTOR_URL = "https://api.sec-api.io/extractor"

# 10-K item code → section name in the cached payload
ITEMS = {
    "1":  "business",
    "1A": "riskFactors",
    "7":  "mdAndA",
}
MAX_SECTION_CHARS = 15000


class SecFilingSource(ResearchSource):
    """Extracts narrative sections from the latest annual report."""

    def __init__(self, api_key: str = None, timeout: float = None):
        self.api_key = config.SEC_API_KEY if api_key is None else api_key
        self.timeout = timeout or config.REQUEST_TIMEOUT

    @property
    def name(self) -> str:
        return "SecFilings"

    @property
    def category(self) -> CacheCategory:
        return CacheCategory.SEC_FILING

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _fetch(self, ticker: str) -> Optional[dict]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            filing = await self._latest_10k(client, ticker)
            if not filing:
                return None

            url = filing.get("linkToFilingDetails") or filing.get("linkToHtml")
            sections: Dict[str, str] = {}
            for item, section_name in ITEMS.items():
                text = await self._extract_item(client, url, item)
                if text:
                    sections[section_name] = text[:MAX_SECTION_CHARS]

        if not sections:
            log.info(f"{ticker}: 10-K found but no sections extracted")
            return None

        period = filing.get("periodOfReport") or filing.get("filedAt") or ""
        return {
            "companyName": filing.get("companyName") or ticker,
            "filedAt":     filing.get("filedAt"),
            "fiscalYear":  period[:4] or None,
            "sections":    sections,
        }

    async def _latest_10k(self, client: httpx.AsyncClient, ticker: str) -> Optional[dict]:
        query = {
            "query": f'ticker:{ticker} AND formType:"10-K"',
            "from":  "0",
            "size":  "1",
            "sort":  [{"filedAt": {"order": "desc"}}],
        }
        r = await client.post(QUERY_URL, params={"token": self.api_key}, json=query)
        if r.status_code != 200:
            log.warning(f"SEC query HTTP {r.status_code} for {ticker}")
            return None
        filings = r.json().get("filings") or []
        return filings[0] if filings else None

    async def _extract_item(self, client: httpx.AsyncClient, url: str, item: str) -> Optional[str]:
        if not url:
            return None
        try:
            r = await client.get(EXTRACTOR_URL, params={
                "url": url, "item": item, "type": "text", "token": self.api_key})
            if r.status_code != 200:
                log.warning(f"SEC extractor HTTP {r.status_code} for item {item}")
                return None
            text = r.text.strip()
            return text or None
        except httpx.TimeoutException:
            log.warning(f"SEC extractor timeout for item {item}")
            return None
