"""
Coverage Desk — 🎙️ Earnings Call Source
─────────────────────────────────────────
Recent earnings-call transcripts via API Ninjas.

Walks back from the last completed calendar quarter (up to 4 quarters)
and keeps the 2 most recent transcripts that exist. Management Q&A is
where the useful colour is, so transcripts are kept whole up to a cap.

Produces:
  {companyName, transcripts: [{year, quarter, transcript}]}
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

import httpx

from coverage_engine import config
from coverage_engine.cache.ttl_config import CacheCategory
from coverage_engine.research.base import ResearchSource

log = logging.getLogger("cov.research.earnings")

TRANSCRIPT_URL    = "https://api.api-ninjas.com/v1/earningstranscript"
QUARTERS_TO_SCAN  = 4
TRANSCRIPTS_KEPT  = 2
MAX_TRANSCRIPT_CHARS = 20000


def recent_quarters(today: date, count: int = QUARTERS_TO_SCAN) -> List[Tuple[int, int]]:
    """[(year, quarter)] newest first, starting with the last completed quarter."""
    year, quarter = today.year, (today.month - 1) // 3 + 1
    out = []
    for _ in range(count):
        quarter -= 1
        if quarter == 0:
            year, quarter = year - 1, 4
        out.append((year, quarter))
    return out


class EarningsCallSource(ResearchSource):
    """Fetches the latest earnings-call transcripts."""

    def __init__(self, api_key: str = None, timeout: float = None, today=None):
        self.api_key = config.API_NINJAS_KEY if api_key is None else api_key
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._today  = today or date.today

    @property
    def name(self) -> str:
        return "EarningsCalls"

    @property
    def category(self) -> CacheCategory:
        return CacheCategory.EARNINGS_TRANSCRIPT

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _fetch(self, ticker: str) -> Optional[dict]:
        transcripts = []
        company_name = None
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for year, quarter in recent_quarters(self._today()):
                data = await self._fetch_transcript(client, ticker, year, quarter)
                if not data:
                    continue
                company_name = company_name or data.get("company_name") or data.get("companyName")
                transcripts.append({
                    "year":       year,
                    "quarter":    quarter,
                    "transcript": data["transcript"][:MAX_TRANSCRIPT_CHARS],
                })
                if len(transcripts) >= TRANSCRIPTS_KEPT:
                    break

        if not transcripts:
            return None
        quarters = ", ".join(f"Q{t['quarter']} {t['year']}" for t in transcripts)
        log.info(f"{ticker}: {len(transcripts)} earnings transcripts ({quarters})")
        return {"companyName": company_name or ticker, "transcripts": transcripts}

    async def _fetch_transcript(self, client: httpx.AsyncClient, ticker: str,
                                year: int, quarter: int) -> Optional[dict]:
        try:
            r = await client.get(
                TRANSCRIPT_URL,
                params={"ticker": ticker, "year": year, "quarter": quarter},
                headers={"X-Api-Key": self.api_key},
            )
        except httpx.TimeoutException:
            log.warning(f"Transcript timeout {ticker} Q{quarter} {year}")
            return None
        if r.status_code != 200:
            log.debug(f"Transcript HTTP {r.status_code} for {ticker} Q{quarter} {year}")
            return None
        data = r.json()
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict) or not data.get("transcript"):
            return None
        return data
