"""
Coverage Desk — Research Source Base
──────────────────────────────────────
All research sources inherit from ResearchSource.

Each source produces a SourceResult containing:
  - data:   the payload stored in the source's cache category (or None)
  - cached: whether it came from the cache
  - error:  why there is no data, when there is none

run() handles the cache read, the write-through on success, and error
recovery. A failing source never raises: the memo is simply written
without its context.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from coverage_engine.cache.tiered_cache import TieredCache
from coverage_engine.cache.ttl_config import CacheCategory

log = logging.getLogger("cov.research")


@dataclass
class SourceResult:
    source:    str
    ticker:    str
    data:      Optional[Dict[str, Any]] = None
    cached:    bool = False
    error:     Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return bool(self.data) and not self.error

    def to_dict(self) -> dict:
        return {
            "source":    self.source,
            "ticker":    self.ticker,
            "ok":        self.ok,
            "cached":    self.cached,
            "error":     self.error,
            "timestamp": int(self.timestamp),
        }


def to_float(value) -> Optional[float]:
    """API numbers arrive as strings, "None", "-" or "" — anything unparseable is None."""
    if value is None:
        return None
    try:
        return float(str(value).replace(",", "").rstrip("%"))
    except (TypeError, ValueError):
        return None


class ResearchSource(ABC):
    """
    Subclasses must implement:
      - name:      str property
      - category:  CacheCategory property
      - _fetch(ticker) -> dict | None

    and may override enabled (e.g. no API key configured) and cache_key().
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def category(self) -> CacheCategory: ...

    @property
    def enabled(self) -> bool:
        return True

    def cache_key(self, ticker: str) -> str:
        return ticker.upper()

    @abstractmethod
    async def _fetch(self, ticker: str) -> Optional[Dict[str, Any]]: ...

    async def run(self, ticker: str, cache: Optional[TieredCache] = None,
                  force: bool = False) -> SourceResult:
        """Public entry point. Returns cached data if fresh enough, unless force is set."""
        ticker = ticker.upper()
        if not self.enabled:
            return self._empty_result(ticker, f"{self.name} disabled: API key not configured")

        key = self.cache_key(ticker)
        if cache is not None and not force:
            entry = await cache.get(self.category, key)
            if entry is not None:
                return SourceResult(source=self.name, ticker=ticker, data=entry.payload, cached=True)

        try:
            data = await self._fetch(ticker)
        except Exception as e:
            log.warning(f"{self.name} failed for {ticker}: {e}")
            return self._empty_result(ticker, str(e) or e.__class__.__name__)

        if not data:
            log.info(f"{self.name}: no data for {ticker}")
            return self._empty_result(ticker, "No data returned")

        if cache is not None:
            await cache.put(self.category, key, data)
        return SourceResult(source=self.name, ticker=ticker, data=data)

    def _empty_result(self, ticker: str, reason: str) -> SourceResult:
        return SourceResult(source=self.name, ticker=ticker, data=None, error=reason)
