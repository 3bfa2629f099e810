"""
Coverage Desk — 🧭 Report Orchestrator
────────────────────────────────────────
ticker → cached report, or:

  research sources (concurrent, one deadline)
      → prompt → generation collaborator
      → DocumentSectionParser → HTMLRenderer
      → report cache

Output structure:
    {
      "ticker":      "AVGO",
      "report":      "<memo text>",
      "html":        "<rendered fragment>",
      "cached":      false,
      "generatedAt": "2026-10-16T13:05:00.000Z",
      "companyName": "Broadcom Inc",
      "sources":     [{source, ok, cached, error, ...}],
    }

A failing or slow source is left out of the prompt. Only a generation
failure (GenerationError) is fatal to the request.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from coverage_engine import config
from coverage_engine.cache.tiered_cache import TieredCache, iso_from_ms, normalise_key
from coverage_engine.cache.ttl_config import CacheCategory
from coverage_engine.llm import MemoGenerator
from coverage_engine.memo.parser import DocumentSectionParser
from coverage_engine.memo.renderer import HTMLRenderer, render_page
from coverage_engine.prompts import SYSTEM_PROMPT, build_memo_prompt, format_research_context
from coverage_engine.research import (
    EarningsCallSource, FinancialSnapshotSource, MarketMovers,
    ResearchSource, SecFilingSource, SourceResult, WebResearchSource,
)

log = logging.getLogger("cov.orchestrator")


def default_sources(generator: MemoGenerator) -> List[ResearchSource]:
    return [
        SecFilingSource(),
        EarningsCallSource(),
        WebResearchSource(generator),
        FinancialSnapshotSource(),
    ]


def company_details(results: List[SourceResult]) -> Dict:
    """Best available company name and last price from whichever sources answered."""
    by_source = {r.source: r.data for r in results if r.ok}
    financials = by_source.get("Financials") or {}
    name = (
        financials.get("name")
        or (by_source.get("SecFilings") or {}).get("companyName")
        or (by_source.get("EarningsCalls") or {}).get("companyName")
    )
    return {"name": name, "price": financials.get("price")}


class ReportOrchestrator:
    def __init__(self, cache: TieredCache, generator: MemoGenerator,
                 parser: DocumentSectionParser = None,
                 renderer: HTMLRenderer = None,
                 sources: List[ResearchSource] = None,
                 movers: MarketMovers = None,
                 source_timeout: float = None):
        self.cache          = cache
        self.generator      = generator
        self.parser         = parser or DocumentSectionParser()
        self.renderer       = renderer or HTMLRenderer()
        self.sources        = default_sources(generator) if sources is None else sources
        self.movers         = movers or MarketMovers()
        self.source_timeout = source_timeout or config.SOURCE_TIMEOUT

    # ── Cache reads ───────────────────────────────────────────
    async def get_cached(self, ticker: str) -> Optional[dict]:
        ticker = normalise_key(ticker)
        entry = await self.cache.get(CacheCategory.REPORT, ticker)
        if entry is None:
            return None
        payload = entry.payload
        report = payload.get("report")
        if not report:
            return None
        html = payload.get("html") or self.build_html(
            report, ticker, payload.get("companyName"), payload.get("price"))
        return {
            "ticker":      ticker,
            "report":      report,
            "html":        html,
            "cached":      True,
            "generatedAt": entry.generated_at,
            "companyName": payload.get("companyName"),
            "sources":     payload.get("sources", []),
        }

    async def get_page(self, ticker: str) -> Optional[str]:
        """Full standalone HTML document for a cached report, or None."""
        cached = await self.get_cached(ticker)
        if cached is None:
            return None
        title = f"{cached['companyName'] or cached['ticker']} ({cached['ticker']}) — Initiation of Coverage"
        return render_page(cached["html"], title)

    # ── Research ──────────────────────────────────────────────
    async def gather_research(self, ticker: str) -> List[SourceResult]:
        """Run every source concurrently. Stragglers past the deadline are cancelled and omitted."""
        if not self.sources:
            return []

        tasks = {asyncio.create_task(s.run(ticker, self.cache)): s for s in self.sources}
        try:
            done, _ = await asyncio.wait(list(tasks), timeout=self.source_timeout)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        results = []
        for task, source in tasks.items():
            if task not in done:
                log.warning(f"{source.name} timed out for {ticker} after {self.source_timeout:.0f}s")
                results.append(SourceResult(source=source.name, ticker=ticker, error="Timed out"))
                continue
            try:
                results.append(task.result())
            except Exception as e:
                log.error(f"{source.name} task error for {ticker}: {e}")
                results.append(SourceResult(source=source.name, ticker=ticker, error=str(e)))
        return results

    # ── Generation ────────────────────────────────────────────
    def build_html(self, report: str, ticker: str, company_name: str = None,
                   price: float = None) -> str:
        blocks = self.parser.parse(report)
        return self.renderer.render(blocks, ticker, company_name=company_name, price=price)

    async def generate(self, ticker: str, force_refresh: bool = False) -> dict:
        """
        Cached report unless force_refresh. force_refresh only skips the report
        cache; each research category still honours its own TTL.
        Raises GenerationError when the memo cannot be written.
        """
        ticker = normalise_key(ticker)
        if not ticker:
            raise ValueError("Ticker is required")

        if not force_refresh:
            cached = await self.get_cached(ticker)
            if cached is not None:
                log.info(f"Returning cached report for {ticker} (generated {cached['generatedAt']})")
                return cached

        started = time.monotonic()
        results = await self.gather_research(ticker)
        ok = [r.source for r in results if r.ok]
        log.info(f"{ticker}: research {len(ok)}/{len(results)} sources ({', '.join(ok) or 'none'}) "
                 f"in {time.monotonic() - started:.1f}s")

        company = company_details(results)
        prompt  = build_memo_prompt(ticker, format_research_context(results), company)
        report  = await self.generator.generate(SYSTEM_PROMPT, prompt)

        html    = self.build_html(report, ticker, company["name"], company["price"])
        sources = [r.to_dict() for r in results]
        payload = {
            "report":      report,
            "html":        html,
            "companyName": company["name"],
            "price":       company["price"],
            "sources":     sources,
        }
        now_ms = self.cache.now_ms()
        if not await self.cache.put(CacheCategory.REPORT, ticker, payload, now_ms=now_ms):
            log.warning(f"{ticker}: report generated but not cached")

        log.info(f"Generated report for {ticker} in {time.monotonic() - started:.1f}s")
        return {
            "ticker":      ticker,
            "report":      report,
            "html":        html,
            "cached":      False,
            "generatedAt": iso_from_ms(now_ms),
            "companyName": company["name"],
            "sources":     sources,
        }

    # ── Market movers ─────────────────────────────────────────
    async def get_movers(self, force: bool = False) -> dict:
        result = await self.movers.run("MOVERS", self.cache, force=force)
        return {
            "key":    self.movers.cache_key("MOVERS"),
            "cached": result.cached,
            "data":   result.data,
            "error":  result.error,
        }
