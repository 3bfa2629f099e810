"""
Coverage Desk — 🔎 Web Research Source
────────────────────────────────────────
Investor-focused web research through Claude's web-search tool:
what the market is debating, named customers and competitors,
earnings-call takeaways. Cached for 7 days.

Produces:
  {research: "<notes with sources>"}
"""

import logging
from typing import Optional

from coverage_engine.cache.ttl_config import CacheCategory
from coverage_engine.llm import MemoGenerator
from coverage_engine.prompts import build_research_prompt
from coverage_engine.research.base import ResearchSource

log = logging.getLogger("cov.research.web")


class WebResearchSource(ResearchSource):
    def __init__(self, generator: MemoGenerator):
        self.generator = generator

    @property
    def name(self) -> str:
        return "WebResearch"

    @property
    def category(self) -> CacheCategory:
        return CacheCategory.WEB_RESEARCH

    @property
    def enabled(self) -> bool:
        return self.generator.enabled

    async def _fetch(self, ticker: str) -> Optional[dict]:
        research = await self.generator.research(build_research_prompt(ticker))
        if not research:
            return None
        return {"research": research}
