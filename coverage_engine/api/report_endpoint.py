"""
Coverage Desk — Report API Handlers
─────────────────────────────────────
Request handling behind the routes in app.py. Error bodies are
{"error": "..."}, the shape the browser client reads.

  generate   400 missing ticker · 500 generation failed
  cached     404 when nothing fresh is stored
"""

import logging
from typing import Optional

from fastapi.responses import HTMLResponse, JSONResponse

from coverage_engine.cache.tiered_cache import normalise_key
from coverage_engine.llm import GenerationError
from coverage_engine.orchestrator.report_orchestrator import ReportOrchestrator

log = logging.getLogger("cov.api.report")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def generate_report_response(orchestrator: ReportOrchestrator, ticker: Optional[str],
                                   force_refresh: bool = False):
    ticker = normalise_key(ticker)
    if not ticker:
        return error_response(400, "Ticker is required")
    try:
        return await orchestrator.generate(ticker, force_refresh=force_refresh)
    except GenerationError as e:
        log.error(f"Error generating report for {ticker}: {e}")
        return error_response(500, "Failed to generate report")


async def cached_report_response(orchestrator: ReportOrchestrator, ticker: str):
    cached = await orchestrator.get_cached(ticker)
    if cached is None:
        return error_response(404, f"No cached report for {normalise_key(ticker)}")
    return cached


async def report_page_response(orchestrator: ReportOrchestrator, ticker: str):
    page = await orchestrator.get_page(ticker)
    if page is None:
        return error_response(404, f"No cached report for {normalise_key(ticker)}")
    filename = f"{normalise_key(ticker)}_initiation.html"
    return HTMLResponse(content=page, headers={"Content-Disposition": f'inline; filename="{filename}"'})


async def movers_response(orchestrator: ReportOrchestrator):
    result = await orchestrator.get_movers()
    if not result["data"]:
        return error_response(503, result["error"] or "Market movers unavailable")
    return result
