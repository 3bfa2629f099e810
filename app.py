import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from coverage_engine import __version__, config
from coverage_engine.api.report_endpoint import (
    cached_report_response, generate_report_response, movers_response, report_page_response,
)
from coverage_engine.cache import TieredCache, build_cache
from coverage_engine.llm import MemoGenerator
from coverage_engine.orchestrator.report_orchestrator import ReportOrchestrator
from coverage_engine.orchestrator.scheduler import get_scheduler_status, start_scheduler, stop_scheduler

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

cache: Optional[TieredCache] = None
orchestrator: Optional[ReportOrchestrator] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global cache, orchestrator
    cache = build_cache()
    await cache.ensure_all()
    generator = MemoGenerator()
    if not generator.enabled:
        log.warning("ANTHROPIC_API_KEY not set - report generation will fail")
    orchestrator = ReportOrchestrator(cache, generator)
    if config.ENABLE_SCHEDULER:
        start_scheduler(orchestrator)
    yield
    stop_scheduler()
    await cache.close()


app = FastAPI(
    title="Coverage Desk",
    description="Initiation-of-coverage memos: research, generation, cached styled HTML.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ReportRequest(BaseModel):
    ticker: Optional[str] = None
    forceRefresh: bool = False


@app.get("/")
async def root():
    return {"status": "ok", "docs": "/docs", "api": "/api/generate-report"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "cache": orchestrator.cache.status() if orchestrator else None,
        "scheduler": get_scheduler_status(),
        "timestamp": int(time.time()),
    }


@app.post("/api/generate-report", tags=["Reports"])
async def generate_report(request: ReportRequest):
    return await generate_report_response(orchestrator, request.ticker, request.forceRefresh)


@app.get("/api/report/{ticker}", tags=["Reports"])
async def get_report(ticker: str):
    return await cached_report_response(orchestrator, ticker)


@app.get("/api/report/{ticker}/html", tags=["Reports"])
async def get_report_html(ticker: str):
    return await report_page_response(orchestrator, ticker)


@app.get("/api/movers", tags=["Market"])
async def get_movers():
    return await movers_response(orchestrator)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=config.PORT, reload=False, log_level="info")
