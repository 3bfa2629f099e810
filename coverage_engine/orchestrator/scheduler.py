"""
Coverage Desk — Market Movers Scheduler
─────────────────────────────────────────
Keeps the movers snapshot warm so /api/movers is served from cache.

  every 15 min   MOVERS REFRESH
                 ├─ Source: Alpha Vantage TOP_GAINERS_LOSERS
                 └─ Stored: portfolio-snapshot / MOVERS_<session date>

The interval matches the portfolio-snapshot TTL. Reports are never
generated on a schedule; they are only written on request.

Off unless ENABLE_SCHEDULER=true.
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coverage_engine.cache.ttl_config import TTL, CacheCategory

log = logging.getLogger("cov.scheduler")

_scheduler  = None
_is_running = False

REFRESH_S = TTL[CacheCategory.PORTFOLIO_SNAPSHOT]
GRACE_S   = 60


async def job_refresh_movers(orchestrator):
    try:
        result = await orchestrator.get_movers(force=True)
    except Exception as e:
        log.error(f"Movers refresh failed: {e}")
        return
    if result["error"]:
        log.warning(f"Movers refresh returned no data: {result['error']}")
    else:
        log.info(f"Movers refreshed ({result['key']})")


# ─────────────────────────────────────────────────────────────
# SCHEDULER CONTROL
# ─────────────────────────────────────────────────────────────

def start_scheduler(orchestrator):
    global _scheduler, _is_running
    if _is_running:
        log.warning("Scheduler already running — ignoring start call")
        return

    _scheduler = AsyncIOScheduler(timezone="UTC")
    _scheduler.add_job(
        job_refresh_movers,
        IntervalTrigger(seconds=REFRESH_S),
        args               = [orchestrator],
        id                 = "movers_refresh",
        name               = "Market movers refresh",
        max_instances      = 1,
        misfire_grace_time = GRACE_S,
        replace_existing   = True,
        next_run_time      = datetime.now(timezone.utc),
    )
    _scheduler.start()
    _is_running = True
    log.info(f"Scheduler live — movers refresh every {REFRESH_S // 60} min")


def stop_scheduler():
    global _scheduler, _is_running
    if _scheduler and _is_running:
        _scheduler.shutdown(wait=False)
        _is_running = False
        log.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    if not _scheduler or not _is_running:
        return {"running": False, "jobs": []}

    jobs = []
    for job in _scheduler.get_jobs():
        nxt = job.next_run_time
        jobs.append({
            "id":       job.id,
            "name":     job.name,
            "next_run": nxt.isoformat() if nxt else None,
        })
    return {"running": True, "job_count": len(jobs), "jobs": jobs}
