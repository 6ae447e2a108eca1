"""APScheduler integration.

The server runs the SSE heartbeat on an interval job; the CLI memory agent
runs periodic memory syncs the same way.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

HEARTBEAT_JOB_ID = "event_hub_heartbeat"
MEMORY_SYNC_JOB_ID = "memory_sync"


def build_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler()


def add_heartbeat_job(scheduler: AsyncIOScheduler, hub, interval_seconds: int):
    """Add or replace the job that pings every stream subscriber."""
    scheduler.add_job(
        hub.heartbeat,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=HEARTBEAT_JOB_ID,
        name="SSE heartbeat",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=interval_seconds,
    )
    logger.info(f"Scheduled SSE heartbeat every {interval_seconds}s")


def add_memory_sync_job(scheduler: AsyncIOScheduler, client, interval_seconds: int):
    """Add or replace the periodic push of the local memory replica."""
    scheduler.add_job(
        client.sync_to_shared,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=MEMORY_SYNC_JOB_ID,
        name="Memory sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )
    logger.info(f"Scheduled memory sync every {interval_seconds}s")


def stop_scheduler(scheduler: AsyncIOScheduler):
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def get_scheduler_status(scheduler: AsyncIOScheduler) -> dict:
    """Return current scheduler state for the API."""
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "job_count": len(jobs),
        "jobs": [
            {
                "id": j.id,
                "name": j.name,
                "next_run": str(j.next_run_time) if j.next_run_time else None,
                "trigger": str(j.trigger),
            }
            for j in jobs
        ],
    }
