"""Trigger endpoints for the external daily scheduler.

The job itself runs elsewhere on a timer (Cloud Scheduler, cron, ...) and
calls POST /cron/daily-meeting. ENABLE_CRON_JOBS=false turns the trigger
into a no-op without touching the scheduler.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends

from src.clubmeet.api.deps import get_daily_job, require_admin
from src.clubmeet.config import get_settings

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_admin)])


@router.get("/status")
async def cron_status() -> dict:
    """Report whether scheduled triggers are enabled."""
    return {
        "enabled": get_settings().ENABLE_CRON_JOBS,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/daily-meeting")
async def trigger_daily_meeting(
    meeting_date: date | None = None,
    job: Any = Depends(get_daily_job),
) -> dict:
    """Run the daily meeting job for ``meeting_date`` (default today).

    Returns ``{"status": "skipped"}`` when cron jobs are disabled.
    """
    if not get_settings().ENABLE_CRON_JOBS:
        logger.info("cron.daily_meeting_skipped", reason="disabled")
        return {"status": "skipped", "reason": "Cron jobs are disabled"}

    result = await job.run(meeting_date)
    return {"status": "ok", "result": result.model_dump(mode="json")}
