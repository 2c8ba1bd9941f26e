from __future__ import annotations

from datetime import datetime
import logging

from cronsched.expressions import floor_to_minute
from cronsched.models import Schedule
from cronsched.process_registry import ProcessRegistry


logger = logging.getLogger(__name__)


def activate_always(
    job_code: str,
    *,
    now: datetime,
    registry: ProcessRegistry,
    reason: str | None = None,
) -> Schedule | None:
    """Start a fresh RUNNING schedule for an "always" job.

    Returns None without writing anything when the registry reports the job
    as already running. A new row is created on every successful call; earlier
    rows are never reused so their history stays intact.
    """

    if registry.is_running(job_code):
        logger.debug("always job %s already running; not activated", job_code)
        return None

    ts = floor_to_minute(now)
    schedule = Schedule.objects.create(
        job_code=job_code,
        status=Schedule.Status.RUNNING,
        scheduled_reason=reason or Schedule.Reason.ALWAYS,
        created_at=ts,
        scheduled_at=ts,
        executed_at=now,
    )
    logger.info("activated always job %s schedule_id=%s", job_code, schedule.id)
    return schedule
