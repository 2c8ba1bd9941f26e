from __future__ import annotations

from datetime import datetime
import logging

from cronsched.metrics import observe_deleted
from cronsched.models import Schedule
from cronsched.state import LAST_SCHEDULE_GENERATE_AT, StateStore


logger = logging.getLogger(__name__)


def _force_regeneration(state: StateStore) -> None:
    state.set(LAST_SCHEDULE_GENERATE_AT, 0)


def flush_schedules(*, now: datetime, state: StateStore, job_code: str | None = None) -> int:
    """Delete future pending schedules (optionally for one job) and force regeneration."""

    qs = Schedule.objects.pending().filter(scheduled_at__gt=now)
    if job_code:
        qs = qs.filter(job_code=job_code)
    deleted, _ = qs.delete()

    _force_regeneration(state)
    observe_deleted(reason="flush", count=deleted)
    logger.info("flushed %d future pending schedule(s) job_code=%s", deleted, job_code or "*")
    return deleted


def delete_all(*, state: StateStore) -> int:
    deleted, _ = Schedule.objects.all().delete()

    _force_regeneration(state)
    observe_deleted(reason="delete_all", count=deleted)
    logger.info("deleted all %d schedule(s)", deleted)
    return deleted
