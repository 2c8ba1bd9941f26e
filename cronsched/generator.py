from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import time

from cronsched.conf import ScheduleManagerConfig
from cronsched.duplicates import delete_duplicates
from cronsched.expressions import ExpressionMatcher, floor_to_minute
from cronsched.jobs import JobSource, JobSpec
from cronsched.metrics import observe_generated, observe_pass_duration
from cronsched.models import Schedule
from cronsched.state import LAST_SCHEDULE_GENERATE_AT, StateStore, read_timestamp


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    ran: bool
    created: int = 0
    duplicates_deleted: int = 0


def can_be_scheduled(job: JobSpec, matcher: ExpressionMatcher) -> bool:
    if not job.is_active or job.is_always:
        return False
    return matcher.is_valid(job.schedule_expression)


def _iter_lookahead_slots(now: datetime, ahead_minutes: int):
    # Every whole minute strictly after now+1min and before now+ahead.
    for k in range(1, max(0, int(ahead_minutes))):
        yield floor_to_minute(now + timedelta(minutes=k))


def generate_schedules_for_job(
    job: JobSpec,
    *,
    now: datetime,
    matcher: ExpressionMatcher,
    ahead_minutes: int,
    exists: set[tuple[str, datetime]],
) -> int:
    """Insert missing pending schedules for one job. Returns rows created."""

    if not can_be_scheduled(job, matcher):
        return 0

    rows = []
    for slot in _iter_lookahead_slots(now, ahead_minutes):
        key = (job.job_code, slot)
        if key in exists:
            continue
        if not matcher.matches(job.schedule_expression, slot):
            continue
        rows.append(
            Schedule(
                job_code=job.job_code,
                status=Schedule.Status.PENDING,
                scheduled_reason=Schedule.Reason.GENERATED,
                created_at=now,
                scheduled_at=slot,
            )
        )
        exists.add(key)

    if rows:
        Schedule.objects.bulk_create(rows)
        observe_generated(job_code=job.job_code, count=len(rows))
    return len(rows)


def generation_due(*, now: datetime, state: StateStore, every_minutes: int) -> bool:
    last_run = read_timestamp(state, LAST_SCHEDULE_GENERATE_AT)
    return not (last_run > int(now.timestamp()) - int(every_minutes) * 60)


def generate_schedules(
    *,
    now: datetime,
    state: StateStore,
    jobs: JobSource,
    matcher: ExpressionMatcher,
    config: ScheduleManagerConfig,
) -> GenerationResult:
    """Pre-generate pending schedules for the lookahead window.

    Throttled by ``schedule_generate_every_minutes`` through the persisted
    last-generation marker. Runs the duplicate purge afterwards.
    """

    if not generation_due(now=now, state=state, every_minutes=config.schedule_generate_every_minutes):
        return GenerationResult(ran=False)

    started = time.monotonic()

    exists = {
        (job_code, scheduled_at)
        for job_code, scheduled_at in Schedule.objects.pending().values_list("job_code", "scheduled_at")
    }

    created = 0
    for job in jobs.list_jobs():
        created += generate_schedules_for_job(
            job,
            now=now,
            matcher=matcher,
            ahead_minutes=config.schedule_ahead_for_minutes,
            exists=exists,
        )

    state.set(LAST_SCHEDULE_GENERATE_AT, int(now.timestamp()))

    duplicates_deleted = delete_duplicates()

    duration = time.monotonic() - started
    observe_pass_duration(name="generate", duration_seconds=duration)
    newest = (
        Schedule.objects.filter(scheduled_at__isnull=False)
        .order_by("-scheduled_at")
        .values_list("scheduled_at", flat=True)
        .first()
    )
    logger.info(
        'Generated schedule. Newest task is scheduled at "%s". (Duration: %.2f sec)',
        newest.isoformat() if newest else "",
        duration,
    )

    return GenerationResult(ran=True, created=created, duplicates_deleted=duplicates_deleted)
