from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import time

from django.db.models import F, Q

from cronsched.conf import ScheduleManagerConfig
from cronsched.metrics import observe_deleted, observe_pass_duration
from cronsched.models import Schedule
from cronsched.state import LAST_HISTORY_CLEANUP_AT, StateStore, read_timestamp


logger = logging.getLogger(__name__)


_SUCCESS_LIKE = (
    Schedule.Status.SUCCESS,
    Schedule.Status.REPEAT,
    Schedule.Status.KILLED,
    Schedule.Status.DIDNTDOANYTHING,
)

_FAILURE_LIKE = (
    Schedule.Status.ERROR,
    Schedule.Status.DIED,
    Schedule.Status.MISSED,
    Schedule.Status.DISAPPEARED,
    Schedule.Status.SKIP_PILINGUP,
    Schedule.Status.SKIP_OTHERJOBRUNNING,
)

# Only these statuses are subject to the per-job count cap.
COUNT_CAPPED_STATUSES = (Schedule.Status.SUCCESS, Schedule.Status.REPEAT)


@dataclass(frozen=True)
class CleanupResult:
    ran: bool
    deleted_by_age: int = 0
    deleted_by_count: int = 0


def history_lifetimes(config: ScheduleManagerConfig) -> dict[str, int]:
    """Terminal status -> retention in minutes."""

    lifetimes: dict[str, int] = {}
    for status in _SUCCESS_LIKE:
        lifetimes[str(status)] = int(config.history_success_lifetime_minutes)
    for status in _FAILURE_LIKE:
        lifetimes[str(status)] = int(config.history_failure_lifetime_minutes)

    terminal = set(Schedule.Status.terminal())
    for status, minutes in config.history_lifetimes.items():
        if status in terminal:
            lifetimes[status] = int(minutes)
    return lifetimes


def _older_than(cutoff: datetime) -> Q:
    # Reference time: finished_at, else executed_at, else scheduled_at.
    return (
        Q(finished_at__lt=cutoff)
        | Q(finished_at__isnull=True, executed_at__lt=cutoff)
        | Q(finished_at__isnull=True, executed_at__isnull=True, scheduled_at__lt=cutoff)
    )


def delete_expired_history(*, now: datetime, lifetimes: dict[str, int]) -> int:
    deleted = 0
    for status, minutes in lifetimes.items():
        cutoff = now - timedelta(minutes=minutes)
        count, _ = Schedule.objects.filter(status=status).filter(_older_than(cutoff)).delete()
        deleted += count
    observe_deleted(reason="history_age", count=deleted)
    return deleted


def delete_history_over_limit(*, max_per_job: int) -> int:
    if max_per_job <= 0:
        return 0

    history = (
        Schedule.objects.filter(status__in=COUNT_CAPPED_STATUSES)
        .order_by(F("finished_at").desc(nulls_last=True), "-id")
        .values_list("id", "job_code")
    )
    counter: dict[str, int] = defaultdict(int)
    remove_ids: list[int] = []
    for schedule_id, job_code in history.iterator():
        counter[job_code] += 1
        if counter[job_code] > max_per_job:
            remove_ids.append(schedule_id)

    deleted = 0
    # Chunked to stay under SQL parameter limits.
    for i in range(0, len(remove_ids), 500):
        count, _ = Schedule.objects.filter(pk__in=remove_ids[i : i + 500]).delete()
        deleted += count
    observe_deleted(reason="history_count", count=deleted)
    return deleted


def cleanup_due(*, now: datetime, state: StateStore, every_minutes: int) -> bool:
    last_cleanup = read_timestamp(state, LAST_HISTORY_CLEANUP_AT)
    return not (last_cleanup > int(now.timestamp()) - int(every_minutes) * 60)


def cleanup(*, now: datetime, state: StateStore, config: ScheduleManagerConfig) -> CleanupResult:
    """Retire terminal history by age, then cap successful runs per job."""

    if not cleanup_due(now=now, state=state, every_minutes=config.history_cleanup_every_minutes):
        return CleanupResult(ran=False)

    started = time.monotonic()

    deleted_by_age = delete_expired_history(now=now, lifetimes=history_lifetimes(config))

    state.set(LAST_HISTORY_CLEANUP_AT, int(now.timestamp()))

    deleted_by_count = delete_history_over_limit(max_per_job=int(config.max_successful_tasks))

    duration = time.monotonic() - started
    observe_pass_duration(name="cleanup", duration_seconds=duration)
    logger.info(
        "History cleanup deleted_by_age=%d deleted_by_count=%d (Duration: %.2f sec)",
        deleted_by_age,
        deleted_by_count,
        duration,
    )

    return CleanupResult(ran=True, deleted_by_age=deleted_by_age, deleted_by_count=deleted_by_count)
