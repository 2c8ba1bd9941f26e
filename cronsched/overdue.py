from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
import logging

from django.db import transaction

from cronsched.metrics import observe_skipped
from cronsched.models import Schedule


logger = logging.getLogger(__name__)


PILING_UP_MESSAGE = (
    "Multiple tasks with the same job code were piling up. Skipping execution of duplicates."
)


def _clean_codes(codes: Iterable[str]) -> list[str]:
    return [c for c in (str(x).strip() for x in codes or ()) if c]


def get_pending_schedules(
    *,
    now: datetime,
    whitelist: Iterable[str] = (),
    blacklist: Iterable[str] = (),
):
    """Overdue pending schedules in arrival order.

    This is a snapshot: claim each row with ``Schedule.objects.try_claim``
    before acting on it.
    """

    qs = Schedule.objects.pending().filter(scheduled_at__lt=now).order_by("scheduled_at", "id")

    allowed = _clean_codes(whitelist)
    if allowed:
        qs = qs.filter(job_code__in=allowed)

    denied = _clean_codes(blacklist)
    if denied:
        qs = qs.exclude(job_code__in=denied)

    return qs


def skip_missed_schedules(*, now: datetime) -> int:
    """Mark older overdue duplicates of a job as skipped.

    Walks overdue pending schedules newest first. The newest one per job_code
    stays pending; every older one is moved to SKIP_PILINGUP, but only if it
    is still pending at write time. Returns number of rows skipped.
    """

    skipped = 0
    with transaction.atomic():
        overdue = (
            Schedule.objects.pending()
            .filter(scheduled_at__lt=now)
            .order_by("-scheduled_at", "-id")
            .only("id", "job_code")
        )
        seen_jobs: set[str] = set()
        for schedule in overdue:
            if schedule.job_code not in seen_jobs:
                seen_jobs.add(schedule.job_code)
                continue
            updated = Schedule.objects.try_set_status(
                schedule.id,
                expected=Schedule.Status.PENDING,
                new=Schedule.Status.SKIP_PILINGUP,
                messages=PILING_UP_MESSAGE,
            )
            if updated:
                skipped += 1
            else:
                # Claimed or resolved by another process meanwhile.
                logger.debug("schedule %s no longer pending; left alone", schedule.id)

    if skipped:
        logger.info("skipped %d piled-up schedule(s)", skipped)
    observe_skipped(status=Schedule.Status.SKIP_PILINGUP, count=skipped)
    return skipped
