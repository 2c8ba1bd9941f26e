from __future__ import annotations

import logging

from django.db.models import Count

from cronsched.metrics import observe_deleted
from cronsched.models import Schedule


logger = logging.getLogger(__name__)


def delete_duplicates() -> int:
    """Keep one pending schedule per (job_code, scheduled_at); delete the rest.

    The earliest-created row of each group survives (lowest id on ties).
    Returns number of deleted rows.
    """

    groups = (
        Schedule.objects.pending()
        .values("job_code", "scheduled_at")
        .annotate(qty=Count("id"))
        .filter(qty__gt=1)
        .order_by()
    )

    deleted = 0
    for group in groups:
        ids = list(
            Schedule.objects.pending()
            .filter(job_code=group["job_code"], scheduled_at=group["scheduled_at"])
            .order_by("created_at", "id")
            .values_list("id", flat=True)
        )
        remove_ids = ids[1:]
        if not remove_ids:
            continue
        count, _ = Schedule.objects.filter(pk__in=remove_ids).delete()
        deleted += count
        logger.info(
            "removed %d duplicate pending schedule(s) job_code=%s scheduled_at=%s",
            count,
            group["job_code"],
            group["scheduled_at"],
        )

    observe_deleted(reason="duplicate", count=deleted)
    return deleted
