from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from cronsched.models import JobDefinition


@dataclass(frozen=True)
class JobSpec:
    job_code: str
    schedule_expression: str = ""
    is_active: bool = True
    is_always: bool = False


class JobSource(Protocol):
    def list_jobs(self) -> Iterable[JobSpec]: ...


class ModelJobSource:
    """Active job definitions from the ``cron_job_definitions`` table."""

    def list_jobs(self) -> list[JobSpec]:
        rows = JobDefinition.objects.filter(is_active=True).only(
            "job_code",
            "schedule_expression",
            "is_active",
            "is_always",
        )
        return [
            JobSpec(
                job_code=row.job_code,
                schedule_expression=row.schedule_expression or "",
                is_active=bool(row.is_active),
                is_always=bool(row.is_always),
            )
            for row in rows.order_by("job_code")
        ]
