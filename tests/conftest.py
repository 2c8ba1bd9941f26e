from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cronsched.conf import ScheduleManagerConfig, reload_scheduler_settings_cache
from cronsched.expressions import CronExpressionMatcher
from cronsched.jobs import JobSpec
from cronsched.manager import ScheduleManager
from cronsched.models import Schedule

from .doubles import MemoryStateStore, ScriptedRegistry, StaticJobSource


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    reload_scheduler_settings_cache()
    yield
    reload_scheduler_settings_cache()


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 30, tzinfo=timezone.utc)


@pytest.fixture
def state() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def registry() -> ScriptedRegistry:
    return ScriptedRegistry()


@pytest.fixture
def config() -> ScheduleManagerConfig:
    return ScheduleManagerConfig(
        schedule_ahead_for_minutes=20,
        schedule_generate_every_minutes=15,
        history_cleanup_every_minutes=10,
        history_success_lifetime_minutes=60,
        history_failure_lifetime_minutes=600,
        max_successful_tasks=0,
    )


@pytest.fixture
def jobs() -> StaticJobSource:
    return StaticJobSource(
        [
            JobSpec(job_code="every_five", schedule_expression="*/5 * * * *"),
            JobSpec(job_code="always_job", is_always=True),
        ]
    )


@pytest.fixture
def manager(state, jobs, registry, config, now) -> ScheduleManager:
    return ScheduleManager(
        state=state,
        jobs=jobs,
        matcher=CronExpressionMatcher(),
        registry=registry,
        config=config,
        clock=lambda: now,
    )


@pytest.fixture
def make_schedule(now):
    def _make(
        job_code: str,
        *,
        status: str = Schedule.Status.PENDING,
        scheduled_at: datetime | None = None,
        created_at: datetime | None = None,
        executed_at: datetime | None = None,
        finished_at: datetime | None = None,
    ) -> Schedule:
        return Schedule.objects.create(
            job_code=job_code,
            status=status,
            scheduled_at=scheduled_at,
            created_at=created_at or now - timedelta(hours=1),
            executed_at=executed_at,
            finished_at=finished_at,
        )

    return _make
