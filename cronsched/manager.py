from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
import logging
import os

from django.utils import timezone

from cronsched.activation import activate_always
from cronsched.cadence import CadenceMonitor, IntervalStats
from cronsched.conf import ScheduleManagerConfig, get_schedule_manager_config
from cronsched.duplicates import delete_duplicates
from cronsched.expressions import CronExpressionMatcher, ExpressionMatcher
from cronsched.flush import delete_all, flush_schedules
from cronsched.generator import GenerationResult, generate_schedules
from cronsched.jobs import JobSource, ModelJobSource
from cronsched.models import Schedule
from cronsched.overdue import get_pending_schedules, skip_missed_schedules
from cronsched.process_registry import ProcessRegistry, get_process_registry
from cronsched.retention import CleanupResult, cleanup
from cronsched.state import StateStore, get_state_store


def attach_log_file(path: str) -> logging.Handler | None:
    """Also write ``cronsched`` log records to ``path``. One handler per file."""

    if not path:
        return None
    target = os.path.abspath(path)
    package_logger = logging.getLogger("cronsched")
    for handler in package_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return handler
    handler = logging.FileHandler(target)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    package_logger.addHandler(handler)
    return handler


@dataclass(frozen=True)
class TickSnapshot:
    generated: bool
    created_schedules: int
    duplicates_deleted: int
    skipped_schedules: int
    cleaned_up: bool
    deleted_by_age: int
    deleted_by_count: int


class ScheduleManager:
    """Entry point for one scheduler process.

    Every collaborator (state markers, clock, job source, matcher, process
    registry, config) is injected so several managers can share one store.
    """

    def __init__(
        self,
        *,
        state: StateStore,
        jobs: JobSource,
        matcher: ExpressionMatcher,
        registry: ProcessRegistry,
        config: ScheduleManagerConfig,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.state = state
        self.jobs = jobs
        self.matcher = matcher
        self.registry = registry
        self.config = config
        self.clock = clock
        self.cadence = CadenceMonitor(state)

    @classmethod
    def from_settings(cls) -> ScheduleManager:
        config = get_schedule_manager_config()
        # CRONSCHED_LOG_FILE may come from a SchedulerSetting row.
        attach_log_file(config.log_file)
        return cls(
            state=get_state_store(),
            jobs=ModelJobSource(),
            matcher=CronExpressionMatcher(),
            registry=get_process_registry(),
            config=config,
        )

    def generate_schedules(self) -> GenerationResult:
        return generate_schedules(
            now=self.clock(),
            state=self.state,
            jobs=self.jobs,
            matcher=self.matcher,
            config=self.config,
        )

    def delete_duplicates(self) -> int:
        return delete_duplicates()

    def skip_missed_schedules(self) -> int:
        return skip_missed_schedules(now=self.clock())

    def get_pending_schedules(self, whitelist: Iterable[str] = (), blacklist: Iterable[str] = ()):
        return get_pending_schedules(now=self.clock(), whitelist=whitelist, blacklist=blacklist)

    def cleanup(self) -> CleanupResult:
        return cleanup(now=self.clock(), state=self.state, config=self.config)

    def activate_always(self, job_code: str, reason: str | None = None) -> Schedule | None:
        return activate_always(job_code, now=self.clock(), registry=self.registry, reason=reason)

    def flush_schedules(self, job_code: str | None = None) -> int:
        return flush_schedules(now=self.clock(), state=self.state, job_code=job_code)

    def delete_all(self) -> int:
        return delete_all(state=self.state)

    def log_run(self) -> None:
        self.cadence.log_invocation(self.clock().timestamp())

    def measured_cron_interval(self) -> IntervalStats | None:
        return self.cadence.measure_interval()

    def run_tick(self) -> TickSnapshot:
        """Generate, resolve pile-ups, clean history, then record the invocation.

        Errors from the store abort the tick and propagate.
        """

        generation = self.generate_schedules()
        skipped = self.skip_missed_schedules()
        cleanup_result = self.cleanup()
        self.log_run()

        return TickSnapshot(
            generated=generation.ran,
            created_schedules=generation.created,
            duplicates_deleted=generation.duplicates_deleted,
            skipped_schedules=skipped,
            cleaned_up=cleanup_result.ran,
            deleted_by_age=cleanup_result.deleted_by_age,
            deleted_by_count=cleanup_result.deleted_by_count,
        )
