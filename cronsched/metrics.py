from __future__ import annotations

from dataclasses import dataclass
import time

from django.http import HttpResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from cronsched.conf import get_str


@dataclass(frozen=True)
class _Metrics:
    schedules_generated_total: Counter
    schedules_skipped_total: Counter
    schedules_deleted_total: Counter
    pass_duration_seconds: Histogram
    pending_schedules: Gauge
    cron_interval_average_minutes: Gauge


def _build_metrics() -> _Metrics:
    return _Metrics(
        schedules_generated_total=Counter(
            "cronsched_schedules_generated_total",
            "Number of pending schedules created by schedule generation",
            labelnames=["job_code"],
        ),
        schedules_skipped_total=Counter(
            "cronsched_schedules_skipped_total",
            "Number of pending schedules moved to a skip status",
            labelnames=["status"],
        ),
        schedules_deleted_total=Counter(
            "cronsched_schedules_deleted_total",
            "Number of schedules deleted, by cause",
            labelnames=["reason"],
        ),
        pass_duration_seconds=Histogram(
            "cronsched_pass_duration_seconds",
            "Duration of scheduler passes in seconds",
            labelnames=["pass"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
        ),
        pending_schedules=Gauge(
            "cronsched_pending_schedules",
            "Number of pending schedules (from DB)",
        ),
        cron_interval_average_minutes=Gauge(
            "cronsched_cron_interval_average_minutes",
            "Average measured gap between scheduler invocations (minutes)",
        ),
    )


METRICS = _build_metrics()


_SYNC_CACHE: dict[str, float] = {"ts": 0.0}


def observe_generated(*, job_code: str, count: int = 1) -> None:
    if count > 0:
        METRICS.schedules_generated_total.labels(job_code=str(job_code or "")).inc(count)


def observe_skipped(*, status: str, count: int = 1) -> None:
    if count > 0:
        METRICS.schedules_skipped_total.labels(status=str(status)).inc(count)


def observe_deleted(*, reason: str, count: int) -> None:
    if count > 0:
        METRICS.schedules_deleted_total.labels(reason=str(reason)).inc(count)


def observe_pass_duration(*, name: str, duration_seconds: float) -> None:
    METRICS.pass_duration_seconds.labels(**{"pass": name}).observe(max(0.0, float(duration_seconds)))


def _sync_metrics_from_db() -> None:
    """Refresh gauges from DB/state. Throttled to once every 5 seconds."""

    now = time.time()
    if (now - _SYNC_CACHE["ts"]) < 5.0:
        return
    _SYNC_CACHE["ts"] = now

    from cronsched.cadence import CadenceMonitor
    from cronsched.models import Schedule
    from cronsched.state import get_state_store

    METRICS.pending_schedules.set(float(Schedule.objects.pending().count()))

    stats = CadenceMonitor(get_state_store()).measure_interval()
    if stats is not None:
        METRICS.cron_interval_average_minutes.set(stats.average)


def _metrics_token_ok(request) -> bool:
    required = get_str(key="CRONSCHED_METRICS_TOKEN", default="", fresh=True).strip()
    if not required:
        return True
    got = (request.headers.get("X-Cronsched-Token") or "").strip()
    return got == required


def metrics_view(request):
    if not _metrics_token_ok(request):
        return HttpResponse("unauthorized", status=401, content_type="text/plain; charset=utf-8")

    _sync_metrics_from_db()

    body = generate_latest()
    return HttpResponse(body, content_type=CONTENT_TYPE_LATEST)
