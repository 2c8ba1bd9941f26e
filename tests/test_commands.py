from __future__ import annotations

from datetime import timedelta
from io import StringIO
import json

from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone
import pytest

from cronsched.models import JobDefinition, Schedule, SchedulerState
from cronsched.state import LAST_SCHEDULE_GENERATE_AT, SCHEDULER_LASTRUNS

pytestmark = pytest.mark.django_db


def _run(*args, **kwargs) -> str:
    out = StringIO()
    call_command(*args, stdout=out, **kwargs)
    return out.getvalue()


def test_tick_prints_snapshot():
    JobDefinition.objects.create(job_code="every_five", schedule_expression="*/5 * * * *")

    snapshot = json.loads(_run("cronsched_tick"))

    assert snapshot["generated"] is True
    assert snapshot["created_schedules"] >= 3
    assert snapshot["skipped_schedules"] == 0
    assert Schedule.objects.filter(job_code="every_five").count() == snapshot["created_schedules"]
    assert len(SchedulerState.objects.get(key=SCHEDULER_LASTRUNS).value_json) == 1


def test_tick_loop_stops_after_run_seconds():
    out = _run("cronsched_tick", "--loop", "--interval-seconds", "30", "--run-seconds", "1")

    assert "cronsched tick loop stopped" in out
    assert '"generated": true' in out


def test_flush_future_pending_for_one_job():
    now = timezone.now()
    Schedule.objects.create(job_code="X", status=Schedule.Status.PENDING, scheduled_at=now + timedelta(minutes=5))
    Schedule.objects.create(job_code="Y", status=Schedule.Status.PENDING, scheduled_at=now + timedelta(minutes=5))

    out = _run("cronsched_flush", "--job-code", "X")

    assert "flushed=1 job_code=X" in out
    assert list(Schedule.objects.values_list("job_code", flat=True)) == ["Y"]
    assert SchedulerState.objects.get(key=LAST_SCHEDULE_GENERATE_AT).value_json == 0


def test_flush_all():
    Schedule.objects.create(job_code="X", status=Schedule.Status.SUCCESS)
    Schedule.objects.create(job_code="Y", status=Schedule.Status.RUNNING)

    out = _run("cronsched_flush", "--all")

    assert "deleted=2" in out
    assert Schedule.objects.count() == 0


def test_flush_rejects_conflicting_flags():
    with pytest.raises(CommandError):
        _run("cronsched_flush", "--all", "--job-code", "X")


def test_run_always():
    JobDefinition.objects.create(job_code="daemon", is_always=True)

    first = _run("cronsched_run_always", "daemon")
    second = _run("cronsched_run_always", "daemon")

    assert "created schedule id=" in first
    assert "not created: daemon is already running" in second
    schedule = Schedule.objects.get(job_code="daemon")
    assert schedule.status == Schedule.Status.RUNNING
    assert schedule.scheduled_reason == Schedule.Reason.ALWAYS


def test_run_always_custom_reason():
    JobDefinition.objects.create(job_code="daemon", is_always=True)

    _run("cronsched_run_always", "daemon", "--reason", Schedule.Reason.MANUAL)

    assert Schedule.objects.get(job_code="daemon").scheduled_reason == Schedule.Reason.MANUAL


def test_run_always_rejects_unknown_and_regular_jobs():
    JobDefinition.objects.create(job_code="regular", schedule_expression="* * * * *")

    with pytest.raises(CommandError):
        _run("cronsched_run_always", "missing")
    with pytest.raises(CommandError):
        _run("cronsched_run_always", "regular")
    assert Schedule.objects.count() == 0


def test_cadence_output():
    assert "not enough data points" in _run("cronsched_cadence")
    assert json.loads(_run("cronsched_cadence", "--json")) == {"available": False}

    SchedulerState.objects.create(key=SCHEDULER_LASTRUNS, value_json=[0, 60, 125, 185])

    payload = json.loads(_run("cronsched_cadence", "--json"))
    assert payload["available"] is True
    assert payload["average"] == 1.03
    assert payload["count"] == 3
    assert "count=3" in _run("cronsched_cadence")


def test_seed_sample_job():
    assert "created JobDefinition" in _run("cronsched_seed_sample_job")
    assert "updated JobDefinition" in _run("cronsched_seed_sample_job", "--disabled")
    _run("cronsched_seed_sample_job", "--job-code", "daemon", "--always")

    sample = JobDefinition.objects.get(job_code="sample_every_5_minutes")
    assert sample.schedule_expression == "*/5 * * * *"
    assert sample.is_active is False
    daemon = JobDefinition.objects.get(job_code="daemon")
    assert daemon.is_always is True
    assert daemon.schedule_expression == ""
