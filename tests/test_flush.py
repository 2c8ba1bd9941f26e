from __future__ import annotations

from datetime import timedelta

import pytest

from cronsched.flush import delete_all, flush_schedules
from cronsched.models import Schedule
from cronsched.state import LAST_SCHEDULE_GENERATE_AT

pytestmark = pytest.mark.django_db


def test_flush_one_job_only_removes_its_future_pending(make_schedule, state, now):
    make_schedule("X", scheduled_at=now + timedelta(minutes=5))
    make_schedule("X", scheduled_at=now + timedelta(minutes=10))
    past_x = make_schedule("X", scheduled_at=now - timedelta(minutes=5))
    running_x = make_schedule("X", status=Schedule.Status.RUNNING, scheduled_at=now + timedelta(minutes=5))
    other = make_schedule("Y", scheduled_at=now + timedelta(minutes=5))

    deleted = flush_schedules(now=now, state=state, job_code="X")

    assert deleted == 2
    assert not Schedule.objects.pending().filter(job_code="X", scheduled_at__gt=now).exists()
    remaining = set(Schedule.objects.values_list("id", flat=True))
    assert remaining == {past_x.id, running_x.id, other.id}


def test_flush_without_job_code_covers_all_jobs(make_schedule, state, now):
    make_schedule("X", scheduled_at=now + timedelta(minutes=5))
    make_schedule("Y", scheduled_at=now + timedelta(minutes=5))

    assert flush_schedules(now=now, state=state) == 2
    assert Schedule.objects.count() == 0


def test_flush_forces_next_generation(manager, state, now, make_schedule):
    manager.generate_schedules()
    assert manager.generate_schedules().ran is False

    manager.flush_schedules("every_five")

    assert state.get(LAST_SCHEDULE_GENERATE_AT) == 0
    result = manager.generate_schedules()
    assert result.ran is True
    assert result.created == 3


def test_delete_all(make_schedule, state, now):
    state.set(LAST_SCHEDULE_GENERATE_AT, int(now.timestamp()))
    make_schedule("X", scheduled_at=now + timedelta(minutes=5))
    make_schedule("X", status=Schedule.Status.SUCCESS, finished_at=now)
    make_schedule("Y", status=Schedule.Status.RUNNING)

    deleted = delete_all(state=state)

    assert deleted == 3
    assert Schedule.objects.count() == 0
    assert state.get(LAST_SCHEDULE_GENERATE_AT) == 0
