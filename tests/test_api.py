from __future__ import annotations

from datetime import timedelta

from django.utils import timezone
import pytest

from cronsched.models import JobDefinition, Schedule, SchedulerState
from cronsched.state import SCHEDULER_LASTRUNS

pytestmark = pytest.mark.django_db

TOKEN = "s3cret"
HEADERS = {"X-Cronsched-Token": TOKEN}


@pytest.fixture(autouse=True)
def _api_token(settings):
    settings.CRONSCHED_API_TOKEN = TOKEN
    settings.CRONSCHED_METRICS_TOKEN = ""


def test_requires_token(client):
    assert client.get("/api/cadence/").status_code == 401
    assert client.get("/api/cadence/", headers={"X-Cronsched-Token": "wrong"}).status_code == 401


def test_session_auth_when_no_token_configured(client, settings, django_user_model):
    settings.CRONSCHED_API_TOKEN = ""
    assert client.get("/api/cadence/").status_code == 401

    client.force_login(django_user_model.objects.create_user(username="ops", password="pw"))
    assert client.get("/api/cadence/").status_code == 200


def test_cadence(client):
    resp = client.get("/api/cadence/", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "available": False}

    SchedulerState.objects.create(key=SCHEDULER_LASTRUNS, value_json=[0, 60, 125, 185])
    data = client.get("/api/cadence/", headers=HEADERS).json()
    assert data["available"] is True
    assert data["average"] == 1.03
    assert data["min"] == 1.0
    assert data["max"] == 1.08


def test_pending_schedules_filters(client):
    now = timezone.now()
    for code in ("a", "b", "c"):
        Schedule.objects.create(job_code=code, status=Schedule.Status.PENDING, scheduled_at=now - timedelta(minutes=1))
    Schedule.objects.create(job_code="a", status=Schedule.Status.PENDING, scheduled_at=now + timedelta(minutes=5))

    def codes(**params) -> list[str]:
        resp = client.get("/api/schedules/pending/", params, headers=HEADERS)
        assert resp.status_code == 200
        return [s["job_code"] for s in resp.json()["schedules"]]

    assert sorted(codes()) == ["a", "b", "c"]
    assert sorted(codes(whitelist=" a , b ")) == ["a", "b"]
    assert codes(blacklist="a,b") == ["c"]


def test_flush(client):
    now = timezone.now()
    Schedule.objects.create(job_code="X", status=Schedule.Status.PENDING, scheduled_at=now + timedelta(minutes=5))
    Schedule.objects.create(job_code="Y", status=Schedule.Status.PENDING, scheduled_at=now + timedelta(minutes=5))
    Schedule.objects.create(job_code="Y", status=Schedule.Status.SUCCESS)

    resp = client.post("/api/schedules/flush/", {"job_code": "X"}, content_type="application/json", headers=HEADERS)
    assert resp.json() == {"ok": True, "deleted": 1}

    resp = client.post(
        "/api/schedules/flush/", {"job_code": "Y", "all": True}, content_type="application/json", headers=HEADERS
    )
    assert resp.status_code == 400

    resp = client.post("/api/schedules/flush/", {"all": True}, content_type="application/json", headers=HEADERS)
    assert resp.json() == {"ok": True, "deleted": 2}
    assert Schedule.objects.count() == 0


@pytest.mark.parametrize("flag", [False, "false", "0", "", None])
def test_flush_false_all_flag_keeps_history(client, flag):
    now = timezone.now()
    history = Schedule.objects.create(job_code="X", status=Schedule.Status.SUCCESS, finished_at=now)
    Schedule.objects.create(job_code="X", status=Schedule.Status.PENDING, scheduled_at=now + timedelta(minutes=5))

    resp = client.post("/api/schedules/flush/", {"all": flag}, content_type="application/json", headers=HEADERS)

    assert resp.json() == {"ok": True, "deleted": 1}
    assert list(Schedule.objects.values_list("id", flat=True)) == [history.id]


def test_flush_string_true_deletes_all(client):
    Schedule.objects.create(job_code="X", status=Schedule.Status.SUCCESS)

    resp = client.post("/api/schedules/flush/", {"all": "true"}, content_type="application/json", headers=HEADERS)

    assert resp.json() == {"ok": True, "deleted": 1}
    assert Schedule.objects.count() == 0


def test_flush_requires_post(client):
    assert client.get("/api/schedules/flush/", headers=HEADERS).status_code == 405


def test_activate_always(client):
    JobDefinition.objects.create(job_code="daemon", is_always=True)
    JobDefinition.objects.create(job_code="regular", schedule_expression="* * * * *")

    resp = client.post("/api/jobs/daemon/always/", headers=HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["created"] is True
    assert body["schedule"]["status"] == Schedule.Status.RUNNING
    assert body["schedule"]["scheduled_reason"] == Schedule.Reason.ALWAYS

    resp = client.post("/api/jobs/daemon/always/", headers=HEADERS)
    assert resp.status_code == 409
    assert resp.json()["created"] is False

    assert client.post("/api/jobs/missing/always/", headers=HEADERS).status_code == 404
    assert client.post("/api/jobs/regular/always/", headers=HEADERS).status_code == 400
    assert Schedule.objects.count() == 1


def test_metrics_endpoint(client, settings):
    Schedule.objects.create(job_code="X", status=Schedule.Status.PENDING, scheduled_at=timezone.now())

    resp = client.get("/metrics/")
    assert resp.status_code == 200
    assert b"cronsched_pending_schedules" in resp.content

    settings.CRONSCHED_METRICS_TOKEN = "m"
    assert client.get("/metrics/").status_code == 401
    assert client.get("/metrics/", headers={"X-Cronsched-Token": "m"}).status_code == 200
