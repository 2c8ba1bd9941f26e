from __future__ import annotations

import json
from typing import Any

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from cronsched.conf import as_bool, get_str
from cronsched.manager import ScheduleManager
from cronsched.models import JobDefinition, Schedule


def _get_client_token(request) -> str:
    return (request.headers.get("X-Cronsched-Token") or "").strip()


def _is_authenticated(request) -> bool:
    # Token can be overridden via SchedulerSetting (DB). Read fresh to avoid stale auth decisions.
    token_required = get_str(key="CRONSCHED_API_TOKEN", default="", fresh=True).strip()
    if token_required:
        return _get_client_token(request) == token_required
    return bool(getattr(request, "user", None) and request.user.is_authenticated)


def _unauthorized() -> JsonResponse:
    return JsonResponse({"ok": False, "errors": ["unauthorized"]}, status=401)


def _safe_body_json(request) -> dict[str, Any]:
    try:
        raw = request.body.decode("utf-8") if request.body else ""
        if not raw:
            return {}
        data = json.loads(raw)
        return data if isinstance(data, dict) else {}
    except (UnicodeDecodeError, ValueError):
        return {}


def _schedule_json(schedule: Schedule) -> dict[str, Any]:
    return {
        "id": schedule.id,
        "job_code": schedule.job_code,
        "status": schedule.status,
        "scheduled_reason": schedule.scheduled_reason,
        "created_at": schedule.created_at.isoformat() if schedule.created_at else None,
        "scheduled_at": schedule.scheduled_at.isoformat() if schedule.scheduled_at else None,
    }


def _split_codes(raw: str | None) -> list[str]:
    return [c.strip() for c in (raw or "").split(",") if c.strip()]


@require_GET
def cadence(request):
    if not _is_authenticated(request):
        return _unauthorized()

    stats = ScheduleManager.from_settings().measured_cron_interval()
    if stats is None:
        return JsonResponse({"ok": True, "available": False})
    return JsonResponse({"ok": True, "available": True, **stats.as_dict()})


@require_GET
def pending_schedules(request):
    if not _is_authenticated(request):
        return _unauthorized()

    manager = ScheduleManager.from_settings()
    qs = manager.get_pending_schedules(
        whitelist=_split_codes(request.GET.get("whitelist")),
        blacklist=_split_codes(request.GET.get("blacklist")),
    )
    return JsonResponse({"ok": True, "schedules": [_schedule_json(s) for s in qs[:500]]})


@csrf_exempt
@require_POST
def flush(request):
    if not _is_authenticated(request):
        return _unauthorized()

    data = _safe_body_json(request)
    job_code = str(data.get("job_code") or "").strip() or None
    delete_everything = as_bool(data.get("all"))
    if delete_everything and job_code:
        return JsonResponse({"ok": False, "errors": ["job_code and all are mutually exclusive"]}, status=400)

    manager = ScheduleManager.from_settings()
    if delete_everything:
        deleted = manager.delete_all()
    else:
        deleted = manager.flush_schedules(job_code)
    return JsonResponse({"ok": True, "deleted": deleted})


@csrf_exempt
@require_POST
def activate_always(request, job_code: str):
    if not _is_authenticated(request):
        return _unauthorized()

    job = JobDefinition.objects.filter(job_code=job_code).only("is_always").first()
    if job is None:
        return JsonResponse({"ok": False, "errors": ["unknown job_code"]}, status=404)
    if not job.is_always:
        return JsonResponse({"ok": False, "errors": ["job is not an always job"]}, status=400)

    data = _safe_body_json(request)
    reason = str(data.get("reason") or "").strip() or None

    schedule = ScheduleManager.from_settings().activate_always(job_code, reason=reason)
    if schedule is None:
        return JsonResponse({"ok": False, "created": False, "errors": ["job is already running"]}, status=409)
    return JsonResponse({"ok": True, "created": True, "schedule": _schedule_json(schedule)})
