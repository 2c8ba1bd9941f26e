from __future__ import annotations

from dataclasses import dataclass, field
import json
import threading
from typing import Any

from django.conf import settings


_settings_cache_lock = threading.Lock()
_settings_cache: dict[str, Any] | None = None
_settings_cache_generation: int = 0


def _normalize_setting_value(value_json: Any) -> Any:
    # Prefer {"value": ...} wrapper; primitives stored directly are accepted too.
    if isinstance(value_json, dict) and "value" in value_json and len(value_json) == 1:
        return value_json.get("value")
    return value_json


def _load_settings_overrides_from_db() -> dict[str, Any]:
    try:
        from cronsched.models import SchedulerSetting

        rows = SchedulerSetting.objects.all().only("key", "value_json")
        return {str(r.key): _normalize_setting_value(r.value_json) for r in rows}
    except Exception:
        # Tables may not exist yet (before migrate).
        return {}


def reload_scheduler_settings_cache() -> int:
    """Clear cached SchedulerSetting overrides.

    Returns new cache generation.
    """

    global _settings_cache, _settings_cache_generation
    with _settings_cache_lock:
        _settings_cache = None
        _settings_cache_generation += 1
        return int(_settings_cache_generation)


def _get_db_overrides(*, fresh: bool = False) -> dict[str, Any]:
    global _settings_cache
    if fresh:
        return _load_settings_overrides_from_db()
    with _settings_cache_lock:
        if _settings_cache is None:
            _settings_cache = _load_settings_overrides_from_db()
        return dict(_settings_cache)


def get_setting(*, key: str, default: Any = None, fresh: bool = False) -> Any:
    db = _get_db_overrides(fresh=fresh)
    if key in db:
        return db[key]
    if hasattr(settings, key):
        return getattr(settings, key)
    return default


def get_str(*, key: str, default: str = "", fresh: bool = False) -> str:
    v = get_setting(key=key, default=default, fresh=fresh)
    return str(v) if v is not None else str(default)


def get_int(*, key: str, default: int = 0, fresh: bool = False) -> int:
    v = get_setting(key=key, default=default, fresh=fresh)
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(int(value))
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(default) if value is None else False


def get_json_dict(*, key: str, fresh: bool = False) -> dict[str, Any]:
    v = get_setting(key=key, default={}, fresh=fresh)
    if isinstance(v, str):
        try:
            v = json.loads(v) if v.strip() else {}
        except ValueError:
            return {}
    return dict(v) if isinstance(v, dict) else {}


@dataclass(frozen=True)
class ScheduleManagerConfig:
    schedule_ahead_for_minutes: int = 20
    schedule_generate_every_minutes: int = 15
    history_cleanup_every_minutes: int = 10
    history_success_lifetime_minutes: int = 60
    history_failure_lifetime_minutes: int = 600
    # status value -> minutes; overrides the success/failure defaults.
    history_lifetimes: dict[str, int] = field(default_factory=dict)
    max_successful_tasks: int = 0
    log_file: str = ""


def _int_lifetimes(raw: dict[str, Any]) -> dict[str, int]:
    out: dict[str, int] = {}
    for status, minutes in raw.items():
        try:
            out[str(status)] = int(minutes)
        except (TypeError, ValueError):
            continue
    return out


def get_schedule_manager_config(*, fresh: bool = False) -> ScheduleManagerConfig:
    return ScheduleManagerConfig(
        schedule_ahead_for_minutes=get_int(key="CRONSCHED_SCHEDULE_AHEAD_FOR", default=20, fresh=fresh),
        schedule_generate_every_minutes=get_int(key="CRONSCHED_SCHEDULE_GENERATE_EVERY", default=15, fresh=fresh),
        history_cleanup_every_minutes=get_int(key="CRONSCHED_HISTORY_CLEANUP_EVERY", default=10, fresh=fresh),
        history_success_lifetime_minutes=get_int(key="CRONSCHED_HISTORY_SUCCESS_LIFETIME", default=60, fresh=fresh),
        history_failure_lifetime_minutes=get_int(key="CRONSCHED_HISTORY_FAILURE_LIFETIME", default=600, fresh=fresh),
        history_lifetimes=_int_lifetimes(get_json_dict(key="CRONSCHED_HISTORY_LIFETIMES", fresh=fresh)),
        max_successful_tasks=get_int(key="CRONSCHED_MAX_SUCCESSFUL_TASKS", default=0, fresh=fresh),
        log_file=get_str(key="CRONSCHED_LOG_FILE", fresh=fresh),
    )
