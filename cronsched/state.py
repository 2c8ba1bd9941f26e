from __future__ import annotations

import json
from typing import Any, Protocol

import redis

from cronsched.models import SchedulerState


LAST_SCHEDULE_GENERATE_AT = "cron_last_schedule_generate_at"
LAST_HISTORY_CLEANUP_AT = "cron_last_history_cleanup_at"
SCHEDULER_LASTRUNS = "cron_lastruns"


class StateStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class DatabaseStateStore:
    """Key-value markers stored in the ``cron_state`` table."""

    def get(self, key: str) -> Any:
        row = SchedulerState.objects.filter(key=key).only("value_json").first()
        return row.value_json if row is not None else None

    def set(self, key: str, value: Any) -> None:
        SchedulerState.objects.update_or_create(key=key, defaults={"value_json": value})


def _k_state(prefix: str, key: str) -> str:
    return f"{prefix}:state:{key}"


class RedisStateStore:
    """Key-value markers stored as plain Redis strings (JSON, no TTL)."""

    def __init__(self, *, redis_url: str = "", client: Any = None, prefix: str = "cronsched"):
        if client is None:
            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._redis = client
        self._prefix = prefix

    def get(self, key: str) -> Any:
        raw = self._redis.get(_k_state(self._prefix, key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    def set(self, key: str, value: Any) -> None:
        self._redis.set(_k_state(self._prefix, key), json.dumps(value))


def read_timestamp(state: StateStore, key: str) -> int:
    """Return the epoch-seconds marker under ``key`` (0 when missing or garbled)."""

    raw = state.get(key)
    try:
        return int(raw or 0)
    except (TypeError, ValueError):
        return 0


def get_state_store(*, backend: str = "", redis_url: str = "") -> StateStore:
    from cronsched.conf import get_str

    backend = (backend or get_str(key="CRONSCHED_STATE_BACKEND", default="db")).strip().lower()
    if backend == "redis":
        return RedisStateStore(redis_url=redis_url or get_str(key="CRONSCHED_REDIS_URL"))
    return DatabaseStateStore()
