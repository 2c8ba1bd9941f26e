from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import redis

from cronsched.models import Schedule


class ProcessRegistry(Protocol):
    def is_running(self, job_code: str) -> bool: ...


class DatabaseProcessRegistry:
    """A job is running when any of its schedules is in RUNNING state."""

    def is_running(self, job_code: str) -> bool:
        return Schedule.objects.filter(job_code=job_code, status=Schedule.Status.RUNNING).exists()


def _job_token(job_code: str) -> str:
    # Percent-encoded, so no ":" or glob characters survive in the key.
    return quote(job_code, safe="")


def _k_running(prefix: str, job_code: str, schedule_id: int) -> str:
    return f"{prefix}:running:{_job_token(job_code)}:{schedule_id}"


class RedisProcessRegistry:
    """Runners keep a heartbeat key per executing schedule; expiry means it died."""

    def __init__(
        self,
        *,
        redis_url: str = "",
        client: Any = None,
        prefix: str = "cronsched",
        heartbeat_ttl_seconds: int = 60,
    ):
        if client is None:
            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._redis = client
        self._prefix = prefix
        self._heartbeat_ttl_seconds = heartbeat_ttl_seconds

    def mark_running(self, job_code: str, schedule_id: int, *, now: float) -> None:
        self._redis.set(
            _k_running(self._prefix, job_code, schedule_id),
            str(now),
            ex=self._heartbeat_ttl_seconds,
        )

    # Heartbeats simply refresh the same key.
    heartbeat = mark_running

    def mark_stopped(self, job_code: str, schedule_id: int) -> None:
        self._redis.delete(_k_running(self._prefix, job_code, schedule_id))

    def is_running(self, job_code: str) -> bool:
        pattern = f"{self._prefix}:running:{_job_token(job_code)}:*"
        for _ in self._redis.scan_iter(match=pattern):
            return True
        return False


def get_process_registry(*, backend: str = "", redis_url: str = "") -> ProcessRegistry:
    from cronsched.conf import get_str

    backend = (backend or get_str(key="CRONSCHED_PROCESS_REGISTRY", default="db")).strip().lower()
    if backend == "redis":
        return RedisProcessRegistry(redis_url=redis_url or get_str(key="CRONSCHED_REDIS_URL"))
    return DatabaseProcessRegistry()
