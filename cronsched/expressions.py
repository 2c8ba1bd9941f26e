from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Protocol

from croniter import croniter
from django.utils import timezone


class ExpressionMatcher(Protocol):
    def is_valid(self, expression: str) -> bool: ...

    def matches(self, expression: str, dt: datetime) -> bool: ...


def floor_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


@lru_cache(maxsize=1024)
def _is_valid_cron(expression: str) -> bool:
    return bool(expression) and bool(croniter.is_valid(expression))


class CronExpressionMatcher:
    """Five-field cron expressions evaluated in the current Django time zone."""

    def is_valid(self, expression: str) -> bool:
        return _is_valid_cron((expression or "").strip())

    def matches(self, expression: str, dt: datetime) -> bool:
        if not self.is_valid(expression):
            return False
        if timezone.is_aware(dt):
            dt = timezone.localtime(dt)
        return bool(croniter.match(expression.strip(), floor_to_minute(dt)))
