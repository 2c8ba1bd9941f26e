from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
import time
from typing import Any

from cronsched.state import SCHEDULER_LASTRUNS, StateStore


CADENCE_CAPACITY = 100
MIN_SAMPLES = 3


@dataclass(frozen=True)
class IntervalStats:
    """Gaps between scheduler invocations, in minutes."""

    average: float
    min: float
    max: float
    count: int
    last: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _round_minutes(seconds: float) -> float:
    minutes = Decimal(str(seconds)) / Decimal(60)
    return float(minutes.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _parse_samples(raw: Any) -> list[int]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, (list, tuple)):
        return []
    samples: list[int] = []
    for item in raw:
        try:
            samples.append(int(item))
        except (TypeError, ValueError):
            continue
    return samples


class CadenceMonitor:
    def __init__(self, state: StateStore, *, capacity: int = CADENCE_CAPACITY):
        self._state = state
        self._capacity = capacity

    def samples(self) -> list[int]:
        return _parse_samples(self._state.get(SCHEDULER_LASTRUNS))

    def log_invocation(self, now: float | None = None) -> None:
        ring = deque(self.samples(), maxlen=self._capacity)
        ring.append(int(time.time() if now is None else now))
        self._state.set(SCHEDULER_LASTRUNS, list(ring))

    def measure_interval(self) -> IntervalStats | None:
        """Return invocation gap statistics, or None with fewer than 3 samples."""

        samples = self.samples()
        if len(samples) < MIN_SAMPLES:
            return None
        gaps = [b - a for a, b in zip(samples, samples[1:])]
        return IntervalStats(
            average=_round_minutes(sum(gaps) / len(gaps)),
            min=_round_minutes(min(gaps)),
            max=_round_minutes(max(gaps)),
            count=len(gaps),
            last=samples[-1],
        )
