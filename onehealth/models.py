"""Data model shared by the aggregator, fetcher and view-model."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Union


class MetricKind(str, Enum):
    """The four metric kinds shown on the dashboard.

    The value is the wire name used by the companion API.
    """

    STEPS = "steps"
    ACTIVE_ENERGY = "active_energy"
    SLEEP = "sleep"
    HEART_RATE = "heart_rate"

    @property
    def scope(self) -> str:
        """HealthKit read scope requested for this kind."""
        return _SCOPES[self]


_SCOPES = {
    MetricKind.STEPS: "HKQuantityTypeIdentifierStepCount",
    MetricKind.ACTIVE_ENERGY: "HKQuantityTypeIdentifierActiveEnergyBurned",
    MetricKind.SLEEP: "HKCategoryTypeIdentifierSleepAnalysis",
    MetricKind.HEART_RATE: "HKQuantityTypeIdentifierHeartRate",
}

READ_SCOPES = tuple(kind.scope for kind in MetricKind)


class AuthorizationState(str, Enum):
    UNKNOWN = "unknown"
    DENIED = "denied"
    GRANTED = "granted"


@dataclass(frozen=True)
class HealthSample:
    """A single measurement. end == start for instantaneous readings."""
    kind: MetricKind
    start: datetime
    end: datetime
    value: float = 0.0

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()

    @classmethod
    def from_dict(cls, kind: MetricKind, data: dict) -> HealthSample:
        start = datetime.fromisoformat(data["start"])
        end = datetime.fromisoformat(data["end"]) if data.get("end") else start
        return cls(kind=kind, start=start, end=end, value=float(data.get("value", 0.0)))


@dataclass(frozen=True)
class DailyMetrics:
    """Aggregated metrics for one calendar day.

    sleep_hours is the sum of sample durations, not wake_time - bed_time.
    """
    date: date
    step_count: int = 0
    active_energy_kcal: float = 0.0
    sleep_hours: float = 0.0
    average_heart_rate_bpm: float | None = None
    bed_time: datetime | None = None
    wake_time: datetime | None = None

    def to_dict(self) -> dict:
        return asdict(self)


# ------------------------------------------------------------------
# Query outcomes
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    kind: MetricKind
    samples: tuple[HealthSample, ...]

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: MetricKind
    error: Exception

    ok = False


QueryResult = Union[Success, Failure]
