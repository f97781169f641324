"""Aggregation of raw health samples into daily metrics.

All functions are pure. Sleep samples are attributed to the local calendar
date of their start timestamp, so a 23:50-06:10 session counts entirely
toward the day it started. Overlapping sleep samples on the same day are
summed independently (the overlap is counted twice).
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, tzinfo
from typing import Iterable, Mapping, Optional

from .formatting import local_date, seconds_to_hours
from .models import DailyMetrics, HealthSample, MetricKind


def sum_steps(samples: Iterable[HealthSample]) -> int:
    return int(sum(s.value for s in samples))


def sum_energy(samples: Iterable[HealthSample]) -> float:
    return float(sum(s.value for s in samples))


def average_heart_rate(samples: Iterable[HealthSample]) -> Optional[float]:
    """Arithmetic mean of the readings, or None when there are none."""
    values = [s.value for s in samples]
    if not values:
        return None
    return sum(values) / len(values)


def sleep_hours_for_day(
    samples: Iterable[HealthSample], day: date, tz: Optional[tzinfo] = None,
) -> float:
    seconds = sum(
        s.duration_seconds for s in samples if local_date(s.start, tz) == day
    )
    return seconds_to_hours(seconds)


def group_by_day(
    samples: Iterable[HealthSample], tz: Optional[tzinfo] = None,
) -> dict[date, DailyMetrics]:
    """Partition sleep samples by start date.

    Each day gets bed_time = earliest start, wake_time = latest end and
    sleep_hours = total sample duration. Keys are ordered most recent first.
    """
    by_day: dict[date, list[HealthSample]] = defaultdict(list)
    for s in samples:
        by_day[local_date(s.start, tz)].append(s)

    result = {}
    for day in sorted(by_day, reverse=True):
        day_samples = by_day[day]
        result[day] = DailyMetrics(
            date=day,
            sleep_hours=seconds_to_hours(sum(s.duration_seconds for s in day_samples)),
            bed_time=min(s.start for s in day_samples),
            wake_time=max(s.end for s in day_samples),
        )
    return result


def build_history(
    samples_by_kind: Mapping[MetricKind, Iterable[HealthSample]],
    tz: Optional[tzinfo] = None,
) -> list[DailyMetrics]:
    """Per-day metrics for the history view, most recent first.

    Kinds missing from samples_by_kind leave their fields at the defaults.
    """
    sleep_days = group_by_day(samples_by_kind.get(MetricKind.SLEEP, ()), tz)

    buckets: dict[MetricKind, dict[date, list[HealthSample]]] = {}
    for kind in (MetricKind.STEPS, MetricKind.ACTIVE_ENERGY, MetricKind.HEART_RATE):
        by_day: dict[date, list[HealthSample]] = defaultdict(list)
        for s in samples_by_kind.get(kind, ()):
            by_day[local_date(s.start, tz)].append(s)
        buckets[kind] = by_day

    days = set(sleep_days)
    for by_day in buckets.values():
        days.update(by_day)

    history = []
    for day in sorted(days, reverse=True):
        base = sleep_days.get(day, DailyMetrics(date=day))
        history.append(DailyMetrics(
            date=day,
            step_count=sum_steps(buckets[MetricKind.STEPS].get(day, ())),
            active_energy_kcal=sum_energy(buckets[MetricKind.ACTIVE_ENERGY].get(day, ())),
            sleep_hours=base.sleep_hours,
            average_heart_rate_bpm=average_heart_rate(buckets[MetricKind.HEART_RATE].get(day, ())),
            bed_time=base.bed_time,
            wake_time=base.wake_time,
        ))
    return history
