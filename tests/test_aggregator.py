from datetime import date, datetime, timedelta, timezone

import pytest

from onehealth.aggregator import (
    average_heart_rate,
    build_history,
    group_by_day,
    sleep_hours_for_day,
    sum_energy,
    sum_steps,
)
from onehealth.models import MetricKind

from conftest import sample


def sleep(start, end):
    return sample(MetricKind.SLEEP, start, end)


class TestSums:
    def test_sum_steps(self):
        samples = [sample(MetricKind.STEPS, datetime(2024, 3, 1, h), value=v)
                   for h, v in [(8, 1200), (12, 850), (18, 300)]]
        assert sum_steps(samples) == 2350

    def test_sum_steps_truncates(self):
        samples = [sample(MetricKind.STEPS, datetime(2024, 3, 1, 8), value=10.6),
                   sample(MetricKind.STEPS, datetime(2024, 3, 1, 9), value=0.3)]
        assert sum_steps(samples) == 10

    def test_sum_steps_empty(self):
        assert sum_steps([]) == 0

    def test_sum_energy(self):
        samples = [sample(MetricKind.ACTIVE_ENERGY, datetime(2024, 3, 1, 8), value=120.5),
                   sample(MetricKind.ACTIVE_ENERGY, datetime(2024, 3, 1, 9), value=80.25)]
        assert sum_energy(samples) == pytest.approx(200.75)


class TestAverageHeartRate:
    def test_mean(self):
        samples = [sample(MetricKind.HEART_RATE, datetime(2024, 3, 1, h), value=v)
                   for h, v in [(8, 60), (9, 70), (10, 80)]]
        assert average_heart_rate(samples) == pytest.approx(70.0)

    def test_empty_is_none(self):
        assert average_heart_rate([]) is None

    def test_accepts_generator(self):
        gen = (sample(MetricKind.HEART_RATE, datetime(2024, 3, 1, 8), value=v) for v in [50, 70])
        assert average_heart_rate(gen) == pytest.approx(60.0)


class TestSleepHours:
    def test_consecutive_samples(self):
        samples = [
            sleep(datetime(2024, 3, 1, 22), datetime(2024, 3, 1, 23)),
            sleep(datetime(2024, 3, 1, 23), datetime(2024, 3, 2, 6)),
        ]
        assert sleep_hours_for_day(samples, date(2024, 3, 1)) == pytest.approx(8.0)

    def test_overlap_is_double_counted(self):
        samples = [
            sleep(datetime(2024, 3, 2, 0, 30), datetime(2024, 3, 2, 4, 30)),
            sleep(datetime(2024, 3, 2, 3, 30), datetime(2024, 3, 2, 8, 30)),
        ]
        assert sleep_hours_for_day(samples, date(2024, 3, 2)) == pytest.approx(9.0)

    def test_attributed_to_start_day(self):
        samples = [sleep(datetime(2024, 3, 1, 23, 50), datetime(2024, 3, 2, 6, 10))]
        assert sleep_hours_for_day(samples, date(2024, 3, 1)) == pytest.approx(6 + 20 / 60)
        assert sleep_hours_for_day(samples, date(2024, 3, 2)) == 0.0

    def test_gap_not_counted(self):
        samples = [
            sleep(datetime(2024, 3, 2, 1), datetime(2024, 3, 2, 3)),
            sleep(datetime(2024, 3, 2, 4), datetime(2024, 3, 2, 6)),
        ]
        assert sleep_hours_for_day(samples, date(2024, 3, 2)) == pytest.approx(4.0)

    def test_no_samples(self):
        assert sleep_hours_for_day([], date(2024, 3, 2)) == 0.0

    def test_aware_timestamps_use_given_zone(self):
        pacific = timezone(timedelta(hours=-8))
        start = datetime(2024, 3, 1, 23, 30, tzinfo=pacific)
        samples = [sleep(start, start + timedelta(hours=2))]
        assert sleep_hours_for_day(samples, date(2024, 3, 1), tz=pacific) == pytest.approx(2.0)
        assert sleep_hours_for_day(samples, date(2024, 3, 2), tz=timezone.utc) == pytest.approx(2.0)


class TestGroupByDay:
    def test_bed_and_wake_time(self):
        samples = [
            sleep(datetime(2024, 3, 1, 22), datetime(2024, 3, 1, 23)),
            sleep(datetime(2024, 3, 1, 23), datetime(2024, 3, 2, 6)),
        ]
        day = group_by_day(samples)[date(2024, 3, 1)]
        assert day.sleep_hours == pytest.approx(8.0)
        assert day.bed_time == datetime(2024, 3, 1, 22)
        assert day.wake_time == datetime(2024, 3, 2, 6)

    def test_sleep_hours_ignores_gaps_between_bed_and_wake(self):
        samples = [
            sleep(datetime(2024, 3, 1, 1), datetime(2024, 3, 1, 2)),
            sleep(datetime(2024, 3, 1, 5), datetime(2024, 3, 1, 7)),
        ]
        day = group_by_day(samples)[date(2024, 3, 1)]
        assert day.sleep_hours == pytest.approx(3.0)
        assert (day.wake_time - day.bed_time) == timedelta(hours=6)

    def test_partitions_by_start_date(self):
        samples = [
            sleep(datetime(2024, 3, d, h), datetime(2024, 3, d, h) + timedelta(hours=1))
            for d in (1, 2, 3) for h in (1, 23)
        ]
        grouped = group_by_day(samples)
        assert set(grouped) == {date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)}
        total = sum(d.sleep_hours for d in grouped.values())
        assert total == pytest.approx(len(samples) * 1.0)

    def test_ordered_most_recent_first(self):
        samples = [
            sleep(datetime(2024, 3, 2, 1), datetime(2024, 3, 2, 2)),
            sleep(datetime(2024, 3, 5, 1), datetime(2024, 3, 5, 2)),
            sleep(datetime(2024, 3, 3, 1), datetime(2024, 3, 3, 2)),
        ]
        assert list(group_by_day(samples)) == [date(2024, 3, 5), date(2024, 3, 3), date(2024, 3, 2)]

    def test_empty(self):
        assert group_by_day([]) == {}


class TestBuildHistory:
    def test_merges_kinds_per_day(self):
        history = build_history({
            MetricKind.SLEEP: [sleep(datetime(2024, 3, 1, 23), datetime(2024, 3, 2, 6))],
            MetricKind.STEPS: [
                sample(MetricKind.STEPS, datetime(2024, 3, 1, 9), value=4000),
                sample(MetricKind.STEPS, datetime(2024, 3, 2, 9), value=2500),
            ],
            MetricKind.HEART_RATE: [sample(MetricKind.HEART_RATE, datetime(2024, 3, 2, 9), value=64)],
        })
        assert [d.date for d in history] == [date(2024, 3, 2), date(2024, 3, 1)]

        latest, earlier = history
        assert latest.step_count == 2500
        assert latest.average_heart_rate_bpm == pytest.approx(64.0)
        assert latest.sleep_hours == 0.0
        assert latest.bed_time is None

        assert earlier.step_count == 4000
        assert earlier.sleep_hours == pytest.approx(7.0)
        assert earlier.average_heart_rate_bpm is None
        assert earlier.active_energy_kcal == 0.0

    def test_missing_kinds_use_defaults(self):
        history = build_history({MetricKind.STEPS: [sample(MetricKind.STEPS, datetime(2024, 3, 1, 9), value=10)]})
        assert len(history) == 1
        assert history[0].sleep_hours == 0.0
        assert history[0].wake_time is None
