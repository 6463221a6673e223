"""Tests for daily health snapshots and the health series."""

from datetime import timedelta

import pytest

from project_health.services.health_history import HealthHistory


@pytest.fixture
def history(store):
    return HealthHistory(store)


class TestHealthSeries:

    @pytest.mark.parametrize("days", [1, 7, 14, 30])
    def test_without_history_every_day_is_100(self, history, now, days):
        series = history.get_health_series("p1", days, now=now)

        assert len(series) == days
        assert all(score == 100 for score in series)

    def test_non_positive_length(self, history, now):
        assert history.get_health_series("p1", 0, now=now) == []

    def test_missing_days_carry_forward(self, history, now):
        history.snapshot_health("p1", 80, now=now - timedelta(days=4))
        history.snapshot_health("p1", 60, now=now - timedelta(days=1))

        series = history.get_health_series("p1", 7, now=now)

        assert series == [100, 100, 80, 80, 80, 60, 60]

    def test_window_is_seeded_from_earlier_snapshot(self, history, now):
        history.snapshot_health("p1", 42, now=now - timedelta(days=30))

        series = history.get_health_series("p1", 5, now=now)

        assert series == [42] * 5

    def test_same_day_snapshot_overwrites(self, store, history, now):
        history.snapshot_health("p1", 70, now=now - timedelta(hours=6))
        history.snapshot_health("p1", 90, now=now)

        snapshots = store.list_snapshots("p1")
        assert len(snapshots) == 1
        assert snapshots[0].date == "2024-06-15"
        assert snapshots[0].score == 90

    def test_series_is_per_project(self, history, now):
        history.snapshot_health("p1", 50, now=now)

        assert history.get_health_series("p2", 3, now=now) == [100, 100, 100]


class TestHealthSnapshot:

    def test_no_history(self, history):
        assert history.get_health_snapshot("p1") is None

    def test_latest_score(self, history, now):
        history.snapshot_health("p1", 75, now=now - timedelta(days=2))
        history.snapshot_health("p1", 65, now=now)

        assert history.get_health_snapshot("p1") == 65
