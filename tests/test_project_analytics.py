"""Tests for velocity, burndown, completion-rate and estimate accuracy analytics."""

from datetime import date, timedelta

import pytest

from project_health.domain import Task, TaskStatus, TimeLog
from project_health.services.project_analytics import (
    EstimateAccuracy, ProjectAnalytics, VelocityTrend, classify_variance,
)
from project_health.services.time_tracking import TimeTracker


@pytest.fixture
def analytics(store):
    return ProjectAnalytics(store)


@pytest.fixture
def tracker(store):
    return TimeTracker(store)


class TestVelocity:

    def test_bucket_layout(self, analytics, now):
        weekly = analytics.get_velocity_metrics("p1", weeks=8, now=now)

        assert len(weekly) == 8
        assert [w.period for w in weekly] == [f"Week {i}" for i in range(1, 9)]
        assert weekly[-1].period_end == now
        assert weekly[0].period_start == now - timedelta(weeks=8)
        assert all(w.completed == 0 and w.trend == VelocityTrend.STABLE for w in weekly)

    def test_counts_rolling_average_and_trend(self, store, analytics, tracker, now):
        for i in range(1, 7):
            store.upsert_task(Task(
                id=f"t{i}", project_id="p1",
                estimate_hours={1: 2, 5: 3}.get(i)
            ))

        def log(task_id, days_ago):
            tracker.add_time_log(task_id, "p1", 1, now=now - timedelta(days=days_ago))

        for task_id in ("t1", "t2"):
            log(task_id, 22)
        for task_id in ("t1", "t2", "t3", "t4"):
            log(task_id, 15)
        for task_id in ("t3", "t4", "t5", "t6"):
            log(task_id, 8)
        log("t5", 1)
        log("t5", 2)

        weekly = analytics.get_velocity_metrics("p1", weeks=4, now=now)

        assert [w.completed for w in weekly] == [2, 4, 4, 1]
        assert [w.avg_velocity for w in weekly] == [2.0, 3.0, 3.3, 3.0]
        assert [w.trend for w in weekly] == [
            VelocityTrend.STABLE, VelocityTrend.UP, VelocityTrend.STABLE, VelocityTrend.DOWN,
        ]
        # estimate hours, or 1 for tasks without one
        assert weekly[0].points == 3.0
        assert weekly[-1].points == 3.0

    def test_log_exactly_at_now_is_excluded(self, store, analytics, tracker, now):
        store.upsert_task(Task(id="t1", project_id="p1"))
        tracker.add_time_log("t1", "p1", 1, now=now)

        weekly = analytics.get_velocity_metrics("p1", weeks=2, now=now)

        assert [w.completed for w in weekly] == [0, 0]

    def test_other_projects_do_not_count(self, store, analytics, tracker, now):
        store.upsert_task(Task(id="t1", project_id="p1"))
        store.upsert_task(Task(id="x1", project_id="p2"))
        tracker.add_time_log("x1", "p2", 1, now=now - timedelta(days=1))

        weekly = analytics.get_velocity_metrics("p1", weeks=1, now=now)

        assert weekly[0].completed == 0

    def test_naive_log_times_are_utc(self, store, analytics, now):
        store.upsert_task(Task(id="t1", project_id="p1"))
        store.append_time_log(TimeLog(
            id="l1", task_id="t1", project_id="p1", hours=1,
            logged_at=(now - timedelta(days=1)).replace(tzinfo=None),
        ))

        weekly = analytics.get_velocity_metrics("p1", weeks=2, now=now)

        assert [w.completed for w in weekly] == [0, 1]


class TestBurndown:

    def test_ideal_and_actual_lines(self, store, analytics, tracker, now):
        store.upsert_task(Task(id="a", project_id="p1", status=TaskStatus.DONE))
        store.upsert_task(Task(id="b", project_id="p1", status=TaskStatus.DONE))
        store.upsert_task(Task(id="c", project_id="p1"))
        store.upsert_task(Task(id="d", project_id="p1", status=TaskStatus.IN_PROGRESS))
        tracker.add_time_log("a", "p1", 1, now=now - timedelta(days=4))
        tracker.add_time_log("a", "p1", 1, now=now - timedelta(days=3, hours=2))
        tracker.add_time_log("c", "p1", 1, now=now - timedelta(days=4))

        points = analytics.get_burndown_data("p1", "2024-06-11", date(2024, 6, 15), now=now)

        assert [p.date for p in points] == [
            "2024-06-11", "2024-06-12", "2024-06-13", "2024-06-14", "2024-06-15",
        ]
        assert [p.ideal for p in points] == [4.0, 3.0, 2.0, 1.0, 0.0]
        # "a" burns down on its last log day, "b" (no logs) on today
        assert [p.actual for p in points] == [4, 3, 3, 3, 2]
        assert [p.completed for p in points] == [0, 1, 1, 1, 2]

    def test_single_day_range(self, store, analytics, now):
        store.upsert_task(Task(id="a", project_id="p1"))
        points = analytics.get_burndown_data("p1", "2024-06-15", "2024-06-15", now=now)

        assert len(points) == 1
        assert points[0].ideal == 0
        assert points[0].actual == 1

    def test_reversed_range_is_empty(self, analytics, now):
        assert analytics.get_burndown_data("p1", "2024-06-15", "2024-06-01", now=now) == []

    def test_malformed_range_is_empty(self, analytics, now):
        assert analytics.get_burndown_data("p1", "garbage", "2024-06-01", now=now) == []
        assert analytics.get_burndown_data("p1", None, None, now=now) == []


class TestCompletionRate:

    def test_daily_distinct_tasks(self, store, analytics, tracker, now):
        for task_id in ("a", "b", "c", "d"):
            store.upsert_task(Task(id=task_id, project_id="p1"))
        tracker.add_time_log("a", "p1", 1, now=now - timedelta(hours=3))
        tracker.add_time_log("a", "p1", 1, now=now - timedelta(hours=1))
        tracker.add_time_log("b", "p1", 1, now=now - timedelta(hours=2))
        tracker.add_time_log("c", "p1", 1, now=now - timedelta(days=1))

        stats = analytics.get_completion_rate_stats("p1", days=3, now=now)

        assert [s.date for s in stats] == ["2024-06-13", "2024-06-14", "2024-06-15"]
        assert [s.completed for s in stats] == [0, 1, 2]
        assert [s.rate for s in stats] == [0.0, 25.0, 50.0]
        assert all(s.total == 4 for s in stats)

    def test_no_tasks_gives_zero_rates(self, analytics, now):
        stats = analytics.get_completion_rate_stats("p1", days=30, now=now)

        assert len(stats) == 30
        assert all(s.rate == 0.0 for s in stats)


class TestEstimateAccuracy:

    @pytest.fixture
    def estimated(self, store):
        store.upsert_task(Task(id="over", project_id="p1", title="Over",
                               estimate_hours=10, logged_hours=12))
        store.upsert_task(Task(id="ok", project_id="p1", estimate_hours=10, logged_hours=10.5))
        store.upsert_task(Task(id="under", project_id="p1", estimate_hours=8, logged_hours=4))
        store.upsert_task(Task(id="no-estimate", project_id="p1", logged_hours=3))
        store.upsert_task(Task(id="no-logs", project_id="p1", estimate_hours=5))

    @pytest.mark.parametrize("variance,expected", [
        (10.1, EstimateAccuracy.OVER),
        (10, EstimateAccuracy.ACCURATE),
        (-10, EstimateAccuracy.ACCURATE),
        (-10.1, EstimateAccuracy.UNDER),
    ])
    def test_classification(self, variance, expected):
        assert classify_variance(variance) == expected

    def test_report(self, analytics, estimated):
        report = analytics.get_time_estimate_accuracy("p1")

        by_id = {a.task_id: a for a in report.tasks}
        assert set(by_id) == {"over", "ok", "under"}
        assert by_id["over"].variance == 20.0
        assert by_id["ok"].variance == 5.0
        assert by_id["under"].variance == -50.0
        assert by_id["under"].accuracy == EstimateAccuracy.UNDER
        assert report.avg_variance == 25.0
        assert report.over_count == 1
        assert report.under_count == 1
        assert report.accuracy_rate == 33.3

    def test_repeated_runs_are_identical(self, analytics, estimated):
        first = analytics.get_time_estimate_accuracy("p1")
        second = analytics.get_time_estimate_accuracy("p1")

        assert [a.variance for a in first.tasks] == [a.variance for a in second.tasks]
        assert first.to_dict() == second.to_dict()

    def test_empty_project(self, analytics):
        report = analytics.get_time_estimate_accuracy("p1")

        assert report.tasks == []
        assert report.avg_variance == 0.0
        assert report.accuracy_rate == 0.0
