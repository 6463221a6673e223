"""Tests for time logging and the logged-hours aggregate."""

import math
from collections import defaultdict
from datetime import timedelta

import pytest

from project_health.domain import EventType, Task
from project_health.services.events import EventLog
from project_health.services.time_tracking import TimeTracker


@pytest.fixture
def tracker(store):
    return TimeTracker(store)


@pytest.fixture
def tasks(store):
    store.upsert_task(Task(id="t1", project_id="p1", estimate_hours=6))
    store.upsert_task(Task(id="t2", project_id="p1", estimate_hours=4))
    store.upsert_task(Task(id="t3", project_id="p2"))


def assert_aggregates_match(store, project_ids):
    for project_id in project_ids:
        sums = defaultdict(float)
        for log in store.list_time_logs(project_id=project_id):
            sums[log.task_id] += log.hours
        for task in store.list_tasks(project_id):
            assert (task.logged_hours or 0) == pytest.approx(sums.get(task.id, 0))


class TestAddTimeLog:

    def test_logs_hours(self, store, tracker, tasks, now):
        log = tracker.add_time_log("t1", "p1", 1.5, note="design review", now=now)

        assert log is not None
        assert log.id.startswith("tl_")
        assert log.hours == 1.5
        assert log.logged_at == now
        assert log.logged_by == "Unknown"
        assert store.get_task("t1").logged_hours == 1.5

    def test_logged_hours_always_match_logs(self, store, tracker, tasks, now):
        entries = [("t1", "p1", 0.1), ("t1", "p1", 0.2), ("t2", "p1", 3),
                   ("t3", "p2", 2.25), ("t1", "p1", 1.7), ("t2", "p1", "0.5")]
        for i, (task_id, project_id, hours) in enumerate(entries):
            tracker.add_time_log(task_id, project_id, hours, now=now - timedelta(hours=i))
            assert_aggregates_match(store, ["p1", "p2"])

        assert store.get_task("t1").logged_hours == pytest.approx(2.0)
        assert store.get_task("t2").logged_hours == pytest.approx(3.5)

    @pytest.mark.parametrize("hours", [0, -1, "abc", None, float("nan"), float("inf"), True])
    def test_invalid_hours_touch_nothing(self, store, tracker, tasks, now, hours):
        before_logs = store.list_time_logs()
        before_events = store.list_events("p1")

        assert tracker.add_time_log("t1", "p1", hours, now=now) is None

        assert store.list_time_logs() == before_logs
        assert store.list_events("p1") == before_events
        assert store.get_task("t1").logged_hours is None

    def test_empty_task_id_is_rejected(self, tracker, now, caplog):
        assert tracker.add_time_log("", "p1", 1, now=now) is None

        assert "missing task id" in caplog.text
        assert "invalid hours" not in caplog.text

    def test_log_follows_task_project(self, store, tracker, tasks, now):
        log = tracker.add_time_log("t3", "p1", 2, now=now)

        assert log.project_id == "p2"
        assert store.list_time_logs(project_id="p1") == []
        assert store.get_task("t3").logged_hours == 2

    def test_appends_timelog_event(self, store, tracker, tasks, now):
        tracker.add_time_log("t1", "p1", 2, logged_by="sam", now=now)

        events = EventLog(store).get_project_events("p1")
        assert len(events) == 1
        assert events[0].type == EventType.TIMELOG
        assert events[0].data == {"task_id": "t1", "hours": 2.0}
        assert events[0].timestamp == now

    def test_upsert_keeps_logged_hours_from_logs(self, store, tracker, tasks, now):
        tracker.add_time_log("t1", "p1", 2, now=now)
        tracker.add_time_log("t1", "p1", 3, now=now)

        edited = store.get_task("t1")
        edited.title = "Renamed"
        edited.logged_hours = 99
        store.upsert_task(edited)

        assert store.get_task("t1").logged_hours == 5


class TestTimeQueries:

    def test_logs_for_task_newest_first(self, tracker, tasks, now):
        for days_ago in (3, 1, 2):
            tracker.add_time_log("t1", "p1", days_ago, now=now - timedelta(days=days_ago))

        logs = tracker.get_time_logs_for_task("t1")

        assert [log.hours for log in logs] == [1, 2, 3]

    def test_project_rollup(self, tracker, tasks, now):
        tracker.add_time_log("t1", "p1", 4, now=now)
        tracker.add_time_log("t2", "p1", 1.5, now=now)

        rollup = tracker.get_project_time_rollup("p1")

        assert rollup.estimate == 10
        assert rollup.logged == 5.5
        assert rollup.remaining == 4.5

    def test_rollup_remaining_never_negative(self, tracker, tasks, now):
        tracker.add_time_log("t1", "p1", 20, now=now)
        assert tracker.get_project_time_rollup("p1").remaining == 0

    def test_recent_activity(self, tracker, tasks, now):
        for i in range(25):
            tracker.add_time_log("t1", "p1", 1, now=now - timedelta(hours=i))
        tracker.add_time_log("t2", "p1", 1, now=now - timedelta(days=10))

        activity = tracker.get_recent_activity("p1", days=7, now=now)

        assert len(activity) == 20
        assert activity[0].timestamp == now
        assert all(a.timestamp >= now - timedelta(days=7) for a in activity)
        assert activity[0].description == "Logged 1h on task t1"

    def test_recent_activity_across_projects(self, tracker, tasks, now):
        tracker.add_time_log("t1", "p1", 1, now=now - timedelta(hours=2))
        tracker.add_time_log("t3", "p2", 1, now=now - timedelta(hours=1))

        activity = tracker.get_recent_activity(now=now)

        assert [a.description for a in activity] == [
            "Logged 1h on task t3", "Logged 1h on task t1",
        ]

    def test_hours_sum_is_exact_for_many_small_logs(self, store, tracker, tasks, now):
        for _ in range(10):
            tracker.add_time_log("t2", "p1", 0.1, now=now)

        assert store.get_task("t2").logged_hours == math.fsum([0.1] * 10)
