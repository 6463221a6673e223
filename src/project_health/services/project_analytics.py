"""Project Analytics for Project Health.

This module derives the time series and estimate statistics shown on the
project dashboards:
- Weekly velocity with rolling average and trend
- Daily burndown (ideal vs actual remaining tasks)
- Daily completion-rate stats
- Estimate vs logged hours accuracy

Task completion timing is inferred from time-log activity: a task counts as
"completed" in a week (or on a day) when it has at least one log there.
Burndown uses a done task's last log as its completion time.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..domain import Task, TimeLog
from ..storage import AnalyticsStore
from ..utils.datetime import (
    day_key, ensure_aware, now_utc, parse_date, utc_today,
)
from ..utils.validation import round_half_up

logger = logging.getLogger(__name__)


class VelocityTrend(Enum):
    """Week-over-week velocity direction"""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class EstimateAccuracy(Enum):
    """Logged vs estimated hours classification"""
    OVER = "over"
    UNDER = "under"
    ACCURATE = "accurate"


@dataclass
class BurndownPoint:
    """Burndown chart data point"""
    date: str  # YYYY-MM-DD
    ideal: float  # ideal remaining tasks
    actual: int  # actual remaining tasks
    completed: int  # cumulative completed tasks

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'ideal': self.ideal,
            'actual': self.actual,
            'completed': self.completed
        }


@dataclass
class VelocityData:
    """Velocity of a single weekly bucket"""
    period: str
    period_start: datetime
    period_end: datetime
    completed: int
    points: float
    avg_velocity: float = 0.0
    trend: VelocityTrend = VelocityTrend.STABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'period': self.period,
            'period_start': self.period_start.isoformat(),
            'period_end': self.period_end.isoformat(),
            'completed': self.completed,
            'points': self.points,
            'avg_velocity': self.avg_velocity,
            'trend': self.trend.value
        }


@dataclass
class CompletionStats:
    """Tasks with logged activity on one day"""
    date: str
    completed: int
    total: int
    rate: float  # percentage

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'completed': self.completed,
            'total': self.total,
            'rate': self.rate
        }


@dataclass
class TimeAccuracy:
    """Estimate vs logged hours for one task"""
    task_id: str
    task_title: str
    estimated: float
    logged: float
    variance: float  # percentage over (+) or under (-) the estimate
    accuracy: EstimateAccuracy

    def to_dict(self) -> Dict[str, Any]:
        return {
            'task_id': self.task_id,
            'task_title': self.task_title,
            'estimated': self.estimated,
            'logged': self.logged,
            'variance': self.variance,
            'accuracy': self.accuracy.value
        }


@dataclass
class EstimateAccuracyReport:
    """Aggregate estimate accuracy of a project"""
    tasks: List[TimeAccuracy] = field(default_factory=list)
    avg_variance: float = 0.0  # mean absolute variance
    over_count: int = 0
    under_count: int = 0
    accuracy_rate: float = 0.0  # % of tasks classified accurate

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tasks': [t.to_dict() for t in self.tasks],
            'avg_variance': self.avg_variance,
            'over_count': self.over_count,
            'under_count': self.under_count,
            'accuracy_rate': self.accuracy_rate
        }


def classify_variance(variance: float) -> EstimateAccuracy:
    if variance > 10:
        return EstimateAccuracy.OVER
    if variance < -10:
        return EstimateAccuracy.UNDER
    return EstimateAccuracy.ACCURATE


class ProjectAnalytics:
    """Read-only analytics over a project's tasks and time logs"""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    def get_velocity_metrics(self, project_id: str, weeks: int = 8,
                             now: Optional[datetime] = None) -> List[VelocityData]:
        """Weekly velocity for the trailing ``weeks`` weeks, oldest first.

        Each bucket is a 7-day window ending ``i`` weeks before ``now``.
        ``completed`` counts distinct tasks with a log in the window;
        ``points`` sums their estimates (1 when a task has none).
        """
        now = ensure_aware(now) or now_utc()
        tasks = {t.id: t for t in self.store.list_tasks(project_id)}
        logs = self.store.list_time_logs(project_id=project_id)

        weekly: List[VelocityData] = []
        for i in range(weeks - 1, -1, -1):
            week_start = now - timedelta(weeks=i + 1)
            week_end = now - timedelta(weeks=i)
            task_ids = {
                log.task_id for log in logs
                if week_start <= log.logged_at < week_end
            }
            points = math.fsum(
                tasks[tid].estimate_hours or 1 for tid in task_ids if tid in tasks
            )
            weekly.append(VelocityData(
                period=f"Week {weeks - i}",
                period_start=week_start,
                period_end=week_end,
                completed=len(task_ids),
                points=round(points, 1)
            ))

        for idx, week in enumerate(weekly):
            window = weekly[max(0, idx - 2):idx + 1]
            week.avg_velocity = round(sum(w.completed for w in window) / len(window), 1)
            if idx > 0:
                previous = weekly[idx - 1].completed
                if week.completed > previous * 1.1:
                    week.trend = VelocityTrend.UP
                elif week.completed < previous * 0.9:
                    week.trend = VelocityTrend.DOWN

        return weekly

    def get_burndown_data(self, project_id: str, start_date: Any, end_date: Any,
                          now: Optional[datetime] = None) -> List[BurndownPoint]:
        """Daily burndown between two dates (inclusive).

        Ideal remaining falls linearly from the task count to zero. A done
        task counts as burned down from the day of its last time log, or from
        today when it has no logs. Malformed or reversed ranges yield no
        points.
        """
        start = parse_date(start_date)
        end = parse_date(end_date)
        if start is None or end is None or end < start:
            logger.debug(f"Invalid burndown range {start_date!r} - {end_date!r}")
            return []

        today = utc_today(now)
        tasks = self.store.list_tasks(project_id)
        total_tasks = len(tasks)
        last_log_day = self._last_log_days(project_id)
        completion_days = [
            last_log_day.get(task.id, today) for task in tasks if task.is_done
        ]

        total_days = (end - start).days
        points = []
        for i in range(total_days + 1):
            current = start + timedelta(days=i)
            if total_days > 0:
                ideal = total_tasks - total_tasks * i / total_days
            else:
                ideal = 0.0
            completed = sum(1 for day in completion_days if day <= current)
            points.append(BurndownPoint(
                date=day_key(current),
                ideal=round(ideal, 2),
                actual=total_tasks - completed,
                completed=completed
            ))
        return points

    def get_completion_rate_stats(self, project_id: str, days: int = 30,
                                  now: Optional[datetime] = None) -> List[CompletionStats]:
        """Per-day share of tasks with logged activity, oldest first."""
        today = utc_today(now)
        total = len(self.store.list_tasks(project_id))
        tasks_by_day: Dict[date, set] = defaultdict(set)
        for log in self.store.list_time_logs(project_id=project_id):
            tasks_by_day[parse_date(log.logged_at)].add(log.task_id)

        stats = []
        for i in range(days - 1, -1, -1):
            day = today - timedelta(days=i)
            completed = len(tasks_by_day.get(day, ()))
            rate = round(completed / total * 100, 1) if total > 0 else 0.0
            stats.append(CompletionStats(
                date=day_key(day),
                completed=completed,
                total=total,
                rate=rate
            ))
        return stats

    def get_time_estimate_accuracy(self, project_id: str) -> EstimateAccuracyReport:
        """Compare estimates with logged hours for tasks that have both."""
        accuracies = [
            self._task_accuracy(task)
            for task in self.store.list_tasks(project_id)
            if (task.estimate_hours or 0) > 0 and (task.logged_hours or 0) > 0
        ]
        if not accuracies:
            return EstimateAccuracyReport()

        count = len(accuracies)
        accurate = sum(1 for a in accuracies if a.accuracy == EstimateAccuracy.ACCURATE)
        return EstimateAccuracyReport(
            tasks=accuracies,
            avg_variance=round(math.fsum(abs(a.variance) for a in accuracies) / count, 1),
            over_count=sum(1 for a in accuracies if a.accuracy == EstimateAccuracy.OVER),
            under_count=sum(1 for a in accuracies if a.accuracy == EstimateAccuracy.UNDER),
            accuracy_rate=round(accurate / count * 100, 1)
        )

    def _task_accuracy(self, task: Task) -> TimeAccuracy:
        estimated = task.estimate_hours
        logged = task.logged_hours
        variance = round_half_up((logged - estimated) / estimated * 100, 1)
        return TimeAccuracy(
            task_id=task.id,
            task_title=task.title,
            estimated=estimated,
            logged=logged,
            variance=variance,
            accuracy=classify_variance(variance)
        )

    def _last_log_days(self, project_id: str) -> Dict[str, date]:
        latest: Dict[str, TimeLog] = {}
        for log in self.store.list_time_logs(project_id=project_id):
            current = latest.get(log.task_id)
            if current is None or log.logged_at > current.logged_at:
                latest[log.task_id] = log
        return {task_id: parse_date(log.logged_at) for task_id, log in latest.items()}
