"""Time Tracking for Project Health.

This module records effort against tasks and provides the effort rollups
used by the dashboards:
- Appending time logs (the source of truth for actual effort)
- Per-task log history
- Project estimate/logged/remaining rollups
- Recent activity feed
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..domain import EventType, TimeLog
from ..storage import AnalyticsStore
from ..time_log import new_time_log_id
from ..utils.datetime import ensure_aware, now_utc
from ..utils.validation import coerce_positive_hours
from .events import EventLog

logger = logging.getLogger(__name__)


@dataclass
class TimeRollup:
    """Estimated vs logged hours for a project"""
    estimate: float
    logged: float
    remaining: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'estimate': self.estimate,
            'logged': self.logged,
            'remaining': self.remaining
        }


@dataclass
class ActivityItem:
    """Entry of the recent activity feed"""
    id: str
    type: str
    timestamp: datetime
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'timestamp': self.timestamp.isoformat(),
            'description': self.description
        }


class TimeTracker:
    """Records time logs and keeps task effort aggregates consistent"""

    def __init__(self, store: AnalyticsStore, event_log: Optional[EventLog] = None):
        self.store = store
        self.event_log = event_log or EventLog(store)

    def add_time_log(self, task_id: str, project_id: str, hours: Any,
                     note: Optional[str] = None, logged_by: Optional[str] = None,
                     now: Optional[datetime] = None) -> Optional[TimeLog]:
        """Log ``hours`` against a task.

        Returns None, without touching any store, when ``hours`` is not a
        positive finite number. The store appends the log and refreshes the
        task's ``logged_hours`` in one write.
        """
        if not task_id:
            logger.warning(f"Ignoring time log for project {project_id!r}: missing task id")
            return None
        valid_hours = coerce_positive_hours(hours)
        if valid_hours is None:
            logger.warning(f"Ignoring time log for task {task_id!r}: invalid hours {hours!r}")
            return None

        task = self.store.get_task(task_id)
        if task is not None and task.project_id != project_id:
            logger.warning(
                f"Task {task_id} belongs to project {task.project_id}, not {project_id}; "
                f"logging against {task.project_id}"
            )
            project_id = task.project_id

        log = TimeLog(
            id=new_time_log_id(),
            task_id=task_id,
            project_id=project_id,
            hours=valid_hours,
            note=note,
            logged_at=ensure_aware(now) or now_utc(),
            logged_by=logged_by or "Unknown",
        )
        if not self.store.append_time_log(log):
            logger.error(f"Failed to store time log for task {task_id}")
            return None

        self.event_log.log_project_event(
            project_id, EventType.TIMELOG,
            {'task_id': task_id, 'hours': valid_hours},
            now=log.logged_at,
        )
        logger.debug(f"Logged {valid_hours}h on task {task_id}")
        return log

    def get_time_logs_for_task(self, task_id: str) -> List[TimeLog]:
        """Logs of a task, newest first"""
        logs = self.store.list_time_logs(task_id=task_id)
        return sorted(logs, key=lambda log: log.logged_at, reverse=True)

    def get_project_time_rollup(self, project_id: str) -> TimeRollup:
        """Sum estimates and logged hours over a project's tasks"""
        tasks = self.store.list_tasks(project_id)
        estimate = math.fsum(t.estimate_hours or 0 for t in tasks)
        logged = math.fsum(t.logged_hours or 0 for t in tasks)
        return TimeRollup(
            estimate=round(estimate, 2),
            logged=round(logged, 2),
            remaining=max(0.0, round(estimate - logged, 2))
        )

    def get_recent_activity(self, project_id: Optional[str] = None, days: int = 7,
                            limit: int = 20, now: Optional[datetime] = None) -> List[ActivityItem]:
        """Most recent time logs as activity entries"""
        cutoff = (ensure_aware(now) or now_utc()) - timedelta(days=days)
        logs = [
            log for log in self.store.list_time_logs(project_id=project_id)
            if log.logged_at >= cutoff
        ]
        logs.sort(key=lambda log: log.logged_at, reverse=True)
        return [
            ActivityItem(
                id=log.id,
                type="time_log",
                timestamp=log.logged_at,
                description=f"Logged {log.hours:g}h on task {log.task_id}"
            )
            for log in logs[:limit]
        ]
