"""Project Risk Scoring.

Weighted sum of five risk contributions, each 0-100:

    overdue tasks 25%, velocity 20%, blockers 15%, deadline 25%,
    estimate accuracy 15%

The score is the literal weighted sum rounded to one decimal place; it is
not re-normalized.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..domain import TaskStatus
from ..storage import AnalyticsStore
from ..utils.datetime import days_until, ensure_aware, now_utc, utc_today
from .project_analytics import ProjectAnalytics, VelocityTrend
from .tasks import count_overdue_tasks, get_task_completion

logger = logging.getLogger(__name__)

RISK_WEIGHTS = {
    'overdue_tasks_risk': 0.25,
    'velocity_risk': 0.20,
    'blocker_risk': 0.15,
    'deadline_risk': 0.25,
    'estimate_accuracy_risk': 0.15,
}

TRACKING_WELL = "Project tracking well - maintain current velocity"


class RiskLevel(Enum):
    """Risk assessment levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def risk_level_for(score: float) -> RiskLevel:
    if score >= 70:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass
class RiskFactors:
    """Individual risk contributions before weighting"""
    overdue_tasks_risk: float = 0.0
    velocity_risk: float = 0.0
    blocker_risk: float = 0.0
    deadline_risk: float = 0.0
    estimate_accuracy_risk: float = 0.0

    def weighted_sum(self) -> float:
        return sum(getattr(self, name) * weight for name, weight in RISK_WEIGHTS.items())

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in RISK_WEIGHTS}


@dataclass
class RiskAnalysis:
    """Risk assessment of a project"""
    score: float
    level: RiskLevel
    factors: RiskFactors = field(default_factory=RiskFactors)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'level': self.level.value,
            'factors': self.factors.to_dict(),
            'recommendations': list(self.recommendations)
        }


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


class RiskScorer:
    """Computes delivery risk from store contents"""

    def __init__(self, store: AnalyticsStore, stalled_after_days: int = 7):
        self.store = store
        self.analytics = ProjectAnalytics(store)
        self.stalled_after = timedelta(days=stalled_after_days)

    def calculate_risk(self, project_id: str, deadline: Any = None,
                       now: Optional[datetime] = None) -> RiskAnalysis:
        """Assess how likely a project is to slip.

        Args:
            project_id: Project to assess
            deadline: Optional project deadline (date string or datetime)
            now: Reference time, current UTC time when omitted

        Returns:
            RiskAnalysis with score, level, factors and recommendations
        """
        now = ensure_aware(now) or now_utc()
        factors = RiskFactors()
        recommendations: List[str] = []

        tasks = self.store.list_tasks(project_id)
        total_tasks = len(tasks)

        # 1. Overdue tasks
        overdue_count = count_overdue_tasks(tasks, utc_today(now))
        if overdue_count > 0:
            factors.overdue_tasks_risk = min(100.0, overdue_count / max(1, total_tasks) * 100)
            recommendations.append(
                f"{_plural(overdue_count, 'overdue task')} - prioritize completion"
            )

        # 2. Velocity: compare the last two of four weekly buckets
        velocity = self.analytics.get_velocity_metrics(project_id, weeks=4, now=now)
        if len(velocity) >= 2:
            previous, current = velocity[-2], velocity[-1]
            if current.completed < previous.completed * 0.7:
                factors.velocity_risk = 60.0
                recommendations.append("Velocity declining - review team capacity and blockers")
            elif current.trend == VelocityTrend.DOWN:
                factors.velocity_risk = 30.0

        # 3. Blockers: in-progress tasks without recent time logs
        stuck_count = self._count_stuck_tasks(project_id, tasks, now)
        if stuck_count > 0:
            factors.blocker_risk = min(100.0, stuck_count / max(1, total_tasks) * 100)
            recommendations.append(
                f"{_plural(stuck_count, 'task')} appear blocked - review progress"
            )

        # 4. Deadline pressure
        days_left = days_until(deadline, now)
        if days_left is not None:
            completion = get_task_completion(tasks)
            if days_left < 0:
                factors.deadline_risk = 100.0
                recommendations.append("Project overdue - immediate action required")
            elif days_left <= 3 and completion.percent < 80:
                factors.deadline_risk = 80.0
                recommendations.append("Deadline approaching with significant work remaining")
            elif days_left <= 7 and completion.percent < 70:
                factors.deadline_risk = 60.0
                recommendations.append("Consider extending deadline or reducing scope")
            elif completion.remaining > 0 and days_left > 0:
                required_velocity = completion.remaining / days_left
                recent_velocity = velocity[-1].avg_velocity if velocity else 1
                if required_velocity > recent_velocity * 1.5:
                    factors.deadline_risk = 50.0
                    recommendations.append("Required velocity exceeds current pace")

        # 5. Estimate accuracy
        accuracy = self.analytics.get_time_estimate_accuracy(project_id)
        if len(accuracy.tasks) >= 3:
            if accuracy.avg_variance > 40:
                factors.estimate_accuracy_risk = 70.0
                recommendations.append(
                    "Time estimates significantly off - review estimation process"
                )
            elif accuracy.avg_variance > 25:
                factors.estimate_accuracy_risk = 40.0
                recommendations.append("Moderate estimation variance - refine estimates")

        if not recommendations:
            recommendations.append(TRACKING_WELL)

        raw_score = factors.weighted_sum()
        score = round(raw_score, 1)
        level = risk_level_for(raw_score)
        logger.debug(f"Risk for project {project_id}: {score} ({level.value})")

        return RiskAnalysis(
            score=score,
            level=level,
            factors=factors,
            recommendations=recommendations
        )

    def _count_stuck_tasks(self, project_id: str, tasks, now: datetime) -> int:
        last_logged: Dict[str, datetime] = {}
        for log in self.store.list_time_logs(project_id=project_id):
            if log.task_id not in last_logged or log.logged_at > last_logged[log.task_id]:
                last_logged[log.task_id] = log.logged_at

        stuck = 0
        for task in tasks:
            if task.status != TaskStatus.IN_PROGRESS:
                continue
            last = last_logged.get(task.id)
            if last is None or now - last > self.stalled_after:
                stuck += 1
        return stuck


def calculate_risk(store: AnalyticsStore, project_id: str, deadline: Any = None,
                   now: Optional[datetime] = None) -> RiskAnalysis:
    """Functional shortcut for ``RiskScorer(store).calculate_risk``."""
    return RiskScorer(store).calculate_risk(project_id, deadline, now)
