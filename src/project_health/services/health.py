"""Project Health Scoring.

Additive penalty model: a project starts at 100 and loses points for
deadline proximity, inactivity, incomplete work, incomplete dependencies,
overdue tasks and overdue milestones. The result is clamped to 0-100 and
mapped to a status band.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from ..config import HealthWeights
from ..domain import Project, ProjectStatus
from ..storage import AnalyticsStore
from ..utils.datetime import days_until, ensure_aware, now_utc, utc_today
from ..utils.validation import round_half_up
from .dependencies import DependencyManager
from .milestones import MilestoneTracker
from .tasks import count_overdue_tasks, get_task_completion

logger = logging.getLogger(__name__)

ACTIVITY_WINDOW = timedelta(days=7)

# status -> (completion factor, penalty) for projects without tasks
STATUS_COMPLETION = {
    ProjectStatus.COMPLETED.value: (100, 0),
    ProjectStatus.ACTIVE.value: (80, 6),
    ProjectStatus.IN_PROGRESS.value: (60, 12),
    ProjectStatus.PAUSED.value: (30, 21),
}


class HealthStatus(Enum):
    """Project health bands"""
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


def health_status_for(score: float) -> HealthStatus:
    if score >= 85:
        return HealthStatus.EXCELLENT
    if score >= 65:
        return HealthStatus.GOOD
    if score >= 40:
        return HealthStatus.WARNING
    return HealthStatus.CRITICAL


@dataclass
class HealthFactors:
    """Per-factor scores, each 0-100 (100 = no concern)"""
    deadline: int = 100
    activity: int = 100
    dependencies: int = 100
    completion: int = 100

    def to_dict(self) -> Dict[str, int]:
        return {
            'deadline': self.deadline,
            'activity': self.activity,
            'dependencies': self.dependencies,
            'completion': self.completion
        }


@dataclass
class HealthScore:
    """Health assessment of a project"""
    score: int
    status: HealthStatus
    factors: HealthFactors = field(default_factory=HealthFactors)
    overdue_tasks: int = 0
    overdue_milestones: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'status': self.status.value,
            'factors': self.factors.to_dict(),
            'overdue_tasks': self.overdue_tasks,
            'overdue_milestones': self.overdue_milestones
        }


class HealthScorer:
    """Computes project health from store contents"""

    def __init__(self, store: AnalyticsStore):
        self.store = store
        self.milestones = MilestoneTracker(store)
        self.dependencies = DependencyManager(store)

    def calculate_health(self, project: Union[Project, Mapping[str, Any]],
                         weights: Optional[HealthWeights] = None,
                         now: Optional[datetime] = None) -> HealthScore:
        """Score a project's near-term health.

        Args:
            project: Project (or mapping with ``id``, ``deadline``, ``status``)
            weights: Overdue penalty weights; defaults apply when omitted
            now: Reference time, current UTC time when omitted

        Returns:
            HealthScore with a 0-100 integer score, status band and factors
        """
        if not isinstance(project, Project):
            project = Project.from_dict(dict(project))
        weights = weights or HealthWeights()
        now = ensure_aware(now) or now_utc()
        today = utc_today(now)

        score = 100
        factors = HealthFactors()

        # Deadline factor
        days_left = days_until(project.deadline, now)
        if days_left is not None:
            if days_left < 0:
                factors.deadline, penalty = 0, 30
            elif days_left < 3:
                factors.deadline, penalty = 40, 18
            elif days_left < 7:
                factors.deadline, penalty = 70, 9
            else:
                penalty = 0
            score -= penalty

        # Activity factor
        events = self.store.list_events(project.id)
        recent = [e for e in events if now - e.timestamp < ACTIVITY_WINDOW]
        if events and not recent:
            factors.activity = 50
            score -= 10
        elif len(recent) == 1:
            factors.activity = 75
            score -= 5

        # Completion factor
        tasks = self.store.list_tasks(project.id)
        completion = get_task_completion(tasks)
        if completion.total > 0:
            factors.completion = completion.percent
            score -= int(round_half_up((100 - completion.percent) * 0.3))
        elif project.status in STATUS_COMPLETION:
            factors.completion, penalty = STATUS_COMPLETION[project.status]
            score -= penalty

        # Dependencies factor
        incomplete = self.dependencies.get_incomplete_dependency_ids(project.id)
        if incomplete:
            factors.dependencies = max(30, 100 - len(incomplete) * 20)
            score -= len(incomplete) * 4

        overdue_tasks = count_overdue_tasks(tasks, today)
        if overdue_tasks:
            score -= min(overdue_tasks * weights.overdue_penalty_per_task,
                         weights.overdue_penalty_cap)

        overdue_milestones = self.milestones.count_overdue_milestones(project.id, today, tasks)
        if overdue_milestones:
            score -= min(overdue_milestones * weights.milestone_overdue_penalty_per_milestone,
                         weights.milestone_overdue_penalty_cap)

        score = int(round_half_up(max(0, min(100, score))))
        status = health_status_for(score)
        logger.debug(f"Health for project {project.id}: {score} ({status.value})")

        return HealthScore(
            score=score,
            status=status,
            factors=factors,
            overdue_tasks=overdue_tasks,
            overdue_milestones=overdue_milestones
        )


def calculate_health(store: AnalyticsStore, project: Union[Project, Mapping[str, Any]],
                     weights: Optional[HealthWeights] = None,
                     now: Optional[datetime] = None) -> HealthScore:
    """Functional shortcut for ``HealthScorer(store).calculate_health``."""
    return HealthScorer(store).calculate_health(project, weights, now)
