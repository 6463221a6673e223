"""Project Health Dashboard.

Composition root of the analytics engine: wires the scorers and analytics
to a store, hands the effective health weights to the scorer explicitly and
bundles everything a project dashboard shows into one ``ProjectDashboard``.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import frontmatter

from ..config import ConfigModel, HealthWeights
from ..domain import Project, TaskStatus
from ..storage import AnalyticsStore, MemoryStore
from ..utils.datetime import ensure_aware, now_utc, utc_today
from .dependencies import DependencyManager
from .events import EventLog
from .health import HealthScorer, HealthScore, HealthStatus
from .health_history import HealthHistory
from .milestones import MilestoneSummary, MilestoneTracker
from .project_analytics import (
    BurndownPoint, CompletionStats, EstimateAccuracyReport, ProjectAnalytics,
    VelocityData, VelocityTrend,
)
from .risk import RiskAnalysis, RiskLevel, RiskScorer
from .tasks import get_task_completion
from .time_tracking import TimeRollup, TimeTracker

logger = logging.getLogger(__name__)


@dataclass
class ProjectDashboard:
    """Everything shown on a project's health dashboard"""
    project: Project
    generated_at: datetime
    health: HealthScore
    risk: RiskAnalysis
    velocity: List[VelocityData]
    burndown: List[BurndownPoint]
    completion_stats: List[CompletionStats]
    estimate_accuracy: EstimateAccuracyReport
    time_rollup: TimeRollup
    health_series: List[float]

    milestones: List[MilestoneSummary] = field(default_factory=list)
    incomplete_dependencies: List[str] = field(default_factory=list)

    # Summary stats
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    overdue_tasks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'project': self.project.to_dict(),
            'generated_at': self.generated_at.isoformat(),
            'health': self.health.to_dict(),
            'risk': self.risk.to_dict(),
            'velocity': [v.to_dict() for v in self.velocity],
            'burndown': [p.to_dict() for p in self.burndown],
            'completion_stats': [s.to_dict() for s in self.completion_stats],
            'estimate_accuracy': self.estimate_accuracy.to_dict(),
            'time_rollup': self.time_rollup.to_dict(),
            'health_series': list(self.health_series),
            'milestones': [m.to_dict() for m in self.milestones],
            'incomplete_dependencies': list(self.incomplete_dependencies),
            'total_tasks': self.total_tasks,
            'completed_tasks': self.completed_tasks,
            'in_progress_tasks': self.in_progress_tasks,
            'overdue_tasks': self.overdue_tasks
        }


class ProjectAnalyzer:
    """Project health and risk analytics engine"""

    def __init__(self, store: Optional[AnalyticsStore] = None,
                 config: Optional[ConfigModel] = None):
        self.config = config or ConfigModel(storage_backend="memory")
        self.store = store or MemoryStore(self.config.health_weights)

        self.events = EventLog(self.store)
        self.time_tracker = TimeTracker(self.store, self.events)
        self.milestones = MilestoneTracker(self.store)
        self.dependencies = DependencyManager(self.store)
        self.health_scorer = HealthScorer(self.store)
        self.risk_scorer = RiskScorer(self.store, self.config.stalled_after_days)
        self.analytics = ProjectAnalytics(self.store)
        self.history = HealthHistory(self.store)

    def get_weights(self) -> HealthWeights:
        return self.store.get_weights()

    def set_weights(self, partial: Dict[str, Any]) -> HealthWeights:
        return self.store.set_weights(partial)

    def get_project(self, project_id: str) -> Project:
        """Stored project, or a bare placeholder for unknown ids."""
        return self.store.get_project(project_id) or Project(id=project_id)

    def calculate_health(self, project_id: str, now: Optional[datetime] = None,
                         snapshot: bool = False) -> HealthScore:
        health = self.health_scorer.calculate_health(
            self.get_project(project_id), self.get_weights(), now
        )
        if snapshot:
            self.history.snapshot_health(project_id, health.score, now)
        return health

    def calculate_risk(self, project_id: str, now: Optional[datetime] = None) -> RiskAnalysis:
        project = self.get_project(project_id)
        return self.risk_scorer.calculate_risk(project_id, project.deadline, now)

    def generate_project_dashboard(self, project_id: str, now: Optional[datetime] = None,
                                   snapshot: bool = True,
                                   burndown_days: Optional[int] = None) -> ProjectDashboard:
        """Compute every metric of a project and optionally snapshot today's health"""
        now = ensure_aware(now) or now_utc()
        today = utc_today(now)
        project = self.get_project(project_id)
        tasks = self.store.list_tasks(project_id)
        completion = get_task_completion(tasks)

        health = self.calculate_health(project_id, now, snapshot=snapshot)
        risk = self.risk_scorer.calculate_risk(project_id, project.deadline, now)

        burndown_days = burndown_days or self.config.health_history_days
        burndown_start = today - timedelta(days=burndown_days - 1)

        return ProjectDashboard(
            project=project,
            generated_at=now,
            health=health,
            risk=risk,
            velocity=self.analytics.get_velocity_metrics(
                project_id, self.config.velocity_weeks, now),
            burndown=self.analytics.get_burndown_data(
                project_id, burndown_start, today, now),
            completion_stats=self.analytics.get_completion_rate_stats(
                project_id, self.config.completion_days, now),
            estimate_accuracy=self.analytics.get_time_estimate_accuracy(project_id),
            time_rollup=self.time_tracker.get_project_time_rollup(project_id),
            health_series=self.history.get_health_series(
                project_id, self.config.health_history_days, now),
            milestones=self.milestones.summarize(project_id, today, tasks),
            incomplete_dependencies=self.dependencies.get_incomplete_dependency_ids(project_id),
            total_tasks=completion.total,
            completed_tasks=completion.done,
            in_progress_tasks=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            overdue_tasks=health.overdue_tasks
        )

    def get_project_insights(self, dashboard: ProjectDashboard) -> List[str]:
        """Generate short, actionable insights for a dashboard"""
        insights = []

        if dashboard.health.status == HealthStatus.EXCELLENT:
            insights.append("Project is in excellent health - maintain momentum")
        elif dashboard.health.status == HealthStatus.CRITICAL:
            insights.append("Project health is critical - immediate intervention needed")

        series = dashboard.health_series
        if len(series) >= 2 and series[-1] != series[0]:
            direction = "improving" if series[-1] > series[0] else "declining"
            insights.append(f"Health is {direction} ({series[0]:g} -> {series[-1]:g})")

        if dashboard.velocity:
            latest = dashboard.velocity[-1]
            if latest.trend == VelocityTrend.UP:
                insights.append("Velocity is increasing - great progress")
            elif latest.trend == VelocityTrend.DOWN:
                insights.append("Velocity is declining - investigate blockers")

        if dashboard.total_tasks:
            rate = dashboard.completed_tasks / dashboard.total_tasks * 100
            if rate > 80:
                insights.append("High completion rate - project nearing finish line")
            elif rate < 30:
                insights.append("Early stage project - establish strong foundations")

        overdue_milestones = [m for m in dashboard.milestones if m.is_overdue]
        if overdue_milestones:
            insights.append(f"{len(overdue_milestones)} milestone(s) past target date")

        if dashboard.incomplete_dependencies:
            insights.append(
                f"Waiting on {len(dashboard.incomplete_dependencies)} incomplete dependenc"
                f"{'y' if len(dashboard.incomplete_dependencies) == 1 else 'ies'}"
            )

        if dashboard.risk.level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            insights.append(f"Risk is {dashboard.risk.level.value} - see recommendations")

        return insights

    def export_project_data(self, dashboard: ProjectDashboard, format_type: str = "json") -> str:
        """Export dashboard data as json, csv or markdown"""
        if format_type == "json":
            return json.dumps(dashboard.to_dict(), indent=2)
        elif format_type == "csv":
            return self._export_to_csv(dashboard)
        elif format_type == "markdown":
            return self._export_to_markdown(dashboard)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def _export_to_csv(self, dashboard: ProjectDashboard) -> str:
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow(["Project Health Summary"])
        writer.writerow(["Project", dashboard.project.name])
        writer.writerow(["Health Score", dashboard.health.score])
        writer.writerow(["Health Status", dashboard.health.status.value])
        writer.writerow(["Risk Score", f"{dashboard.risk.score:.1f}"])
        writer.writerow(["Risk Level", dashboard.risk.level.value])
        writer.writerow(["Total Tasks", dashboard.total_tasks])
        writer.writerow(["Completed Tasks", dashboard.completed_tasks])
        writer.writerow([])

        writer.writerow(["Velocity Data"])
        writer.writerow(["Period", "Completed", "Points", "Rolling Avg", "Trend"])
        for v in dashboard.velocity:
            writer.writerow([v.period, v.completed, v.points, v.avg_velocity, v.trend.value])
        writer.writerow([])

        writer.writerow(["Burndown"])
        writer.writerow(["Date", "Ideal", "Actual", "Completed"])
        for point in dashboard.burndown:
            writer.writerow([point.date, point.ideal, point.actual, point.completed])

        return output.getvalue()

    def _export_to_markdown(self, dashboard: ProjectDashboard) -> str:
        lines = [f"# {dashboard.project.name} health report", ""]
        lines.append(f"- Health: **{dashboard.health.score}** ({dashboard.health.status.value})")
        lines.append(f"- Risk: **{dashboard.risk.score:.1f}** ({dashboard.risk.level.value})")
        lines.append(f"- Tasks: {dashboard.completed_tasks}/{dashboard.total_tasks} done")
        lines.append("")
        lines.extend(["## Recommendations", ""])
        lines.extend(f"- {rec}" for rec in dashboard.risk.recommendations)
        lines.append("")

        insights = self.get_project_insights(dashboard)
        if insights:
            lines.extend(["## Insights", ""])
            lines.extend(f"- {insight}" for insight in insights)
            lines.append("")

        post = frontmatter.Post(
            "\n".join(lines),
            project_id=dashboard.project.id,
            generated_at=dashboard.generated_at.isoformat(),
            health_score=dashboard.health.score,
            health_status=dashboard.health.status.value,
            risk_score=dashboard.risk.score,
            risk_level=dashboard.risk.level.value,
        )
        return frontmatter.dumps(post)
