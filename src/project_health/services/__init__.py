"""Services for Project Health scoring and analytics."""

from .tasks import TaskCompletion, get_task_completion, count_overdue_tasks
from .events import EventLog
from .time_tracking import TimeTracker, TimeRollup
from .milestones import MilestoneTracker, MilestoneSummary
from .dependencies import DependencyGraph, DependencyManager
from .health import HealthScorer, HealthScore, HealthStatus, calculate_health
from .risk import RiskScorer, RiskAnalysis, RiskLevel, calculate_risk
from .project_analytics import (
    ProjectAnalytics,
    VelocityData,
    VelocityTrend,
    BurndownPoint,
    CompletionStats,
    EstimateAccuracyReport,
)
from .health_history import HealthHistory
from .dashboard import ProjectAnalyzer, ProjectDashboard

__all__ = [
    "TaskCompletion",
    "get_task_completion",
    "count_overdue_tasks",
    "EventLog",
    "TimeTracker",
    "TimeRollup",
    "MilestoneTracker",
    "MilestoneSummary",
    "DependencyGraph",
    "DependencyManager",
    "HealthScorer",
    "HealthScore",
    "HealthStatus",
    "calculate_health",
    "RiskScorer",
    "RiskAnalysis",
    "RiskLevel",
    "calculate_risk",
    "ProjectAnalytics",
    "VelocityData",
    "VelocityTrend",
    "BurndownPoint",
    "CompletionStats",
    "EstimateAccuracyReport",
    "HealthHistory",
    "ProjectAnalyzer",
    "ProjectDashboard",
]
