"""Project Health - health and risk analytics for projects, tasks and time logs."""

__version__ = "0.1.0"
__author__ = "Project Health Team"

from .domain import (
    Task,
    TaskStatus,
    Project,
    ProjectStatus,
    TimeLog,
)
from .config import HealthWeights

__all__ = [
    "Task",
    "TaskStatus",
    "Project",
    "ProjectStatus",
    "TimeLog",
    "HealthWeights",
    "__version__",
]
