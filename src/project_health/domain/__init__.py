"""Domain models for Project Health."""

from ..task import Task, TaskStatus, Priority
from ..project import Project, ProjectStatus, ProjectDependency
from ..time_log import TimeLog
from ..milestone import Milestone
from ..events import ProjectEvent, EventType
from ..snapshot import HealthSnapshot

__all__ = [
    "Task",
    "TaskStatus",
    "Priority",
    "Project",
    "ProjectStatus",
    "ProjectDependency",
    "TimeLog",
    "Milestone",
    "ProjectEvent",
    "EventType",
    "HealthSnapshot",
]
