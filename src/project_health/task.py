"""Task data model for Project Health."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional
from enum import Enum

from .utils.datetime import parse_date, day_key
from .utils.validation import coerce_float


class TaskStatus(Enum):
    """Task status states."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"


class Priority(Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Task:
    """A unit of work inside a project.

    ``logged_hours`` is an aggregate of the task's time logs. It is owned by
    the store, which recomputes it whenever a time log is appended.
    """

    id: str
    project_id: str
    title: str = ""
    status: TaskStatus = TaskStatus.TODO
    assignee: Optional[str] = None
    due: Optional[date] = None
    priority: Optional[Priority] = None
    milestone_id: Optional[str] = None
    estimate_hours: Optional[float] = None
    logged_hours: Optional[float] = None

    def __post_init__(self):
        """Normalize loosely-typed fields."""
        if not isinstance(self.status, TaskStatus):
            self.status = _parse_status(self.status)
        if self.priority is not None and not isinstance(self.priority, Priority):
            self.priority = _parse_priority(self.priority)
        self.due = parse_date(self.due)
        self.estimate_hours = coerce_float(self.estimate_hours)
        self.logged_hours = coerce_float(self.logged_hours)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def is_overdue(self, today: date) -> bool:
        """Check if the task is past its due date and not done."""
        if self.is_done or self.due is None:
            return False
        return self.due < today

    def to_dict(self) -> Dict[str, Any]:
        """Convert the Task to a dictionary."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "status": self.status.value,
            "assignee": self.assignee,
            "due": day_key(self.due) if self.due else None,
            "priority": self.priority.value if self.priority else None,
            "milestone_id": self.milestone_id,
            "estimate_hours": self.estimate_hours,
            "logged_hours": self.logged_hours,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from a dictionary, tolerating malformed fields."""
        return cls(
            id=str(data.get("id", "")),
            project_id=str(data.get("project_id", "")),
            title=data.get("title") or "",
            status=_parse_status(data.get("status")),
            assignee=data.get("assignee"),
            due=data.get("due"),
            priority=_parse_priority(data.get("priority")),
            milestone_id=data.get("milestone_id"),
            estimate_hours=data.get("estimate_hours"),
            logged_hours=data.get("logged_hours"),
        )


def _parse_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        return TaskStatus.TODO


def _parse_priority(value: Any) -> Optional[Priority]:
    if value is None:
        return None
    try:
        return Priority(value)
    except ValueError:
        return None
