"""Task rollups shared by the scorers."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List

from ..domain import Task
from ..utils.validation import percent


@dataclass
class TaskCompletion:
    """Done/total counts for a set of tasks."""
    total: int
    done: int
    percent: int

    @property
    def remaining(self) -> int:
        return self.total - self.done

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "done": self.done, "percent": self.percent}


def get_task_completion(tasks: Iterable[Task]) -> TaskCompletion:
    """Completion of ``tasks``; percent is rounded half-up, 0 for no tasks."""
    tasks = list(tasks)
    total = len(tasks)
    done = sum(1 for t in tasks if t.is_done)
    return TaskCompletion(total=total, done=done, percent=percent(done, total))


def count_overdue_tasks(tasks: Iterable[Task], today: date) -> int:
    """Number of tasks not done whose due date is before ``today``."""
    return sum(1 for t in tasks if t.is_overdue(today))


def get_tasks_by_assignee(tasks: Iterable[Task], assignee: str) -> List[Task]:
    return [t for t in tasks if t.assignee == assignee]
