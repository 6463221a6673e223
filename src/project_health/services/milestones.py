"""Milestone progress tracking."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from ..domain import Milestone, Task
from ..storage import AnalyticsStore
from .tasks import TaskCompletion, get_task_completion


@dataclass
class MilestoneSummary:
    """A milestone with its derived completion."""
    milestone: Milestone
    progress: TaskCompletion
    is_overdue: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.milestone.to_dict(),
            "progress": self.progress.to_dict(),
            "is_overdue": self.is_overdue,
        }


def milestone_progress(tasks: Iterable[Task], milestone_id: str) -> TaskCompletion:
    return get_task_completion(t for t in tasks if t.milestone_id == milestone_id)


def is_milestone_overdue(milestone: Milestone, progress: TaskCompletion, today: date) -> bool:
    """Past its target date and not every linked task is done."""
    if milestone.target is None or milestone.target >= today:
        return False
    return progress.percent < 100


class MilestoneTracker:
    """Derives milestone completion from linked tasks."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    def get_milestone_progress(self, project_id: str, milestone_id: str) -> TaskCompletion:
        return milestone_progress(self.store.list_tasks(project_id), milestone_id)

    def summarize(self, project_id: str, today: date,
                  tasks: Optional[List[Task]] = None) -> List[MilestoneSummary]:
        """Every milestone of a project with progress, ordered by target date."""
        if tasks is None:
            tasks = self.store.list_tasks(project_id)
        summaries = []
        for milestone in self.store.list_milestones(project_id):
            progress = milestone_progress(tasks, milestone.id)
            summaries.append(MilestoneSummary(
                milestone=milestone,
                progress=progress,
                is_overdue=is_milestone_overdue(milestone, progress, today),
            ))
        summaries.sort(key=lambda s: (s.milestone.target is None, s.milestone.target or today))
        return summaries

    def count_overdue_milestones(self, project_id: str, today: date,
                                 tasks: Optional[List[Task]] = None) -> int:
        return sum(1 for s in self.summarize(project_id, today, tasks) if s.is_overdue)
