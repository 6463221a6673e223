"""Milestone data model for Project Health."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from .utils.datetime import day_key, parse_date


@dataclass
class Milestone:
    """Project milestone.

    Completion is not stored: it is the share of tasks linked through
    ``Task.milestone_id`` that are done.
    """

    id: str
    project_id: str
    title: str = ""
    start: Optional[date] = None
    target: Optional[date] = None
    description: Optional[str] = None

    def __post_init__(self):
        self.start = parse_date(self.start)
        self.target = parse_date(self.target)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "start": day_key(self.start) if self.start else None,
            "target": day_key(self.target) if self.target else None,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Milestone":
        return cls(
            id=str(data.get("id", "")),
            project_id=str(data.get("project_id", "")),
            title=data.get("title") or "",
            start=data.get("start"),
            target=data.get("target"),
            description=data.get("description"),
        )
