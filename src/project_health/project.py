"""Project data model for Project Health."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from enum import Enum


class ProjectStatus(Enum):
    """Project lifecycle states as shown on the dashboard."""
    ACTIVE = "Active"
    IN_PROGRESS = "In Progress"
    PAUSED = "Paused"
    COMPLETED = "Completed"


@dataclass
class Project:
    """Project record as seen by the analytics engine.

    ``status`` is kept as free text so that unknown states coming from a
    store survive a round trip; ``deadline`` may be a date string or a
    datetime and is only interpreted by the scorers.
    """

    id: str
    name: str = ""
    status: Optional[str] = None
    deadline: Optional[Union[str, datetime]] = None

    def __post_init__(self):
        if isinstance(self.status, ProjectStatus):
            self.status = self.status.value
        if not self.name:
            self.name = self.id

    @property
    def is_completed(self) -> bool:
        return self.status == ProjectStatus.COMPLETED.value

    def to_dict(self) -> Dict[str, Any]:
        deadline = self.deadline
        if isinstance(deadline, datetime):
            deadline = deadline.isoformat()
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "deadline": deadline,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            status=data.get("status"),
            deadline=data.get("deadline"),
        )


@dataclass
class ProjectDependency:
    """Direct "depends-on" links of a single project."""

    project_id: str
    depends_on: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"project_id": self.project_id, "depends_on": list(self.depends_on)}
