"""Time log data model for Project Health."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .utils.datetime import now_utc, parse_datetime, to_iso_string
from .utils.validation import coerce_float


def new_time_log_id() -> str:
    return f"tl_{uuid.uuid4().hex[:16]}"


@dataclass
class TimeLog:
    """Append-only record of effort spent on a task."""

    id: str
    task_id: str
    project_id: str
    hours: float
    note: Optional[str] = None
    logged_at: datetime = field(default_factory=now_utc)
    logged_by: Optional[str] = None

    def __post_init__(self):
        # Naive values are taken as UTC; unusable ones become None
        self.logged_at = parse_datetime(self.logged_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "project_id": self.project_id,
            "hours": self.hours,
            "note": self.note,
            "logged_at": to_iso_string(self.logged_at),
            "logged_by": self.logged_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["TimeLog"]:
        """Create a TimeLog from a dictionary.

        Returns None for entries without a usable positive ``hours`` value or
        timestamp; such entries are never counted.
        """
        hours = coerce_float(data.get("hours"))
        logged_at = parse_datetime(data.get("logged_at"))
        if hours is None or hours <= 0 or logged_at is None:
            return None
        return cls(
            id=str(data.get("id") or new_time_log_id()),
            task_id=str(data.get("task_id", "")),
            project_id=str(data.get("project_id", "")),
            hours=hours,
            note=data.get("note"),
            logged_at=logged_at,
            logged_by=data.get("logged_by"),
        )
