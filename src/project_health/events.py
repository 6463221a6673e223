"""Project lifecycle event model for Project Health."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum

from .utils.datetime import now_utc, parse_datetime, to_iso_string


class EventType(Enum):
    """Kinds of project lifecycle events."""
    CREATE = "create"
    EDIT = "edit"
    STAR = "star"
    UNSTAR = "unstar"
    DELETE = "delete"
    TIMELOG = "timelog"


def new_event_id() -> str:
    return f"e_{uuid.uuid4().hex[:16]}"


@dataclass
class ProjectEvent:
    """Append-only project event. Never mutated after creation."""

    id: str
    project_id: str
    type: EventType
    timestamp: datetime = field(default_factory=now_utc)
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        # Naive values are taken as UTC; unusable ones become None
        self.timestamp = parse_datetime(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "type": self.type.value,
            "timestamp": to_iso_string(self.timestamp),
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["ProjectEvent"]:
        """Create a ProjectEvent from a dictionary, or None if unusable."""
        timestamp = parse_datetime(data.get("timestamp"))
        try:
            event_type = EventType(data.get("type"))
        except ValueError:
            return None
        if timestamp is None:
            return None
        return cls(
            id=str(data.get("id") or new_event_id()),
            project_id=str(data.get("project_id", "")),
            type=event_type,
            timestamp=timestamp,
            data=data.get("data"),
        )
