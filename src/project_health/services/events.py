"""Project event log."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..domain import EventType, ProjectEvent
from ..events import new_event_id
from ..storage import AnalyticsStore
from ..utils.datetime import ensure_aware, now_utc

logger = logging.getLogger(__name__)


class EventLog:
    """Append-only project lifecycle events backed by a store."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    def log_project_event(
        self,
        project_id: str,
        event_type: EventType,
        data: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> ProjectEvent:
        """Record an event for a project and return it."""
        event = ProjectEvent(
            id=new_event_id(),
            project_id=project_id,
            type=EventType(event_type),
            timestamp=ensure_aware(now) or now_utc(),
            data=data,
        )
        if not self.store.append_event(event):
            logger.warning(f"Event {event.type.value} for project {project_id} was not persisted")
        return event

    def get_project_events(self, project_id: str) -> List[ProjectEvent]:
        """Events of a project, newest first."""
        return self.store.list_events(project_id)

    def get_recent_events(
        self, project_id: str, days: int = 7, now: Optional[datetime] = None
    ) -> List[ProjectEvent]:
        """Events newer than ``days`` days, newest first."""
        cutoff = (ensure_aware(now) or now_utc()) - timedelta(days=days)
        return [e for e in self.get_project_events(project_id) if e.timestamp > cutoff]
