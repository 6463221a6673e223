"""Daily health snapshots used for trend sparklines."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from ..domain import HealthSnapshot
from ..storage import AnalyticsStore
from ..utils.datetime import day_key, utc_today

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 100


class HealthHistory:
    """One health score per project per calendar day (UTC)."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    def snapshot_health(self, project_id: str, score: float,
                        now: Optional[datetime] = None) -> HealthSnapshot:
        """Record today's score, replacing an earlier snapshot from today."""
        snapshot = HealthSnapshot(
            project_id=project_id,
            date=day_key(utc_today(now)),
            score=score,
        )
        if not self.store.upsert_snapshot(snapshot):
            logger.warning(f"Health snapshot for {project_id} on {snapshot.date} was not persisted")
        return snapshot

    def get_health_series(self, project_id: str, days: int = 14,
                          now: Optional[datetime] = None) -> List[float]:
        """Exactly ``days`` scores, oldest to newest.

        Days without a snapshot carry the previous day's score forward;
        before the first snapshot the score is 100.
        """
        if days <= 0:
            return []
        by_day = {s.date: s.score for s in self.store.list_snapshots(project_id)}
        today = utc_today(now)
        first_day = today - timedelta(days=days - 1)

        # Seed the carry-forward value from the latest snapshot before the window
        last = DEFAULT_SCORE
        earlier = [d for d in by_day if d < day_key(first_day)]
        if earlier:
            last = by_day[max(earlier)]

        series = []
        for i in range(days):
            key = day_key(first_day + timedelta(days=i))
            if key in by_day:
                last = by_day[key]
            series.append(last)
        return series

    def get_health_snapshot(self, project_id: str) -> Optional[float]:
        """Most recent recorded score, or None when there is no history."""
        snapshots = self.store.list_snapshots(project_id)
        if not snapshots:
            return None
        return max(snapshots, key=lambda s: s.date).score
