"""Daily health snapshot model."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .utils.datetime import parse_date, day_key
from .utils.validation import coerce_float


@dataclass
class HealthSnapshot:
    """Health score of a project on one calendar day (``YYYY-MM-DD``)."""

    project_id: str
    date: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"project_id": self.project_id, "date": self.date, "score": self.score}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["HealthSnapshot"]:
        day = parse_date(data.get("date"))
        score = coerce_float(data.get("score"))
        if day is None or score is None:
            return None
        return cls(project_id=str(data.get("project_id", "")), date=day_key(day), score=score)
