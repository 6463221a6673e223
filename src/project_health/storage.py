"""Storage layer for Project Health.

Two backends implement the same read/write contract:

- ``MemoryStore`` keeps everything in process.
- ``FileStore`` keeps one markdown file per project with YAML frontmatter
  holding the project's tasks, time logs, milestones, events, dependencies
  and health history. The markdown body is a readable summary and is never
  parsed back.

Reads always hand out copies, so analytics work on a snapshot of the store
taken at call time. A project file that cannot be read is treated as empty.
"""

import copy
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import frontmatter
import yaml

from .config import ConfigModel, HealthWeights, clean_weights
from .domain import (
    HealthSnapshot,
    Milestone,
    Project,
    ProjectEvent,
    Task,
    TaskStatus,
    TimeLog,
)
from .utils.datetime import min_utc
from .utils.validation import coerce_positive_hours

logger = logging.getLogger(__name__)

SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class ProjectRecord:
    """Everything the store keeps for one project id."""

    project_id: str
    project: Optional[Project] = None
    tasks: Dict[str, Task] = field(default_factory=dict)
    time_logs: List[TimeLog] = field(default_factory=list)
    milestones: Dict[str, Milestone] = field(default_factory=dict)
    events: List[ProjectEvent] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)
    health_history: Dict[str, float] = field(default_factory=dict)

    def recompute_logged_hours(self, task_id: str) -> None:
        """Set a task's ``logged_hours`` to the sum of its time logs."""
        task = self.tasks.get(task_id)
        if task is None:
            return
        hours = [log.hours for log in self.time_logs if log.task_id == task_id]
        if hours:
            task.logged_hours = math.fsum(hours)

    def to_dict(self) -> Dict[str, Any]:
        project = self.project.to_dict() if self.project else {"id": self.project_id}
        return {
            **project,
            "registered": self.project is not None,
            "depends_on": list(self.depends_on),
            "tasks": [t.to_dict() for t in self.tasks.values()],
            "milestones": [m.to_dict() for m in self.milestones.values()],
            "time_logs": [log.to_dict() for log in self.time_logs],
            "events": [e.to_dict() for e in self.events],
            "health_history": dict(sorted(self.health_history.items())),
        }

    @classmethod
    def from_dict(cls, project_id: str, data: Dict[str, Any]) -> "ProjectRecord":
        """Build a record from stored data, dropping unusable entries."""
        record = cls(project_id=project_id)
        if data.get("registered", True):
            record.project = Project.from_dict({**data, "id": project_id})
        record.depends_on = [str(d) for d in _as_names(data.get("depends_on"))]
        for item in _as_list(data.get("tasks")):
            task = Task.from_dict({**item, "project_id": project_id})
            record.tasks[task.id] = task
        for item in _as_list(data.get("milestones")):
            milestone = Milestone.from_dict({**item, "project_id": project_id})
            record.milestones[milestone.id] = milestone
        for item in _as_list(data.get("time_logs")):
            log = TimeLog.from_dict(item)
            if log is not None:
                record.time_logs.append(log)
        for item in _as_list(data.get("events")):
            event = ProjectEvent.from_dict(item)
            if event is not None:
                record.events.append(event)
        history = data.get("health_history")
        for day, score in (history.items() if isinstance(history, dict) else ()):
            snapshot = HealthSnapshot.from_dict(
                {"project_id": project_id, "date": day, "score": score}
            )
            if snapshot is not None:
                record.health_history[snapshot.date] = snapshot.score
        return record


def _as_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _as_names(value: Any) -> List[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if item and not isinstance(item, (dict, list))]


class AnalyticsStore(ABC):
    """Read/write contract consumed by the analytics engine."""

    def __init__(self, default_weights: Optional[HealthWeights] = None):
        self.default_weights = default_weights or HealthWeights()

    # Backend primitives

    @abstractmethod
    def _load(self, project_id: str) -> ProjectRecord:
        """Return a private copy of a project's record (empty if unknown)."""

    @abstractmethod
    def _save(self, record: ProjectRecord) -> bool:
        """Persist a project's record."""

    @abstractmethod
    def _remove(self, project_id: str) -> bool:
        """Remove a project's record entirely."""

    @abstractmethod
    def _project_ids(self) -> List[str]:
        """Ids of every stored record."""

    @abstractmethod
    def _read_weight_overrides(self) -> Dict[str, Any]:
        """Stored health weight overrides."""

    @abstractmethod
    def _write_weight_overrides(self, overrides: Dict[str, float]) -> bool:
        """Persist health weight overrides."""

    def _records(self) -> Iterable[ProjectRecord]:
        for project_id in self._project_ids():
            yield self._load(project_id)

    def _find_record_with_task(self, task_id: str) -> Optional[ProjectRecord]:
        for record in self._records():
            if task_id in record.tasks:
                return record
        return None

    # Projects

    def upsert_project(self, project: Project) -> bool:
        record = self._load(project.id)
        record.project = copy.deepcopy(project)
        return self._save(record)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._load(project_id).project

    def list_projects(self) -> List[Project]:
        return [r.project for r in self._records() if r.project is not None]

    def delete_project(self, project_id: str) -> bool:
        return self._remove(project_id)

    def get_projects_by_ids(self, ids: Iterable[str]) -> List[Project]:
        """Projects for the given ids; unknown ids are skipped."""
        found = []
        for project_id in ids:
            project = self._load(project_id).project
            if project is not None:
                found.append(project)
        return found

    # Tasks

    def list_tasks(self, project_id: str) -> List[Task]:
        return list(self._load(project_id).tasks.values())

    def get_task(self, task_id: str) -> Optional[Task]:
        record = self._find_record_with_task(task_id)
        return record.tasks[task_id] if record else None

    def upsert_task(self, task: Task) -> bool:
        """Insert or replace a task.

        When the task already has time logs its ``logged_hours`` is taken from
        them rather than from the caller.
        """
        previous = self._find_record_with_task(task.id)
        if previous is not None and previous.project_id != task.project_id:
            del previous.tasks[task.id]
            self._save(previous)
        record = self._load(task.project_id)
        record.tasks[task.id] = copy.deepcopy(task)
        record.recompute_logged_hours(task.id)
        return self._save(record)

    def delete_task(self, task_id: str) -> bool:
        record = self._find_record_with_task(task_id)
        if record is None:
            return False
        del record.tasks[task_id]
        return self._save(record)

    # Time logs

    def list_time_logs(
        self, task_id: Optional[str] = None, project_id: Optional[str] = None
    ) -> List[TimeLog]:
        """Time logs matching the filters, oldest first."""
        if project_id is not None:
            records: Iterable[ProjectRecord] = [self._load(project_id)]
        else:
            records = self._records()
        logs = [
            log
            for record in records
            for log in record.time_logs
            if task_id is None or log.task_id == task_id
        ]
        return sorted(logs, key=lambda log: log.logged_at)

    def append_time_log(self, log: TimeLog) -> bool:
        """Append a log and refresh the task aggregate in the same write."""
        hours = coerce_positive_hours(log.hours)
        if hours is None:
            logger.warning(f"Rejected time log {log.id} with hours={log.hours!r}")
            return False
        if log.logged_at is None:
            logger.warning(f"Rejected time log {log.id} without a usable timestamp")
            return False
        stored = copy.deepcopy(log)
        stored.hours = hours
        record = self._load(log.project_id)
        record.time_logs.append(stored)
        record.recompute_logged_hours(log.task_id)
        return self._save(record)

    # Milestones

    def list_milestones(self, project_id: str) -> List[Milestone]:
        return list(self._load(project_id).milestones.values())

    def upsert_milestone(self, milestone: Milestone) -> bool:
        record = self._load(milestone.project_id)
        record.milestones[milestone.id] = copy.deepcopy(milestone)
        return self._save(record)

    def delete_milestone(self, milestone_id: str) -> bool:
        for record in self._records():
            if milestone_id in record.milestones:
                del record.milestones[milestone_id]
                return self._save(record)
        return False

    # Events

    def list_events(self, project_id: str) -> List[ProjectEvent]:
        """Project events, newest first."""
        events = self._load(project_id).events
        return sorted(events, key=lambda e: e.timestamp or min_utc(), reverse=True)

    def append_event(self, event: ProjectEvent) -> bool:
        if event.timestamp is None:
            logger.warning(f"Rejected event {event.id} without a usable timestamp")
            return False
        record = self._load(event.project_id)
        record.events.append(copy.deepcopy(event))
        return self._save(record)

    # Dependencies

    def get_dependencies(self, project_id: str) -> List[str]:
        return list(self._load(project_id).depends_on)

    def set_dependencies(self, project_id: str, depends_on: List[str]) -> bool:
        record = self._load(project_id)
        record.depends_on = [str(d) for d in depends_on]
        return self._save(record)

    def list_dependency_records(self) -> Dict[str, List[str]]:
        """Every project's direct dependencies, keyed by project id."""
        return {r.project_id: list(r.depends_on) for r in self._records() if r.depends_on}

    # Health history

    def upsert_snapshot(self, snapshot: HealthSnapshot) -> bool:
        record = self._load(snapshot.project_id)
        record.health_history[snapshot.date] = snapshot.score
        return self._save(record)

    def list_snapshots(self, project_id: str) -> List[HealthSnapshot]:
        history = self._load(project_id).health_history
        return [
            HealthSnapshot(project_id=project_id, date=day, score=score)
            for day, score in sorted(history.items())
        ]

    # Weights

    def get_weights(self) -> HealthWeights:
        """Configured defaults with stored overrides applied."""
        return self.default_weights.merged(self._read_weight_overrides())

    def set_weights(self, partial: Dict[str, Any]) -> HealthWeights:
        """Merge ``partial`` into the stored overrides."""
        overrides = clean_weights(self._read_weight_overrides())
        overrides.update(clean_weights(partial))
        self._write_weight_overrides(overrides)
        return self.get_weights()


class MemoryStore(AnalyticsStore):
    """In-process store."""

    def __init__(self, default_weights: Optional[HealthWeights] = None):
        super().__init__(default_weights)
        self._data: Dict[str, ProjectRecord] = {}
        self._weights: Dict[str, float] = {}

    def _load(self, project_id: str) -> ProjectRecord:
        record = self._data.get(project_id)
        return copy.deepcopy(record) if record else ProjectRecord(project_id=project_id)

    def _save(self, record: ProjectRecord) -> bool:
        self._data[record.project_id] = copy.deepcopy(record)
        return True

    def _remove(self, project_id: str) -> bool:
        return self._data.pop(project_id, None) is not None

    def _project_ids(self) -> List[str]:
        return list(self._data)

    def _read_weight_overrides(self) -> Dict[str, Any]:
        return dict(self._weights)

    def _write_weight_overrides(self, overrides: Dict[str, float]) -> bool:
        self._weights = dict(overrides)
        return True


class ProjectMarkdownFormat:
    """Handles conversion between project records and markdown files."""

    STATUS_BOXES = {
        TaskStatus.TODO: "- [ ]",
        TaskStatus.IN_PROGRESS: "- [/]",
        TaskStatus.REVIEW: "- [?]",
        TaskStatus.DONE: "- [x]",
    }

    @classmethod
    def to_markdown(cls, record: ProjectRecord) -> str:
        """Convert a record to markdown with YAML frontmatter."""
        title = record.project.name if record.project else record.project_id
        lines = [f"# {title}", ""]

        if record.tasks:
            lines.extend(["## Tasks", ""])
            for task in record.tasks.values():
                line = f"{cls.STATUS_BOXES[task.status]} {task.title or task.id}"
                if task.due:
                    line += f" !{task.due.isoformat()}"
                if task.assignee:
                    line += f" +{task.assignee}"
                lines.append(f"{line} <!-- id:{task.id} -->")
            lines.append("")

        if record.milestones:
            lines.extend(["## Milestones", ""])
            for milestone in record.milestones.values():
                target = f" (target {milestone.target.isoformat()})" if milestone.target else ""
                lines.append(f"- {milestone.title or milestone.id}{target}")
            lines.append("")

        post = frontmatter.Post("\n".join(lines), **record.to_dict())
        return frontmatter.dumps(post)

    @staticmethod
    def from_markdown(project_id: str, content: str) -> ProjectRecord:
        """Parse the frontmatter of a project file back into a record."""
        post = frontmatter.loads(content)
        return ProjectRecord.from_dict(project_id, post.metadata)


class FileStore(AnalyticsStore):
    """Key-value fallback store persisted under ``config.data_dir``."""

    def __init__(self, config: ConfigModel):
        super().__init__(config.health_weights)
        self.config = config
        self.projects_dir = config.get_projects_dir()
        self.weights_path = config.get_weights_path()
        self._ensure_directories()

    def _ensure_directories(self):
        try:
            self.projects_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Storage directory {self.projects_dir} is not available: {e}")

    def get_project_path(self, project_id: str) -> Path:
        """Get the file path for a project."""
        return self.projects_dir / f"{SAFE_NAME_RE.sub('_', project_id)}.md"

    def _load(self, project_id: str) -> ProjectRecord:
        path = self.get_project_path(project_id)
        if not path.exists():
            return ProjectRecord(project_id=project_id)
        try:
            content = path.read_text(encoding="utf-8")
            return ProjectMarkdownFormat.from_markdown(project_id, content)
        except (OSError, UnicodeDecodeError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.warning(f"Could not read project file {path}: {e}")
            return ProjectRecord(project_id=project_id)

    def _save(self, record: ProjectRecord) -> bool:
        path = self.get_project_path(record.project_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(ProjectMarkdownFormat.to_markdown(record), encoding="utf-8")
            return True
        except OSError as e:
            logger.error(f"Error saving project {record.project_id}: {e}")
            return False

    def _remove(self, project_id: str) -> bool:
        path = self.get_project_path(project_id)
        try:
            if path.exists():
                path.unlink()
                return True
            return False
        except OSError as e:
            logger.error(f"Error deleting project {project_id}: {e}")
            return False

    def _project_ids(self) -> List[str]:
        if not self.projects_dir.exists():
            return []
        ids = []
        for path in sorted(self.projects_dir.glob("*.md")):
            try:
                metadata = frontmatter.loads(path.read_text(encoding="utf-8")).metadata
            except (OSError, UnicodeDecodeError, ValueError, TypeError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable project file {path}: {e}")
                continue
            ids.append(str(metadata.get("id") or path.stem))
        return ids

    def _read_weight_overrides(self) -> Dict[str, Any]:
        if not self.weights_path.exists():
            return {}
        try:
            data = yaml.safe_load(self.weights_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read health weights from {self.weights_path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_weight_overrides(self, overrides: Dict[str, float]) -> bool:
        try:
            self.weights_path.parent.mkdir(parents=True, exist_ok=True)
            self.weights_path.write_text(
                yaml.dump(overrides, default_flow_style=False), encoding="utf-8"
            )
            return True
        except OSError as e:
            logger.error(f"Failed to save health weights to {self.weights_path}: {e}")
            return False


def get_store(config: ConfigModel) -> AnalyticsStore:
    """Build the store selected by ``config.storage_backend``."""
    if config.storage_backend == "memory":
        return MemoryStore(config.health_weights)
    if config.storage_backend != "file":
        logger.warning(f"Unknown storage backend '{config.storage_backend}', using file store")
    return FileStore(config)
