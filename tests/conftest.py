"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from project_health.config import Config, ConfigModel  # noqa: E402
from project_health.domain import Project, Task, TaskStatus  # noqa: E402
from project_health.storage import FileStore, MemoryStore  # noqa: E402


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_config():
    """Drop the cached configuration between tests."""
    Config._instance = None
    yield
    Config._instance = None


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def file_config(tmp_path) -> ConfigModel:
    return ConfigModel(data_dir=str(tmp_path / "data"))


@pytest.fixture
def file_store(file_config) -> FileStore:
    return FileStore(file_config)


@pytest.fixture
def make_tasks(store):
    """Create ``count`` tasks in a project, the first ``done`` of them done."""

    def _make(project_id: str, count: int, done: int = 0, **fields):
        tasks = []
        for i in range(count):
            task = Task(
                id=f"{project_id}-t{i + 1}",
                project_id=project_id,
                title=f"Task {i + 1}",
                status=TaskStatus.DONE if i < done else TaskStatus.TODO,
                **fields,
            )
            store.upsert_task(task)
            tasks.append(task)
        return tasks

    return _make


@pytest.fixture
def project(store) -> Project:
    proj = Project(id="alpha", name="Alpha")
    store.upsert_project(proj)
    return proj
