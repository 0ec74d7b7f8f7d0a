from pathlib import Path

import pytest
import yaml

from taskboard.server.app import create_app
from taskboard.server.dependencies import reset_dependencies

from helpers import ADMIN_EMAIL

ENV_VARS = (
    "TASKBOARD_CONFIG",
    "TASKBOARD_STORAGE_BACKEND",
    "TASKBOARD_DB_PATH",
    "TASKBOARD_TASKS_FILE",
    "TASKBOARD_REQUIRE_SESSION",
    "TASKBOARD_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's TASKBOARD_* settings out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    reset_dependencies()


def write_config(tmp_path: Path, backend: str) -> Path:
    config = {
        "storage": {
            "backend": backend,
            "db_path": str(tmp_path / "taskboard.db"),
            "tasks_file": str(tmp_path / "tasks.json"),
        },
        "auth": {"admin_emails": [ADMIN_EMAIL]},
        "log": {"level": "WARNING", "file": ""},
    }
    path = tmp_path / "app_config.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


def build_app(tmp_path, monkeypatch, backend: str):
    monkeypatch.setenv("TASKBOARD_CONFIG", str(write_config(tmp_path, backend)))
    reset_dependencies()
    return create_app()


@pytest.fixture
def json_app(tmp_path, monkeypatch):
    """App on the JSON-file backend, sessions optional."""
    return build_app(tmp_path, monkeypatch, "json")


@pytest.fixture
def sqlite_app(tmp_path, monkeypatch):
    """App on the SQLite backend, sessions required."""
    return build_app(tmp_path, monkeypatch, "sqlite")

