"""
Configuration

Settings come from ``config/app_config.yaml`` (or the file named by
``TASKBOARD_CONFIG``) and can be overridden per key by environment variables.

Design Reference: DESIGN.md (configuration)
Related classes:
  - server.dependencies: builds stores and services from this config
  - tasks.cli: reuses the storage section
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigError

BACKENDS = ("sqlite", "json")
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "app_config.yaml"


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _section(yaml_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    # A header whose keys are all commented out loads as None
    data = yaml_data.get(name) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return data


@dataclass
class StorageConfig:
    """Task storage settings"""

    backend: str = "sqlite"
    db_path: str = "data/taskboard.db"
    tasks_file: str = "data/tasks.json"


@dataclass
class AuthConfig:
    """Session and credential settings"""

    # None: derived from the storage backend in Config.__post_init__
    require_session: Optional[bool] = None
    session_cookie: str = "taskboard_session"
    # 0 keeps sessions until logout
    session_ttl_hours: int = 168
    cookie_secure: bool = False
    password_min_length: int = 6
    admin_emails: List[str] = field(default_factory=list)


@dataclass
class ServerConfig:
    """HTTP server settings"""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class Config:
    """Application configuration"""

    storage: StorageConfig = None  # type: ignore
    auth: AuthConfig = None  # type: ignore
    server: ServerConfig = None  # type: ignore

    log_level: str = "INFO"
    log_file: Optional[str] = "logs/taskboard.log"

    def __post_init__(self):
        if self.storage is None:
            self.storage = StorageConfig()
        if self.auth is None:
            self.auth = AuthConfig()
        if self.server is None:
            self.server = ServerConfig()

        if self.storage.backend not in BACKENDS:
            raise ConfigError(
                f"Unknown storage backend: {self.storage.backend!r} (expected one of {', '.join(BACKENDS)})"
            )
        if self.auth.require_session is None:
            self.auth.require_session = self.storage.backend == "sqlite"
        self.auth.admin_emails = [email.strip().lower() for email in self.auth.admin_emails]

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "Config":
        """Load settings from a YAML file.

        Args:
            config_path: file to read (defaults to config/app_config.yaml)

        Returns:
            Config: loaded settings
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}
        if not isinstance(yaml_data, dict):
            raise ConfigError(f"{config_path}: expected a mapping at the top level")

        storage_data = _section(yaml_data, "storage")
        auth_data = _section(yaml_data, "auth")
        server_data = _section(yaml_data, "server")
        log_data = _section(yaml_data, "log")

        require_session = auth_data.get("require_session")
        return cls(
            storage=StorageConfig(
                backend=storage_data.get("backend", "sqlite"),
                db_path=storage_data.get("db_path", "data/taskboard.db"),
                tasks_file=storage_data.get("tasks_file", "data/tasks.json"),
            ),
            auth=AuthConfig(
                require_session=None if require_session is None else _as_bool(require_session),
                session_cookie=auth_data.get("session_cookie", "taskboard_session"),
                session_ttl_hours=int(auth_data.get("session_ttl_hours", 168)),
                cookie_secure=_as_bool(auth_data.get("cookie_secure", False)),
                password_min_length=int(auth_data.get("password_min_length", 6)),
                admin_emails=list(auth_data.get("admin_emails") or []),
            ),
            server=ServerConfig(
                host=server_data.get("host", "0.0.0.0"),
                port=int(server_data.get("port", 3000)),
                cors_origins=list(server_data.get("cors_origins") or ["*"]),
            ),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/taskboard.log"),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load settings from environment variables only."""
        require_session = os.getenv("TASKBOARD_REQUIRE_SESSION")
        admin_emails = os.getenv("TASKBOARD_ADMIN_EMAILS", "")
        return cls(
            storage=StorageConfig(
                backend=os.getenv("TASKBOARD_STORAGE_BACKEND", "sqlite"),
                db_path=os.getenv("TASKBOARD_DB_PATH", "data/taskboard.db"),
                tasks_file=os.getenv("TASKBOARD_TASKS_FILE", "data/tasks.json"),
            ),
            auth=AuthConfig(
                require_session=None if require_session is None else _as_bool(require_session),
                admin_emails=[e for e in admin_emails.split(",") if e.strip()],
            ),
            server=ServerConfig(
                host=os.getenv("TASKBOARD_HOST", "0.0.0.0"),
                port=int(os.getenv("TASKBOARD_PORT", "3000")),
            ),
            log_level=os.getenv("TASKBOARD_LOG_LEVEL", "INFO"),
            log_file=os.getenv("TASKBOARD_LOG_FILE", "logs/taskboard.log"),
        )

    @classmethod
    def load(cls) -> "Config":
        """Resolve the effective configuration.

        ``TASKBOARD_CONFIG`` wins, then the default YAML file, then the
        environment. Individual environment variables override the result.
        """
        env_config = os.getenv("TASKBOARD_CONFIG")
        if env_config:
            config = cls.from_yaml(Path(env_config))
        elif DEFAULT_CONFIG_PATH.exists():
            config = cls.from_yaml(DEFAULT_CONFIG_PATH)
        else:
            return cls.from_env()

        backend = os.getenv("TASKBOARD_STORAGE_BACKEND")
        if backend:
            if backend not in BACKENDS:
                raise ConfigError(f"Unknown storage backend: {backend!r}")
            if backend != config.storage.backend and os.getenv("TASKBOARD_REQUIRE_SESSION") is None:
                config.auth.require_session = backend == "sqlite"
            config.storage.backend = backend
        if os.getenv("TASKBOARD_DB_PATH"):
            config.storage.db_path = os.environ["TASKBOARD_DB_PATH"]
        if os.getenv("TASKBOARD_TASKS_FILE"):
            config.storage.tasks_file = os.environ["TASKBOARD_TASKS_FILE"]
        if os.getenv("TASKBOARD_REQUIRE_SESSION") is not None:
            config.auth.require_session = _as_bool(os.environ["TASKBOARD_REQUIRE_SESSION"])
        if os.getenv("TASKBOARD_LOG_LEVEL"):
            config.log_level = os.environ["TASKBOARD_LOG_LEVEL"]
        return config
