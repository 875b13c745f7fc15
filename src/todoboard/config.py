"""Configuration loading for todoboard."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "todoboard.yaml"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class ServerConfig:
    """Persistence endpoint settings."""

    db_path: str = "todoboard.db"
    host: str = "127.0.0.1"
    port: int = 8000
    default_column_title: str = "Todo"


@dataclass
class ClientConfig:
    """HTTP client settings."""

    api_url: str = "http://127.0.0.1:8000"
    request_timeout: float = 30.0
    session_file: str = "~/.todoboard/session.json"

    def get_session_path(self) -> Path:
        """Get the expanded path of the stored login session."""
        return Path(self.session_file).expanduser()


@dataclass
class SyncConfig:
    """Optimistic sync settings.

    max_attempts counts the first try; 1 disables retries.
    """

    max_attempts: int = 3
    retry_delay: float = 1.0
    discard_stale_responses: bool = True


@dataclass
class LoggingConfig:
    """Log output settings."""

    dir: str = "logs"
    level: str = "INFO"
    console: bool = False


@dataclass
class TodoBoardConfig:
    """todoboard configuration, one section per component."""

    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    root_path: Path = field(default_factory=Path)

    @classmethod
    def from_dict(cls, data: dict[str, Any], root_path: Path) -> TodoBoardConfig:
        """Create config from dictionary.

        Args:
            data: Configuration dictionary from YAML.
            root_path: Root directory containing the config file.

        Returns:
            Parsed configuration object.

        Raises:
            ConfigError: If a section is not a mapping or a value has the wrong type.
        """
        server_data = _section(data, "server")
        client_data = _section(data, "client")
        sync_data = _section(data, "sync")
        logging_data = _section(data, "logging")

        try:
            server = ServerConfig(
                db_path=str(server_data.get("db_path", "todoboard.db")),
                host=str(server_data.get("host", "127.0.0.1")),
                port=int(server_data.get("port", 8000)),
                default_column_title=str(server_data.get("default_column_title", "Todo")),
            )
            client = ClientConfig(
                api_url=str(client_data.get("api_url", "http://127.0.0.1:8000")),
                request_timeout=float(client_data.get("request_timeout", 30.0)),
                session_file=str(client_data.get("session_file", "~/.todoboard/session.json")),
            )
            sync = SyncConfig(
                max_attempts=int(sync_data.get("max_attempts", 3)),
                retry_delay=float(sync_data.get("retry_delay", 1.0)),
                discard_stale_responses=_flag(sync_data, "discard_stale_responses", True),
            )
            log = LoggingConfig(
                dir=str(logging_data.get("dir", "logs")),
                level=str(logging_data.get("level", "INFO")),
                console=_flag(logging_data, "console", False),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        if sync.max_attempts < 1:
            raise ConfigError("sync.max_attempts must be at least 1")
        if sync.retry_delay < 0:
            raise ConfigError("sync.retry_delay must not be negative")

        return cls(server=server, client=client, sync=sync, logging=log, root_path=root_path)

    def apply_env_overrides(self, environ: dict[str, str] | None = None) -> TodoBoardConfig:
        """Apply TODOBOARD_* environment variables on top of file values.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            This configuration object, updated in place.
        """
        env = os.environ if environ is None else environ

        if "TODOBOARD_DB_PATH" in env:
            self.server.db_path = env["TODOBOARD_DB_PATH"]
        if "TODOBOARD_API_URL" in env:
            self.client.api_url = env["TODOBOARD_API_URL"]
        if "TODOBOARD_SESSION_FILE" in env:
            self.client.session_file = env["TODOBOARD_SESSION_FILE"]
        if "TODOBOARD_LOG_DIR" in env:
            self.logging.dir = env["TODOBOARD_LOG_DIR"]
        if "TODOBOARD_LOG_LEVEL" in env:
            self.logging.level = env["TODOBOARD_LOG_LEVEL"]
        return self

    def get_log_dir(self) -> Path:
        """Get absolute path to the log directory."""
        return self.root_path / self.logging.dir


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(section).__name__}")
    return section


def _flag(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be true or false, got {value!r}")
    return value


def load_config(config_path: Path | str) -> TodoBoardConfig:
    """Load todoboard configuration from a YAML file.

    Args:
        config_path: Path to todoboard.yaml file.

    Returns:
        Parsed configuration object.

    Raises:
        ConfigError: If file doesn't exist or is invalid.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")

    return TodoBoardConfig.from_dict(data, config_path.parent)


def find_config(start_path: Path | str | None = None) -> Path:
    """Find todoboard.yaml by walking up directory tree.

    Args:
        start_path: Starting directory. Defaults to current directory.

    Returns:
        Path to todoboard.yaml file.

    Raises:
        ConfigError: If no config file is found.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path)

    current = start_path.resolve()

    while current != current.parent:
        config_path = current / CONFIG_FILENAME
        if config_path.exists():
            return config_path
        current = current.parent

    config_path = current / CONFIG_FILENAME
    if config_path.exists():
        return config_path

    raise ConfigError(f"No {CONFIG_FILENAME} found in {start_path} or any parent directory")


def resolve_config(config_path: Path | str | None = None) -> TodoBoardConfig:
    """Load the configuration the command line should run with.

    An explicit path must exist. Without one, the nearest todoboard.yaml is
    used if there is one, otherwise built-in defaults. Environment overrides
    are applied last.
    """
    if config_path is None:
        try:
            config_path = find_config()
        except ConfigError:
            return TodoBoardConfig(root_path=Path.cwd()).apply_env_overrides()
    return load_config(config_path).apply_env_overrides()
