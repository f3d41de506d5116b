import logging
import os
import string
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from typing_extensions import Self

from indexer_service.domain.indexer.model.value import START_FAILURE_STATUSES, IndexerStatus

# Placeholders the webhook command template may reference.
COMMAND_PLACEHOLDERS = frozenset({"indexer_id", "script_path", "target_url"})


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by INDEXER_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Get the value for a field from the YAML config."""
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("INDEXER_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class Server(BaseModel):
    """Server configuration (nested in Config, uses env_nested_delimiter)."""

    name: str = "Indexer Service"
    version: str = "0.1.0"
    description: str = "Runs and supervises user-supplied indexer scripts"
    host: str = "127.0.0.1"
    port: int = 8000


class StorageConfig(BaseModel):
    """Local storage layout.

    data_dir/
        indexer.db      # SQLite database (when database.url is not set)
        scripts/        # Uploaded indexer scripts
        logs/           # One output log per indexer process
    """

    data_dir: Path = Path.home() / ".local" / "share" / "indexer-service"

    @property
    def database_file(self) -> Path:
        return self.data_dir / "indexer.db"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"


class DatabaseConfig(BaseModel):
    """Database configuration (nested in Config, uses env_nested_delimiter).

    The url field uses empty string as sentinel to indicate "derive from
    storage.data_dir". When the user doesn't override it via
    INDEXER_DATABASE__URL, the actual path is computed in Config's
    model_validator.
    """

    url: str = ""  # Empty string = derive from data_dir; explicit value = use as-is
    echo: bool = False
    auto_migrate: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration (nested in Config, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file: str | None = None


class QueueConfig(BaseModel):
    """Control queue behaviour."""

    visibility_timeout: float = Field(default=60.0, gt=0)  # Seconds a received message is hidden
    max_receive_count: int = Field(default=5, ge=1)  # Deliveries before dead-lettering


class WorkerConfig(BaseModel):
    """Background queue worker configuration."""

    enabled: bool = True
    poll_interval: float = Field(default=0.5, gt=0)  # Seconds between polls when idle
    concurrency: int = Field(default=1, ge=1)  # Workers per consumer


class MonitorConfig(BaseModel):
    """Liveness monitor configuration."""

    enabled: bool = True
    interval: float = Field(default=10.0, gt=0)  # Seconds between checks
    probe_timeout: float = Field(default=5.0, gt=0)  # Seconds allowed for a single probe


class WebhookConfig(BaseModel):
    """Webhook indexer process configuration.

    ``command`` is an argv template; each item is formatted with
    ``{indexer_id}``, ``{script_path}`` and ``{target_url}``.
    """

    command: list[str] = ["apibara", "run", "{script_path}", "--target-url", "{target_url}"]
    startup_grace: float = Field(default=0.5, ge=0)  # Seconds a new process must survive
    stop_timeout: float = Field(default=10.0, gt=0)  # Seconds to wait after SIGTERM
    extra_env: dict[str, str] = {}

    @field_validator("command")
    @classmethod
    def check_placeholders(cls, command: list[str]) -> list[str]:
        if not command:
            raise ValueError("command must not be empty")
        for part in command:
            for _, name, _, _ in string.Formatter().parse(part):
                if name is not None and name not in COMMAND_PLACEHOLDERS:
                    raise ValueError(
                        f"Unknown placeholder {{{name}}} in command; "
                        f"allowed: {', '.join(sorted(COMMAND_PLACEHOLDERS))}"
                    )
        return command


class LifecycleConfig(BaseModel):
    """Indexer lifecycle policy."""

    start_failure_status: IndexerStatus = IndexerStatus.FAILED_RUNNING

    @field_validator("start_failure_status")
    @classmethod
    def check_start_failure_status(cls, status: IndexerStatus) -> IndexerStatus:
        if status not in START_FAILURE_STATUSES:
            allowed = ", ".join(sorted(s.value for s in START_FAILURE_STATUSES))
            raise ValueError(f"start_failure_status must be one of: {allowed}")
        return status


class Config(BaseSettings):
    server: Server = Server()
    storage: StorageConfig = StorageConfig()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    queue: QueueConfig = QueueConfig()
    worker: WorkerConfig = WorkerConfig()
    monitor: MonitorConfig = MonitorConfig()
    webhook: WebhookConfig = WebhookConfig()
    lifecycle: LifecycleConfig = LifecycleConfig()

    model_config = {
        "env_prefix": "INDEXER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows INDEXER_DATABASE__URL override
    }

    @model_validator(mode="after")
    def derive_database_url(self) -> Self:
        """Derive the SQLite database URL from storage.data_dir if not explicitly set."""
        if not self.database.url:
            self.database = DatabaseConfig(
                url=f"sqlite+aiosqlite:///{self.storage.database_file}",
                echo=self.database.echo,
                auto_migrate=self.database.auto_migrate,
            )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - INDEXER_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called once, early in startup.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(config.level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)  # Suppress job completion spam
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
