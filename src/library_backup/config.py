from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from croniter import CroniterBadCronError, croniter
from pydantic import BaseModel, Field, field_validator


class ConfigurationError(Exception):
    """Raised when the backup configuration is invalid."""


class ConfigurationProvider(Protocol):
    def backup_index_enabled(self) -> bool:
        ...

    def backup_albums_enabled(self) -> bool:
        ...

    def index_backup_path(self) -> Path:
        ...

    def albums_backup_path(self) -> Path:
        ...

    def backup_retain(self) -> int:
        ...


# --- Scheduler ---------------------------------------------------------------


class SchedulerConfig(BaseModel):
    cron: str
    timezone: str = "UTC"
    run_on_startup: bool = False

    @field_validator("cron")
    @classmethod
    def _validate_cron(cls, value: str) -> str:
        try:
            croniter(value, datetime.now(ZoneInfo("UTC")))
        except (CroniterBadCronError, ValueError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc
        return value

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


# --- Providers ---------------------------------------------------------------


class ProvidersConfig(BaseModel):
    index: Optional[str] = Field(default=None, description="Import path of the index backup provider.")
    albums: Optional[str] = Field(default=None, description="Import path of the album export provider.")


# --- Backup ------------------------------------------------------------------


class BackupConfig(BaseModel):
    index: bool = True
    albums: bool = True
    index_path: Path
    albums_path: Path
    retain: int = Field(default=3, description="Number of index backups to keep.")
    providers: ProvidersConfig = ProvidersConfig()
    scheduler: Optional[SchedulerConfig] = None
    logging: LoggingConfig = LoggingConfig()

    @field_validator("index_path", "albums_path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("retain")
    @classmethod
    def _require_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Retain count cannot be negative.")
        return value

    def backup_index_enabled(self) -> bool:
        return self.index

    def backup_albums_enabled(self) -> bool:
        return self.albums

    def index_backup_path(self) -> Path:
        return self.index_path

    def albums_backup_path(self) -> Path:
        return self.albums_path

    def backup_retain(self) -> int:
        return self.retain


def load_config(path: Path) -> BackupConfig:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if "backup" not in raw:
        raise ConfigurationError("Top-level 'backup' block missing")

    try:
        return BackupConfig.model_validate(raw["backup"])
    except Exception as exc:  # noqa: BLE001
        raise ConfigurationError(str(exc)) from exc
