from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .config import ConfigurationProvider
from .logger import clean_log, get_logger
from .mutex import BACKUP_WORKER, AlreadyRunning, ExclusiveExecutionGate
from .providers import AlbumExportProvider, IndexBackupProvider, ProviderError

LOG = get_logger(__name__)

TARGET_INDEX = "index"
TARGET_ALBUMS = "albums"

STATUS_SUCCESS = "success"
STATUS_SKIPPED = "skipped"
STATUS_REJECTED = "rejected"
STATUS_CANCELED = "canceled"
STATUS_FAILED = "failed"


class BackupError(Exception):
    """Base class for errors that end a backup run."""


class BackupCanceled(BackupError):
    """Raised when cancellation was requested before the album stage."""


class InternalFault(BackupError):
    """Wraps an unexpected exception raised while a run was in progress."""

    def __init__(self, message: str, trace: str = "") -> None:
        super().__init__(message)
        self.trace = trace


@dataclass
class StageResult:
    target: str
    status: str
    error: str = ""
    count: int = 0

    @property
    def success(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass
class BackupResult:
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    stages: List[StageResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.status in (STATUS_SUCCESS, STATUS_SKIPPED)

    @property
    def elapsed(self) -> timedelta:
        if self.started_at is None or self.completed_at is None:
            return timedelta(0)
        return self.completed_at - self.started_at

    @property
    def album_count(self) -> int:
        return sum(stage.count for stage in self.stages if stage.target == TARGET_ALBUMS)

    def stage(self, target: str) -> Optional[StageResult]:
        for stage in self.stages:
            if stage.target == target:
                return stage
        return None

    def raise_for_status(self) -> None:
        if self.error is not None and not self.success:
            raise self.error


class BackupOrchestrator:
    """Creates index and album backups, one run at a time.

    The index stage always runs before the album stage. Provider failures are
    logged and do not stop the other stage; cancellation is checked once,
    between the two stages.
    """

    def __init__(
        self,
        config: ConfigurationProvider,
        index_provider: Optional[IndexBackupProvider],
        album_provider: Optional[AlbumExportProvider],
        gate: ExclusiveExecutionGate = BACKUP_WORKER,
    ) -> None:
        self._config = config
        self._index_provider = index_provider
        self._album_provider = album_provider
        self._gate = gate
        self._last_run: Optional[datetime] = None

    @property
    def last_run(self) -> Optional[datetime]:
        return self._last_run

    def cancel(self) -> bool:
        return self._gate.cancel()

    def reconfigure(
        self,
        config: ConfigurationProvider,
        index_provider: Optional[IndexBackupProvider],
        album_provider: Optional[AlbumExportProvider],
    ) -> None:
        """Swap configuration and providers between runs; ``last_run`` is kept."""
        if self._gate.running():
            raise AlreadyRunning(self._gate.name)
        self._config = config
        self._index_provider = index_provider
        self._album_provider = album_provider

    def start_scheduled(self) -> Optional[BackupResult]:
        """Run with the current configuration; errors are logged, never raised."""
        try:
            result = self.run(
                self._config.backup_index_enabled(),
                self._config.backup_albums_enabled(),
                True,
                self._config.backup_retain(),
            )
        except Exception as exc:  # noqa: BLE001
            LOG.error("scheduler: %s (backup)", exc)
            return None

        if not result.success:
            LOG.error("scheduler: %s (backup)", result.error)
        return result

    def run(self, index: bool, albums: bool, force: bool, retain: int) -> BackupResult:
        if not index and not albums:
            LOG.debug("backup: no targets requested")
            return BackupResult(status=STATUS_SKIPPED)

        try:
            handle = self._gate.acquire()
        except AlreadyRunning as exc:
            return BackupResult(status=STATUS_REJECTED, errors=[str(exc)], error=exc)

        started_at = _utcnow()
        stages: List[StageResult] = []
        try:
            with handle:
                return self._execute(index, albums, force, retain, started_at, stages)
        except Exception as exc:  # noqa: BLE001
            fault = InternalFault(f"backup: {exc} (worker fault)", trace=traceback.format_exc())
            LOG.error("%s\n%s", fault, fault.trace)
            return BackupResult(
                status=STATUS_FAILED,
                started_at=started_at,
                completed_at=_utcnow(),
                stages=stages,
                errors=[str(fault)],
                error=fault,
            )

    def _execute(
        self,
        index: bool,
        albums: bool,
        force: bool,
        retain: int,
        started_at: datetime,
        stages: List[StageResult],
    ) -> BackupResult:
        if index and albums:
            LOG.info("backup: creating index and album backups")
        elif index:
            LOG.info("backup: creating index backup")
        else:
            LOG.info("backup: creating album backup")

        if index:
            stages.append(self._backup_index(force, retain))
        else:
            stages.append(StageResult(target=TARGET_INDEX, status=STATUS_SKIPPED))

        if self._gate.is_canceled():
            canceled = BackupCanceled("backup: canceled")
            LOG.warning("%s", canceled)
            return BackupResult(
                status=STATUS_CANCELED,
                started_at=started_at,
                completed_at=_utcnow(),
                stages=stages,
                errors=_stage_errors(stages) + [str(canceled)],
                error=canceled,
            )

        if albums:
            stages.append(self._backup_albums(force))
        else:
            stages.append(StageResult(target=TARGET_ALBUMS, status=STATUS_SKIPPED))

        completed_at = _utcnow()
        if self._last_run is None or completed_at > self._last_run:
            self._last_run = completed_at

        LOG.info("backup: completed in %s", completed_at - started_at)
        return BackupResult(
            status=STATUS_SUCCESS,
            started_at=started_at,
            completed_at=completed_at,
            stages=stages,
            errors=_stage_errors(stages),
        )

    def _backup_index(self, force: bool, retain: int) -> StageResult:
        path = self._config.index_backup_path()
        try:
            if self._index_provider is None:
                raise ProviderError("no index backup provider configured", target=TARGET_INDEX)
            self._index_provider.backup(path, "", False, force, retain)
        except ProviderError as exc:
            LOG.error("backup: %s (index)", exc)
            return StageResult(target=TARGET_INDEX, status=STATUS_FAILED, error=str(exc))
        return StageResult(target=TARGET_INDEX, status=STATUS_SUCCESS)

    def _backup_albums(self, force: bool) -> StageResult:
        path = self._config.albums_backup_path()
        LOG.info("creating album files in %s", clean_log(path))
        try:
            if self._album_provider is None:
                raise ProviderError("no album export provider configured", target=TARGET_ALBUMS)
            count = self._album_provider.export(path, force)
        except ProviderError as exc:
            LOG.error("backup: %s (albums)", exc)
            return StageResult(target=TARGET_ALBUMS, status=STATUS_FAILED, error=str(exc))

        if count > 0:
            LOG.debug("backup: %d albums saved as files", count)
        return StageResult(target=TARGET_ALBUMS, status=STATUS_SUCCESS, count=count)


def _stage_errors(stages: List[StageResult]) -> List[str]:
    return [f"{stage.target}: {stage.error}" for stage in stages if stage.status == STATUS_FAILED]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

