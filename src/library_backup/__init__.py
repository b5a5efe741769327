"""Index and album backup worker for the photo library."""

from __future__ import annotations

from .config import BackupConfig, ConfigurationError, load_config  # noqa: F401
from .mutex import BACKUP_WORKER, AlreadyRunning, ExclusiveExecutionGate  # noqa: F401
from .orchestrator import (  # noqa: F401
    BackupCanceled,
    BackupError,
    BackupOrchestrator,
    BackupResult,
    InternalFault,
)
from .providers import AlbumExportProvider, IndexBackupProvider, ProviderError  # noqa: F401
