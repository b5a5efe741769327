from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Optional, Protocol, Tuple

from .config import BackupConfig, ConfigurationError


class IndexBackupProvider(Protocol):
    def backup(self, path: Path, label: str, incremental: bool, force: bool, retain: int) -> None:
        ...


class AlbumExportProvider(Protocol):
    def export(self, path: Path, force: bool) -> int:
        ...


class ProviderError(Exception):
    """Raised by backup providers to signal a controlled failure of one target."""

    def __init__(self, message: str, target: Optional[str] = None) -> None:
        super().__init__(message)
        self.target = target


def load_provider(import_path: str) -> Any:
    """Resolve ``package.module:attribute`` and return an instance.

    Classes and factory functions are called without arguments; any other
    attribute is returned as is.
    """
    module_name, sep, attribute = import_path.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Provider '{import_path}' must use the form 'module:attribute'.")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import provider module '{module_name}': {exc}") from exc

    try:
        target = getattr(module, attribute)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' has no attribute '{attribute}'.") from exc

    return target() if callable(target) else target


def create_providers(config: BackupConfig) -> Tuple[Optional[IndexBackupProvider], Optional[AlbumExportProvider]]:
    index_provider: Optional[IndexBackupProvider] = None
    album_provider: Optional[AlbumExportProvider] = None

    if config.index:
        if not config.providers.index:
            raise ConfigurationError("Index backup is enabled but no index provider is configured.")
        index_provider = load_provider(config.providers.index)

    if config.albums:
        if not config.providers.albums:
            raise ConfigurationError("Album backup is enabled but no album provider is configured.")
        album_provider = load_provider(config.providers.albums)

    return index_provider, album_provider
