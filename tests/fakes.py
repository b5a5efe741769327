"""Provider doubles shared by the test suite."""

from pathlib import Path
from typing import Callable, List, Optional, Tuple

from library_backup.providers import ProviderError


class RecordingIndexBackup:
    def __init__(self, error: Optional[Exception] = None, on_call: Optional[Callable[[], None]] = None):
        self.calls: List[Tuple[Path, str, bool, bool, int]] = []
        self.error = error
        self.on_call = on_call

    def backup(self, path, label, incremental, force, retain):
        self.calls.append((path, label, incremental, force, retain))
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error


class RecordingAlbumExport:
    def __init__(self, count: int = 0, error: Optional[Exception] = None):
        self.calls: List[Tuple[Path, bool]] = []
        self.count = count
        self.error = error

    def export(self, path, force):
        self.calls.append((path, force))
        if self.error:
            raise self.error
        return self.count


class FailingIndexBackup(RecordingIndexBackup):
    def __init__(self):
        super().__init__(error=ProviderError("database locked", target="index"))


class FailingAlbumExport(RecordingAlbumExport):
    def __init__(self):
        super().__init__(error=ProviderError("disk full", target="albums"))


ALBUM_EXPORT_INSTANCE = RecordingAlbumExport(count=2)
