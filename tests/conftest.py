import pytest

from library_backup.config import BackupConfig
from library_backup.mutex import ExclusiveExecutionGate


@pytest.fixture
def gate():
    """Fresh gate so tests never share the process-wide backup worker."""
    return ExclusiveExecutionGate("backup")


@pytest.fixture
def config(tmp_path):
    return BackupConfig(
        index=True,
        albums=True,
        index_path=tmp_path / "backup" / "index",
        albums_path=tmp_path / "backup" / "albums",
        retain=5,
    )
