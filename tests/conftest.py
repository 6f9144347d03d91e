import pytest

from time_tracker_plus.store import FolderStore


@pytest.fixture()
def store(tmp_path):
    return FolderStore(tmp_path)
