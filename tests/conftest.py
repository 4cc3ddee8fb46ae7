"""
Pytest configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from baremetal_csi.api.models import GBYTE, OperationalStatus, StorageClass, Volume
from baremetal_csi.cli.lib.state import RecordStore
from baremetal_csi.common.capacity import CapacityProvider
from baremetal_csi.common.volume_operations import VolumeOperations


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: tests spanning the CLI or several components")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def state_dir(temp_dir, monkeypatch):
    """Point the state directory and config file at a temporary directory."""
    monkeypatch.setenv("BMCSI_STATE_DIR", str(temp_dir))
    monkeypatch.setenv("BMCSI_CONFIG_PATH", str(temp_dir / "missing.conf"))
    return temp_dir


@pytest.fixture
def store(state_dir):
    """Record store backed by the temporary state directory."""
    return RecordStore(state_dir)


@pytest.fixture
def mock_capacity_provider():
    """Mock capacity provider."""
    return Mock(spec=CapacityProvider)


@pytest.fixture
def operations(store, mock_capacity_provider):
    """VolumeOperations with a short poll interval."""
    return VolumeOperations(store, mock_capacity_provider, poll_interval=0.01)


@pytest.fixture
def test_volume():
    """A 1 GiB whole-drive volume in creating status."""
    return Volume(
        id="volume-1",
        node_id="node-1",
        location="drive-1",
        storage_class=StorageClass.HDD,
        size_bytes=GBYTE,
        status=OperationalStatus.CREATING,
    )
