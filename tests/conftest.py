"""
Pytest configuration and fixtures for ubimkvol tests.
"""

import sys
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

LEB_SIZE = 126976


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ubi_info() -> "UbiInfo":
    from ubimkvol.core.models import UbiInfo

    return UbiInfo(dev_count=2, lowest_dev_num=0, highest_dev_num=1)


@pytest.fixture
def device_info() -> "DeviceInfo":
    from ubimkvol.core.models import DeviceInfo

    return DeviceInfo(
        dev_num=0,
        node="/dev/ubi0",
        avail_bytes=5000000,
        leb_size=LEB_SIZE,
        avail_lebs=39,
        total_lebs=1024,
        volumes_count=1,
        max_volumes=128,
        min_io_size=2048,
    )


@pytest.fixture
def volume_info() -> "VolumeInfo":
    from ubimkvol.core.models import VolumeInfo, VolumeType

    return VolumeInfo(
        dev_num=0,
        vol_id=3,
        name="data",
        rsvd_bytes=83 * LEB_SIZE,
        eb_size=LEB_SIZE,
        volume_type=VolumeType.DYNAMIC,
    )


@pytest.fixture
def mock_backend(ubi_info, device_info, volume_info) -> MagicMock:
    """Create a mock device manager backend with a working session()."""
    from ubimkvol.platform.base import VolumeManagerBackend

    backend = MagicMock(spec=VolumeManagerBackend)
    backend.name = "mock"
    backend.session.side_effect = lambda: VolumeManagerBackend.session(backend)
    backend.get_manager_info.return_value = ubi_info
    backend.get_device_info.return_value = device_info
    backend.create_volume.return_value = 3
    backend.get_volume_info.return_value = volume_info
    return backend


@pytest.fixture
def sample_config() -> "UbiMkvolConfig":
    """Create a sample configuration for testing."""
    from ubimkvol.core.config import LoggingConfig, UbiMkvolConfig

    with tempfile.TemporaryDirectory() as tmpdir:
        yield UbiMkvolConfig(
            logging=LoggingConfig(log_directory=Path(tmpdir) / "logs"),
        )


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
