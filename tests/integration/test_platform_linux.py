"""
Tests for ubimkvol.platform.linux module.

Runs against a fake /sys/class/ubi tree; device node stats and the
creation ioctl are mocked, so no UBI device or root privileges are needed.
"""

import errno
import os
import stat
import struct
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from ubimkvol.core.config import UbiConfig
from ubimkvol.core.errors import BackendError
from ubimkvol.core.models import VOLUME_ID_AUTO, CreateRequest, VolumeType
from ubimkvol.core.pipeline import PipelineState, VolumeCreationPipeline
from ubimkvol.platform import get_platform_backend
from ubimkvol.platform.linux import LinuxBackend
from ubimkvol.platform.linux.sysfs import (
    MKVOL_REQUEST,
    UBI_IOCMKVOL,
    pack_mkvol_request,
    parse_dev_numbers,
    parse_device_entry,
    parse_int_attribute,
    parse_name_attribute,
    parse_volume_type,
    unpack_volume_id,
)

UBI_MAJOR = 250
LEB_SIZE = 126976

pytestmark = pytest.mark.integration


def write_attributes(directory: Path, **attributes: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for name, value in attributes.items():
        (directory / name).write_text(f"{value}\n")


@pytest.fixture
def sysfs(tmp_path: Path) -> Path:
    root = tmp_path / "class" / "ubi"
    root.mkdir(parents=True)
    (root / "version").write_text("1\n")
    for dev_num, major in ((0, UBI_MAJOR), (1, UBI_MAJOR + 1)):
        write_attributes(
            root / f"ubi{dev_num}",
            dev=f"{major}:0",
            avail_eraseblocks="39",
            total_eraseblocks="1024",
            eraseblock_size=str(LEB_SIZE),
            volumes_count="1",
            max_vol_count="128",
            min_io_size="2048",
        )
    write_attributes(
        root / "ubi0_5",
        name="data",
        reserved_ebs="83",
        usable_eb_size=str(LEB_SIZE),
        type="dynamic",
        alignment="1",
    )
    return root


@pytest.fixture
def device_nodes(tmp_path: Path) -> dict[str, SimpleNamespace]:
    """Fake character device nodes, by path."""
    nodes = {}
    for dev_num, major in ((0, UBI_MAJOR), (1, UBI_MAJOR + 1)):
        path = tmp_path / f"ubi{dev_num}"
        path.write_bytes(b"")
        nodes[str(path)] = SimpleNamespace(
            st_mode=stat.S_IFCHR | 0o600,
            st_rdev=os.makedev(major, 0),
        )
    return nodes


@pytest.fixture
def fake_stat(device_nodes: dict[str, SimpleNamespace], mocker):
    real_stat = os.stat

    def _stat(path, *args, **kwargs):
        if str(path) in device_nodes:
            return device_nodes[str(path)]
        return real_stat(path, *args, **kwargs)

    return mocker.patch("ubimkvol.platform.linux.backend.os.stat", side_effect=_stat)


@pytest.fixture
def backend(sysfs: Path) -> LinuxBackend:
    backend = LinuxBackend(UbiConfig(sysfs_root=sysfs))
    backend.open()
    yield backend
    backend.close()


class TestSysfsParsers:
    """Tests for sysfs attribute parsers."""

    def test_parse_device_entry(self) -> None:
        assert parse_device_entry("ubi0") == 0
        assert parse_device_entry("ubi12") == 12
        assert parse_device_entry("ubi0_1") is None
        assert parse_device_entry("ubi_ctrl") is None
        assert parse_device_entry("version") is None

    def test_parse_int_attribute(self) -> None:
        assert parse_int_attribute("126976\n") == 126976

    def test_parse_int_attribute_invalid(self) -> None:
        with pytest.raises(BackendError, match="bad value"):
            parse_int_attribute("lots\n", "ubi0/avail_eraseblocks")

    def test_parse_dev_numbers(self) -> None:
        assert parse_dev_numbers("250:0\n") == (250, 0)

    def test_parse_dev_numbers_invalid(self) -> None:
        with pytest.raises(BackendError):
            parse_dev_numbers("250\n")

    def test_parse_volume_type(self) -> None:
        assert parse_volume_type("static\n") == VolumeType.STATIC
        with pytest.raises(BackendError):
            parse_volume_type("archive\n")

    def test_parse_name_attribute_keeps_inner_whitespace(self) -> None:
        assert parse_name_attribute("my volume \n") == "my volume "


class TestMkvolRequest:
    """Tests for the UBI_IOCMKVOL request layout."""

    def test_layout(self) -> None:
        assert MKVOL_REQUEST.size == 152
        assert UBI_IOCMKVOL == 0x40986F00

    def test_pack(self) -> None:
        request = CreateRequest(
            volume_id=VOLUME_ID_AUTO,
            alignment=1,
            size_bytes=10485760,
            volume_type=VolumeType.STATIC,
            name="data",
        )
        vol_id, alignment, size, vol_type, flags, name_len, name = MKVOL_REQUEST.unpack(
            pack_mkvol_request(request)
        )
        assert (vol_id, alignment, size, vol_type, flags) == (-1, 1, 10485760, 4, 0)
        assert name_len == 4
        assert name.rstrip(b"\0") == b"data"

    def test_pack_name_too_long(self) -> None:
        request = CreateRequest(
            volume_id=0, alignment=1, size_bytes=1, volume_type=VolumeType.DYNAMIC, name="n" * 128
        )
        with pytest.raises(BackendError) as exc_info:
            pack_mkvol_request(request)
        assert exc_info.value.errno == errno.EINVAL

    @pytest.mark.parametrize(
        ("field", "value"),
        [("volume_id", 2**31), ("alignment", 2**31), ("size_bytes", 2**63)],
    )
    def test_pack_out_of_range(self, field: str, value: int) -> None:
        values = {
            "volume_id": 0,
            "alignment": 1,
            "size_bytes": 1,
            "volume_type": VolumeType.DYNAMIC,
            "name": "x",
        }
        values[field] = value
        with pytest.raises(BackendError, match="bad volume creation request") as exc_info:
            pack_mkvol_request(CreateRequest(**values))
        assert exc_info.value.errno == errno.EINVAL

    def test_pack_undecodable_name(self) -> None:
        request = CreateRequest(
            volume_id=0,
            alignment=1,
            size_bytes=1,
            volume_type=VolumeType.DYNAMIC,
            name="caf\udce9",
        )
        fields = MKVOL_REQUEST.unpack(pack_mkvol_request(request))
        assert fields[5] == 4
        assert fields[6].rstrip(b"\0") == b"caf\xe9"

    def test_unpack_volume_id(self) -> None:
        buffer = bytearray(MKVOL_REQUEST.size)
        struct.pack_into("=i", buffer, 0, 9)
        assert unpack_volume_id(buffer) == 9


class TestLinuxBackend:
    """Tests for LinuxBackend against a fake sysfs tree."""

    def test_name(self) -> None:
        assert LinuxBackend().name == "linux"

    def test_open_without_ubi(self, tmp_path: Path) -> None:
        backend = LinuxBackend(UbiConfig(sysfs_root=tmp_path / "missing"))
        with pytest.raises(BackendError, match="UBI is not present") as exc_info:
            backend.open()
        assert exc_info.value.errno == errno.ENOENT

    def test_query_requires_open(self, sysfs: Path) -> None:
        with pytest.raises(BackendError, match="not open"):
            LinuxBackend(UbiConfig(sysfs_root=sysfs)).get_manager_info()

    def test_session_closes(self, sysfs: Path) -> None:
        backend = LinuxBackend(UbiConfig(sysfs_root=sysfs))
        with backend.session():
            backend.get_manager_info()
        with pytest.raises(BackendError):
            backend.get_manager_info()

    def test_manager_info(self, backend: LinuxBackend) -> None:
        info = backend.get_manager_info()
        assert info.dev_count == 2
        assert info.lowest_dev_num == 0
        assert info.highest_dev_num == 1
        assert info.version == 1
        assert info.max_volume_name_length == 127

    def test_device_info(self, backend: LinuxBackend, tmp_path: Path, fake_stat) -> None:
        info = backend.get_device_info(str(tmp_path / "ubi1"))
        assert info.dev_num == 1
        assert info.leb_size == LEB_SIZE
        assert info.avail_lebs == 39
        assert info.avail_bytes == 39 * LEB_SIZE
        assert info.total_lebs == 1024
        assert info.max_volumes == 128

    def test_device_info_missing_node(self, backend: LinuxBackend, tmp_path: Path) -> None:
        with pytest.raises(BackendError, match="cannot stat") as exc_info:
            backend.get_device_info(str(tmp_path / "nonexistent"))
        assert exc_info.value.errno == errno.ENOENT

    def test_device_info_not_char_device(self, backend: LinuxBackend, sysfs: Path) -> None:
        with pytest.raises(BackendError, match="not a character device"):
            backend.get_device_info(str(sysfs / "version"))

    def test_device_info_not_ubi(
        self, backend: LinuxBackend, tmp_path: Path, device_nodes, fake_stat
    ) -> None:
        device_nodes[str(tmp_path / "ubi0")].st_rdev = os.makedev(8, 0)
        with pytest.raises(BackendError, match="not a UBI device node"):
            backend.get_device_info(str(tmp_path / "ubi0"))

    def test_volume_info(self, backend: LinuxBackend) -> None:
        info = backend.get_volume_info(0, 5)
        assert info.vol_id == 5
        assert info.name == "data"
        assert info.eb_size == LEB_SIZE
        assert info.rsvd_bytes == 83 * LEB_SIZE
        assert info.rsvd_lebs == 83
        assert info.volume_type == VolumeType.DYNAMIC

    def test_volume_info_undecodable_name(self, backend: LinuxBackend, sysfs: Path) -> None:
        (sysfs / "ubi0_5" / "name").write_bytes(b"caf\xe9\n")
        assert backend.get_volume_info(0, 5).name == "caf\udce9"

    def test_volume_info_missing(self, backend: LinuxBackend) -> None:
        with pytest.raises(BackendError, match="cannot read"):
            backend.get_volume_info(0, 9)

    def test_create_volume(self, backend: LinuxBackend, tmp_path: Path, device_nodes) -> None:
        request = CreateRequest(
            volume_id=VOLUME_ID_AUTO,
            alignment=1,
            size_bytes=10485760,
            volume_type=VolumeType.DYNAMIC,
            name="data",
        )
        seen = {}

        def fake_ioctl(fd, code, buffer, mutate):
            seen["code"] = code
            seen["request"] = MKVOL_REQUEST.unpack(bytes(buffer))
            struct.pack_into("=i", buffer, 0, 5)
            return 0

        with patch("ubimkvol.platform.linux.backend.fcntl.ioctl", side_effect=fake_ioctl):
            vol_id = backend.create_volume(str(tmp_path / "ubi0"), request)

        assert vol_id == 5
        assert seen["code"] == UBI_IOCMKVOL
        assert seen["request"][:4] == (-1, 1, 10485760, 3)

    def test_create_volume_ioctl_failure(
        self, backend: LinuxBackend, tmp_path: Path, device_nodes
    ) -> None:
        request = CreateRequest(
            volume_id=0, alignment=1, size_bytes=1, volume_type=VolumeType.DYNAMIC, name="x"
        )
        error = OSError(errno.ENOSPC, "No space left on device")
        with patch("ubimkvol.platform.linux.backend.fcntl.ioctl", side_effect=error):
            with pytest.raises(BackendError, match="No space left on device") as exc_info:
                backend.create_volume(str(tmp_path / "ubi0"), request)
        assert exc_info.value.errno == errno.ENOSPC

    def test_create_volume_missing_node(self, backend: LinuxBackend, tmp_path: Path) -> None:
        request = CreateRequest(
            volume_id=0, alignment=1, size_bytes=1, volume_type=VolumeType.DYNAMIC, name="x"
        )
        with pytest.raises(BackendError, match="cannot open"):
            backend.create_volume(str(tmp_path / "nonexistent"), request)


class TestPlatformSelection:
    """Tests for get_platform_backend."""

    def test_linux(self, sysfs: Path) -> None:
        with patch("ubimkvol.platform.platform.system", return_value="Linux"):
            backend = get_platform_backend(UbiConfig(sysfs_root=sysfs))
        assert isinstance(backend, LinuxBackend)
        assert backend.sysfs_root == sysfs

    def test_unsupported(self) -> None:
        with patch("ubimkvol.platform.platform.system", return_value="Darwin"):
            with pytest.raises(RuntimeError, match="Unsupported platform"):
                get_platform_backend()


class TestEndToEnd:
    """Complete invocations through the Linux backend."""

    def test_create_with_max_available_size(
        self, sysfs: Path, tmp_path: Path, fake_stat
    ) -> None:
        backend = LinuxBackend(UbiConfig(sysfs_root=sysfs))
        node = str(tmp_path / "ubi0")

        def fake_ioctl(fd, code, buffer, mutate):
            struct.pack_into("=i", buffer, 0, 5)
            return 0

        with patch("ubimkvol.platform.linux.backend.fcntl.ioctl", side_effect=fake_ioctl):
            result = VolumeCreationPipeline(backend).run([node, "-N", "data", "-m"])

        assert result.state == PipelineState.REPORTED
        assert result.request.size_bytes == 39 * LEB_SIZE
        assert result.messages[-1] == (
            "Volume ID is 5, size 83 LEBs (10539008 bytes, 10.1 MiB) "
            'LEB size is 126976 bytes (124.0 KiB), dynamic volume, name "data"'
        )

    def test_legacy_device_number_out_of_range(self, sysfs: Path) -> None:
        backend = LinuxBackend(UbiConfig(sysfs_root=sysfs))
        result = VolumeCreationPipeline(backend).run(["-d", "4", "-N", "data", "-s", "1MiB"])
        assert result.failure_kind == "DeviceNotFound"
