"""
ubimkvol Linux Backend.

Talks to the UBI subsystem the same way libubi does: information comes
from sysfs (/sys/class/ubi), volumes are created with the UBI_IOCMKVOL
ioctl on the UBI device node.
"""

from __future__ import annotations

import errno
import fcntl
import os
import stat
from pathlib import Path

from ubimkvol.core.config import UbiConfig
from ubimkvol.core.errors import BackendError
from ubimkvol.core.logging import get_logger
from ubimkvol.core.models import CreateRequest, DeviceInfo, UbiInfo, VolumeInfo
from ubimkvol.platform.base import VolumeManagerBackend
from ubimkvol.platform.linux.sysfs import (
    UBI_IOCMKVOL,
    pack_mkvol_request,
    parse_dev_numbers,
    parse_device_entry,
    parse_int_attribute,
    parse_name_attribute,
    parse_volume_type,
    unpack_volume_id,
)

logger = get_logger(__name__)


class LinuxBackend(VolumeManagerBackend):
    """UBI device manager access through sysfs and ioctl."""

    # Attribute files
    VERSION = "version"
    DEV = "dev"
    AVAIL_EBS = "avail_eraseblocks"
    TOTAL_EBS = "total_eraseblocks"
    EB_SIZE = "eraseblock_size"
    VOLUMES_COUNT = "volumes_count"
    MAX_VOL_COUNT = "max_vol_count"
    MIN_IO_SIZE = "min_io_size"
    VOL_NAME = "name"
    VOL_RSVD_EBS = "reserved_ebs"
    VOL_USABLE_EB_SIZE = "usable_eb_size"
    VOL_TYPE = "type"
    VOL_ALIGNMENT = "alignment"

    def __init__(self, config: UbiConfig | None = None) -> None:
        self.config = config or UbiConfig()
        self._open = False

    @property
    def name(self) -> str:
        return "linux"

    @property
    def sysfs_root(self) -> Path:
        return self.config.sysfs_root

    def open(self) -> None:
        if not self.sysfs_root.is_dir():
            raise BackendError(
                f"UBI is not present in the system ({self.sysfs_root} not found)",
                errno=errno.ENOENT,
            )
        self._open = True
        logger.debug("Opened UBI device manager", sysfs_root=str(self.sysfs_root))

    def close(self) -> None:
        if self._open:
            logger.debug("Closed UBI device manager")
        self._open = False

    def _require_open(self) -> None:
        if not self._open:
            raise BackendError("UBI device manager is not open", errno=errno.EBADF)

    def _read(self, *parts: str) -> str:
        path = self.sysfs_root.joinpath(*parts)
        try:
            return path.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as exc:
            raise BackendError.from_os_error(f"cannot read {path}", exc) from exc

    def _read_int(self, *parts: str) -> int:
        return parse_int_attribute(self._read(*parts), "/".join(parts))

    def _device_numbers(self) -> list[int]:
        try:
            entries = list(self.sysfs_root.iterdir())
        except OSError as exc:
            raise BackendError.from_os_error(f"cannot list {self.sysfs_root}", exc) from exc

        numbers = [parse_device_entry(entry.name) for entry in entries]
        return sorted(n for n in numbers if n is not None)

    # ==================== Queries ====================

    def get_manager_info(self) -> UbiInfo:
        self._require_open()
        dev_nums = self._device_numbers()
        return UbiInfo(
            dev_count=len(dev_nums),
            lowest_dev_num=dev_nums[0] if dev_nums else -1,
            highest_dev_num=dev_nums[-1] if dev_nums else -1,
            version=self._read_int(self.VERSION),
        )

    def _find_device(self, node: str) -> int:
        """Map a device node to its UBI device number."""
        try:
            st = os.stat(node)
        except OSError as exc:
            raise BackendError.from_os_error(f"cannot stat {node}", exc) from exc

        if not stat.S_ISCHR(st.st_mode):
            raise BackendError(f"{node} is not a character device", errno=errno.ENODEV)

        wanted = (os.major(st.st_rdev), os.minor(st.st_rdev))
        for dev_num in self._device_numbers():
            entry = f"ubi{dev_num}"
            if parse_dev_numbers(self._read(entry, self.DEV), f"{entry}/dev") == wanted:
                return dev_num

        raise BackendError(f"{node} is not a UBI device node", errno=errno.ENODEV)

    def get_device_info(self, node: str) -> DeviceInfo:
        self._require_open()
        dev_num = self._find_device(node)
        entry = f"ubi{dev_num}"

        leb_size = self._read_int(entry, self.EB_SIZE)
        avail_lebs = self._read_int(entry, self.AVAIL_EBS)
        return DeviceInfo(
            dev_num=dev_num,
            node=node,
            avail_bytes=avail_lebs * leb_size,
            leb_size=leb_size,
            avail_lebs=avail_lebs,
            total_lebs=self._read_int(entry, self.TOTAL_EBS),
            volumes_count=self._read_int(entry, self.VOLUMES_COUNT),
            max_volumes=self._read_int(entry, self.MAX_VOL_COUNT),
            min_io_size=self._read_int(entry, self.MIN_IO_SIZE),
        )

    def get_volume_info(self, dev_num: int, vol_id: int) -> VolumeInfo:
        self._require_open()
        entry = f"ubi{dev_num}_{vol_id}"

        eb_size = self._read_int(entry, self.VOL_USABLE_EB_SIZE)
        return VolumeInfo(
            dev_num=dev_num,
            vol_id=vol_id,
            name=parse_name_attribute(self._read(entry, self.VOL_NAME)),
            rsvd_bytes=self._read_int(entry, self.VOL_RSVD_EBS) * eb_size,
            eb_size=eb_size,
            volume_type=parse_volume_type(self._read(entry, self.VOL_TYPE), f"{entry}/type"),
            alignment=self._read_int(entry, self.VOL_ALIGNMENT),
        )

    # ==================== Volume operations ====================

    def create_volume(self, node: str, request: CreateRequest) -> int:
        self._require_open()
        buffer = bytearray(pack_mkvol_request(request))

        try:
            fd = os.open(node, os.O_RDONLY)
        except OSError as exc:
            raise BackendError.from_os_error(f"cannot open {node}", exc) from exc

        try:
            fcntl.ioctl(fd, UBI_IOCMKVOL, buffer, True)
        except OSError as exc:
            raise BackendError.from_os_error("UBI_IOCMKVOL ioctl failed", exc) from exc
        finally:
            os.close(fd)

        vol_id = unpack_volume_id(buffer)
        logger.debug("Volume created", node=node, vol_id=vol_id)
        return vol_id
