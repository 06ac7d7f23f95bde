"""
ubimkvol data models.

Defines the volume request, the device addressing variants and the
information records returned by the UBI device manager.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ubimkvol.core.errors import InvalidVolumeType

# Let the device manager pick the volume ID
VOLUME_ID_AUTO = -1

# Longest volume name UBI accepts, in bytes
UBI_MAX_VOLUME_NAME = 127

LEGACY_NODE_FORMAT = "/dev/ubi{index}"


class VolumeType(Enum):
    """UBI volume type."""

    DYNAMIC = "dynamic"
    STATIC = "static"

    @classmethod
    def from_string(cls, value: str) -> VolumeType:
        """Create VolumeType from its exact name ("dynamic" or "static")."""
        for volume_type in cls:
            if volume_type.value == value:
                return volume_type
        raise InvalidVolumeType(f'bad volume type: "{value}"')

    @property
    def ubi_code(self) -> int:
        """Value of the type in the kernel's ubi-user.h."""
        return 3 if self is VolumeType.DYNAMIC else 4


@dataclass(frozen=True)
class ByPath:
    """Device addressed by its node path, e.g. /dev/ubi0."""

    path: str

    @property
    def node(self) -> str:
        return self.path

    @property
    def index(self) -> int | None:
        return None


@dataclass(frozen=True)
class ByLegacyIndex:
    """Device addressed by the deprecated UBI device number."""

    number: int

    @property
    def node(self) -> str:
        return LEGACY_NODE_FORMAT.format(index=self.number)

    @property
    def index(self) -> int | None:
        return self.number


DeviceTarget = ByPath | ByLegacyIndex


@dataclass
class VolumeRequestConfig:
    """Everything the user asked for, filled in while options are resolved."""

    device: DeviceTarget
    volume_id: int = VOLUME_ID_AUTO
    volume_type: VolumeType = VolumeType.DYNAMIC
    size_bytes: int = 0
    use_max_available: bool = False
    alignment: int = 1
    name: str | None = None

    @property
    def node(self) -> str:
        return self.device.node

    @property
    def has_size(self) -> bool:
        return self.size_bytes > 0 or self.use_max_available

    @property
    def name_length(self) -> int:
        """Name length in bytes, as the kernel counts it."""
        return len(os.fsencode(self.name)) if self.name else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node,
            "legacy_index": self.device.index,
            "volume_id": self.volume_id,
            "volume_type": self.volume_type.value,
            "size_bytes": self.size_bytes,
            "use_max_available": self.use_max_available,
            "alignment": self.alignment,
            "name": self.name,
        }


@dataclass(frozen=True)
class CreateRequest:
    """The single request handed to the device manager's create call."""

    volume_id: int
    alignment: int
    size_bytes: int
    volume_type: VolumeType
    name: str


@dataclass
class UbiInfo:
    """General UBI information from the device manager."""

    dev_count: int
    lowest_dev_num: int = -1
    highest_dev_num: int = -1
    version: int = 1
    max_volume_name_length: int = UBI_MAX_VOLUME_NAME


@dataclass
class DeviceInfo:
    """Information about one UBI device."""

    dev_num: int
    node: str
    avail_bytes: int
    leb_size: int = 0
    avail_lebs: int = 0
    total_lebs: int = 0
    volumes_count: int = 0
    max_volumes: int = 0
    min_io_size: int = 0


@dataclass
class VolumeInfo:
    """Information about one UBI volume."""

    dev_num: int
    vol_id: int
    name: str
    rsvd_bytes: int
    eb_size: int
    volume_type: VolumeType | None = None
    alignment: int = 1

    @property
    def rsvd_lebs(self) -> int:
        if self.eb_size <= 0:
            return 0
        return self.rsvd_bytes // self.eb_size
