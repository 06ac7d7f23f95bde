"""
Linux UBI sysfs and ioctl parsers.

Parsers for the attribute files under /sys/class/ubi and the binary
layout of the volume creation ioctl.
"""

from __future__ import annotations

import errno
import os
import re
import struct

from ubimkvol.core.errors import BackendError
from ubimkvol.core.models import UBI_MAX_VOLUME_NAME, CreateRequest, VolumeType

_DEVICE_ENTRY = re.compile(r"^ubi(\d+)$")

# struct ubi_mkvol_req from <mtd/ubi-user.h>, packed:
# vol_id, alignment, bytes, vol_type, flags, name_len, padding2[4], name[128]
MKVOL_REQUEST = struct.Struct(f"=iiqbBh4x{UBI_MAX_VOLUME_NAME + 1}s")

# _IOW('o', 0, struct ubi_mkvol_req)
UBI_IOC_MAGIC = ord("o")
UBI_IOCMKVOL = (1 << 30) | (MKVOL_REQUEST.size << 16) | (UBI_IOC_MAGIC << 8) | 0


def parse_device_entry(name: str) -> int | None:
    """Return the device number of a "ubiN" sysfs entry, None otherwise."""
    match = _DEVICE_ENTRY.match(name)
    return int(match.group(1)) if match else None


def parse_int_attribute(text: str, source: str = "attribute") -> int:
    """Parse a decimal sysfs attribute such as "1024\\n"."""
    value = text.strip()
    if not re.fullmatch(r"-?\d+", value):
        raise BackendError(f"bad value {value!r} in {source}")
    return int(value)


def parse_dev_numbers(text: str, source: str = "dev") -> tuple[int, int]:
    """
    Parse a "major:minor" dev attribute.

    Example input:
    254:0
    """
    match = re.fullmatch(r"(\d+):(\d+)", text.strip())
    if not match:
        raise BackendError(f"bad major:minor {text.strip()!r} in {source}")
    return int(match.group(1)), int(match.group(2))


def parse_volume_type(text: str, source: str = "type") -> VolumeType:
    value = text.strip()
    for volume_type in VolumeType:
        if volume_type.value == value:
            return volume_type
    raise BackendError(f"unknown volume type {value!r} in {source}")


def parse_name_attribute(text: str) -> str:
    """Volume names are followed by a single newline."""
    return text[:-1] if text.endswith("\n") else text


def pack_mkvol_request(request: CreateRequest) -> bytes:
    """Encode a creation request as struct ubi_mkvol_req."""
    name = os.fsencode(request.name)
    if len(name) > UBI_MAX_VOLUME_NAME:
        raise BackendError(
            f"volume name is {len(name)} bytes, max is {UBI_MAX_VOLUME_NAME}", errno=errno.EINVAL
        )
    try:
        return MKVOL_REQUEST.pack(
            request.volume_id,
            request.alignment,
            request.size_bytes,
            request.volume_type.ubi_code,
            0,
            len(name),
            name,
        )
    except struct.error as exc:
        raise BackendError(f"bad volume creation request: {exc}", errno=errno.EINVAL) from exc


def unpack_volume_id(buffer: bytes | bytearray) -> int:
    """Read back the volume ID the kernel stored in a ubi_mkvol_req."""
    return MKVOL_REQUEST.unpack(bytes(buffer))[0]
