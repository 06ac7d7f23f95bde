"""
ubimkvol Linux Platform Backend.

Implements UBI device manager access using:
- /sys/class/ubi for device and volume information
- the UBI_IOCMKVOL ioctl for volume creation
"""

from ubimkvol.platform.linux.backend import LinuxBackend
from ubimkvol.platform.linux.sysfs import (
    pack_mkvol_request,
    parse_dev_numbers,
    parse_int_attribute,
)

__all__ = [
    "LinuxBackend",
    "pack_mkvol_request",
    "parse_dev_numbers",
    "parse_int_attribute",
]
