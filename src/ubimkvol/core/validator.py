"""
ubimkvol sanity checks.

Cross-checks a resolved request against what the UBI device manager
reports before anything is created. Checks run in a fixed order and the
first violation is the one reported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ubimkvol.core.errors import (
    BackendError,
    DeviceNotFound,
    DeviceQueryFailed,
    MissingName,
    MissingSize,
    NameTooLong,
)
from ubimkvol.core.logging import get_logger
from ubimkvol.core.models import UbiInfo, VolumeRequestConfig

if TYPE_CHECKING:
    from ubimkvol.platform.base import VolumeManagerBackend

logger = get_logger(__name__)


def check_size(config: VolumeRequestConfig) -> None:
    if not config.has_size:
        raise MissingSize("volume size was not specified (use -h for help)")


def check_name(config: VolumeRequestConfig) -> None:
    if not config.name:
        raise MissingName("volume name was not specified (use -h for help)")


def query_manager_info(manager: VolumeManagerBackend) -> UbiInfo:
    try:
        return manager.get_manager_info()
    except BackendError as exc:
        raise DeviceQueryFailed(f"cannot get UBI information: {exc}") from exc


def check_device_exists(config: VolumeRequestConfig, info: UbiInfo) -> None:
    """Only a legacy device number can be checked against the device count."""
    index = config.device.index
    if index is not None and index >= info.dev_count:
        raise DeviceNotFound(f"UBI device {index} does not exist")


def check_name_length(config: VolumeRequestConfig, info: UbiInfo) -> None:
    length = config.name_length
    if length > info.max_volume_name_length:
        raise NameTooLong(
            f"too long name ({length} symbols), max is {info.max_volume_name_length}"
        )


def sanity_check(config: VolumeRequestConfig, manager: VolumeManagerBackend) -> UbiInfo:
    """
    Validate a resolved request.

    Order: size, name, manager query, device number, name length. The
    manager is only queried once the local checks pass.
    """
    check_size(config)
    check_name(config)

    info = query_manager_info(manager)
    logger.debug(
        "UBI information",
        dev_count=info.dev_count,
        max_volume_name_length=info.max_volume_name_length,
    )

    check_device_exists(config, info)
    check_name_length(config, info)
    return info
