"""
ubimkvol request building and reporting.

Resolves the final volume size against live device state, issues the
creation request exactly once and formats the created volume for display.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from ubimkvol.core.errors import (
    BackendError,
    CreateFailed,
    DeviceQueryFailed,
    PostCreateQueryFailed,
)
from ubimkvol.core.logging import OperationLogger, get_logger
from ubimkvol.core.models import (
    CreateRequest,
    DeviceInfo,
    VolumeInfo,
    VolumeRequestConfig,
    VolumeType,
)
from ubimkvol.core.units import GIB, KIB, MIB

if TYPE_CHECKING:
    from ubimkvol.platform.base import VolumeManagerBackend

logger = get_logger(__name__)


def query_device(config: VolumeRequestConfig, manager: VolumeManagerBackend) -> DeviceInfo:
    """Get information about the target device."""
    try:
        return manager.get_device_info(config.node)
    except BackendError as exc:
        index = config.device.index
        target = f"number {index} ({config.node})" if index is not None else config.node
        raise DeviceQueryFailed(
            f"cannot get information about UBI device {target}: {exc}"
        ) from exc


def resolve_size(config: VolumeRequestConfig, device_info: DeviceInfo) -> VolumeRequestConfig:
    """
    Settle the volume size.

    With max-available-size the device's current free space replaces any
    explicit size. Available space changes over time, so this must run
    right before the request is issued.
    """
    if not config.use_max_available:
        return config

    logger.debug(
        "Using maximum available size",
        requested_bytes=config.size_bytes,
        avail_bytes=device_info.avail_bytes,
    )
    return replace(config, size_bytes=device_info.avail_bytes)


def build_request(config: VolumeRequestConfig) -> CreateRequest:
    return CreateRequest(
        volume_id=config.volume_id,
        alignment=config.alignment,
        size_bytes=config.size_bytes,
        volume_type=config.volume_type,
        name=config.name or "",
    )


def issue_request(manager: VolumeManagerBackend, node: str, request: CreateRequest) -> int:
    """Create the volume and return its (possibly auto-assigned) ID."""
    with OperationLogger(
        "volume creation",
        logger,
        node=node,
        name=request.name,
        size_bytes=request.size_bytes,
        volume_id=request.volume_id,
    ):
        try:
            return manager.create_volume(node, request)
        except BackendError as exc:
            raise CreateFailed(f"cannot create UBI volume: {exc}") from exc


def query_created_volume(manager: VolumeManagerBackend, dev_num: int, vol_id: int) -> VolumeInfo:
    try:
        return manager.get_volume_info(dev_num, vol_id)
    except BackendError as exc:
        raise PostCreateQueryFailed(
            f"cannot get information about newly created UBI volume: {exc}"
        ) from exc


def format_size(size_bytes: int) -> str:
    """Render a size in the largest of GiB, MiB and KiB that is at least 1."""
    if size_bytes >= GIB:
        return f"{size_bytes / GIB:.1f} GiB"
    if size_bytes >= MIB:
        return f"{size_bytes / MIB:.1f} MiB"
    return f"{size_bytes / KIB:.1f} KiB"


def format_report(info: VolumeInfo, volume_type: VolumeType) -> str:
    """One-line description of a newly created volume."""
    return (
        f"Volume ID is {info.vol_id}, size {info.rsvd_lebs} LEBs "
        f"({info.rsvd_bytes} bytes, {format_size(info.rsvd_bytes)}) "
        f"LEB size is {info.eb_size} bytes ({info.eb_size / KIB:.1f} KiB), "
        f'{volume_type.value} volume, name "{info.name}"'
    )
