"""
ubimkvol device manager backend base.

Defines the abstract interface to the UBI device manager. Every method
blocks until the device manager answers and raises BackendError on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ubimkvol.core.models import CreateRequest, DeviceInfo, UbiInfo, VolumeInfo


class VolumeManagerBackend(ABC):
    """Abstract base class for UBI device manager access."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'linux')."""

    @abstractmethod
    def open(self) -> None:
        """Acquire the device manager handle."""

    @abstractmethod
    def close(self) -> None:
        """Release the device manager handle. Safe to call more than once."""

    @contextmanager
    def session(self) -> Iterator[VolumeManagerBackend]:
        """Open the device manager and close it on every exit path."""
        self.open()
        try:
            yield self
        finally:
            self.close()

    # ==================== Queries ====================

    @abstractmethod
    def get_manager_info(self) -> UbiInfo:
        """Get general UBI information (device count, limits)."""

    @abstractmethod
    def get_device_info(self, node: str) -> DeviceInfo:
        """Get information about the UBI device behind a device node."""

    @abstractmethod
    def get_volume_info(self, dev_num: int, vol_id: int) -> VolumeInfo:
        """Get information about a volume of a UBI device."""

    # ==================== Volume operations ====================

    @abstractmethod
    def create_volume(self, node: str, request: CreateRequest) -> int:
        """
        Create a volume.
        Returns the volume ID, which the device manager assigns when
        the request asks for automatic assignment.
        """
