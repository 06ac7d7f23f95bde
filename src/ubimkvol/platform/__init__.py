"""
ubimkvol Platform Abstraction Layer.

Provides the platform-specific access to the UBI device manager.
"""

from __future__ import annotations

import platform
from typing import TYPE_CHECKING

from ubimkvol.platform.base import VolumeManagerBackend

if TYPE_CHECKING:
    from ubimkvol.core.config import UbiConfig


def get_platform_backend(config: UbiConfig | None = None) -> VolumeManagerBackend:
    """Get the appropriate backend for the current OS."""
    system = platform.system().lower()

    if system == "linux":
        from ubimkvol.platform.linux import LinuxBackend

        return LinuxBackend(config)
    raise RuntimeError(f"Unsupported platform: {system}")


__all__ = [
    "VolumeManagerBackend",
    "get_platform_backend",
]
