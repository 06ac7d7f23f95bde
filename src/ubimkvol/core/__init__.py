"""
ubimkvol Core - Request resolution and validation.

Contains the option resolver, the sanity checks, the request builder and
the pipeline that ties them to the UBI device manager.
"""

from ubimkvol.core.config import UbiMkvolConfig
from ubimkvol.core.errors import UbiMkvolError
from ubimkvol.core.logging import get_logger, setup_logging
from ubimkvol.core.models import CreateRequest, VolumeRequestConfig, VolumeType
from ubimkvol.core.pipeline import PipelineResult, PipelineState, VolumeCreationPipeline

__all__ = [
    "CreateRequest",
    "PipelineResult",
    "PipelineState",
    "UbiMkvolConfig",
    "UbiMkvolError",
    "VolumeCreationPipeline",
    "VolumeRequestConfig",
    "VolumeType",
    "get_logger",
    "setup_logging",
]
