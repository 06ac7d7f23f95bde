"""
ubimkvol - Create UBI volumes from the command line.

Resolves command-line options into a single validated volume creation
request, issues it to the UBI device manager and reports the result.
"""

__version__ = "1.6"
__author__ = "ubimkvol developers"

PROGRAM_NAME = "ubimkvol"

from ubimkvol.core.config import UbiMkvolConfig
from ubimkvol.core.pipeline import VolumeCreationPipeline

__all__ = ["PROGRAM_NAME", "UbiMkvolConfig", "VolumeCreationPipeline", "__version__"]
