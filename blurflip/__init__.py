"""
Horizontal flip and box blur of 8-bit grayscale rasters,
one work-item per pixel on an OpenCL device (or a host thread pool).
"""

from .accelerator import Accelerator, DeviceBuffer, HostBuffer, make_accelerator
from .config import RunConfig
from .errors import (AllocationError, ConfigError, ImageIOError, LaunchError,
                     PipelineError, TransferError)
from .kernels import reference_blur, reference_flip
from .orchestrator import Orchestrator, RunResult
from .partition import Partition, compute_partition, round_up

__version__ = "0.1.0"

__all__ = [
    "Accelerator",
    "AllocationError",
    "ConfigError",
    "DeviceBuffer",
    "HostBuffer",
    "ImageIOError",
    "LaunchError",
    "Orchestrator",
    "Partition",
    "PipelineError",
    "RunConfig",
    "RunResult",
    "TransferError",
    "compute_partition",
    "make_accelerator",
    "reference_blur",
    "reference_flip",
    "round_up",
]
