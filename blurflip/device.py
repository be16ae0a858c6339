"""
PyOpenCL backend: context/queue setup, buffers, transfers and kernel launches.
"""

import logging

import numpy as np
import pyopencl as cl

from .accelerator import Accelerator
from .errors import AllocationError, LaunchError, TransferError
from .kernels import kernel_code

logger = logging.getLogger(__name__)

_DEVICE_TYPES = {
    "gpu": cl.device_type.GPU,
    "cpu": cl.device_type.CPU,
    "any": cl.device_type.ALL,
}


def setup_opencl(platform_index=0, device_type="gpu"):
    """Setup OpenCL context and queue"""
    try:
        platforms = cl.get_platforms()
    except cl.Error as e:
        raise AllocationError("No OpenCL platforms found", str(e)) from e
    if platform_index >= len(platforms):
        raise AllocationError("No OpenCL platforms found",
                              f"platform {platform_index} requested, {len(platforms)} available")

    platform = platforms[platform_index]

    # Use the GPU if there is one, otherwise fall back to the CPU
    candidates = [device_type, "cpu"] if device_type == "gpu" else [device_type]
    device = None
    errors = []
    for kind in candidates:
        try:
            device = platform.get_devices(device_type=_DEVICE_TYPES[kind])[0]
            break
        except (cl.Error, IndexError) as e:
            errors.append(f"{kind}: {e}")
    if device is None:
        raise AllocationError(f"No OpenCL device on platform {platform.name}", "; ".join(errors))

    try:
        context = cl.Context([device])
        queue = cl.CommandQueue(context, properties=cl.command_queue_properties.PROFILING_ENABLE)
    except cl.Error as e:
        raise AllocationError("Failed to create OpenCL context", str(e)) from e

    return context, queue, device


def get_opencl_device_info(device):
    """Details for one OpenCL device"""
    info = {
        'name': device.name,
        'type': cl.device_type.to_string(device.type),
        'vendor': device.vendor,
        'version': device.version,
        'max_compute_units': device.max_compute_units,
        'max_work_group_size': device.max_work_group_size,
        'max_clock_frequency': device.max_clock_frequency,
        'global_mem_size': device.global_mem_size / (1024**3),  # GB
        'local_mem_size': device.local_mem_size / 1024,  # KB
    }
    return info


def describe_devices():
    """List every platform with its devices; empty when no OpenCL runtime is installed."""
    try:
        platforms = cl.get_platforms()
    except cl.Error:
        logger.warning("No OpenCL platforms found")
        return []
    listing = []
    for index, platform in enumerate(platforms):
        try:
            devices = platform.get_devices()
        except cl.Error as e:
            logger.warning("Cannot list devices on %s: %s", platform.name, e)
            devices = []
        listing.append({
            'index': index,
            'name': platform.name,
            'vendor': platform.vendor,
            'version': platform.version,
            'devices': [get_opencl_device_info(d) for d in devices],
        })
    return listing


class OpenCLAccelerator(Accelerator):
    """Runs both kernels on one OpenCL device through a profiling queue."""

    name = "opencl"

    def __init__(self, context, queue, device):
        super().__init__()
        self.context = context
        self.queue = queue
        self.device = device
        try:
            self.program = cl.Program(context, kernel_code).build()
        except cl.Error as e:
            raise LaunchError("Failed to build OpenCL program", str(e)) from e
        logger.info("Using device: %s (%s)", device.name, cl.device_type.to_string(device.type))

    @classmethod
    def create(cls, platform_index=0, device_type="gpu"):
        context, queue, device = setup_opencl(platform_index, device_type)
        return cls(context, queue, device)

    def _allocate(self, name, nbytes):
        mf = cl.mem_flags
        try:
            return cl.Buffer(self.context, mf.READ_WRITE, size=nbytes)
        except cl.Error as e:
            raise AllocationError(f"Failed to allocate device memory for {name}", str(e)) from e

    def _release(self, buf):
        buf.handle.release()

    def _to_device(self, host, device):
        try:
            cl.enqueue_copy(self.queue, device.handle, host.array, is_blocking=True)
        except cl.Error as e:
            raise TransferError(f"Failed to copy {device.name} to device", str(e)) from e

    def _to_host(self, device, host):
        try:
            cl.enqueue_copy(self.queue, host.array, device.handle, is_blocking=True)
        except cl.Error as e:
            raise TransferError(f"Failed to copy {device.name} to host", str(e)) from e

    def _launch(self, kernel, partition, src, dst, scalars):
        args = [np.int32(s) for s in scalars]
        try:
            event = getattr(self.program, kernel)(self.queue, partition.global_size, partition.local_size,
                                                  src.handle, dst.handle, *args)
            event.wait()
        except cl.Error as e:
            raise LaunchError(f"Failed to launch {kernel}", str(e)) from e
        return (event.profile.end - event.profile.start) * 1e-6  # ms

    def close(self):
        super().close()
        self.queue.finish()
