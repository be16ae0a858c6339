"""
Host/device buffer handles and the accelerator interface shared by backends.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from .errors import LaunchError, TransferError
from .kernels import HOST_TASKS

logger = logging.getLogger(__name__)


class HostBuffer:
    """A named uint8 array in host memory."""

    def __init__(self, name, nbytes):
        self.name = name
        self.nbytes = nbytes
        self.array = np.zeros(nbytes, dtype=np.uint8)

    @classmethod
    def from_array(cls, name, data):
        buf = cls(name, data.size)
        buf.array[:] = np.asarray(data, dtype=np.uint8).reshape(-1)
        return buf

    @property
    def released(self):
        return self.array is None

    def view(self, width, height):
        return self.array.reshape(height, width)

    def release(self):
        self.array = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.release()


class DeviceBuffer:
    """A named allocation owned by one Accelerator; `handle` is backend specific."""

    def __init__(self, owner, name, nbytes, handle):
        self.owner = owner
        self.name = name
        self.nbytes = nbytes
        self.handle = handle

    @property
    def released(self):
        return self.handle is None

    def release(self):
        self.owner.release(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.release()

    def __repr__(self):
        state = "released" if self.released else f"{self.nbytes} bytes"
        return f"DeviceBuffer({self.name!r}, {state})"


class Accelerator(ABC):
    """
    Allocation, blocking transfers and synchronous kernel launches.

    Subclasses implement the underscored hooks; argument checking and
    bookkeeping of live allocations happen here.
    """

    name = "accelerator"

    def __init__(self):
        self.live_buffers = set()

    def allocate(self, name, nbytes):
        handle = self._allocate(name, nbytes)
        buf = DeviceBuffer(self, name, nbytes, handle)
        self.live_buffers.add(buf)
        logger.debug("Allocated %s on %s", buf, self.name)
        return buf

    def release(self, buf):
        if buf.released:
            return
        try:
            self._release(buf)
        finally:
            buf.handle = None
            self.live_buffers.discard(buf)
        logger.debug("Released device buffer %r", buf.name)

    def to_device(self, host, device):
        self._check_transfer(host, device, "host to device")
        self._to_device(host, device)

    def to_host(self, device, host):
        self._check_transfer(host, device, "device to host")
        self._to_host(device, host)

    def launch(self, kernel, partition, src, dst, *scalars):
        """Run `kernel` over `partition` and wait for it; returns elapsed ms."""
        operation = f"Failed to launch {kernel}"
        if kernel not in HOST_TASKS:
            raise LaunchError(operation, "unknown kernel")
        if src is dst:
            raise LaunchError(operation, "input and output buffers must differ")
        for buf in (src, dst):
            if buf.released:
                raise LaunchError(operation, f"buffer {buf.name!r} already released")
            if buf.owner is not self:
                raise LaunchError(operation, f"buffer {buf.name!r} belongs to another accelerator")
        if len(scalars) >= 2:
            # Both kernels take the raster extent as their first two scalars
            extent = int(scalars[0]) * int(scalars[1])
            if min(scalars[0], scalars[1]) <= 0 or extent > min(src.nbytes, dst.nbytes):
                raise LaunchError(operation, f"extent {scalars[0]}x{scalars[1]} does not fit buffers of "
                                             f"{src.nbytes} and {dst.nbytes} bytes")
        logger.debug("Launching %s: grid=%s block=%s", kernel, partition.grid, partition.local_size)
        return self._launch(kernel, partition, src, dst, scalars)

    def _check_transfer(self, host, device, direction):
        operation = f"Failed to copy {device.name} ({direction})"
        if host.released or device.released:
            raise TransferError(operation, "buffer already released")
        if device.owner is not self:
            raise TransferError(operation, "buffer belongs to another accelerator")
        if host.nbytes != device.nbytes:
            raise TransferError(operation,
                                f"size mismatch: host {host.nbytes} bytes, device {device.nbytes} bytes")

    def close(self):
        for buf in list(self.live_buffers):
            self.release(buf)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @abstractmethod
    def _allocate(self, name, nbytes):
        ...

    @abstractmethod
    def _release(self, buf):
        ...

    @abstractmethod
    def _to_device(self, host, device):
        ...

    @abstractmethod
    def _to_host(self, device, host):
        ...

    @abstractmethod
    def _launch(self, kernel, partition, src, dst, scalars):
        ...


def make_accelerator(config):
    """Build the backend named by `config.backend`."""
    if config.backend == "host":
        from .emulator import HostAccelerator
        return HostAccelerator()
    from .device import OpenCLAccelerator
    return OpenCLAccelerator.create(platform_index=config.platform_index,
                                    device_type=config.device_type)
