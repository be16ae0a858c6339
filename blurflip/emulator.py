"""
Host backend: the same NDRange executed on CPU threads.

Each work-group becomes one thread-pool job; within a job every work-item
calls the pure per-pixel task from `kernels.HOST_TASKS`. Tasks read from an
immutable snapshot of the source buffer and each writes one cell of the
destination, so no locking is needed.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .accelerator import Accelerator
from .errors import LaunchError
from .kernels import HOST_TASKS

logger = logging.getLogger(__name__)


def _run_group(task, partition, group, src, dst, scalars):
    for x, y in partition.tasks(group):
        task(x, y, src, dst, *scalars)


class HostAccelerator(Accelerator):

    name = "host"

    def __init__(self, max_workers=None):
        super().__init__()
        self.executor = ThreadPoolExecutor(max_workers=max_workers)

    def _allocate(self, name, nbytes):
        return bytearray(nbytes)

    def _release(self, buf):
        pass

    def _to_device(self, host, device):
        device.handle[:] = host.array.tobytes()

    def _to_host(self, device, host):
        host.array[:] = np.frombuffer(device.handle, dtype=np.uint8)

    def _launch(self, kernel, partition, src, dst, scalars):
        task = HOST_TASKS[kernel]
        snapshot = bytes(src.handle)
        out = dst.handle
        scalars = tuple(int(s) for s in scalars)

        start = time.time()
        futures = [self.executor.submit(_run_group, task, partition, group, snapshot, out, scalars)
                   for group in partition.groups()]
        try:
            for future in futures:
                future.result()
        except (IndexError, TypeError, ValueError, ZeroDivisionError) as e:
            for future in futures:
                future.cancel()
            raise LaunchError(f"Failed to launch {kernel}", f"{type(e).__name__}: {e}") from e
        return (time.time() - start) * 1000

    def close(self):
        super().close()
        self.executor.shutdown(wait=True)
