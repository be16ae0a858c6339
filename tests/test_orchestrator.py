import numpy as np
import pytest

from blurflip.config import RunConfig
from blurflip.emulator import HostAccelerator
from blurflip.errors import AllocationError, ImageIOError, LaunchError, TransferError
from blurflip.kernels import BLUR_KERNEL, reference_blur, reference_flip
from blurflip.orchestrator import Orchestrator


class MemorySource:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.calls = []

    def read(self, path, width, height):
        self.calls.append((path, width, height))
        if self.error:
            raise self.error
        return self.data


class MemorySink:
    def __init__(self):
        self.written = {}

    def write(self, path, data, width, height):
        self.written[path] = np.asarray(data).copy()


class FailingAccelerator(HostAccelerator):
    """Host backend that fails at one chosen step."""

    def __init__(self, fail_on):
        super().__init__(max_workers=2)
        self.fail_on = fail_on
        self.launched = []

    def _allocate(self, name, nbytes):
        if self.fail_on == "allocate" and name == "blur output":
            raise AllocationError(f"Failed to allocate device memory for {name}", "out of memory")
        return super()._allocate(name, nbytes)

    def _launch(self, kernel, partition, src, dst, scalars):
        self.launched.append(kernel)
        if self.fail_on == "launch" and kernel == BLUR_KERNEL:
            raise LaunchError(f"Failed to launch {kernel}", "simulated fault")
        return super()._launch(kernel, partition, src, dst, scalars)

    def _to_host(self, device, host):
        if self.fail_on == "to_host":
            raise TransferError(f"Failed to copy {device.name} to host", "simulated fault")
        super()._to_host(device, host)


def make_config(width, height, window=3):
    return RunConfig(width=width, height=height, window=window, backend="host",
                     input_path="in.raw", flip_path="flip.raw", blur_path="blur.raw")


def test_uniform_end_to_end(accelerator):
    config = make_config(4, 4)
    source = MemorySource(np.full(16, 100, dtype=np.uint8))
    sink = MemorySink()
    result = Orchestrator(config, accelerator, source, sink).run()

    assert (result.flip == 100).all()
    assert (result.blur == 100).all()
    assert result.flip.shape == (4, 4)
    assert set(sink.written) == {"flip.raw", "blur.raw"}
    assert source.calls == [("in.raw", 4, 4)]
    assert not accelerator.live_buffers


def test_gradient_row_end_to_end(accelerator):
    config = make_config(4, 1)
    sink = MemorySink()
    result = Orchestrator(config, accelerator, MemorySource(np.array([0, 10, 20, 30], dtype=np.uint8)),
                          sink).run()
    assert result.flip.tolist() == [[30, 20, 10, 0]]
    assert result.blur.tolist() == [[25, 20, 10, 5]]
    assert sink.written["blur.raw"].reshape(-1).tolist() == [25, 20, 10, 5]


def test_process_matches_reference(accelerator, rng):
    config = make_config(37, 23, window=5)
    image = rng.integers(0, 256, size=(23, 37), dtype=np.uint8)
    flip, blur = Orchestrator(config, accelerator).process(image)
    assert np.array_equal(flip, reference_flip(image))
    assert np.array_equal(blur, reference_blur(reference_flip(image), 5))


def test_timings_and_partition(host_accelerator):
    config = make_config(20, 18)
    result = Orchestrator(config, host_accelerator, MemorySource(np.zeros(360, dtype=np.uint8)),
                          MemorySink()).run()
    assert result.partition.grid == (2, 2)
    for stage in ("read", "allocate", "transfer_in", "flip", "blur", "transfer_out", "write"):
        assert result.timings[stage] >= 0


def test_wrong_sample_count(host_accelerator):
    orch = Orchestrator(make_config(4, 4), host_accelerator)
    with pytest.raises(ImageIOError, match="expected 4x4"):
        orch.process(np.zeros(15, dtype=np.uint8))
    assert not host_accelerator.live_buffers


def test_source_failure_allocates_nothing(host_accelerator):
    source = MemorySource(error=ImageIOError("Failed to read image in.raw", "No such file or directory"))
    sink = MemorySink()
    with pytest.raises(ImageIOError):
        Orchestrator(make_config(4, 4), host_accelerator, source, sink).run()
    assert not host_accelerator.live_buffers
    assert not sink.written


@pytest.mark.parametrize("fail_on,error", [
    ("allocate", AllocationError),
    ("launch", LaunchError),
    ("to_host", TransferError),
])
def test_failures_release_all_buffers(fail_on, error):
    acc = FailingAccelerator(fail_on)
    sink = MemorySink()
    try:
        with pytest.raises(error):
            Orchestrator(make_config(8, 8), acc, MemorySource(np.arange(64, dtype=np.uint8)), sink).run()
        assert not acc.live_buffers
        assert not sink.written
    finally:
        acc.close()


def test_flip_runs_before_blur():
    acc = FailingAccelerator(None)
    try:
        Orchestrator(make_config(8, 8), acc).process(np.arange(64, dtype=np.uint8))
        assert acc.launched == ["flipHorizontal", "boxBlur"]
    finally:
        acc.close()
