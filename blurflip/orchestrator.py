"""
End-to-end pipeline: read -> to device -> flip -> blur -> to host -> write.

Every host and device allocation is registered on an ExitStack as soon as it
exists, so it is released on success and on every failure path.
"""

import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass, field

import numpy as np

from .accelerator import HostBuffer
from .errors import ImageIOError
from .kernels import BLUR_KERNEL, FLIP_KERNEL
from .partition import compute_partition
from .storage import RawImageSink, RawImageSource

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    flip: np.ndarray
    blur: np.ndarray
    partition: object
    timings: dict = field(default_factory=dict)


class Orchestrator:

    def __init__(self, config, accelerator, source=None, sink=None):
        self.config = config
        self.accelerator = accelerator
        self.source = source if source is not None else RawImageSource(config.image_format)
        self.sink = sink if sink is not None else RawImageSink(config.image_format)
        self.timings = {}
        self.partition = None

    def _timed(self, stage, start):
        self.timings[stage] = self.timings.get(stage, 0.0) + (time.time() - start) * 1000

    def process(self, raster):
        """Flip then blur one raster on the accelerator; returns (flip, blur) as 2-D arrays."""
        cfg = self.config
        acc = self.accelerator
        raster = np.asarray(raster, dtype=np.uint8).reshape(-1)
        if raster.size != cfg.size:
            raise ImageIOError("Invalid input raster",
                               f"raster has {raster.size} samples, expected {cfg.width}x{cfg.height}")

        with ExitStack() as stack:
            start = time.time()
            h_input = stack.enter_context(HostBuffer.from_array("input", raster))
            h_output_flip = stack.enter_context(HostBuffer("flip output", cfg.size))
            h_output_blur = stack.enter_context(HostBuffer("blur output", cfg.size))
            d_input = stack.enter_context(acc.allocate("input", cfg.size))
            self._timed("allocate", start)

            start = time.time()
            acc.to_device(h_input, d_input)
            self._timed("transfer_in", start)

            partition = compute_partition(cfg.width, cfg.height, cfg.block)
            self.partition = partition
            logger.debug("Grid %s x block %s covers %dx%d", partition.grid, partition.local_size,
                         cfg.width, cfg.height)

            start = time.time()
            d_output_flip = stack.enter_context(acc.allocate("flip output", cfg.size))
            self._timed("allocate", start)
            self.timings["flip"] = acc.launch(FLIP_KERNEL, partition, d_input, d_output_flip,
                                              cfg.width, cfg.height)
            # The flip was the input's last consumer
            d_input.release()

            start = time.time()
            d_output_blur = stack.enter_context(acc.allocate("blur output", cfg.size))
            self._timed("allocate", start)
            self.timings["blur"] = acc.launch(BLUR_KERNEL, partition, d_output_flip, d_output_blur,
                                              cfg.height, cfg.width, cfg.window)

            start = time.time()
            acc.to_host(d_output_flip, h_output_flip)
            d_output_flip.release()
            acc.to_host(d_output_blur, h_output_blur)
            d_output_blur.release()
            self._timed("transfer_out", start)

            flip = h_output_flip.view(cfg.width, cfg.height).copy()
            blur = h_output_blur.view(cfg.width, cfg.height).copy()
        return flip, blur

    def run(self):
        """Read the configured input, process it and write both outputs."""
        cfg = self.config
        self.timings = {}

        start = time.time()
        raster = self.source.read(cfg.input_path, cfg.width, cfg.height)
        self._timed("read", start)

        flip, blur = self.process(raster)

        start = time.time()
        self.sink.write(cfg.flip_path, flip, cfg.width, cfg.height)
        self.sink.write(cfg.blur_path, blur, cfg.width, cfg.height)
        self._timed("write", start)

        logger.info("Wrote %s and %s", cfg.flip_path, cfg.blur_path)
        return RunResult(flip=flip, blur=blur, partition=self.partition, timings=dict(self.timings))
