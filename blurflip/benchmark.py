#!/usr/bin/env python3
"""
Benchmark the flip + blur pipeline against the NumPy reference
over a range of square image sizes.
"""

import argparse
import logging
import time

import matplotlib.pyplot as plt
import numpy as np

from .accelerator import make_accelerator
from .config import BACKENDS, RunConfig
from .errors import PipelineError
from .kernels import reference_blur, reference_flip
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def benchmark_sizes(sizes, window=5, backend="opencl", device_type="gpu", repeats=3, seed=42):
    """Time both pipelines for each N x N size; returns a list of result dicts."""
    rng = np.random.default_rng(seed)
    results = []

    base = RunConfig(width=1, height=1, window=window, backend=backend, device_type=device_type)
    with make_accelerator(base) as accelerator:
        for N in sizes:
            print(f"\nTesting image size: {N}x{N}")
            config = RunConfig(width=N, height=N, window=window, backend=backend, device_type=device_type)
            image = rng.integers(0, 256, size=(N, N), dtype=np.uint8)
            orchestrator = Orchestrator(config, accelerator)

            # Warm-up
            flip, blur = orchestrator.process(image)

            accel_start = time.time()
            for _ in range(repeats):
                orchestrator.process(image)
            accel_time = (time.time() - accel_start) / repeats * 1000

            cpu_start = time.time()
            for _ in range(repeats):
                ref_flip = reference_flip(image)
                ref_blur = reference_blur(ref_flip, window)
            cpu_time = (time.time() - cpu_start) / repeats * 1000

            matches = bool(np.array_equal(flip, ref_flip) and np.array_equal(blur, ref_blur))
            speedup = cpu_time / accel_time if accel_time > 0 else float('inf')

            print(f"  {accelerator.name}: {accel_time:.2f} ms")
            print(f"  NumPy: {cpu_time:.2f} ms")
            print(f"  Speedup: {speedup:.2f}x")
            print(f"  Result: {'PASSED ✓' if matches else 'FAILED ✗'}")

            results.append({
                'size': N,
                'accelerator_ms': accel_time,
                'numpy_ms': cpu_time,
                'speedup': speedup,
                'matches': matches,
            })
    return results


def plot_results(results, path, label="Accelerator"):
    sizes = [r['size'] for r in results]
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 5))

    # Time comparison
    ax1.plot(sizes, [r['accelerator_ms'] for r in results], 'b-o', label=label, linewidth=2)
    ax1.plot(sizes, [r['numpy_ms'] for r in results], 'r-s', label='NumPy', linewidth=2)
    ax1.set_xlabel('Image Size (N x N)')
    ax1.set_ylabel('Time (ms)')
    ax1.set_title('Flip + Blur Execution Time')
    ax1.legend()
    ax1.grid(True)
    ax1.set_yscale('log')

    # Speedup
    ax2.plot(sizes, [r['speedup'] for r in results], 'g-^', linewidth=2, markersize=8)
    ax2.set_xlabel('Image Size (N x N)')
    ax2.set_ylabel('Speedup (x)')
    ax2.set_title(f'{label} Speedup vs NumPy')
    ax2.grid(True)
    ax2.axhline(y=1, color='r', linestyle='--', label='No speedup')
    ax2.legend()

    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close(fig)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Flip + box blur benchmark')
    parser.add_argument('-s', '--sizes', type=int, nargs='+', default=[128, 256, 512, 1024])
    parser.add_argument('-k', '--window', type=int, default=5)
    parser.add_argument('-b', '--backend', choices=BACKENDS, default='opencl')
    parser.add_argument('-d', '--device-type', default='gpu')
    parser.add_argument('-r', '--repeats', type=int, default=3)
    parser.add_argument('-o', '--output', default='benchmark_results.png', help='Plot file name')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        results = benchmark_sizes(args.sizes, window=args.window, backend=args.backend,
                                  device_type=args.device_type, repeats=args.repeats)
    except PipelineError as e:
        logger.error("%s", e)
        return 1

    plot_results(results, args.output, label=args.backend)
    print(f"\nBenchmark plot saved as '{args.output}'")
    return 0 if all(r['matches'] for r in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
