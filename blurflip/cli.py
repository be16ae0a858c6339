#!/usr/bin/env python3
"""
Command line entry point: horizontal flip then box blur of a grayscale raster.
"""

import argparse
import logging
import sys

import numpy as np

from .accelerator import make_accelerator
from .config import BACKENDS, DEVICE_TYPES, IMAGE_FORMATS, RunConfig
from .errors import ConfigError, PipelineError
from .kernels import reference_blur, reference_flip
from .orchestrator import Orchestrator

logger = logging.getLogger("blurflip")


def build_parser():
    defaults = RunConfig.__dataclass_fields__
    parser = argparse.ArgumentParser(description='Horizontal flip + box blur (OpenCL)')
    parser.add_argument('-i', '--input', default=defaults['input_path'].default, help='Input image file name')
    parser.add_argument('--flip-output', default=defaults['flip_path'].default, help='Flipped image file name')
    parser.add_argument('--blur-output', default=defaults['blur_path'].default, help='Blurred image file name')
    parser.add_argument('-W', '--width', type=int, default=defaults['width'].default)
    parser.add_argument('-H', '--height', type=int, default=defaults['height'].default)
    parser.add_argument('-k', '--window', type=int, default=defaults['window'].default,
                        help='Box blur window size (odd, >= 1)')
    parser.add_argument('-b', '--backend', choices=BACKENDS, default=defaults['backend'].default)
    parser.add_argument('-d', '--device-type', choices=DEVICE_TYPES, default=defaults['device_type'].default)
    parser.add_argument('-p', '--platform', type=int, default=defaults['platform_index'].default,
                        help='OpenCL platform index')
    parser.add_argument('-f', '--format', choices=IMAGE_FORMATS, default=defaults['image_format'].default,
                        help='raw bytes, a Pillow image, or decide by file extension')
    parser.add_argument('--verify', action='store_true', help='Compare outputs with the NumPy reference')
    parser.add_argument('--preview', help='Save an input/flip/blur figure to this file')
    parser.add_argument('--list-devices', action='store_true', help='List OpenCL platforms and devices')
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser


def config_from_args(args):
    return RunConfig(
        width=args.width,
        height=args.height,
        window=args.window,
        input_path=args.input,
        flip_path=args.flip_output,
        blur_path=args.blur_output,
        backend=args.backend,
        device_type=args.device_type,
        platform_index=args.platform,
        image_format=args.format,
    )


def list_devices():
    from .device import describe_devices

    platforms = describe_devices()
    if not platforms:
        print("No OpenCL platforms found!")
    for platform in platforms:
        print(f"[{platform['index']}] {platform['name']} ({platform['vendor']}) {platform['version']}")
        print("-" * 70)
        for info in platform['devices']:
            print(f"  {info['name']} [Type: {info['type']}]")
            print(f"    Compute units: {info['max_compute_units']}")
            print(f"    Maximum work group size: {info['max_work_group_size']}")
            print(f"    Maximum clock frequency: {info['max_clock_frequency']} MHz")
            print(f"    Global memory: {info['global_mem_size']:.2f} GB")
            print(f"    Local memory: {info['local_mem_size']:.0f} KB")


def print_summary(config, result):
    print("=" * 70)
    print("  Flip + Box Blur")
    print("=" * 70)
    print(f"Image size: {config.width}x{config.height} ({config.size:,} pixels)")
    print(f"Window: {config.window}x{config.window}")
    print(f"Grid: {result.partition.grid}  Block: {result.partition.local_size}")
    print("-" * 70)
    for stage in ("read", "allocate", "transfer_in", "flip", "blur", "transfer_out", "write"):
        if stage in result.timings:
            print(f"{stage:25} {result.timings[stage]:10.3f} ms")
    print("=" * 70)


def verify(raster, result, config):
    """Compare both outputs with the NumPy reference; True when they match."""
    image = np.asarray(raster, dtype=np.uint8).reshape(config.height, config.width)
    ref_flip = reference_flip(image)
    ref_blur = reference_blur(ref_flip, config.window)
    ok = True
    for name, got, ref in (("flip", result.flip, ref_flip), ("blur", result.blur, ref_blur)):
        max_diff = int(np.max(np.abs(got.astype(np.int16) - ref.astype(np.int16))))
        matches = max_diff == 0
        ok = ok and matches
        print(f"Verify {name}: max difference {max_diff} -> {'PASSED ✓' if matches else 'FAILED ✗'}")
    return ok


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    if args.list_devices:
        list_devices()
        return 0

    try:
        config = config_from_args(args)
    except ConfigError as e:
        parser.error(str(e))

    try:
        with make_accelerator(config) as accelerator:
            orchestrator = Orchestrator(config, accelerator)
            result = orchestrator.run()
    except PipelineError as e:
        logger.error("%s", e)
        return 1

    print_summary(config, result)

    if args.verify or args.preview:
        try:
            raster = orchestrator.source.read(config.input_path, config.width, config.height)
        except PipelineError as e:
            logger.error("%s", e)
            return 1
        if args.preview:
            from .preview import save_preview
            save_preview(raster.reshape(config.height, config.width), result.flip, result.blur,
                         args.preview, window=config.window)
            print(f"Preview saved as '{args.preview}'")
        if args.verify and not verify(raster, result, config):
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
