import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

# Ensure repo root is importable without an installed package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from blurflip.emulator import HostAccelerator
from blurflip.errors import PipelineError


@pytest.fixture
def host_accelerator():
    acc = HostAccelerator(max_workers=4)
    yield acc
    acc.close()


@pytest.fixture
def opencl_accelerator():
    from blurflip.device import OpenCLAccelerator

    try:
        acc = OpenCLAccelerator.create(device_type="any")
    except PipelineError as e:
        pytest.skip(f"no usable OpenCL device: {e}")
    yield acc
    acc.close()


@pytest.fixture(params=["host", "opencl"])
def accelerator(request):
    return request.getfixturevalue(f"{request.param}_accelerator")


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
