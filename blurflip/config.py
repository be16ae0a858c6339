"""Run parameters for one flip + blur pass."""

from dataclasses import dataclass

from .errors import ConfigError

BACKENDS = ("opencl", "host")
DEVICE_TYPES = ("gpu", "cpu", "any")
IMAGE_FORMATS = ("auto", "raw", "image")


@dataclass(frozen=True)
class RunConfig:
    width: int = 1024
    height: int = 768
    window: int = 5
    block: tuple = (16, 16)
    input_path: str = "input_image.raw"
    flip_path: str = "output_flip.raw"
    blur_path: str = "output_blur.raw"
    backend: str = "opencl"
    device_type: str = "gpu"
    platform_index: int = 0
    image_format: str = "auto"

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ConfigError("Invalid image size",
                              f"width and height must be positive, got {self.width}x{self.height}")
        if self.window < 1 or self.window % 2 == 0:
            raise ConfigError("Invalid kernel window",
                              f"window must be odd and >= 1, got {self.window}")
        if len(self.block) != 2 or min(self.block) <= 0:
            raise ConfigError("Invalid work-group size",
                              f"block must be two positive ints, got {self.block}")
        if self.backend not in BACKENDS:
            raise ConfigError("Unknown backend", f"{self.backend!r} not in {BACKENDS}")
        if self.device_type not in DEVICE_TYPES:
            raise ConfigError("Unknown device type", f"{self.device_type!r} not in {DEVICE_TYPES}")
        if self.image_format not in IMAGE_FORMATS:
            raise ConfigError("Unknown image format", f"{self.image_format!r} not in {IMAGE_FORMATS}")
        if self.platform_index < 0:
            raise ConfigError("Invalid platform index", f"got {self.platform_index}")

    @property
    def size(self):
        """Bytes per raster (one uint8 sample per pixel)."""
        return self.width * self.height

    @property
    def radius(self):
        return (self.window - 1) // 2
