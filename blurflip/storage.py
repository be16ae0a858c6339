"""
Image source and sink collaborators.

Raw files hold exactly width*height bytes, row-major, no header. Any other
extension Pillow knows is decoded to 8-bit grayscale, never resized.
"""

import logging
import os
import tempfile
from pathlib import Path

import numpy as np
from PIL import Image

from .errors import ImageIOError

logger = logging.getLogger(__name__)


def _pil_format(path):
    return Image.registered_extensions().get(Path(path).suffix.lower())


def uses_pil(path, image_format="auto"):
    if image_format == "raw":
        return False
    if image_format == "image":
        return True
    return _pil_format(path) is not None


class RawImageSource:
    """Reads one grayscale raster per call."""

    def __init__(self, image_format="auto"):
        self.image_format = image_format

    def read(self, path, width, height):
        operation = f"Failed to read image {path}"
        expected = width * height
        try:
            if uses_pil(path, self.image_format):
                with Image.open(path) as img:
                    if img.size != (width, height):
                        raise ImageIOError(operation,
                                           f"expected {width}x{height}, got {img.size[0]}x{img.size[1]}")
                    data = np.array(img.convert('L'), dtype=np.uint8).reshape(-1)
            else:
                raw = Path(path).read_bytes()
                if len(raw) != expected:
                    raise ImageIOError(operation, f"expected {expected} bytes, got {len(raw)}")
                data = np.frombuffer(raw, dtype=np.uint8).copy()
        except OSError as e:
            raise ImageIOError(operation, e.strerror or str(e)) from e
        except Image.DecompressionBombError as e:
            raise ImageIOError(operation, str(e)) from e
        logger.debug("Read %s (%dx%d)", path, width, height)
        return data


class RawImageSink:
    """Writes one raster per call; the target only appears once fully written."""

    def __init__(self, image_format="auto"):
        self.image_format = image_format

    def write(self, path, data, width, height):
        operation = f"Failed to write image {path}"
        data = np.asarray(data, dtype=np.uint8)
        if data.size != width * height:
            raise ImageIOError(operation, f"expected {width * height} samples, got {data.size}")

        fmt = None
        if uses_pil(path, self.image_format):
            fmt = _pil_format(path) or "PNG"
            Image.init()
            if fmt.upper() not in Image.SAVE:
                raise ImageIOError(operation, f"Pillow cannot save {fmt} images")

        target = Path(path)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
        except OSError as e:
            raise ImageIOError(operation, e.strerror or str(e)) from e
        replaced = False
        try:
            with os.fdopen(fd, "wb") as tmp:
                if fmt is not None:
                    Image.fromarray(data.reshape(height, width)).save(tmp, format=fmt)
                else:
                    tmp.write(data.tobytes())
            os.replace(tmp_name, target)
            replaced = True
        except OSError as e:
            raise ImageIOError(operation, e.strerror or str(e)) from e
        except (KeyError, ValueError) as e:
            raise ImageIOError(operation, f"{type(e).__name__}: {e}") from e
        finally:
            if not replaced and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        logger.debug("Wrote %s", path)
