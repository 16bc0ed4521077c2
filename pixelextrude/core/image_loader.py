"""
Image decoding into RGBA pixel buffers (Pillow).

Supports whatever Pillow can open; PNG with transparency is the typical input.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .pixel_buffer import PixelBuffer

_LOGGER = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, BinaryIO]


class ImageDecodeError(ValueError):
    pass


def image_to_buffer(image: Image.Image) -> PixelBuffer:
    """Convert a Pillow image (any mode) to an RGBA pixel buffer."""
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    return PixelBuffer(pixels=np.asarray(rgba, dtype=np.uint8))


def load_image(source: ImageSource) -> PixelBuffer:
    """
    Decode an image file, raw bytes or a binary stream.

    Raises:
        FileNotFoundError: path does not exist
        ImageDecodeError: data is not a decodable image
    """
    label: str
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        fp: Union[str, BinaryIO] = str(path)
        label = str(path)
    elif isinstance(source, (bytes, bytearray)):
        fp = io.BytesIO(bytes(source))
        label = f"<{len(source)} bytes>"
    else:
        fp = source
        label = getattr(source, "name", "<stream>")

    try:
        with Image.open(fp) as img:
            img.load()
            buffer = image_to_buffer(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        if isinstance(e, FileNotFoundError):
            raise
        raise ImageDecodeError(f"Cannot decode image {label}: {e}") from e

    _LOGGER.debug("Loaded image %s (%dx%d)", label, buffer.width, buffer.height)
    return buffer


def get_image_info(source: Union[str, Path]) -> dict:
    """
    Header-level image info without full decoding.
    """
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    info = {
        'filename': path.name,
        'file_size_mb': round(path.stat().st_size / (1024 * 1024), 2),
    }
    try:
        with Image.open(str(path)) as img:
            info['format'] = img.format
            info['mode'] = img.mode
            info['width'] = img.width
            info['height'] = img.height
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        info['error'] = str(e)
    return info
