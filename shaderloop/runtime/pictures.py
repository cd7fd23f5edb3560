"""
ShaderLoop - Picture Loading
============================
Decodes image files into pixel arrays ready for texture upload.

Pixel data keeps the source sample depth: 8-bit with 1 to 4 channels,
16-bit grayscale or 32-bit float grayscale. Pillow cannot decode
16-bit colour without truncating it, so such files are rejected.
Rows are flipped so that row 0 is the bottom of the image, which is
what OpenGL expects.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from shaderloop.errors import ResourceError

# Modes Pillow decodes to that map onto a supported sample layout
_SUPPORTED_MODES = {
    'L': np.uint8,
    'LA': np.uint8,
    'RGB': np.uint8,
    'RGBA': np.uint8,
    'I;16': np.uint16,
    'I;16L': np.uint16,
    'I;16B': np.uint16,
    'F': np.float32,
}

# Modes that can carry 16-bit samples without truncation
_WIDE_MODES = ('I', 'I;16', 'I;16L', 'I;16B')

# Raw layouts with 16-bit big, little or native endian samples (not packed 5-6-5)
_WIDE_RAWMODE = re.compile(r";16[BLN]$")

# Modes converted before upload
_CONVERTED_MODES = {
    '1': 'L',
    'P': 'RGBA',
    'PA': 'RGBA',
    'CMYK': 'RGB',
    'YCbCr': 'RGB',
    'LAB': 'RGB',
    'HSV': 'RGB',
    'La': 'LA',
    'RGBa': 'RGBA',
    'RGBX': 'RGB',
}


@dataclass
class Picture:
    """
    Decoded image.

    Attributes:
        pixels: (H, W, C) array, dtype uint8, uint16 or float32, bottom row first
        resolution: (width, height)
        channels: Channel count (1-4)
    """
    pixels: np.ndarray
    resolution: Tuple[int, int]
    channels: int

    @property
    def dtype(self) -> np.dtype:
        return self.pixels.dtype

    def __repr__(self) -> str:
        width, height = self.resolution
        return f"Picture(size={width}×{height}, channels={self.channels}, dtype={self.pixels.dtype})"


def _has_wide_samples(image: Image.Image) -> bool:
    """Whether the file stores 16-bit samples (checked before load())."""
    for tile in image.tile or ():
        args = tile[3]
        rawmode = args if isinstance(args, str) else (args[0] if args else None)
        if isinstance(rawmode, str) and _WIDE_RAWMODE.search(rawmode):
            return True
    return False


def picture_from_image(image: Image.Image, wide: bool = False) -> Picture:
    """
    Convert a Pillow image into a bottom-up Picture.

    Args:
        image: Decoded image
        wide: The source stores 16-bit samples

    Raises:
        ResourceError: If the pixel format is not supported, or 16-bit
            samples were decoded into an 8-bit mode
    """
    mode = image.mode
    if wide and mode not in _WIDE_MODES:
        # Pillow decodes 16-bit colour into 8-bit modes
        raise ResourceError(f"Unsupported pixel format '{mode}' with 16-bit samples")
    if mode in _CONVERTED_MODES:
        image = image.convert(_CONVERTED_MODES[mode])
        mode = image.mode

    dtype = np.uint16 if wide and mode == 'I' else _SUPPORTED_MODES.get(mode)
    if dtype is None:
        raise ResourceError(f"Unsupported pixel format '{mode}'")

    pixels = np.asarray(image).astype(dtype, copy=False)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]

    channels = pixels.shape[2]
    if not 1 <= channels <= 4:
        raise ResourceError(f"Unsupported channel count {channels}")

    pixels = np.ascontiguousarray(np.flipud(pixels))
    return Picture(pixels=pixels, resolution=(image.width, image.height), channels=channels)


def load_picture(path) -> Picture:
    """
    Open and decode an image file.

    Args:
        path: Image file path

    Returns:
        Decoded Picture

    Raises:
        ResourceError: If the file cannot be read, decoded, or has an
            unsupported format
    """
    path = Path(path)
    try:
        with Image.open(path) as image:
            wide = _has_wide_samples(image)
            image.load()
            return picture_from_image(image, wide)
    except UnidentifiedImageError as e:
        raise ResourceError(f"Unsupported image format: {path}") from e
    except OSError as e:
        raise ResourceError(f"Could not load {path}: {e}") from e
