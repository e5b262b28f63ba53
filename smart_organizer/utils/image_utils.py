"""
Image utility functions
"""

import io

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError
from typing import Tuple

from smart_organizer.core.exceptions import ImageDecodeError

# Guard against decompression bombs
Image.MAX_IMAGE_PIXELS = 100_000_000  # 100MP limit


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes into an RGBA uint8 array (H, W, 4)"""
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
            return np.asarray(rgba, dtype=np.uint8).copy()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e


def to_pil_rgb(pixels: np.ndarray) -> Image.Image:
    """Build a PIL RGB image from an RGB or RGBA array"""
    return Image.fromarray(np.ascontiguousarray(pixels[:, :, :3]))


def resize_exact(pixels: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resample to exactly (width, height) with area interpolation"""
    target_w, target_h = size
    h, w = pixels.shape[:2]
    if (w, h) == (target_w, target_h):
        return pixels
    return cv2.resize(pixels, (target_w, target_h), interpolation=cv2.INTER_AREA)


def cap_dimensions(pixels: np.ndarray, max_dimension: int) -> np.ndarray:
    """Clamp each axis independently to max_dimension"""
    h, w = pixels.shape[:2]
    return resize_exact(pixels, (min(w, max_dimension), min(h, max_dimension)))


def luminance(pixels: np.ndarray) -> np.ndarray:
    """Per-pixel mean of the three color channels as float64"""
    return pixels[:, :, :3].astype(np.float64).mean(axis=2)
