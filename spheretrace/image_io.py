"""
Writing rendered frames to disk.

Frames come out of the renderer with row 0 at the bottom of the image, so
every writer flips rows before saving.
"""
import logging
import os

import numpy as np
from PIL import Image
import imageio.v3 as iio
import OpenEXR
import Imath

logger = logging.getLogger(__name__)


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Clamp [0, 1] colours and quantise to 8 bits."""
    image = np.clip(np.asarray(image, dtype=np.float32), 0.0, 1.0)
    return (image * 255.0 + 0.5).astype(np.uint8)


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)


def save_png(path: str, rgba: np.ndarray) -> None:
    """Save a gamma-encoded RGBA (or RGB) frame."""
    _ensure_parent(path)
    pixels = to_uint8(np.flipud(rgba))
    Image.fromarray(pixels).save(path)
    logger.info(f"PNG saved to {path}")


def save_exr(path: str, linear_rgb: np.ndarray) -> None:
    """Save a linear (not gamma-encoded) frame as half-float RGB."""
    _ensure_parent(path)
    image_f16 = np.flipud(np.asarray(linear_rgb))[..., :3].astype(np.float16)
    height, width, _ = image_f16.shape

    header = OpenEXR.Header(width, height)
    half_chan = Imath.Channel(Imath.PixelType(Imath.PixelType.HALF))
    header['channels'] = {'R': half_chan, 'G': half_chan, 'B': half_chan}

    exr_file = OpenEXR.OutputFile(path, header)
    try:
        exr_file.writePixels({
            'R': np.ascontiguousarray(image_f16[:, :, 0]).tobytes(),
            'G': np.ascontiguousarray(image_f16[:, :, 1]).tobytes(),
            'B': np.ascontiguousarray(image_f16[:, :, 2]).tobytes(),
        })
    finally:
        exr_file.close()
    logger.info(f"EXR saved to {path}")


def save_animation(path: str, frames, fps: float) -> None:
    """Write a frame sequence; the container (GIF, MP4, ...) follows the file extension."""
    _ensure_parent(path)
    stack = np.stack([to_uint8(np.flipud(frame))[..., :3] for frame in frames])
    if path.lower().endswith('.gif'):
        iio.imwrite(path, stack, duration=1000.0 / fps, loop=0)
    else:
        iio.imwrite(path, stack, fps=fps)
    logger.info(f"Animation with {len(stack)} frames saved to {path}")
