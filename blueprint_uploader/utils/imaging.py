"""
Preview image helpers.

The service refuses to create a blueprint without an image, so the create
path falls back to a blank placeholder written here.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.image as mpimg  # noqa: E402
import numpy as np  # noqa: E402

from blueprint_uploader.utils.logging import get_logger, log_function_call  # noqa: E402

logger = get_logger(__name__)

PLACEHOLDER_WIDTH = 1200
PLACEHOLDER_HEIGHT = 900


def blank_image(width: int = PLACEHOLDER_WIDTH, height: int = PLACEHOLDER_HEIGHT) -> np.ndarray:
    """Return an opaque black RGBA image of the given size."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive (got: {width}x{height})")
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    return pixels


def image_name(width: int, height: int, name: str, directory: Union[str, Path]) -> str:
    """Build a timestamped PNG path such as ``<dir>/image_1200x900_2026-10-16_10-30-15.png``."""
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return str(Path(directory) / f"{name}_{width}x{height}_{stamp}.png")


@log_function_call
def save_image_temp(pixels: np.ndarray, directory: Union[str, Path], name: str = "image") -> str:
    """
    Write an image array as PNG into ``directory`` and return its path.

    Args:
        pixels: HxWx3 or HxWx4 array (uint8 or float in [0, 1])
        directory: Target directory, created if missing
        name: File name prefix

    Returns:
        Path of the written PNG
    """
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected an HxWx3 or HxWx4 image, got shape {pixels.shape}")

    Path(directory).mkdir(parents=True, exist_ok=True)
    height, width = pixels.shape[:2]
    path = image_name(width, height, name, directory)
    mpimg.imsave(path, pixels, format="png")
    logger.debug(f"Saved {width}x{height} image to {path}")
    return path


def save_placeholder_image(directory: Union[str, Path], size: Optional[tuple] = None) -> str:
    """Write the blank placeholder used when a new blueprint has no image."""
    width, height = size or (PLACEHOLDER_WIDTH, PLACEHOLDER_HEIGHT)
    return save_image_temp(blank_image(width, height), directory)
