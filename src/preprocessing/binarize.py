"""Greyscale conversion, contrast stretching and fixed-threshold binarization."""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an image to single-channel greyscale if it has color channels.

    Args:
        image: Input image (BGR, BGRA or greyscale).

    Returns:
        Greyscale image.
    """
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def stretch_contrast(image: np.ndarray) -> np.ndarray:
    """Stretch pixel intensities linearly to cover the full 0-255 range.

    Flat images are returned unchanged since they carry no range to stretch.

    Args:
        image: Greyscale image.

    Returns:
        Contrast-normalized greyscale image.
    """
    low, high = int(image.min()), int(image.max())
    if low == high:
        logger.debug("Flat image (value %d), skipping contrast stretch", low)
        return image.copy()
    result = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX)
    logger.debug("Stretched contrast from [%d, %d] to [0, 255]", low, high)
    return result


def binarize_fixed(image: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Binarize a greyscale image with a global threshold.

    Pixels strictly above ``threshold`` become white, the rest black.

    Args:
        image: Greyscale image.
        threshold: Cut-off on the 0-255 scale.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    _, binary = cv2.threshold(image, threshold, 255, cv2.THRESH_BINARY)
    logger.debug("Applied fixed binarization at %d", threshold)
    return binary
