"""Unsharp-mask sharpening for document photographs."""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def unsharp_mask(
    image: np.ndarray, sigma: float = 1.0, amount: float = 1.0
) -> np.ndarray:
    """Sharpen by adding back the difference from a Gaussian-blurred copy.

    Args:
        image: Greyscale image.
        sigma: Gaussian standard deviation of the blur.
        amount: Weight of the high-frequency component.

    Returns:
        Sharpened image, saturated to the input dtype.
    """
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    result = cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)
    logger.debug("Applied unsharp mask (sigma=%.1f, amount=%.1f)", sigma, amount)
    return result
