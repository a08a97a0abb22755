"""Size bounding for document photographs before OCR."""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def bound_longest_edge(image: np.ndarray, max_edge: int = 2000) -> np.ndarray:
    """Downscale an image so its longest edge is at most ``max_edge``.

    Images already within bounds are returned as-is; they are never upscaled.

    Args:
        image: Input image.
        max_edge: Maximum length in pixels of the longer side.

    Returns:
        Resized image preserving the aspect ratio.
    """
    h, w = image.shape[:2]
    longest = max(h, w)
    if longest <= max_edge:
        return image

    scale = max_edge / longest
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    result = cv2.resize(image, size, interpolation=cv2.INTER_AREA)
    logger.debug("Resized %dx%d -> %dx%d", w, h, size[0], size[1])
    return result
