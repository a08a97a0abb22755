"""Image normalizer preparing identity document photos for OCR.

Bounds the image size, converts to greyscale, stretches contrast,
sharpens, binarizes with a fixed threshold and re-encodes the result
as JPEG next to the source file.
"""

from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from src.utils.config import PreprocessingConfig
from src.utils.exceptions import PreprocessingError
from src.utils.logger import get_logger

from .binarize import binarize_fixed, stretch_contrast, to_gray
from .resize import bound_longest_edge
from .sharpen import unsharp_mask

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Before/after image quality measurements."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float


def calculate_sharpness(image: np.ndarray) -> float:
    """Calculate image sharpness as the variance of the Laplacian."""
    return float(cv2.Laplacian(to_gray(image), cv2.CV_64F).var())


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate contrast as the standard deviation of pixel intensities."""
    return float(to_gray(image).std())


def output_path_for(image_path: Path, suffix: str = "_processed") -> Path:
    """Derive the normalized image path: same directory and stem, JPEG."""
    return image_path.with_name(f"{image_path.stem}{suffix}.jpg")


class ImageNormalizer:
    """Deterministic image-to-image transform for the recognition stage.

    The source file is never modified; a new JPEG is written and its
    path returned. The caller owns the output file and must delete it.

    Args:
        config: Preprocessing configuration.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def transform(self, image: np.ndarray) -> tuple[np.ndarray, QualityMetrics]:
        """Apply the normalization steps to an in-memory image.

        Args:
            image: Decoded image (BGR, BGRA or greyscale).

        Returns:
            Tuple of (binary greyscale image, quality metrics).
        """
        metrics = QualityMetrics(
            sharpness_before=calculate_sharpness(image),
            contrast_before=calculate_contrast(image),
            sharpness_after=0.0,
            contrast_after=0.0,
        )

        result = bound_longest_edge(image, self.config.max_edge)
        result = to_gray(result)
        result = stretch_contrast(result)
        result = unsharp_mask(
            result,
            sigma=self.config.sharpen_sigma,
            amount=self.config.sharpen_amount,
        )
        result = binarize_fixed(result, self.config.threshold)

        metrics.sharpness_after = calculate_sharpness(result)
        metrics.contrast_after = calculate_contrast(result)
        return result, metrics

    def normalize(self, image_path: Path | str) -> Path:
        """Normalize an image file and write the result beside it.

        Args:
            image_path: Path to the source raster image.

        Returns:
            Path of the written normalized JPEG.

        Raises:
            PreprocessingError: If the file is missing, unreadable, not a
                decodable image, or the output cannot be written.
        """
        source = Path(image_path)
        if not source.is_file():
            raise PreprocessingError(str(source), "file not found")

        image = cv2.imread(str(source), cv2.IMREAD_COLOR)
        if image is None:
            raise PreprocessingError(str(source), "not a decodable raster image")

        result, metrics = self.transform(image)

        target = output_path_for(source, self.config.output_suffix)
        written = cv2.imwrite(
            str(target), result, [cv2.IMWRITE_JPEG_QUALITY, self.config.jpeg_quality]
        )
        if not written:
            raise PreprocessingError(str(source), f"could not write {target}")

        logger.info(
            "Image preprocessed: %s (sharpness %.1f->%.1f, contrast %.1f->%.1f)",
            target,
            metrics.sharpness_before,
            metrics.sharpness_after,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return target
