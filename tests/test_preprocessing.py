"""Tests for the image normalizer and its processing steps."""

from pathlib import Path

import cv2
import numpy as np
import pytest

from src.preprocessing.binarize import binarize_fixed, stretch_contrast, to_gray
from src.preprocessing.pipeline import (
    ImageNormalizer,
    QualityMetrics,
    calculate_contrast,
    calculate_sharpness,
    output_path_for,
)
from src.preprocessing.resize import bound_longest_edge
from src.preprocessing.sharpen import unsharp_mask
from src.utils.config import PreprocessingConfig
from src.utils.exceptions import PreprocessingError


def _make_gradient(height: int = 100, width: int = 256) -> np.ndarray:
    """Create a horizontal greyscale gradient spanning 50..150."""
    row = np.linspace(50, 150, width).astype(np.uint8)
    return np.tile(row, (height, 1))


class TestToGray:
    """Tests for greyscale conversion."""

    def test_color_image_becomes_single_channel(
        self, sample_color_image: np.ndarray
    ) -> None:
        gray = to_gray(sample_color_image)
        assert gray.ndim == 2
        assert gray.shape == sample_color_image.shape[:2]

    def test_bgra_image_becomes_single_channel(self) -> None:
        image = np.zeros((20, 30, 4), dtype=np.uint8)
        assert to_gray(image).shape == (20, 30)

    def test_gray_image_returned_unchanged(self, sample_image: np.ndarray) -> None:
        assert to_gray(sample_image) is sample_image


class TestStretchContrast:
    """Tests for min-max contrast normalization."""

    def test_stretches_to_full_range(self) -> None:
        result = stretch_contrast(_make_gradient())
        assert result.min() == 0
        assert result.max() == 255

    def test_flat_image_unchanged(self) -> None:
        flat = np.full((10, 10), 77, dtype=np.uint8)
        result = stretch_contrast(flat)
        np.testing.assert_array_equal(result, flat)
        assert result is not flat


class TestBinarizeFixed:
    """Tests for fixed-threshold binarization."""

    def test_produces_binary(self) -> None:
        binary = binarize_fixed(_make_gradient())
        assert set(np.unique(binary)).issubset({0, 255})

    def test_threshold_is_exclusive(self) -> None:
        image = np.array([[127, 128, 129]], dtype=np.uint8)
        result = binarize_fixed(image, threshold=128)
        assert result.tolist() == [[0, 0, 255]]


class TestBoundLongestEdge:
    """Tests for longest-edge size bounding."""

    def test_downscales_longest_edge(self) -> None:
        image = np.zeros((1500, 3000), dtype=np.uint8)
        result = bound_longest_edge(image, max_edge=2000)
        assert result.shape == (1000, 2000)

    def test_portrait_downscale(self) -> None:
        image = np.zeros((2400, 1200, 3), dtype=np.uint8)
        result = bound_longest_edge(image, max_edge=2000)
        assert result.shape == (2000, 1000, 3)

    def test_never_upscales(self) -> None:
        image = np.zeros((100, 150), dtype=np.uint8)
        assert bound_longest_edge(image, max_edge=2000) is image


class TestUnsharpMask:
    """Tests for unsharp-mask sharpening."""

    def test_unsharp_mask_preserves_shape_and_dtype(
        self, sample_image: np.ndarray
    ) -> None:
        result = unsharp_mask(sample_image)
        assert result.shape == sample_image.shape
        assert result.dtype == np.uint8

    def test_unsharp_mask_leaves_flat_image(self) -> None:
        flat = np.full((30, 30), 100, dtype=np.uint8)
        np.testing.assert_array_equal(unsharp_mask(flat), flat)

    def test_unsharp_mask_increases_edge_contrast(
        self, sample_image: np.ndarray
    ) -> None:
        result = unsharp_mask(sample_image, sigma=1.0, amount=1.0)
        assert calculate_sharpness(result) > calculate_sharpness(sample_image)


class TestQualityMetrics:
    """Tests for image quality measurement functions."""

    def test_blank_image_zero_sharpness(self) -> None:
        blank = np.zeros((50, 50), dtype=np.uint8)
        assert calculate_sharpness(blank) == 0.0

    def test_contrast_color_image(self, sample_color_image: np.ndarray) -> None:
        assert calculate_contrast(sample_color_image) > 0


class TestImageNormalizer:
    """Tests for the file-level image normalizer."""

    def test_output_path_derivation(self) -> None:
        assert output_path_for(Path("/data/scan.png")) == Path(
            "/data/scan_processed.jpg"
        )

    def test_transform_produces_binary_gray(
        self, sample_color_image: np.ndarray
    ) -> None:
        result, metrics = ImageNormalizer().transform(sample_color_image)
        assert result.ndim == 2
        assert set(np.unique(result)).issubset({0, 255})
        assert isinstance(metrics, QualityMetrics)
        assert metrics.contrast_before > 0

    def test_normalize_writes_processed_jpeg(self, image_file: Path) -> None:
        output = ImageNormalizer().normalize(image_file)
        assert output == image_file.with_name("card_processed.jpg")
        assert output.exists()
        written = cv2.imread(str(output), cv2.IMREAD_UNCHANGED)
        assert written.ndim == 2
        assert written.shape == (200, 320)

    def test_normalize_does_not_touch_input(self, image_file: Path) -> None:
        before = image_file.read_bytes()
        ImageNormalizer().normalize(image_file)
        assert image_file.read_bytes() == before

    def test_normalize_is_deterministic(self, image_file: Path) -> None:
        normalizer = ImageNormalizer()
        first = normalizer.normalize(image_file).read_bytes()
        second = normalizer.normalize(image_file).read_bytes()
        assert first == second

    def test_normalize_bounds_large_image(self, tmp_path: Path) -> None:
        path = tmp_path / "large.png"
        cv2.imwrite(str(path), np.full((1300, 2600, 3), 180, dtype=np.uint8))
        output = ImageNormalizer().normalize(path)
        assert cv2.imread(str(output), cv2.IMREAD_UNCHANGED).shape == (1000, 2000)

    def test_normalize_respects_config(self, image_file: Path) -> None:
        config = PreprocessingConfig(max_edge=160, output_suffix="_clean")
        output = ImageNormalizer(config).normalize(image_file)
        assert output.name == "card_clean.jpg"
        assert max(cv2.imread(str(output), cv2.IMREAD_UNCHANGED).shape) == 160

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(PreprocessingError, match="Could not preprocess"):
            ImageNormalizer().normalize(tmp_path / "missing.png")

    def test_non_image_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.png"
        path.write_text("definitely not pixels")
        with pytest.raises(PreprocessingError) as exc_info:
            ImageNormalizer().normalize(path)
        assert exc_info.value.details["reason"] == "not a decodable raster image"
        assert not output_path_for(path).exists()
