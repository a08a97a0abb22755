"""Shared test fixtures for the identity document OCR test suite."""

from pathlib import Path

import cv2
import numpy as np
import pytest


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic greyscale test image."""
    image = np.full((200, 300), 60, dtype=np.uint8)
    image[50:150, 50:250] = 200
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a synthetic BGR card-like image with dark 'text' strokes."""
    image = np.full((200, 320, 3), (210, 220, 230), dtype=np.uint8)
    for row in (40, 90, 140):
        image[row : row + 12, 30:290] = (40, 40, 40)
    return image


@pytest.fixture
def image_file(tmp_path: Path, sample_color_image: np.ndarray) -> Path:
    """Write the synthetic card image to a PNG file."""
    path = tmp_path / "card.png"
    cv2.imwrite(str(path), sample_color_image)
    return path


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
