"""Configuration management for the identity document OCR pipeline.

Loads and validates YAML configuration with defaults tuned for
photographs of Aadhaar, PAN, and address-proof documents.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CHAR_WHITELIST = (
    "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ:/- "
)


class PreprocessingConfig(BaseModel):
    """Configuration for the image normalizer."""

    max_edge: int = 2000
    sharpen_sigma: float = 1.0
    sharpen_amount: float = 1.0
    threshold: int = 128
    jpeg_quality: int = 90
    output_suffix: str = "_processed"


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition session."""

    tesseract_cmd: str | None = None
    languages: list[str] = Field(default_factory=lambda: ["eng", "hin"])
    psm: int = 6
    char_whitelist: str = DEFAULT_CHAR_WHITELIST
    preserve_interword_spaces: bool = True
    timeout_s: float = 60.0


class ValidationConfig(BaseModel):
    """Configuration for the extraction validator."""

    rules_path: str = "configs/validation_rules.yaml"


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: str = "INFO"
    format: str = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
