"""Tesseract OCR engine wrapper tuned for identity documents.

Builds the Tesseract configuration (languages, character whitelist,
page segmentation mode) once and runs recognition on normalized images,
reporting the mean word confidence as a 0-100 integer.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytesseract
from PIL import Image

from src.utils.config import OCRConfig
from src.utils.exceptions import (
    EngineInitError,
    RecognitionError,
    RecognitionTimeoutError,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class OCROutput:
    """Raw text and mean confidence produced by one recognition run."""

    text: str
    confidence: int


def build_tesseract_config(config: OCRConfig) -> str:
    """Render the command-line options passed to Tesseract.

    Args:
        config: OCR configuration.

    Returns:
        Option string understood by ``pytesseract``.
    """
    options = [f"--psm {config.psm}"]
    if config.preserve_interword_spaces:
        options.append("-c preserve_interword_spaces=1")
    if config.char_whitelist:
        options.append(f'-c "tessedit_char_whitelist={config.char_whitelist}"')
    return " ".join(options)


def mean_confidence(data: dict) -> int:
    """Average the per-word confidences of ``image_to_data`` output.

    Entries with negative confidence (layout rows) or blank text are
    ignored. Returns 0 when no words were recognized.
    """
    scores = [
        float(conf)
        for conf, text in zip(data.get("conf", []), data.get("text", []))
        if float(conf) >= 0 and str(text).strip()
    ]
    if not scores:
        return 0
    return max(0, min(100, round(sum(scores) / len(scores))))


class TesseractEngine:
    """A configured Tesseract session.

    Tesseract runs as a subprocess per call, so the session holds
    configuration and verification state rather than a live process.

    Args:
        config: OCR configuration. Defaults to ``eng+hin``, PSM 6 and
            the identity-document character whitelist.
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        self.lang = "+".join(self.config.languages)
        self.options = build_tesseract_config(self.config)

    def verify(self) -> str:
        """Check that the binary and every configured language are available.

        Returns:
            The Tesseract version string.

        Raises:
            EngineInitError: If Tesseract is not installed or language
                data is missing.
        """
        try:
            version = str(pytesseract.get_tesseract_version())
            available = set(pytesseract.get_languages(config=""))
        except pytesseract.TesseractNotFoundError as exc:
            raise EngineInitError("tesseract binary not found") from exc
        except (pytesseract.TesseractError, OSError) as exc:
            raise EngineInitError(f"tesseract failed to start: {exc}") from exc

        missing = [lang for lang in self.config.languages if lang not in available]
        if missing:
            raise EngineInitError(f"missing language data: {', '.join(missing)}")

        logger.info("Tesseract %s ready with languages %s", version, self.lang)
        return version

    def recognize(
        self,
        image_path: Path,
        timeout: float | None = None,
        progress: ProgressCallback | None = None,
    ) -> OCROutput:
        """Recognize text in a normalized image file.

        Args:
            image_path: Path to the normalized image.
            timeout: Limit in seconds shared by both Tesseract passes;
                ``None`` disables it.
            progress: Optional callback receiving 0, 50 and 100.

        Returns:
            Recognized text (stripped) and mean confidence.

        Raises:
            RecognitionTimeoutError: If Tesseract exceeded ``timeout``.
            RecognitionError: If the image could not be read or Tesseract
                failed.
        """
        _report(progress, 0)
        limit = timeout or 0
        deadline = time.monotonic() + limit
        try:
            with Image.open(image_path) as image:
                image.load()
                text = pytesseract.image_to_string(
                    image, lang=self.lang, config=self.options, timeout=limit
                )
                _report(progress, 50)
                if limit:
                    limit = deadline - time.monotonic()
                    if limit <= 0:
                        raise RecognitionTimeoutError(
                            str(image_path), f"exceeded {timeout}s"
                        )
                data = pytesseract.image_to_data(
                    image,
                    lang=self.lang,
                    config=self.options,
                    output_type=pytesseract.Output.DICT,
                    timeout=limit,
                )
        except (pytesseract.TesseractError, OSError) as exc:
            raise RecognitionError(str(image_path), str(exc)) from exc
        except RuntimeError as exc:
            # pytesseract signals a killed subprocess with a bare RuntimeError
            if "timeout" in str(exc).lower():
                raise RecognitionTimeoutError(
                    str(image_path), f"exceeded {timeout}s"
                ) from exc
            raise RecognitionError(str(image_path), str(exc)) from exc

        _report(progress, 100)
        return OCROutput(text=text.strip(), confidence=mean_confidence(data))

    def close(self) -> None:
        """Release the session."""
        logger.info("Tesseract session closed")


def _report(progress: ProgressCallback | None, percent: int) -> None:
    logger.debug("OCR progress: %d%%", percent)
    if progress is not None:
        progress(percent)
