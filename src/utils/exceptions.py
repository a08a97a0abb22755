"""Error taxonomy for the document OCR pipeline.

Hierarchy:
    DocumentOCRError
    ├── PreprocessingError       image missing, unreadable or not a raster
    ├── EngineInitError          Tesseract binary or language data unavailable
    └── RecognitionError         engine ran but failed on this image
        └── RecognitionTimeoutError

Missing or malformed fields are never raised; they surface as ``None``
values and a failed validation report.
"""


class DocumentOCRError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message.
        details: Additional context for logs and the boundary layer.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class PreprocessingError(DocumentOCRError):
    """Raised when an input image cannot be read or decoded."""

    def __init__(self, image_path: str, reason: str | None = None) -> None:
        super().__init__(
            f"Could not preprocess image: {image_path}",
            {"image_path": image_path, "reason": reason},
        )


class EngineInitError(DocumentOCRError):
    """Raised when the recognition engine cannot be started."""

    def __init__(self, reason: str) -> None:
        super().__init__("OCR engine initialization failed", {"reason": reason})


class RecognitionError(DocumentOCRError):
    """Raised when recognition fails for a single image."""

    def __init__(self, image_path: str, reason: str | None = None) -> None:
        super().__init__(
            f"OCR text extraction failed for: {image_path}",
            {"image_path": image_path, "reason": reason},
        )


class RecognitionTimeoutError(RecognitionError):
    """Raised when recognition exceeds its time budget."""
