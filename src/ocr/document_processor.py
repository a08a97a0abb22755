"""End-to-end identity document processing.

Runs the four pipeline stages for one document: image normalization,
recognition through the shared engine session, field extraction for
the declared document type, and validation of the extracted fields.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.extraction.document_types import DocumentType, FieldSet
from src.extraction.field_extractor import FieldExtractor
from src.preprocessing.pipeline import ImageNormalizer
from src.utils.config import AppConfig
from src.utils.exceptions import DocumentOCRError
from src.utils.logger import get_logger
from src.validation.rules_engine import RulesEngine, ValidationReport

from .engine_manager import RecognitionEngineManager
from .tesseract_engine import ProgressCallback

logger = get_logger(__name__)


@dataclass(frozen=True)
class Document:
    """An incoming document image and its declared type."""

    source_path: Path
    declared_type: DocumentType

    @classmethod
    def create(cls, image_path: Path | str, document_type: str | None) -> "Document":
        return cls(Path(image_path), DocumentType.parse(document_type))


@dataclass
class DocumentResult:
    """Recognition, extraction and validation output for one document."""

    extracted_text: str
    confidence: int
    processing_time_ms: int
    document_type: DocumentType
    fields: FieldSet
    validation: ValidationReport

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the API boundary."""
        return {
            "extractedText": self.extracted_text,
            "confidence": self.confidence,
            "processingTime": self.processing_time_ms,
            "documentType": self.document_type.value,
            "fields": dict(self.fields),
            "validation": self.validation.to_dict(),
        }


class DocumentProcessor:
    """Identity document OCR pipeline.

    One processor owns one recognition session; use it as a context
    manager, or call ``close``, to release the session.

    Args:
        config: Application configuration.
        engine_manager: Recognition session manager. Created from
            ``config.ocr`` when omitted.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        engine_manager: RecognitionEngineManager | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.normalizer = ImageNormalizer(self.config.preprocessing)
        self.engine_manager = engine_manager or RecognitionEngineManager(
            self.config.ocr
        )
        self.extractor = FieldExtractor()
        self.validator = RulesEngine(Path(self.config.validation.rules_path))

    def process_document(
        self,
        image_path: Path | str,
        document_type: str | DocumentType | None = None,
        progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> DocumentResult:
        """Process one document image.

        Args:
            image_path: Path to the uploaded image.
            document_type: Case-insensitive type tag; unrecognized values
                are treated as unknown.
            progress: Optional recognition progress callback (0-100).
            timeout: Optional recognition timeout in seconds.

        Returns:
            Raw text, recognizer confidence, timing, fields and validation.

        Raises:
            PreprocessingError: If the image cannot be read.
            EngineInitError: If the OCR engine is unavailable.
            RecognitionError: If recognition failed for this image.
        """
        document = Document.create(image_path, document_type)
        logger.info(
            "Processing %s document: %s", document.declared_type, document.source_path
        )
        try:
            handle = self.engine_manager.ensure_ready()
            normalized = self.normalizer.normalize(document.source_path)
            recognition = self.engine_manager.recognize(
                handle,
                normalized,
                document_type=document.declared_type,
                progress=progress,
                timeout=timeout,
            )
        except DocumentOCRError as exc:
            logger.error("Document processing failed: %s", exc)
            raise

        extraction = self.extractor.extract(recognition.text, document.declared_type)
        validation = self.validator.validate(
            extraction.fields, document.declared_type, extraction.rejected
        )
        return DocumentResult(
            extracted_text=recognition.text,
            confidence=recognition.confidence,
            processing_time_ms=recognition.elapsed_ms,
            document_type=document.declared_type,
            fields=extraction.fields,
            validation=validation,
        )

    def close(self) -> None:
        """Release the recognition session."""
        self.engine_manager.shutdown()

    def __enter__(self) -> "DocumentProcessor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
