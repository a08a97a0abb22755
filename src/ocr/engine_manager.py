"""Lifecycle and serialization of the shared recognition session.

Tesseract must not run two recognitions for the same session at once,
so a manager owns one session, creates it at most once under concurrent
first use, and admits a single recognition at a time. Normalized images
handed to ``recognize`` are deleted on every exit path.
"""

import itertools
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from src.extraction.document_types import DocumentType
from src.utils.config import OCRConfig
from src.utils.exceptions import (
    EngineInitError,
    RecognitionError,
    RecognitionTimeoutError,
)
from src.utils.logger import get_logger

from .tesseract_engine import OCROutput, ProgressCallback, TesseractEngine

logger = get_logger(__name__)


class EngineState(StrEnum):
    """Lifecycle states of the recognition session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    BUSY = "busy"
    TERMINATED = "terminated"


@dataclass(frozen=True, eq=False)
class EngineHandle:
    """Reference to a live session, passed back into ``recognize``."""

    session_id: int
    engine: TesseractEngine


@dataclass(frozen=True)
class RecognitionResult:
    """Raw text and recognizer confidence for one document."""

    text: str
    confidence: int
    elapsed_ms: int
    document_type: DocumentType


EngineFactory = Callable[[OCRConfig], TesseractEngine]


def create_tesseract_session(config: OCRConfig) -> TesseractEngine:
    """Create a Tesseract session and verify it can run."""
    engine = TesseractEngine(config)
    engine.verify()
    return engine


def discard_file(path: Path) -> None:
    """Delete a temporary file, logging rather than raising on failure."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to delete processed image %s: %s", path, exc)


class RecognitionEngineManager:
    """Owns one recognition session and serializes access to it.

    Args:
        config: OCR configuration used to create sessions.
        engine_factory: Callable creating a verified engine; raises
            ``EngineInitError`` when the engine cannot start.
    """

    def __init__(
        self,
        config: OCRConfig | None = None,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        self.config = config or OCRConfig()
        self._factory = engine_factory or create_tesseract_session
        self._lock = threading.Lock()
        self._busy = threading.Lock()
        self._state = EngineState.UNINITIALIZED
        self._handle: EngineHandle | None = None
        self._pending: Future | None = None
        self._indeterminate = False
        self._generation = 0
        self._session_ids = itertools.count(1)

    @property
    def state(self) -> EngineState:
        return self._state

    def ensure_ready(self) -> EngineHandle:
        """Return the live session handle, creating the session if needed.

        Concurrent callers arriving while no session exists share one
        initialization attempt and receive the same handle or error.

        Raises:
            EngineInitError: If the engine cannot be started.
        """
        stale: EngineHandle | None = None
        with self._lock:
            if self._indeterminate and self._handle is not None:
                stale, self._handle = self._handle, None
                self._indeterminate = False
                self._state = EngineState.TERMINATED
            if self._handle is not None:
                return self._handle
            owner = self._pending is None
            if owner:
                self._pending = Future()
                self._state = EngineState.INITIALIZING
            pending = self._pending
            generation = self._generation

        if stale is not None:
            logger.warning("Resetting OCR session %d after timeout", stale.session_id)
            stale.engine.close()
        if owner:
            self._initialize(pending, generation)
        return pending.result()

    def _initialize(self, pending: Future, generation: int) -> None:
        logger.info("Initializing OCR session...")
        try:
            engine = self._factory(self.config)
        except Exception as exc:
            error = (
                exc if isinstance(exc, EngineInitError) else EngineInitError(str(exc))
            )
            logger.error("Failed to initialize OCR session: %s", error)
            with self._lock:
                if self._pending is pending:
                    self._pending = None
                    self._state = EngineState.UNINITIALIZED
            pending.set_exception(error)
            return

        with self._lock:
            handle = EngineHandle(next(self._session_ids), engine)
            superseded = generation != self._generation
            if not superseded:
                self._handle = handle
                self._state = EngineState.READY
            if self._pending is pending:
                self._pending = None

        if superseded:
            engine.close()
            logger.info("OCR session %d discarded after shutdown", handle.session_id)
            pending.set_exception(
                EngineInitError("session shut down during initialization")
            )
            return

        logger.info("OCR session %d initialized successfully", handle.session_id)
        pending.set_result(handle)

    def recognize(
        self,
        handle: EngineHandle,
        normalized_path: Path | str,
        document_type: DocumentType = DocumentType.UNKNOWN,
        progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> RecognitionResult:
        """Run recognition on a normalized image, then delete the image.

        Callers block while another recognition is in flight. ``timeout``
        (seconds, defaulting to ``OCRConfig.timeout_s``) is one budget for
        the whole call: the Tesseract run gets whatever the wait for the
        session left over. Zero or less disables the limit.

        Raises:
            RecognitionTimeoutError: If waiting or recognition timed out.
            RecognitionError: If the handle is stale or Tesseract failed.
        """
        path = Path(normalized_path)
        limit = timeout if timeout is not None else self.config.timeout_s
        start = time.monotonic()
        try:
            if not self._busy.acquire(timeout=limit if limit > 0 else -1):
                raise RecognitionTimeoutError(
                    str(path), f"waited {limit}s for the OCR session"
                )
            try:
                remaining = limit - (time.monotonic() - start) if limit > 0 else 0
                if limit > 0 and remaining <= 0:
                    raise RecognitionTimeoutError(
                        str(path), f"waited {limit}s for the OCR session"
                    )
                output = self._run(handle, path, document_type, progress, remaining)
            finally:
                self._busy.release()
        finally:
            discard_file(path)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "OCR completed in %dms with %d%% confidence", elapsed_ms, output.confidence
        )
        return RecognitionResult(
            text=output.text,
            confidence=output.confidence,
            elapsed_ms=elapsed_ms,
            document_type=document_type,
        )

    def _run(
        self,
        handle: EngineHandle,
        path: Path,
        document_type: DocumentType,
        progress: ProgressCallback | None,
        limit: float,
    ) -> OCROutput:
        with self._lock:
            if handle is not self._handle:
                raise RecognitionError(str(path), "stale engine handle")
            self._state = EngineState.BUSY

        logger.info("Starting OCR for %s", document_type)
        try:
            return handle.engine.recognize(
                path, timeout=limit or None, progress=progress
            )
        except RecognitionTimeoutError:
            logger.error("OCR timed out on %s; session will be reset", path)
            with self._lock:
                if handle is self._handle:
                    self._indeterminate = True
            raise
        except RecognitionError as exc:
            logger.error("OCR extraction failed: %s", exc)
            raise
        finally:
            with self._lock:
                if self._state is EngineState.BUSY:
                    self._state = EngineState.READY

    def shutdown(self) -> None:
        """Release the session. Safe to call when none exists."""
        with self._lock:
            handle, self._handle = self._handle, None
            if handle is None and self._pending is None:
                return
            self._pending = None
            self._indeterminate = False
            self._generation += 1
            self._state = EngineState.TERMINATED

        if handle is not None:
            handle.engine.close()
            logger.info("OCR session %d terminated", handle.session_id)
