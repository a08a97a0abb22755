"""Tests for the batch processing CLI and CSV export."""

import csv
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.cli import (
    _find_documents,
    _print_summary,
    _write_csv,
    extract_single,
    main,
    process_folder,
)
from src.extraction.document_types import DocumentType
from src.ocr.document_processor import DocumentResult
from src.utils.exceptions import PreprocessingError
from src.validation.rules_engine import ValidationReport


def _make_result(document_type: DocumentType = DocumentType.PAN) -> DocumentResult:
    """Create a DocumentResult for a fully read PAN card."""
    return DocumentResult(
        extracted_text="Name: RAHUL KUMAR\nPAN: ABCDE1234F",
        confidence=87,
        processing_time_ms=420,
        document_type=document_type,
        fields={
            "name": "RAHUL KUMAR",
            "fatherName": None,
            "panNumber": "ABCDE1234F",
            "dob": "1985-01-01",
        },
        validation=ValidationReport(
            is_valid=True, confidence=100, missing_fields=[], low_quality_fields=[]
        ),
    )


def _mock_processor(*outcomes) -> MagicMock:
    processor = MagicMock()
    processor.process_document.side_effect = list(outcomes)
    return processor


class TestFindDocuments:
    """Tests for document discovery."""

    def test_find_png_files(self, tmp_path: Path) -> None:
        (tmp_path / "doc1.png").touch()
        (tmp_path / "doc2.png").touch()
        (tmp_path / "readme.txt").touch()
        files = _find_documents(tmp_path)
        assert len(files) == 2
        assert all(f.suffix == ".png" for f in files)

    def test_find_mixed_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "doc.png").touch()
        (tmp_path / "doc.jpg").touch()
        (tmp_path / "doc.pdf").touch()
        (tmp_path / "doc.tiff").touch()
        files = _find_documents(tmp_path)
        assert len(files) == 3

    def test_find_uppercase_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "DOC.PNG").touch()
        assert len(_find_documents(tmp_path)) == 1

    def test_skips_processed_images(self, tmp_path: Path) -> None:
        (tmp_path / "card.png").touch()
        (tmp_path / "card_processed.jpg").touch()
        assert [f.name for f in _find_documents(tmp_path)] == ["card.png"]


class TestWriteCsv:
    """Tests for CSV writing."""

    def test_write_csv_content(self, tmp_path: Path) -> None:
        results = [
            {
                "filename": "pan.png",
                "status": "success",
                "error": None,
                "name": "RAHUL KUMAR",
                "panNumber": "ABCDE1234F",
            }
        ]
        output = tmp_path / "results.csv"
        _write_csv(results, output)

        with open(output) as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 1
        assert rows[0]["filename"] == "pan.png"
        assert rows[0]["panNumber"] == "ABCDE1234F"

    def test_write_csv_empty_results(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        _write_csv([], output)
        assert not output.exists()

    def test_write_csv_creates_parent_dirs(self, tmp_path: Path) -> None:
        output = tmp_path / "subdir" / "results.csv"
        _write_csv([{"filename": "a.png", "status": "success"}], output)
        assert output.exists()

    def test_csv_meta_columns_first(self, tmp_path: Path) -> None:
        results = [
            {"name": "A", "filename": "a.png", "status": "success", "error": None},
            {"filename": "b.png", "status": "failed", "error": "boom", "pincode": "1"},
        ]
        output = tmp_path / "results.csv"
        _write_csv(results, output)

        with open(output) as f:
            headers = next(csv.reader(f))
        assert headers == ["filename", "status", "error", "name", "pincode"]


class TestPrintSummary:
    """Tests for summary printing."""

    def test_print_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        summary = {"total": 5, "successful": 4, "failed": 1}
        _print_summary(summary, Path("results.csv"))
        captured = capsys.readouterr()
        assert "Total:      5" in captured.out
        assert "Successful: 4" in captured.out
        assert "Failed:     1" in captured.out
        assert "results.csv" in captured.out


class TestProcessFolder:
    """Tests for batch folder processing."""

    def test_process_folder_success(self, tmp_path: Path) -> None:
        (tmp_path / "doc1.png").touch()
        (tmp_path / "doc2.png").touch()
        output_csv = tmp_path / "out" / "output.csv"
        processor = _mock_processor(_make_result(), _make_result())

        summary = process_folder(tmp_path, output_csv, "pan", processor=processor)

        assert summary == {"total": 2, "successful": 2, "failed": 0}
        processor.process_document.assert_any_call(tmp_path / "doc1.png", "pan")
        processor.close.assert_not_called()
        with open(output_csv) as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["panNumber"] == "ABCDE1234F"
        assert rows[0]["validation_passed"] == "True"
        assert rows[0]["ocr_confidence"] == "87"

    def test_process_folder_with_failure(self, tmp_path: Path) -> None:
        (tmp_path / "doc1.png").touch()
        (tmp_path / "doc2.png").touch()
        output_csv = tmp_path / "output.csv"
        processor = _mock_processor(
            _make_result(), PreprocessingError("doc2.png", "not a decodable raster image")
        )

        summary = process_folder(tmp_path, output_csv, processor=processor)

        assert summary["successful"] == 1
        assert summary["failed"] == 1
        with open(output_csv) as f:
            rows = list(csv.DictReader(f))
        assert rows[1]["status"] == "failed"
        assert "Could not preprocess image" in rows[1]["error"]

    def test_process_folder_empty(self, tmp_path: Path) -> None:
        processor = _mock_processor()
        summary = process_folder(tmp_path, tmp_path / "output.csv", processor=processor)
        assert summary["total"] == 0
        processor.process_document.assert_not_called()

    def test_process_folder_verbose(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (tmp_path / "doc1.png").touch()
        processor = _mock_processor(_make_result())

        process_folder(tmp_path, tmp_path / "output.csv", verbose=True, processor=processor)
        assert "Processing [1/1]" in capsys.readouterr().out

    @patch("src.cli.load_config")
    @patch("src.cli.DocumentProcessor")
    def test_owned_processor_is_closed(
        self, mock_processor_cls: MagicMock, _config: MagicMock, tmp_path: Path
    ) -> None:
        (tmp_path / "doc1.png").touch()
        mock_processor_cls.return_value.process_document.return_value = _make_result()

        process_folder(tmp_path, tmp_path / "output.csv")
        mock_processor_cls.return_value.close.assert_called_once()


class TestExtractSingle:
    """Tests for single file extraction."""

    def test_extract_single_returns_payload(self, tmp_path: Path) -> None:
        processor = _mock_processor(_make_result())
        result = extract_single(tmp_path / "pan.png", "pan", processor=processor)

        assert result["documentType"] == "pan"
        assert result["fields"]["panNumber"] == "ABCDE1234F"
        assert result["validation"]["isValid"] is True

    def test_extract_single_propagates_errors(self, tmp_path: Path) -> None:
        processor = _mock_processor(PreprocessingError("x.png", "file not found"))
        with pytest.raises(PreprocessingError):
            extract_single(tmp_path / "x.png", processor=processor)


class TestCLIMain:
    """Tests for the CLI argument parser and main entry point."""

    def test_no_command_shows_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0

    def test_batch_nonexistent_directory(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", "/nonexistent/path"])
        assert exc_info.value.code == 1
        assert "not a directory" in capsys.readouterr().err

    def test_extract_nonexistent_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["extract", "/nonexistent/file.png"])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_unsupported_type_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", str(tmp_path), "-t", "passport"])
        assert exc_info.value.code == 2

    @patch("src.cli.process_folder")
    def test_batch_with_options(self, mock_pf: MagicMock, tmp_path: Path) -> None:
        mock_pf.return_value = {"total": 1, "successful": 1, "failed": 0}
        output = tmp_path / "out.csv"
        main(["batch", str(tmp_path), "-o", str(output), "-t", "aadhaar", "-v"])

        args = mock_pf.call_args.args
        assert args[0] == tmp_path
        assert args[1] == output
        assert args[2] == "aadhaar"
        assert args[3] is True

    @patch("src.cli.DocumentProcessor")
    def test_extract_prints_json(
        self,
        mock_processor_cls: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        doc = tmp_path / "pan.png"
        doc.touch()
        processor = mock_processor_cls.return_value.__enter__.return_value
        processor.process_document.return_value = _make_result()

        main(["extract", str(doc), "-t", "pan"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["fields"]["name"] == "RAHUL KUMAR"
        processor.process_document.assert_called_once_with(doc, "pan")

    @patch("src.cli.DocumentProcessor")
    def test_extract_writes_output_file(
        self, mock_processor_cls: MagicMock, tmp_path: Path
    ) -> None:
        doc = tmp_path / "pan.png"
        doc.touch()
        output = tmp_path / "json" / "pan.json"
        processor = mock_processor_cls.return_value.__enter__.return_value
        processor.process_document.return_value = _make_result()

        main(["extract", str(doc), "-o", str(output)])

        assert json.loads(output.read_text())["confidence"] == 87

    @patch("src.cli.DocumentProcessor")
    def test_extract_engine_failure_exit_code(
        self,
        mock_processor_cls: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        doc = tmp_path / "pan.png"
        doc.touch()
        processor = mock_processor_cls.return_value.__enter__.return_value
        processor.process_document.side_effect = PreprocessingError(
            str(doc), "not a decodable raster image"
        )

        with pytest.raises(SystemExit) as exc_info:
            main(["extract", str(doc)])
        assert exc_info.value.code == 2
        assert "could not read document" in capsys.readouterr().err
