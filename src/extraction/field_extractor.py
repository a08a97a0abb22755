"""Rule-based identity field extraction from OCR text.

Each document type has an ordered table of compiled patterns, one per
field. A match yields its first non-empty capture group, trimmed and
with whitespace runs collapsed. Identity numbers failing their shape
check are dropped from the field set and kept aside as rejected values.
"""

import re
from dataclasses import dataclass, field

from src.utils.logger import get_logger

from .date_normalizer import normalize_date
from .document_types import (
    AADHAAR_SHAPE,
    PAN_SHAPE,
    DocumentType,
    FieldSet,
    empty_field_set,
)
from .india_geography import find_state

logger = get_logger(__name__)

_FLAGS = re.IGNORECASE

# Label words that never start or continue a person's name.
_LABELS = (
    r"(?:DOB|Date|Birth|Year|YOB|Name|Father|Fathers|Husband|Mother|"
    r"Gender|Male|Female|Address|Aadhaar|PAN|Permanent|Account|Number|Signature)"
)
_WORD = rf"(?!{_LABELS}\b)[A-Za-z]+"
_NAME = rf"({_WORD}(?:[ \t]+{_WORD})*)"
_DATE = r"(\d{2}[/\-]\d{2}[/\-]\d{4}|\d{4}[/\-]\d{2}[/\-]\d{2})"
_DOB = re.compile(rf"(?:DOB|Date of Birth)[:\s]*{_DATE}", _FLAGS)

# Relation markers introducing a parent's or spouse's name.
_RELATION = r"(?:\b[SDWC]/O\b|\bFather|\bHusband)"
_RELATION_RE = re.compile(_RELATION, _FLAGS)

# The holder's name precedes the DOB, with at most one relation line between.
_AADHAAR_NAME = re.compile(
    rf"(?:Name[:\s]*)?\b{_NAME}\s*(?:{_RELATION}[^\n]*\n\s*)?(?:DOB|Date of Birth)",
    _FLAGS,
)
_AADHAAR_NUMBER = re.compile(r"\b(\d{4}[ \t]?\d{4}[ \t]?\d{4})\b")

_AADHAAR_PATTERNS: dict[str, re.Pattern] = {
    "dob": _DOB,
    "address": re.compile(
        r"Address[:\s]*([^\n]+(?:\n[^\n]+){0,4}?[ \t,\-]*\b\d{6}\b|[^\n]+)", _FLAGS
    ),
    "fatherName": re.compile(
        rf"(?:Father(?:'?s)?(?:[ \t]+Name)?|S/O|D/O)[:\s]*{_NAME}", _FLAGS
    ),
    "husbandName": re.compile(
        rf"(?:Husband(?:'?s)?(?:[ \t]+Name)?|W/O)[:\s]*{_NAME}", _FLAGS
    ),
}

_PAN_PATTERNS: dict[str, re.Pattern] = {
    "name": re.compile(
        rf"(?<!Father )(?<!Fathers )(?<!Father's )\bName[:\s]*{_NAME}", _FLAGS
    ),
    "fatherName": re.compile(rf"Father(?:'?s)?[ \t]*Name[:\s]*{_NAME}", _FLAGS),
    "panNumber": re.compile(
        r"\b(?:PAN|Permanent Account Number)(?:[ \t]*(?:No|Number|Card))?"
        r"[:\s]*([A-Z0-9]{10})\b",
        _FLAGS,
    ),
    "dob": _DOB,
}

_ADDRESS_NAME = re.compile(rf"^[ \t]*(?:Name[:\s]*)?{_NAME}", _FLAGS | re.MULTILINE)
_PINCODE = re.compile(r"\b(\d{6})\b")

_AADHAAR_RE = re.compile(AADHAAR_SHAPE)
_PAN_RE = re.compile(PAN_SHAPE)


@dataclass
class ExtractionResult:
    """Fields extracted from one document.

    ``rejected`` maps field names to raw values that matched a pattern
    but failed the shape check and were therefore left ``None``.
    """

    fields: FieldSet
    rejected: dict[str, str] = field(default_factory=dict)


def clean_value(value: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    return re.sub(r"\s+", " ", value.strip())


def first_group(match: re.Match) -> str | None:
    """Return the first non-empty capture group of a match, cleaned."""
    for group in match.groups():
        if group and group.strip():
            return clean_value(group)
    return None


class FieldExtractor:
    """Extracts identity fields for a declared document type."""

    def extract(self, text: str, document_type: DocumentType) -> ExtractionResult:
        """Extract the field set of ``document_type`` from OCR text.

        For ``UNKNOWN`` the Aadhaar, PAN and address parsers run in that
        order and the first non-null value per field name wins.

        Args:
            text: Raw recognized text.
            document_type: Declared document type.

        Returns:
            Extraction result with every legal field key present.
        """
        if document_type is DocumentType.AADHAAR:
            result = self.extract_aadhaar(text)
        elif document_type is DocumentType.PAN:
            result = self.extract_pan(text)
        elif document_type is DocumentType.ADDRESS:
            result = self.extract_address(text)
        elif document_type is DocumentType.UNKNOWN:
            result = self._merge(
                document_type,
                [
                    self.extract_aadhaar(text),
                    self.extract_pan(text),
                    self.extract_address(text),
                ],
            )
        else:
            raise ValueError(f"Unsupported document type: {document_type}")

        found = sum(1 for v in result.fields.values() if v is not None)
        logger.info(
            "Extracted %d/%d %s fields (%d rejected)",
            found,
            len(result.fields),
            document_type,
            len(result.rejected),
        )
        return result

    def extract_aadhaar(self, text: str) -> ExtractionResult:
        """Parse Aadhaar card text."""
        result = ExtractionResult(empty_field_set(DocumentType.AADHAAR))
        self._apply(_AADHAAR_PATTERNS, text, result)
        result.fields["name"] = _holder_name(text)

        number, raw = _aadhaar_number(text)
        result.fields["aadhaarNumber"] = number
        if raw is not None:
            logger.debug("Discarding malformed Aadhaar number %r", raw)
            result.rejected["aadhaarNumber"] = raw
        return result

    def extract_pan(self, text: str) -> ExtractionResult:
        """Parse PAN card text."""
        result = ExtractionResult(empty_field_set(DocumentType.PAN))
        self._apply(_PAN_PATTERNS, text, result)

        raw = result.fields["panNumber"]
        if raw is not None:
            candidate = raw.upper()
            if _PAN_RE.match(candidate):
                result.fields["panNumber"] = candidate
            else:
                logger.debug("Discarding malformed PAN %r", raw)
                result.fields["panNumber"] = None
                result.rejected["panNumber"] = raw
        return result

    def extract_address(self, text: str) -> ExtractionResult:
        """Parse address-proof text.

        The address is the span between the name (first name-like line)
        and the first 6-digit pincode that follows it.
        """
        fields = empty_field_set(DocumentType.ADDRESS)

        pincode = _PINCODE.search(text)
        if pincode:
            fields["pincode"] = pincode.group(1)

        name = _ADDRESS_NAME.search(text)
        if name is None:
            return ExtractionResult(fields)
        fields["name"] = clean_value(name.group(1))

        anchor = _PINCODE.search(text, name.end(1))
        if anchor is None:
            return ExtractionResult(fields)

        address = _join_address(text[name.end(1) : anchor.start(1)])
        if address:
            fields["address"] = address
            fields["city"], fields["state"] = _split_locality(address)
        return ExtractionResult(fields)

    def _apply(
        self, patterns: dict[str, re.Pattern], text: str, result: ExtractionResult
    ) -> None:
        for name, pattern in patterns.items():
            match = pattern.search(text)
            if not match:
                continue
            value = first_group(match)
            if value is not None and name == "dob":
                value = normalize_date(value)
            result.fields[name] = value

    def _merge(
        self, document_type: DocumentType, results: list[ExtractionResult]
    ) -> ExtractionResult:
        merged = ExtractionResult(empty_field_set(document_type))
        for result in results:
            for name, value in result.fields.items():
                if merged.fields.get(name) is None and value is not None:
                    merged.fields[name] = value
            for name, raw in result.rejected.items():
                merged.rejected.setdefault(name, raw)
        for name in list(merged.rejected):
            if merged.fields.get(name) is not None:
                del merged.rejected[name]
        return merged


def _holder_name(text: str) -> str | None:
    """Find the card holder's name, skipping names that follow a relation marker."""
    match = _AADHAAR_NAME.search(text)
    while match:
        line_start = text.rfind("\n", 0, match.start(1)) + 1
        if not _RELATION_RE.search(text[line_start : match.start(1)]):
            return clean_value(match.group(1))
        match = _AADHAAR_NAME.search(text, match.start(1) + 1)
    return None


def _aadhaar_number(text: str) -> tuple[str | None, str | None]:
    """Return ``(number, rejected)`` for the first valid 12-digit run.

    Candidates can overlap, e.g. a birth year followed by the number, so
    each failed candidate restarts the scan one character later. The
    first failed candidate is returned as rejected only when no valid
    number exists.
    """
    rejected = None
    match = _AADHAAR_NUMBER.search(text)
    while match:
        raw = clean_value(match.group(1))
        digits = re.sub(r"\s", "", raw)
        if _AADHAAR_RE.match(digits):
            return digits, None
        if rejected is None:
            rejected = raw
        match = _AADHAAR_NUMBER.search(text, match.start(1) + 1)
    return None, rejected


def _join_address(span: str) -> str | None:
    """Collapse line breaks and commas in an address span to ``", "``."""
    joined = re.sub(r"\s*[,\n]+\s*", ", ", span.strip())
    joined = re.sub(r"[ \t]+", " ", joined).strip(" ,")
    return joined or None


def _split_locality(address: str) -> tuple[str | None, str | None]:
    """Derive ``(city, state)`` from a joined address."""
    segments = address.split(", ")
    for index, segment in enumerate(segments):
        found = find_state(segment)
        if found is None:
            continue
        state, start, _ = found
        before = segment[:start].strip(" -")
        if before:
            return before, state
        return (segments[index - 1] if index > 0 else None), state

    if len(segments) > 1:
        return segments[-1], None
    return None, None
