"""Completeness and quality scoring for extracted identity fields.

Required fields per document type and the shape rules for identity
numbers are loaded from a YAML file, with built-in defaults.
"""

import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.extraction.document_types import AADHAAR_SHAPE, PAN_SHAPE, DocumentType
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationReport:
    """Validation outcome for one field set.

    ``confidence`` is the percentage of required fields present, not
    the recognizer's confidence.
    """

    is_valid: bool
    confidence: int
    missing_fields: list[str] = field(default_factory=list)
    low_quality_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "confidence": self.confidence,
            "missingFields": list(self.missing_fields),
            "lowQualityFields": list(self.low_quality_fields),
        }


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


class RulesEngine:
    """Validates a field set against its document type's rules.

    Args:
        rules_path: Path to the validation rules YAML file.
    """

    def __init__(
        self, rules_path: Path = Path("configs/validation_rules.yaml")
    ) -> None:
        self.rules = self._load_rules(Path(rules_path))
        self._shapes = {
            name: (re.compile(rule["pattern"]), bool(rule.get("strip_whitespace")))
            for name, rule in self.rules.get("shapes", {}).items()
        }

    def _load_rules(self, path: Path) -> dict:
        """Load validation rules from YAML, falling back to defaults."""
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f)
                if data:
                    logger.info("Loaded validation rules from %s", path)
                    return data
        logger.debug("Using default validation rules")
        return self._default_rules()

    def _default_rules(self) -> dict:
        return {
            "required": {
                "aadhaar": ["name", "dob", "aadhaarNumber"],
                "pan": ["name", "panNumber", "dob"],
                "address": ["name", "address"],
            },
            "shapes": {
                "aadhaarNumber": {"pattern": AADHAAR_SHAPE, "strip_whitespace": True},
                "panNumber": {"pattern": PAN_SHAPE},
            },
        }

    def required_fields(self, document_type: DocumentType | str) -> list[str]:
        """Return the required field names for a document type."""
        doc_type = DocumentType.parse(document_type)
        return list(self.rules.get("required", {}).get(doc_type.value) or [])

    def validate(
        self,
        fields: dict[str, Any],
        document_type: DocumentType | str,
        rejected: dict[str, str] | None = None,
    ) -> ValidationReport:
        """Score a field set's completeness and identity-number quality.

        Args:
            fields: Extracted field values (``None`` for missing).
            document_type: Declared document type.
            rejected: Fields whose matched values were discarded by the
                extractor as malformed.

        Returns:
            Validation report. An empty required list yields 0 confidence,
            and a field set with no values is never valid.
        """
        doc_type = DocumentType.parse(document_type)
        required = self.required_fields(doc_type)

        missing = [name for name in required if _is_blank(fields.get(name))]
        present = len(required) - len(missing)
        confidence = (
            math.floor(100 * present / len(required) + 0.5) if required else 0
        )

        low_quality: list[str] = []
        for name, (pattern, strip) in self._shapes.items():
            value = fields.get(name)
            if _is_blank(value):
                continue
            candidate = re.sub(r"\s", "", str(value)) if strip else str(value)
            if not pattern.match(candidate):
                low_quality.append(name)

        for name in rejected or {}:
            if name not in low_quality:
                low_quality.append(name)

        is_valid = not missing and not low_quality
        if not required and all(_is_blank(v) for v in fields.values()):
            # an all-empty field set never validates
            is_valid = False
        logger.info(
            "Validation for %s: %s (confidence %d%%, missing=%s, low quality=%s)",
            doc_type,
            "PASSED" if is_valid else "FAILED",
            confidence,
            missing,
            low_quality,
        )
        return ValidationReport(
            is_valid=is_valid,
            confidence=confidence,
            missing_fields=missing,
            low_quality_fields=low_quality,
        )
