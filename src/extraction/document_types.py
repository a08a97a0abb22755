"""Document types and the field names each one carries."""

from enum import StrEnum

FieldSet = dict[str, str | None]

AADHAAR_SHAPE = r"^[2-9][0-9]{11}$"
PAN_SHAPE = r"^[A-Z]{5}[0-9]{4}[A-Z]$"


class DocumentType(StrEnum):
    """Closed set of supported identity document categories."""

    AADHAAR = "aadhaar"
    PAN = "pan"
    ADDRESS = "address"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: "str | DocumentType | None") -> "DocumentType":
        """Resolve a case-insensitive tag; anything unrecognized is UNKNOWN."""
        if isinstance(value, DocumentType):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


AADHAAR_FIELDS = (
    "name",
    "dob",
    "aadhaarNumber",
    "address",
    "fatherName",
    "husbandName",
)
PAN_FIELDS = ("name", "fatherName", "panNumber", "dob")
ADDRESS_FIELDS = ("name", "address", "city", "state", "pincode")


def field_names(document_type: DocumentType) -> tuple[str, ...]:
    """Return the ordered legal field names for a document type."""
    if document_type is DocumentType.AADHAAR:
        return AADHAAR_FIELDS
    if document_type is DocumentType.PAN:
        return PAN_FIELDS
    if document_type is DocumentType.ADDRESS:
        return ADDRESS_FIELDS
    if document_type is DocumentType.UNKNOWN:
        return tuple(dict.fromkeys(AADHAAR_FIELDS + PAN_FIELDS + ADDRESS_FIELDS))
    raise ValueError(f"Unsupported document type: {document_type}")


def empty_field_set(document_type: DocumentType) -> FieldSet:
    """Build a FieldSet with every legal key present and set to ``None``."""
    return dict.fromkeys(field_names(document_type))
