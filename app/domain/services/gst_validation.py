# app/domain/services/gst_validation.py
"""Mandatory-field checks run before a GSTR-3B can be previewed or submitted."""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.models.gst import Gstr3bDocument


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


# (section, attribute, message) in display order
_MANDATORY_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("basic_info", "gstin", "GSTIN is required"),
    ("basic_info", "legal_name", "Legal Name is required"),
    ("verification", "authorized_signatory_name", "Authorized Signatory Name is required"),
    ("verification", "designation", "Designation is required"),
)


def validate_document(doc: Gstr3bDocument) -> list[Violation]:
    """Return one Violation per missing mandatory field (empty list if valid)."""
    violations: list[Violation] = []
    for section, attr, message in _MANDATORY_FIELDS:
        value = getattr(getattr(doc, section), attr)
        if not value or not value.strip():
            violations.append(Violation(field=f"{section}.{attr}", message=message))
    return violations
