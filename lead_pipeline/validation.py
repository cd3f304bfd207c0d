"""Field validation for manual entry and bulk spreadsheet uploads."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import PipelineSettings
from .duplicates import DuplicateDetector
from .errors import LeadPipelineError
from .models import SpreadsheetRow
from .phone import InvalidPhoneNumberError, normalize_phone

LOGGER = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

BATCH_DUPLICATE = "csv"


class LeadValidationError(LeadPipelineError, ValueError):
    """Raised when a single record fails field validation."""

    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__("\n".join(errors))
        self.errors = list(errors)


class BulkValidationError(LeadPipelineError):
    """Raised when an upload contains at least one blocking error; nothing is written."""

    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__("\n".join(errors))
        self.errors = list(errors)


# ----------------------------------------------------------------------
# Field rules shared by both entry paths
# ----------------------------------------------------------------------
def check_phone(value: str) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(normalised, None)`` or ``(None, error message)``."""

    try:
        return normalize_phone(value), None
    except InvalidPhoneNumberError as exc:
        return None, str(exc)


def check_email(value: str) -> Optional[str]:
    if value and not EMAIL_PATTERN.match(value):
        return "Invalid email format"
    return None


def check_lead_source(value: str, settings: PipelineSettings) -> Tuple[Optional[str], Optional[str]]:
    canonical = settings.canonical_source(value)
    if canonical is None:
        allowed = ", ".join(settings.lead_sources)
        return None, f"Invalid lead source '{value}'. Must be one of: {allowed}"
    return canonical, None


def validate_lead_fields(
    *,
    name: str,
    phone: str,
    source: str,
    email: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
) -> Tuple[str, str, str]:
    """Validate a manually entered lead.

    Returns the normalised phone, the canonical lead source, and the trimmed
    email. Raises :class:`LeadValidationError` listing every problem found.
    """

    settings = settings or PipelineSettings()
    name = (name or "").strip()
    phone = (phone or "").strip()
    source = (source or "").strip()
    email = (email or "").strip()

    errors: List[str] = []
    if not name:
        errors.append("Name is required")

    normalized: Optional[str] = None
    if not phone:
        errors.append("Phone number is required")
    else:
        normalized, error = check_phone(phone)
        if error:
            errors.append(error)

    email_error = check_email(email)
    if email_error:
        errors.append(email_error)

    canonical_source: Optional[str] = None
    if not source:
        errors.append("Lead source is required")
    else:
        canonical_source, error = check_lead_source(source, settings)
        if error:
            errors.append(error)

    if errors:
        raise LeadValidationError(errors)
    return normalized, canonical_source, email


# ----------------------------------------------------------------------
# Bulk validation
# ----------------------------------------------------------------------
@dataclass
class RowValidation:
    """Validation state of one uploaded row."""

    row: SpreadsheetRow
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    is_duplicate: bool = False
    duplicate_type: Optional[str] = None
    normalized_phone: Optional[str] = None
    lead_source: Optional[str] = None

    @property
    def row_number(self) -> int:
        return self.row.row_number

    @property
    def status(self) -> str:
        if self.errors:
            return "error"
        if self.is_duplicate:
            return "duplicate"
        return "ok"

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.row.values)
        data.update(
            {
                "row": self.row_number,
                "isDuplicate": self.is_duplicate,
                "duplicateType": self.duplicate_type,
                "errors": list(self.errors),
                "warnings": list(self.warnings),
            }
        )
        return data


@dataclass
class ValidationReport:
    """Annotated rows plus the aggregated blocking errors and warnings."""

    rows: List[RowValidation] = field(default_factory=list)

    @property
    def errors(self) -> List[str]:
        return [error for row in self.rows for error in row.errors]

    @property
    def warnings(self) -> List[str]:
        return [warning for row in self.rows for warning in row.warnings]

    @property
    def ok(self) -> bool:
        return not any(row.errors for row in self.rows)

    @property
    def committable(self) -> List[RowValidation]:
        """Rows that may be written; empty whenever the batch has a blocking error."""

        if not self.ok:
            return []
        return [row for row in self.rows if not row.is_duplicate]

    def raise_for_errors(self) -> None:
        if not self.ok:
            raise BulkValidationError(self.errors)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "rows": [row.as_dict() for row in self.rows],
            "errors": self.errors,
            "warnings": self.warnings,
            "committable": len(self.committable),
        }


class BulkValidator:
    """Runs field, cross-store duplicate, and in-file duplicate checks over an upload.

    Rows are checked one at a time in upload order. Cross-store duplicates only
    produce warnings and exclude the row from the committable set; every other
    problem, including a number repeated within the file, blocks the batch.
    """

    REQUIRED_FIELDS = ("Number", "Name", "Lead Source")

    def __init__(self, detector: DuplicateDetector, settings: Optional[PipelineSettings] = None) -> None:
        self._detector = detector
        self._settings = settings or PipelineSettings()

    def validate(self, rows: Iterable[SpreadsheetRow]) -> ValidationReport:
        report = ValidationReport(rows=[self._validate_row(row) for row in rows])
        self._flag_batch_duplicates(report.rows)
        LOGGER.info(
            "Validated %d rows: %d errors, %d warnings",
            len(report.rows),
            len(report.errors),
            len(report.warnings),
        )
        return report

    def _validate_row(self, row: SpreadsheetRow) -> RowValidation:
        result = RowValidation(row=row)
        prefix = f"Row {row.row_number}"

        missing = [column for column in self.REQUIRED_FIELDS if not row.get(column)]
        if missing:
            result.errors.append(f"{prefix}: Missing required fields: {', '.join(missing)}")

        if row.number:
            normalized, error = check_phone(row.number)
            if error:
                result.errors.append(f"{prefix}: {error}")
            else:
                result.normalized_phone = normalized
                duplicate = self._detector.check(normalized, raw=row.number)
                if duplicate.is_duplicate:
                    result.is_duplicate = True
                    result.duplicate_type = duplicate.duplicate_type
                    result.warnings.append(
                        f"{prefix}: Phone number {normalized} already exists in {duplicate.duplicate_type}; "
                        "row will be skipped"
                    )

        email_error = check_email(row.email)
        if email_error:
            result.errors.append(f"{prefix}: {email_error}")

        if row.lead_source:
            canonical, error = check_lead_source(row.lead_source, self._settings)
            if error:
                result.errors.append(f"{prefix}: {error}")
            result.lead_source = canonical

        return result

    @staticmethod
    def _flag_batch_duplicates(results: List[RowValidation]) -> None:
        by_phone: Dict[str, List[RowValidation]] = {}
        for result in results:
            if result.normalized_phone:
                by_phone.setdefault(result.normalized_phone, []).append(result)

        for phone, occurrences in by_phone.items():
            if len(occurrences) < 2:
                continue
            row_list = ", ".join(str(item.row_number) for item in occurrences)
            for item in occurrences:
                item.errors.append(
                    f"Row {item.row_number}: Phone number {phone} appears more than once in the file (rows {row_list})"
                )
                item.is_duplicate = True
                item.duplicate_type = BATCH_DUPLICATE


__all__ = [
    "BATCH_DUPLICATE",
    "BulkValidationError",
    "BulkValidator",
    "EMAIL_PATTERN",
    "LeadValidationError",
    "RowValidation",
    "ValidationReport",
    "check_email",
    "check_lead_source",
    "check_phone",
    "validate_lead_fields",
]
