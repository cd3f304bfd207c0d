"""Manual and bulk lead intake: validation, final duplicate checks, and persistence."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from ..config import PipelineSettings
from ..contact_status import UNKNOWN_KAM
from ..duplicates import DuplicateDetector
from ..errors import DuplicateRecordError, StoreError
from ..ids import SequentialIdAllocator
from ..ingestion.loaders import load_spreadsheet
from ..models import CommitResult, Lead, Note, RecordKind, RowFailure, SpreadsheetRow, unix_now
from ..phone import format_for_storage, normalize_phone, phone_variants
from ..stores import RecordStore
from ..validation import BulkValidator, RowValidation, ValidationReport, validate_lead_fields

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]
CommitInput = Union[ValidationReport, Iterable[RowValidation]]


class LeadIntakeService:
    """Creates lead records one at a time or from a validated upload."""

    def __init__(
        self,
        store: RecordStore,
        allocator: SequentialIdAllocator,
        detector: DuplicateDetector,
        settings: Optional[PipelineSettings] = None,
        *,
        clock: Clock = unix_now,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._detector = detector
        self._settings = settings or PipelineSettings()
        self._clock = clock
        self._validator = BulkValidator(detector, self._settings)

    @property
    def validator(self) -> BulkValidator:
        return self._validator

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate_rows(self, rows: Iterable[SpreadsheetRow]) -> ValidationReport:
        return self._validator.validate(rows)

    def validate_file(self, path: str | Path) -> ValidationReport:
        rows = load_spreadsheet(path, synonyms=self._settings.header_synonyms)
        LOGGER.info("Loaded %d rows from %s", len(rows), path)
        return self.validate_rows(rows)

    # ------------------------------------------------------------------
    # Bulk commit
    # ------------------------------------------------------------------
    def commit(self, rows: CommitInput) -> CommitResult:
        """Persist committable rows, skipping numbers that became duplicates since validation.

        The whole batch is refused with :class:`BulkValidationError` when any
        row carries a blocking error, whether rows arrive as a report or as
        bare row results. A write failure on one row is recorded in
        ``CommitResult.failed`` and the remaining rows are still attempted.
        """

        report = rows if isinstance(rows, ValidationReport) else ValidationReport(rows=list(rows))
        report.raise_for_errors()
        candidates: List[RowValidation] = report.committable

        result = CommitResult()
        if not candidates:
            return result

        # Fails the batch before any write when the counter is missing.
        self._allocator.current(RecordKind.LEAD)

        leads_collection = self._settings.collections.leads
        for candidate in candidates:
            raw = candidate.row.number
            normalized = normalize_phone(raw)

            duplicate = self._detector.check(normalized, raw=raw)
            if duplicate.is_duplicate:
                LOGGER.info(
                    "Skipping row %d: %s already exists in %s",
                    candidate.row_number,
                    normalized,
                    duplicate.duplicate_type,
                )
                result.skipped += 1
                result.skipped_numbers.append(normalized)
                continue

            kam_id, kam_name = self._pipeline_assignment(normalized, raw)
            try:
                lead_id = self._allocator.allocate(RecordKind.LEAD)
                lead = self._build_lead(
                    lead_id,
                    name=candidate.row.name,
                    normalized=normalized,
                    email=candidate.row.email,
                    source=candidate.lead_source or self._settings.canonical_source(candidate.row.lead_source) or "direct",
                    kam_id=kam_id,
                    kam_name=kam_name,
                    note=candidate.row.get("Notes"),
                    note_source="bulk upload",
                )
                self._store.create(leads_collection, lead_id, lead.to_document())
            except StoreError as exc:
                LOGGER.error("Failed to write row %d (%s): %s", candidate.row_number, normalized, exc)
                result.failed.append(RowFailure(candidate.row_number, normalized, str(exc)))
                continue

            result.committed.append(lead_id)

        LOGGER.info(
            "Bulk commit finished: %d committed, %d skipped, %d failed",
            len(result.committed),
            result.skipped,
            len(result.failed),
        )
        return result

    def import_file(self, path: str | Path) -> Tuple[ValidationReport, CommitResult]:
        """Validate an upload and, when it has no blocking errors, commit it."""

        report = self.validate_file(path)
        return report, self.commit(report)

    # ------------------------------------------------------------------
    # Manual entry
    # ------------------------------------------------------------------
    def add_lead(
        self,
        *,
        name: str,
        phone: str,
        source: str,
        email: Optional[str] = None,
        note: Optional[str] = None,
        kam_id: Optional[str] = None,
        kam_name: Optional[str] = None,
    ) -> Lead:
        normalized, canonical_source, email = validate_lead_fields(
            name=name, phone=phone, source=source, email=email, settings=self._settings
        )

        duplicate = self._detector.check(normalized, raw=phone)
        if duplicate.is_duplicate:
            raise DuplicateRecordError(normalized, duplicate.duplicate_type or "", duplicate.record_id)

        if not kam_id and not kam_name:
            kam_id, kam_name = self._pipeline_assignment(normalized, phone)

        lead_id = self._allocator.allocate(RecordKind.LEAD)
        lead = self._build_lead(
            lead_id,
            name=name.strip(),
            normalized=normalized,
            email=email,
            source=canonical_source,
            kam_id=kam_id or "",
            kam_name=kam_name or "",
            note=note,
            note_source="direct - manual",
        )
        self._store.create(self._settings.collections.leads, lead_id, lead.to_document())
        LOGGER.info("Added lead %s for %s", lead_id, normalized)
        return lead

    # ------------------------------------------------------------------
    def _pipeline_assignment(self, normalized: str, raw: Optional[str]) -> Tuple[str, str]:
        collection = self._settings.collections.pipeline
        for variant in phone_variants(normalized, raw):
            try:
                entry = self._store.get(collection, variant)
            except StoreError:
                LOGGER.warning("Pipeline lookup for %s failed - no KAM inherited", normalized, exc_info=True)
                return "", ""
            if entry:
                return entry.get("kamId") or "", entry.get("kamName") or ""
        return "", ""

    def _build_lead(
        self,
        lead_id: str,
        *,
        name: str,
        normalized: str,
        email: str,
        source: str,
        kam_id: str,
        kam_name: str,
        note: Optional[str],
        note_source: str,
    ) -> Lead:
        now = self._clock()
        notes = []
        if note and note.strip():
            notes.append(Note(kam_id=kam_id or UNKNOWN_KAM, note=note.strip(), source=note_source, timestamp=now))
        return Lead(
            lead_id=lead_id,
            name=name,
            phone_number=format_for_storage(normalized),
            email_address=email or "",
            source=source,
            notes=notes,
            kam_id=kam_id,
            kam_name=kam_name,
            added=now,
            last_modified=now,
        )


__all__ = ["LeadIntakeService"]
