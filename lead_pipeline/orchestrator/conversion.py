"""Conversion of verified leads into agent (channel partner) records.

The conversion touches three documents (the agent counter, the new agent, and
the source lead) without a transaction. It is run as a small saga:

1. allocate the ``cpId`` and mark the lead ``conversion.state = in_progress``;
2. create the agent, which carries a ``leadId`` back-reference;
3. delete the lead.

If step 2 fails the lead is written back exactly as it was read.
If the process dies after step 1 or 2, :meth:`LeadConverter.resume_pending`
finds the marked lead and finishes the job under the recorded ``cpId``.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import PipelineSettings
from ..duplicates import DuplicateDetector
from ..errors import DuplicateRecordError, LeadPipelineError, RecordNotFoundError, StoreError
from ..ids import SequentialIdAllocator
from ..models import Agent, RecordKind, to_unix_seconds, unix_now
from ..phone import format_for_storage, normalize_phone
from ..stores import RecordStore
from ..validation import LeadValidationError

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]

CONVERSION_FIELD = "conversion"
IN_PROGRESS = "in_progress"

REQUIRED_FIELDS = ("name", "phoneNumber", "emailAddress", "kamName")
_FIELD_LABELS = {
    "name": "Name",
    "phoneNumber": "Phone number",
    "emailAddress": "Email address",
    "kamName": "KAM",
}

# Verification form fields that may override or extend the lead.
DETAIL_FIELDS = (
    "name",
    "phoneNumber",
    "emailAddress",
    "kamName",
    "kamId",
    "workAddress",
    "reraId",
    "firmName",
    "firmSize",
    "areaOfOperation",
    "businessCategory",
    "source",
    "extraDetails",
)


class ConversionError(LeadPipelineError):
    """Raised when a conversion could not be completed."""

    def __init__(self, message: str, *, lead_id: str, cp_id: Optional[str] = None, resumable: bool = False) -> None:
        super().__init__(message)
        self.lead_id = lead_id
        self.cp_id = cp_id
        self.resumable = resumable


@dataclass
class ConversionResult:
    cp_id: str
    lead_id: str
    agent: Dict[str, Any]
    resumed: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "cpId": self.cp_id,
            "leadId": self.lead_id,
            "resumed": self.resumed,
            "message": f"Agent {self.cp_id} created successfully",
        }


class LeadConverter:
    """Turns leads into agents and creates agents directly."""

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

    @property
    def _leads(self) -> str:
        return self._settings.collections.leads

    @property
    def _agents(self) -> str:
        return self._settings.collections.agents

    # ------------------------------------------------------------------
    # Lead -> agent
    # ------------------------------------------------------------------
    def convert(self, lead_id: str, details: Optional[Mapping[str, Any]] = None) -> ConversionResult:
        lead = self._store.get(self._leads, lead_id)
        if lead is None:
            raise RecordNotFoundError(self._leads, lead_id)

        marker = lead.get(CONVERSION_FIELD)
        if marker and marker.get("state") == IN_PROGRESS:
            LOGGER.info("Lead %s already has a conversion in progress - resuming", lead_id)
            return self._finish(lead_id, lead, marker)

        overrides = _clean_details(details)
        merged = {**lead, **overrides}
        normalized = self._check_agent_fields(merged)

        duplicate = self._detector.check_kinds(normalized, (RecordKind.AGENT,), raw=merged.get("phoneNumber"))
        if duplicate.is_duplicate:
            raise DuplicateRecordError(normalized, duplicate.duplicate_type or "", duplicate.record_id)

        cp_id = self._allocator.allocate(RecordKind.AGENT)
        now = self._clock()
        marker = {"state": IN_PROGRESS, "cpId": cp_id, "started": now, "details": overrides}
        self._store.update(self._leads, lead_id, {CONVERSION_FIELD: marker, "lastModified": now})
        LOGGER.info("Converting lead %s into agent %s", lead_id, cp_id)

        agent = self._build_agent(cp_id, lead, merged, normalized, now)
        try:
            self._store.create(self._agents, cp_id, agent)
        except StoreError as exc:
            LOGGER.error("Creating agent %s for lead %s failed: %s", cp_id, lead_id, exc)
            self._restore_lead(lead_id, lead)
            raise ConversionError(
                f"Failed to create agent for lead {lead_id}: {exc}", lead_id=lead_id, cp_id=cp_id
            ) from exc

        self._retire_lead(lead_id, cp_id)
        return ConversionResult(cp_id=cp_id, lead_id=lead_id, agent=agent)

    def pending(self) -> List[Dict[str, Any]]:
        """Leads whose conversion started but never finished."""

        return [
            lead
            for lead in self._store.find_documents(self._leads, CONVERSION_FIELD)
            if (lead.get(CONVERSION_FIELD) or {}).get("state") == IN_PROGRESS
        ]

    def resume_pending(self) -> List[ConversionResult]:
        results: List[ConversionResult] = []
        for lead in self.pending():
            lead_id = lead.get("leadId")
            if not lead_id:
                LOGGER.warning(
                    "Skipping conversion marked for agent %s: lead document has no leadId",
                    lead[CONVERSION_FIELD].get("cpId"),
                )
                continue
            results.append(self._finish(lead_id, lead, lead[CONVERSION_FIELD]))
        if results:
            LOGGER.info("Resumed %d interrupted conversions", len(results))
        return results

    # ------------------------------------------------------------------
    # Direct agent creation
    # ------------------------------------------------------------------
    def add_agent(self, details: Mapping[str, Any]) -> Dict[str, Any]:
        """Create an agent with no source lead, through the same checks as a conversion."""

        merged = _clean_details(details)
        normalized = self._check_agent_fields(merged)

        duplicate = self._detector.check(normalized, raw=merged.get("phoneNumber"))
        if duplicate.is_duplicate:
            raise DuplicateRecordError(normalized, duplicate.duplicate_type or "", duplicate.record_id)

        cp_id = self._allocator.allocate(RecordKind.AGENT)
        agent = self._build_agent(cp_id, {}, merged, normalized, self._clock())
        self._store.create(self._agents, cp_id, agent)
        LOGGER.info("Added agent %s for %s", cp_id, normalized)
        return agent

    # ------------------------------------------------------------------
    def _finish(self, lead_id: str, lead: Dict[str, Any], marker: Mapping[str, Any]) -> ConversionResult:
        cp_id = marker.get("cpId")
        if not cp_id:
            raise ConversionError(f"Conversion marker on lead {lead_id} has no cpId", lead_id=lead_id)

        agent = self._store.get(self._agents, cp_id)
        if agent is None:
            overrides = dict(marker.get("details") or {})
            merged = {**lead, **overrides}
            normalized = normalize_phone(merged.get("phoneNumber"))
            agent = self._build_agent(cp_id, lead, merged, normalized, int(marker.get("started") or self._clock()))
            self._store.create(self._agents, cp_id, agent)
            LOGGER.info("Recreated agent %s for interrupted conversion of %s", cp_id, lead_id)

        self._retire_lead(lead_id, cp_id)
        return ConversionResult(cp_id=cp_id, lead_id=lead_id, agent=agent, resumed=True)

    def _retire_lead(self, lead_id: str, cp_id: str) -> None:
        try:
            deleted = self._store.delete(self._leads, lead_id)
        except StoreError as exc:
            LOGGER.error("Agent %s exists but lead %s could not be deleted: %s", cp_id, lead_id, exc)
            raise ConversionError(
                f"Agent {cp_id} was created but lead {lead_id} could not be removed; resume the conversion",
                lead_id=lead_id,
                cp_id=cp_id,
                resumable=True,
            ) from exc
        if not deleted:
            LOGGER.warning("Lead %s was already gone when retiring it for agent %s", lead_id, cp_id)
            return
        LOGGER.info("Lead %s retired after conversion to %s", lead_id, cp_id)

    def _restore_lead(self, lead_id: str, lead: Dict[str, Any]) -> None:
        """Put back the lead exactly as it was read, dropping the conversion marker."""

        try:
            self._store.set(self._leads, lead_id, lead)
        except StoreError:
            LOGGER.exception("Could not restore lead %s after a failed conversion", lead_id)

    def _check_agent_fields(self, merged: Mapping[str, Any]) -> str:
        errors: List[str] = []
        missing = [_FIELD_LABELS[name] for name in REQUIRED_FIELDS if not str(merged.get(name) or "").strip()]
        if missing:
            errors.append(f"Missing required fields: {', '.join(missing)}")

        normalized = ""
        if merged.get("phoneNumber"):
            try:
                normalized = normalize_phone(merged["phoneNumber"])
            except ValueError as exc:
                errors.append(str(exc))

        firm_size = merged.get("firmSize")
        if firm_size not in (None, ""):
            try:
                int(firm_size)
            except (TypeError, ValueError):
                errors.append(f"Firm size must be a whole number, got '{firm_size}'")

        errors.extend(
            _unknown_tags("area of operation", merged.get("areaOfOperation"), self._settings.areas_of_operation)
        )
        errors.extend(
            _unknown_tags("business category", merged.get("businessCategory"), self._settings.business_categories)
        )

        if errors:
            raise LeadValidationError(errors)
        return normalized

    def _build_agent(
        self,
        cp_id: str,
        lead: Mapping[str, Any],
        merged: Mapping[str, Any],
        normalized: str,
        timestamp: int,
    ) -> Dict[str, Any]:
        agent = Agent(
            cp_id=cp_id,
            lead_id=lead.get("leadId") or "",
            name=str(merged.get("name") or "").strip(),
            phone_number=format_for_storage(normalized),
            email_address=str(merged.get("emailAddress") or "").strip(),
            kam_name=str(merged.get("kamName") or "").strip(),
            kam_id=str(merged.get("kamId") or ""),
            work_address=str(merged.get("workAddress") or ""),
            rera_id=str(merged.get("reraId") or ""),
            firm_name=str(merged.get("firmName") or ""),
            firm_size=int(merged.get("firmSize") or 0),
            area_of_operation=[tag.lower() for tag in _as_list(merged.get("areaOfOperation"))],
            business_category=[tag.lower() for tag in _as_list(merged.get("businessCategory"))],
            contact_status=lead.get("contactStatus") or "not contact",
            community_joined=bool(lead.get("communityJoined", False)),
            on_broadcast=bool(lead.get("onBroadcast", False)),
            source=merged.get("source") or "direct",
            verified=True,
            verification_date=timestamp,
            black_listed=bool(lead.get("blackListed", False)),
            last_tried=to_unix_seconds(lead.get("lastTried")),
            last_connect=to_unix_seconds(lead.get("lastConnect")),
            added=to_unix_seconds(lead.get("added")) or timestamp,
            last_modified=timestamp,
            extra_details=str(merged.get("extraDetails") or ""),
        )
        document = agent.to_document()
        # History and notes are copied verbatim so legacy entry shapes survive.
        document["contactHistory"] = copy.deepcopy(list(lead.get("connectHistory") or []))
        document["notes"] = copy.deepcopy(list(lead.get("notes") or []))
        return document


def _clean_details(details: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in (details or {}).items():
        if key not in DETAIL_FIELDS:
            LOGGER.debug("Ignoring unknown verification field %s", key)
            continue
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        cleaned[key] = value.strip() if isinstance(value, str) else value
    return cleaned


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def _unknown_tags(label: str, value: Any, allowed: Any) -> List[str]:
    allowed_lc = {item.lower() for item in allowed}
    unknown = [tag for tag in _as_list(value) if tag.lower() not in allowed_lc]
    if not unknown:
        return []
    return [f"Unknown {label}: {', '.join(unknown)}"]


__all__ = [
    "CONVERSION_FIELD",
    "ConversionError",
    "ConversionResult",
    "IN_PROGRESS",
    "LeadConverter",
    "REQUIRED_FIELDS",
]
