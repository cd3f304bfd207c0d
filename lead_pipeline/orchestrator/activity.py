"""Day-to-day updates against existing leads and agents."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import PipelineSettings
from ..contact_status import UNKNOWN_KAM, CallOutcome, CallUpdate, apply_call_outcome
from ..errors import RecordNotFoundError
from ..models import ConnectHistoryEntry, Note, RecordKind, unix_now
from ..stores import RecordStore

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]

FLAGS = ("verified", "blackListed", "onBroadcast", "communityJoined")


class RecordActivityService:
    """Records call outcomes and notes and applies status, KAM, and flag changes."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[PipelineSettings] = None,
        *,
        clock: Clock = unix_now,
    ) -> None:
        self._store = store
        self._settings = settings or PipelineSettings()
        self._clock = clock

    def _collection(self, kind: RecordKind) -> str:
        return self._settings.collections.for_kind(kind)

    def get(self, kind: RecordKind, record_id: str) -> Dict[str, Any]:
        document = self._store.get(self._collection(kind), record_id)
        if document is None:
            raise RecordNotFoundError(self._collection(kind), record_id)
        return document

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------
    def record_call_outcome(
        self,
        kind: RecordKind,
        record_id: str,
        outcome: CallOutcome,
        *,
        note: Optional[str] = None,
    ) -> CallUpdate:
        outcome = outcome.resolved(self._settings.connect_mediums, self._settings.directions)
        document = self.get(kind, record_id)
        update = apply_call_outcome(
            document,
            outcome,
            timestamp=self._clock(),
            history_field=kind.history_field,
            note=note,
            rnr_ceiling=self._settings.rnr_ceiling,
        )
        self._store.update(self._collection(kind), record_id, update.changes)
        LOGGER.info(
            "Contact status of %s %s changed from %s to %s",
            kind.label,
            record_id,
            update.previous_status,
            update.new_status,
        )
        return update

    def connect_history(self, kind: RecordKind, record_id: str) -> List[ConnectHistoryEntry]:
        """Call history, newest first."""

        document = self.get(kind, record_id)
        entries = [ConnectHistoryEntry.from_document(item) for item in document.get(kind.history_field) or []]
        return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------
    def add_note(
        self,
        kind: RecordKind,
        record_id: str,
        text: str,
        *,
        kam_id: Optional[str] = None,
        source: str = "direct",
    ) -> Note:
        if not text or not text.strip():
            raise ValueError("Note text must not be empty")

        document = self.get(kind, record_id)
        now = self._clock()
        note = Note(
            kam_id=kam_id or document.get("kamId") or UNKNOWN_KAM,
            note=text.strip(),
            source=source,
            timestamp=now,
        )
        notes = list(document.get("notes") or [])
        notes.append(note.to_document())
        self._store.update(self._collection(kind), record_id, {"notes": notes, "lastModified": now})
        return note

    def list_notes(self, kind: RecordKind, record_id: str) -> List[Note]:
        """Visible notes, newest first."""

        document = self.get(kind, record_id)
        notes = [Note.from_document(item) for item in document.get("notes") or []]
        return sorted((note for note in notes if not note.archive), key=lambda note: note.timestamp, reverse=True)

    def archive_note(self, kind: RecordKind, record_id: str, index: int) -> Note:
        """Hide the note at ``index`` (its position in the stored list)."""

        document = self.get(kind, record_id)
        notes = list(document.get("notes") or [])
        if not 0 <= index < len(notes):
            raise IndexError(f"{kind.label} {record_id} has no note at position {index}")
        notes[index] = {**notes[index], "archive": True}
        self._store.update(self._collection(kind), record_id, {"notes": notes, "lastModified": self._clock()})
        return Note.from_document(notes[index])

    # ------------------------------------------------------------------
    # Status, KAM, flags
    # ------------------------------------------------------------------
    def update_lead_status(self, lead_id: str, status: str) -> Dict[str, Any]:
        if status not in self._settings.lead_statuses:
            raise ValueError(f"Unknown lead status '{status}'. Expected one of: {', '.join(self._settings.lead_statuses)}")
        return self._apply(RecordKind.LEAD, lead_id, {"leadStatus": status})

    def update_agent_status(self, cp_id: str, status: str) -> Dict[str, Any]:
        if status not in self._settings.agent_statuses:
            raise ValueError(
                f"Unknown agent status '{status}'. Expected one of: {', '.join(self._settings.agent_statuses)}"
            )
        return self._apply(RecordKind.AGENT, cp_id, {"agentStatus": status})

    def update_kam(self, kind: RecordKind, record_id: str, kam_name: str, kam_id: str = "") -> Dict[str, Any]:
        return self._apply(kind, record_id, {"kamName": kam_name, "kamId": kam_id or ""})

    def set_flag(self, kind: RecordKind, record_id: str, flag: str, value: bool) -> Dict[str, Any]:
        if flag not in FLAGS:
            raise ValueError(f"Unknown flag '{flag}'. Expected one of: {', '.join(FLAGS)}")
        return self._apply(kind, record_id, {flag: bool(value)})

    def _apply(self, kind: RecordKind, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        changes = {**changes, "lastModified": self._clock()}
        updated = self._store.update(self._collection(kind), record_id, changes)
        LOGGER.info("Updated %s %s: %s", kind.label, record_id, ", ".join(sorted(changes)))
        return updated


__all__ = ["FLAGS", "RecordActivityService"]
