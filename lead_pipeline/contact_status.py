"""The RNR ("ring, no response") contact-status state machine."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from .config import DEFAULT_CONNECT_MEDIUMS, DEFAULT_DIRECTIONS
from .models import (
    CONNECTED,
    CONNECTION_CONNECTED,
    CONNECTION_NOT_CONNECTED,
    NOT_CONTACTED,
    ConnectHistoryEntry,
    Note,
)

LOGGER = logging.getLogger(__name__)

CONNECTIONS = (CONNECTION_CONNECTED, CONNECTION_NOT_CONNECTED)
DEFAULT_CONNECTED_MEDIUM = "on call"
DEFAULT_CONNECTED_DIRECTION = "outbound"
UNKNOWN_KAM = "UNKNOWN"

_RNR_PATTERN = re.compile(r"rnr-(\d+)")


def rnr_status(level: int) -> str:
    return f"rnr-{level}"


def rnr_level(status: str) -> Optional[int]:
    """Return ``n`` for an ``rnr-n`` status, otherwise ``None``."""

    match = _RNR_PATTERN.fullmatch((status or "").strip().lower())
    if not match:
        return None
    return int(match.group(1))


def next_contact_status(current: Optional[str], connection: str, rnr_ceiling: Optional[int] = None) -> str:
    """Derive the next contact status from the current one and a call result.

    A connected call always yields ``connected``. A failed call climbs the RNR
    ladder: ``not contact`` and ``connected`` restart at ``rnr-1`` and
    ``rnr-n`` becomes ``rnr-(n+1)``, held at ``rnr_ceiling`` when one is set.
    """

    if connection not in CONNECTIONS:
        raise ValueError(f"Unknown call connection '{connection}'. Expected one of: {', '.join(CONNECTIONS)}")

    if connection == CONNECTION_CONNECTED:
        return CONNECTED

    status = (current or NOT_CONTACTED).strip().lower()
    if status in (NOT_CONTACTED, CONNECTED):
        return rnr_status(1)

    level = rnr_level(status)
    if level is None:
        LOGGER.warning("Unrecognised contact status %r - restarting at rnr-1", current)
        return rnr_status(1)

    next_level = level + 1
    if rnr_ceiling is not None:
        next_level = min(next_level, rnr_ceiling)
    return rnr_status(next_level)


@dataclass(frozen=True)
class CallOutcome:
    """A recorded call result as submitted by an operator.

    ``connect_medium`` and ``direction`` are optional; :meth:`resolved`
    applies the defaulting policy, which only fills them for connected calls.
    """

    connection: str
    connect_medium: Optional[str] = None
    direction: Optional[str] = None

    def resolved(
        self,
        mediums: Sequence[str] = DEFAULT_CONNECT_MEDIUMS,
        directions: Sequence[str] = DEFAULT_DIRECTIONS,
    ) -> "CallOutcome":
        if self.connection not in CONNECTIONS:
            raise ValueError(
                f"Unknown call connection '{self.connection}'. Expected one of: {', '.join(CONNECTIONS)}"
            )

        medium = self.connect_medium or None
        direction = self.direction or None
        if self.connection == CONNECTION_CONNECTED:
            medium = medium or DEFAULT_CONNECTED_MEDIUM
            direction = direction or DEFAULT_CONNECTED_DIRECTION

        if medium is not None and medium not in mediums:
            raise ValueError(f"Unknown connect medium '{medium}'. Expected one of: {', '.join(mediums)}")
        if direction is not None and direction not in directions:
            raise ValueError(f"Unknown call direction '{direction}'. Expected one of: {', '.join(directions)}")
        return CallOutcome(self.connection, medium, direction)


@dataclass
class CallUpdate:
    """Changes produced by applying a call outcome to a lead or agent document."""

    previous_status: str
    new_status: str
    entry: ConnectHistoryEntry
    note: Optional[Note]
    changes: Dict[str, Any]


def apply_call_outcome(
    document: Dict[str, Any],
    outcome: CallOutcome,
    *,
    timestamp: int,
    history_field: str = "connectHistory",
    note: Optional[str] = None,
    rnr_ceiling: Optional[int] = None,
) -> CallUpdate:
    """Build the document update for one call against ``document``.

    The outcome must already be resolved. ``lastTried`` always moves,
    ``lastConnect`` only on a connected call; history and notes are appended.
    """

    previous = document.get("contactStatus") or NOT_CONTACTED
    new_status = next_contact_status(previous, outcome.connection, rnr_ceiling)

    entry = ConnectHistoryEntry(
        timestamp=timestamp,
        connection=outcome.connection,
        connect_medium=outcome.connect_medium,
        direction=outcome.direction,
    )
    history = list(document.get(history_field) or [])
    history.append(entry.to_document())

    changes: Dict[str, Any] = {
        history_field: history,
        "contactStatus": new_status,
        "lastTried": timestamp,
        "lastModified": timestamp,
    }
    if outcome.connection == CONNECTION_CONNECTED:
        changes["lastConnect"] = timestamp

    new_note: Optional[Note] = None
    if note and note.strip():
        new_note = Note(
            kam_id=document.get("kamId") or UNKNOWN_KAM,
            note=note.strip(),
            source=f"direct - {outcome.connect_medium or 'unknown'}",
            timestamp=timestamp,
        )
        notes = list(document.get("notes") or [])
        notes.append(new_note.to_document())
        changes["notes"] = notes

    return CallUpdate(
        previous_status=previous,
        new_status=new_status,
        entry=entry,
        note=new_note,
        changes=changes,
    )


__all__ = [
    "CONNECTIONS",
    "CallOutcome",
    "CallUpdate",
    "apply_call_outcome",
    "next_contact_status",
    "rnr_level",
    "rnr_status",
]
