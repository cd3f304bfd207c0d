"""Record models shared by the intake pipeline, the converter, and the CLI."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

NOT_CONTACTED = "not contact"
CONNECTED = "connected"

CONNECTION_CONNECTED = "connected"
CONNECTION_NOT_CONNECTED = "not connected"

_MILLISECOND_THRESHOLD = 10 ** 11


def unix_now() -> int:
    """Return the current time as integer Unix seconds."""

    return int(time.time())


def to_unix_seconds(value: Any) -> int:
    """Coerce a stored timestamp into Unix seconds.

    Legacy documents carry a mix of second and millisecond values; anything
    larger than ``10**11`` cannot be a plausible second count and is scaled.
    """

    if value is None or value == "":
        return 0
    number = int(float(value))
    if number > _MILLISECOND_THRESHOLD:
        return number // 1000
    return number


class RecordKind(str, Enum):
    """The two record stores a phone number or call outcome can belong to."""

    LEAD = "leads"
    AGENT = "agents"

    @property
    def id_field(self) -> str:
        return "leadId" if self is RecordKind.LEAD else "cpId"

    @property
    def history_field(self) -> str:
        return "connectHistory" if self is RecordKind.LEAD else "contactHistory"

    @property
    def label(self) -> str:
        return "lead" if self is RecordKind.LEAD else "agent"


# --- History & notes ---

@dataclass(slots=True)
class ConnectHistoryEntry:
    """One call attempt against a lead or agent."""

    timestamp: int
    connection: str
    connect_medium: Optional[str] = None
    direction: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "connection": self.connection,
            "connectMedium": self.connect_medium,
            "direction": self.direction,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ConnectHistoryEntry":
        return cls(
            timestamp=to_unix_seconds(data.get("timestamp")),
            connection=data.get("connection") or data.get("connectResult") or "",
            connect_medium=data.get("connectMedium"),
            direction=data.get("direction"),
        )


@dataclass(slots=True)
class Note:
    """Free-text commentary left by a KAM; archived notes are hidden, never removed."""

    kam_id: str
    note: str
    source: str
    timestamp: int
    archive: bool = False

    def to_document(self) -> Dict[str, Any]:
        return {
            "kamId": self.kam_id,
            "note": self.note,
            "source": self.source,
            "timestamp": self.timestamp,
            "archive": self.archive,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            kam_id=data.get("kamId") or "",
            note=data.get("note") or "",
            source=data.get("source") or "",
            timestamp=to_unix_seconds(data.get("timestamp")),
            archive=bool(data.get("archive", False)),
        )


# --- Counters ---

@dataclass(slots=True)
class CounterDocument:
    """State of a sequential identifier counter (``admin/lastLeadId``, ``admin/lastCpId``)."""

    count: int
    prefix: str
    label: str

    @property
    def identifier(self) -> str:
        """Identifier corresponding to the current ``count``."""

        return f"{self.label}{self.prefix}{self.count}"

    @classmethod
    def from_document(cls, data: Dict[str, Any], *, prefix: str = "", label: str = "") -> "CounterDocument":
        return cls(
            count=int(data.get("count") or 0),
            prefix=str(data.get("prefix") or prefix),
            label=str(data.get("label") or label),
        )

    def to_document(self) -> Dict[str, Any]:
        return {"count": self.count, "prefix": self.prefix, "label": self.label}


# --- Records ---

@dataclass
class Lead:
    """A prospective channel partner captured from marketing or referral sources."""

    lead_id: str
    name: str
    phone_number: str
    email_address: str = ""
    source: str = "direct"
    lead_status: str = "not contact yet"
    contact_status: str = NOT_CONTACTED
    connect_history: List[ConnectHistoryEntry] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    kam_id: str = ""
    kam_name: str = ""
    verified: bool = False
    black_listed: bool = False
    on_broadcast: bool = False
    community_joined: bool = False
    last_tried: int = 0
    last_connect: int = 0
    added: int = 0
    last_modified: int = 0
    extra_details: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {
            "leadId": self.lead_id,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "emailAddress": self.email_address,
            "source": self.source,
            "leadStatus": self.lead_status,
            "contactStatus": self.contact_status,
            "connectHistory": [entry.to_document() for entry in self.connect_history],
            "notes": [note.to_document() for note in self.notes],
            "kamId": self.kam_id,
            "kamName": self.kam_name,
            "verified": self.verified,
            "blackListed": self.black_listed,
            "onBroadcast": self.on_broadcast,
            "communityJoined": self.community_joined,
            "lastTried": self.last_tried,
            "lastConnect": self.last_connect,
            "added": self.added,
            "lastModified": self.last_modified,
            "extraDetails": self.extra_details,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Lead":
        return cls(
            lead_id=data.get("leadId") or "",
            name=data.get("name") or "",
            phone_number=data.get("phoneNumber") or "",
            email_address=data.get("emailAddress") or "",
            source=data.get("source") or "direct",
            lead_status=data.get("leadStatus") or "not contact yet",
            contact_status=data.get("contactStatus") or NOT_CONTACTED,
            connect_history=[ConnectHistoryEntry.from_document(item) for item in data.get("connectHistory") or []],
            notes=[Note.from_document(item) for item in data.get("notes") or []],
            kam_id=data.get("kamId") or "",
            kam_name=data.get("kamName") or "",
            verified=bool(data.get("verified", False)),
            black_listed=bool(data.get("blackListed", False)),
            on_broadcast=bool(data.get("onBroadcast", False)),
            community_joined=bool(data.get("communityJoined", False)),
            last_tried=to_unix_seconds(data.get("lastTried")),
            last_connect=to_unix_seconds(data.get("lastConnect")),
            added=to_unix_seconds(data.get("added")),
            last_modified=to_unix_seconds(data.get("lastModified")),
            extra_details=data.get("extraDetails") or "",
        )


@dataclass
class Agent:
    """A verified channel partner, created from a lead or added directly."""

    cp_id: str
    name: str
    phone_number: str
    email_address: str
    kam_name: str
    kam_id: str = ""
    lead_id: str = ""
    work_address: str = ""
    rera_id: str = ""
    firm_name: str = ""
    firm_size: int = 0
    area_of_operation: List[str] = field(default_factory=list)
    business_category: List[str] = field(default_factory=list)
    agent_status: str = "not contact yet"
    contact_status: str = NOT_CONTACTED
    contact_history: List[ConnectHistoryEntry] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    community_joined: bool = False
    on_broadcast: bool = False
    source: str = "direct"
    verified: bool = True
    verification_date: int = 0
    black_listed: bool = False
    last_tried: int = 0
    last_connect: int = 0
    added: int = 0
    last_modified: int = 0
    extra_details: str = ""

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "cpId": self.cp_id,
            "leadId": self.lead_id,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "emailAddress": self.email_address,
            "workAddress": self.work_address,
            "reraId": self.rera_id,
            "firmName": self.firm_name,
            "firmSize": self.firm_size,
            "areaOfOperation": list(self.area_of_operation),
            "businessCategory": list(self.business_category),
            "preferedMicromarket": "",
            "userType": "basic",
            "activity": "active",
            "agentStatus": self.agent_status,
            "contactStatus": self.contact_status,
            "contactHistory": [entry.to_document() for entry in self.contact_history],
            "notes": [note.to_document() for note in self.notes],
            "kamName": self.kam_name,
            "kamId": self.kam_id,
            "verified": self.verified,
            "verificationDate": self.verification_date,
            "blackListed": self.black_listed,
            "appInstalled": False,
            "communityJoined": self.community_joined,
            "onBroadcast": self.on_broadcast,
            "source": self.source,
            "lastTried": self.last_tried,
            "lastConnect": self.last_connect,
            "lastSeen": 0,
            "added": self.added,
            "lastModified": self.last_modified,
            "extraDetails": self.extra_details,
        }
        document.update(zeroed_agent_counters())
        return document

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Agent":
        return cls(
            cp_id=data.get("cpId") or "",
            name=data.get("name") or "",
            phone_number=data.get("phoneNumber") or "",
            email_address=data.get("emailAddress") or "",
            kam_name=data.get("kamName") or "",
            kam_id=data.get("kamId") or "",
            lead_id=data.get("leadId") or "",
            work_address=data.get("workAddress") or "",
            rera_id=data.get("reraId") or "",
            firm_name=data.get("firmName") or "",
            firm_size=int(data.get("firmSize") or 0),
            area_of_operation=list(data.get("areaOfOperation") or []),
            business_category=list(data.get("businessCategory") or []),
            agent_status=data.get("agentStatus") or "not contact yet",
            contact_status=data.get("contactStatus") or NOT_CONTACTED,
            contact_history=[ConnectHistoryEntry.from_document(item) for item in data.get("contactHistory") or []],
            notes=[Note.from_document(item) for item in data.get("notes") or []],
            community_joined=bool(data.get("communityJoined", False)),
            on_broadcast=bool(data.get("onBroadcast", False)),
            source=data.get("source") or "direct",
            verified=bool(data.get("verified", True)),
            verification_date=to_unix_seconds(data.get("verificationDate")),
            black_listed=bool(data.get("blackListed", False)),
            last_tried=to_unix_seconds(data.get("lastTried")),
            last_connect=to_unix_seconds(data.get("lastConnect")),
            added=to_unix_seconds(data.get("added")),
            last_modified=to_unix_seconds(data.get("lastModified")),
            extra_details=data.get("extraDetails") or "",
        )


def zeroed_agent_counters() -> Dict[str, Any]:
    """Inventory, credit, and payment fields every new agent starts with."""

    return {
        "trialUsed": False,
        "trialStartedAt": 0,
        "noOfInventories": 0,
        "inventoryStatus": {"available": False, "delisted": False, "hold": False, "sold": False},
        "noOfEnquiries": 0,
        "noOfRequirements": 0,
        "noOfLegalLeads": 0,
        "lastEnquiry": 0,
        "payStatus": "will not",
        "planExpiry": 0,
        "nextRenewal": 0,
        "paymentHistory": [],
        "monthlyCredits": 0,
        "boosterCredits": 0,
        "inboundEnqCredits": 0,
        "inboundReqCredits": 0,
    }


# --- Spreadsheet intake ---

@dataclass(slots=True)
class SpreadsheetRow:
    """A data row after header normalisation, keyed by canonical column name."""

    row_number: int
    values: Dict[str, str] = field(default_factory=dict)

    def get(self, column: str) -> str:
        return self.values.get(column, "")

    @property
    def number(self) -> str:
        return self.get("Number")

    @property
    def name(self) -> str:
        return self.get("Name")

    @property
    def email(self) -> str:
        return self.get("Email")

    @property
    def lead_source(self) -> str:
        return self.get("Lead Source")


@dataclass
class DuplicateCheck:
    """Outcome of probing the record stores for a phone number."""

    is_duplicate: bool = False
    duplicate_type: Optional[str] = None
    record_id: Optional[str] = None


@dataclass
class RowFailure:
    """A row whose write failed at commit time for infrastructure reasons."""

    row_number: int
    phone_number: str
    message: str


@dataclass
class CommitResult:
    """Summary returned by the bulk commit pipeline."""

    committed: List[str] = field(default_factory=list)
    skipped: int = 0
    skipped_numbers: List[str] = field(default_factory=list)
    failed: List[RowFailure] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "committed": list(self.committed),
            "skipped": self.skipped,
            "skippedNumbers": list(self.skipped_numbers),
            "failed": [
                {"row": failure.row_number, "phoneNumber": failure.phone_number, "error": failure.message}
                for failure in self.failed
            ],
        }


__all__ = [
    "Agent",
    "CONNECTED",
    "CONNECTION_CONNECTED",
    "CONNECTION_NOT_CONNECTED",
    "CommitResult",
    "ConnectHistoryEntry",
    "CounterDocument",
    "DuplicateCheck",
    "Lead",
    "NOT_CONTACTED",
    "Note",
    "RecordKind",
    "RowFailure",
    "SpreadsheetRow",
    "to_unix_seconds",
    "unix_now",
    "zeroed_agent_counters",
]
