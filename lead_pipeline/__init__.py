"""Lead lifecycle and bulk-intake pipeline for the channel-partner CRM."""

from . import models  # noqa: F401
from .contact_status import CallOutcome, next_contact_status
from .errors import (
    DocumentExistsError,
    DuplicateRecordError,
    LeadPipelineError,
    RecordNotFoundError,
    StoreError,
)
from .factory import Pipeline, build_pipeline, build_store
from .models import Agent, CommitResult, Lead, RecordKind
from .phone import normalize_phone

__all__ = [
    "Agent",
    "CallOutcome",
    "CommitResult",
    "DocumentExistsError",
    "DuplicateRecordError",
    "Lead",
    "LeadPipelineError",
    "Pipeline",
    "RecordKind",
    "RecordNotFoundError",
    "StoreError",
    "build_pipeline",
    "build_store",
    "next_contact_status",
    "normalize_phone",
    "ingestion",
    "orchestrator",
    "stores",
]
