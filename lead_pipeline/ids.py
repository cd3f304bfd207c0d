"""Sequential, human-readable identifier allocation (``CPB546``, ``LDA12``)."""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from .config import CounterSettings, PipelineSettings
from .errors import LeadPipelineError, RecordNotFoundError
from .models import CounterDocument, RecordKind
from .stores import RecordStore

LOGGER = logging.getLogger(__name__)


class CounterMissingError(LeadPipelineError):
    """Raised when the counter document for an entity type has not been created."""

    def __init__(self, kind: RecordKind, document: str) -> None:
        super().__init__(f"Counter document '{document}' for {kind.value} is missing")
        self.kind = kind
        self.document = document


def format_identifier(counter: CounterDocument) -> str:
    return counter.identifier


class SequentialIdAllocator:
    """Hands out identifiers by atomically incrementing a shared counter document.

    Every call to :meth:`allocate` advances the counter exactly once, so two
    concurrent callers can never receive the same identifier. An identifier
    whose record then fails to persist is never reissued.
    """

    def __init__(self, store: RecordStore, settings: Optional[PipelineSettings] = None) -> None:
        self._store = store
        self._settings = settings or PipelineSettings()

    @property
    def _admin(self) -> str:
        return self._settings.collections.admin

    def _counter_settings(self, kind: RecordKind) -> CounterSettings:
        return self._settings.counter_for(kind)

    def current(self, kind: RecordKind) -> CounterDocument:
        settings = self._counter_settings(kind)
        data = self._store.get(self._admin, settings.document)
        if data is None:
            raise CounterMissingError(kind, settings.document)
        return CounterDocument.from_document(data, prefix=settings.prefix, label=settings.label)

    def peek(self, kind: RecordKind) -> str:
        """Identifier the next :meth:`allocate` would return, absent concurrent callers."""

        counter = self.current(kind)
        return format_identifier(CounterDocument(counter.count + 1, counter.prefix, counter.label))

    def allocate(self, kind: RecordKind) -> str:
        settings = self._counter_settings(kind)
        try:
            data = self._store.increment(self._admin, settings.document, "count", 1)
        except RecordNotFoundError as exc:
            raise CounterMissingError(kind, settings.document) from exc
        counter = CounterDocument.from_document(data, prefix=settings.prefix, label=settings.label)
        identifier = format_identifier(counter)
        LOGGER.debug("Allocated %s identifier %s", kind.label, identifier)
        return identifier

    def seed(
        self,
        kind: RecordKind,
        *,
        count: Optional[int] = None,
        prefix: Optional[str] = None,
        label: Optional[str] = None,
        overwrite: bool = False,
    ) -> CounterDocument:
        """Create the counter document, leaving an existing one alone unless ``overwrite``."""

        settings = self._counter_settings(kind)
        existing = self._store.get(self._admin, settings.document)
        if existing is not None and not overwrite:
            LOGGER.info("Counter %s already exists - not reseeding", settings.document)
            return CounterDocument.from_document(existing, prefix=settings.prefix, label=settings.label)

        counter = CounterDocument(
            count=settings.count if count is None else count,
            prefix=settings.prefix if prefix is None else prefix,
            label=settings.label if label is None else label,
        )
        self._store.set(self._admin, settings.document, counter.to_document())
        LOGGER.info("Seeded counter %s at %s", settings.document, counter.identifier)
        return counter

    def seed_all(self, overwrite: bool = False) -> Mapping[RecordKind, CounterDocument]:
        return {kind: self.seed(kind, overwrite=overwrite) for kind in RecordKind}


__all__ = ["CounterMissingError", "SequentialIdAllocator", "format_identifier"]
