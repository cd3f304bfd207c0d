"""Phone-number duplicate detection across the lead and agent stores."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from .config import CollectionNames
from .errors import StoreError
from .models import DuplicateCheck, RecordKind
from .phone import phone_variants
from .stores import RecordStore

LOGGER = logging.getLogger(__name__)

_CHECK_ORDER = (RecordKind.LEAD, RecordKind.AGENT)


class DuplicateDetector:
    """Looks a normalised number up under every historically stored format.

    Leads are checked before agents, so a number present in both stores is
    reported against the lead store.
    """

    def __init__(self, store: RecordStore, collections: Optional[CollectionNames] = None) -> None:
        self._store = store
        self._collections = collections or CollectionNames()

    def check(self, normalized: str, raw: Optional[str] = None) -> DuplicateCheck:
        return self.check_kinds(normalized, _CHECK_ORDER, raw=raw)

    def check_kinds(
        self,
        normalized: str,
        kinds: Iterable[RecordKind],
        *,
        raw: Optional[str] = None,
    ) -> DuplicateCheck:
        variants = phone_variants(normalized, raw)
        for kind in kinds:
            record_id = self._find_in(kind, variants, normalized)
            if record_id is not None:
                LOGGER.debug("Phone %s already present in %s as %s", normalized, kind.value, record_id)
                return DuplicateCheck(is_duplicate=True, duplicate_type=kind.value, record_id=record_id)
        return DuplicateCheck()

    def _find_in(self, kind: RecordKind, variants: Iterable[str], normalized: str) -> Optional[str]:
        collection = self._collections.for_kind(kind)
        for variant in variants:
            try:
                matches = self._store.find(collection, "phoneNumber", variant)
            except StoreError:
                LOGGER.warning(
                    "Duplicate lookup for %s in %s failed - assuming not a duplicate",
                    normalized,
                    collection,
                    exc_info=True,
                )
                return None
            if matches:
                return matches[0].get(kind.id_field) or variant
        return None


__all__ = ["DuplicateDetector"]
