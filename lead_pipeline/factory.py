"""Factory helpers for constructing stores and services from configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .config import ConfigurationError, PipelineSettings
from .duplicates import DuplicateDetector
from .ids import SequentialIdAllocator
from .models import unix_now
from .orchestrator import LeadConverter, LeadIntakeService, RecordActivityService
from .stores import MemoryRecordStore, MongoRecordStore, RecordStore

LOGGER = logging.getLogger(__name__)


def build_store(config: Dict[str, Any]) -> RecordStore:
    """Instantiate the record store described by the ``store`` section."""

    store_cfg = config.get("store") or {}
    backend = str(store_cfg.get("backend", "memory")).lower()

    if backend == "memory":
        snapshot = store_cfg.get("snapshot")
        if snapshot:
            return MemoryRecordStore.from_snapshot(snapshot)
        return MemoryRecordStore()

    if backend == "mongo":
        url = store_cfg.get("url")
        database = store_cfg.get("database")
        if not url or not database:
            raise ConfigurationError("Mongo store configuration requires 'url' and 'database'")
        return MongoRecordStore.from_url(url, database, timeout_ms=int(store_cfg.get("timeout_ms", 2000)))

    raise ConfigurationError(f"Unknown store backend '{backend}'. Use 'memory' or 'mongo'")


@dataclass
class Pipeline:
    """Every service wired against one store and one set of settings."""

    store: RecordStore
    settings: PipelineSettings
    detector: DuplicateDetector
    allocator: SequentialIdAllocator
    intake: LeadIntakeService
    converter: LeadConverter
    activity: RecordActivityService
    snapshot: Optional[Path] = None

    def save(self) -> None:
        """Write the memory store back to its snapshot, when one is configured."""

        if self.snapshot is not None and isinstance(self.store, MemoryRecordStore):
            self.store.save_snapshot(self.snapshot)
            LOGGER.debug("Saved snapshot to %s", self.snapshot)


def build_pipeline(
    config: Dict[str, Any],
    *,
    store: Optional[RecordStore] = None,
    clock: Callable[[], int] = unix_now,
) -> Pipeline:
    settings = PipelineSettings.from_mapping(config)
    store = store if store is not None else build_store(config)
    detector = DuplicateDetector(store, settings.collections)
    allocator = SequentialIdAllocator(store, settings)

    snapshot = (config.get("store") or {}).get("snapshot")
    return Pipeline(
        store=store,
        settings=settings,
        detector=detector,
        allocator=allocator,
        intake=LeadIntakeService(store, allocator, detector, settings, clock=clock),
        converter=LeadConverter(store, allocator, detector, settings, clock=clock),
        activity=RecordActivityService(store, settings, clock=clock),
        snapshot=Path(snapshot) if snapshot else None,
    )


__all__ = ["Pipeline", "build_pipeline", "build_store"]
