"""Configuration helpers for the lead intake pipeline."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import RecordKind

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

DEFAULT_LEAD_SOURCES: Tuple[str, ...] = ("whatsApp", "instagram", "facebook", "referral", "direct")
DEFAULT_LEAD_STATUSES: Tuple[str, ...] = ("interested", "not interested", "not contact yet")
DEFAULT_CONNECT_MEDIUMS: Tuple[str, ...] = ("on call", "on whatsapp")
DEFAULT_DIRECTIONS: Tuple[str, ...] = ("inbound", "outbound")
DEFAULT_AREAS: Tuple[str, ...] = (
    "north bangalore",
    "south bangalore",
    "east bangalore",
    "west bangalore",
    "pan bangalore",
)
DEFAULT_BUSINESS_CATEGORIES: Tuple[str, ...] = ("resale", "rental", "primary")

DEFAULT_HEADER_SYNONYMS: Mapping[str, str] = {
    "phone": "Number",
    "number": "Number",
    "phonenumber": "Number",
    "name": "Name",
    "email": "Email",
    "lead source": "Lead Source",
    "leadsource": "Lead Source",
    "source": "Lead Source",
}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc
    else:
        import yaml

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass(frozen=True)
class CollectionNames:
    """Document store collection names."""

    leads: str = "leads"
    agents: str = "agents"
    admin: str = "admin"
    pipeline: str = "pipeline"

    def for_kind(self, kind: RecordKind) -> str:
        return self.leads if kind is RecordKind.LEAD else self.agents


@dataclass(frozen=True)
class CounterSettings:
    """Where a counter lives and how to seed it."""

    document: str
    label: str
    prefix: str
    count: int = 0


def _default_counters() -> Dict[RecordKind, CounterSettings]:
    return {
        RecordKind.LEAD: CounterSettings(document="lastLeadId", label="LD", prefix="A", count=0),
        RecordKind.AGENT: CounterSettings(document="lastCpId", label="CP", prefix="B", count=545),
    }


@dataclass(frozen=True)
class PipelineSettings:
    """Vocabulary and wiring injected into validation, the state machine, and the services."""

    lead_sources: Tuple[str, ...] = DEFAULT_LEAD_SOURCES
    lead_statuses: Tuple[str, ...] = DEFAULT_LEAD_STATUSES
    agent_statuses: Tuple[str, ...] = DEFAULT_LEAD_STATUSES
    connect_mediums: Tuple[str, ...] = DEFAULT_CONNECT_MEDIUMS
    directions: Tuple[str, ...] = DEFAULT_DIRECTIONS
    areas_of_operation: Tuple[str, ...] = DEFAULT_AREAS
    business_categories: Tuple[str, ...] = DEFAULT_BUSINESS_CATEGORIES
    rnr_ceiling: Optional[int] = None
    header_synonyms: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADER_SYNONYMS))
    collections: CollectionNames = field(default_factory=CollectionNames)
    counters: Mapping[RecordKind, CounterSettings] = field(default_factory=_default_counters)

    def canonical_source(self, value: str) -> Optional[str]:
        """Return the configured spelling of ``value`` or ``None`` when it is not allowed."""

        wanted = value.strip().lower()
        for source in self.lead_sources:
            if source.lower() == wanted:
                return source
        return None

    def counter_for(self, kind: RecordKind) -> CounterSettings:
        return self.counters[kind]

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "PipelineSettings":
        vocabulary = config.get("vocabulary") or {}
        defaults = cls()

        rnr_ceiling = vocabulary.get("rnr_ceiling")
        if rnr_ceiling is not None:
            try:
                rnr_ceiling = int(rnr_ceiling)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"vocabulary.rnr_ceiling must be an integer, got {rnr_ceiling!r}") from exc
            if rnr_ceiling < 1:
                raise ConfigurationError("vocabulary.rnr_ceiling must be at least 1")

        synonyms = dict(DEFAULT_HEADER_SYNONYMS)
        for header, column in (vocabulary.get("header_synonyms") or {}).items():
            synonyms[str(header).strip().lower()] = str(column)

        collections_cfg = config.get("collections") or {}
        collections = CollectionNames(
            leads=collections_cfg.get("leads", defaults.collections.leads),
            agents=collections_cfg.get("agents", defaults.collections.agents),
            admin=collections_cfg.get("admin", defaults.collections.admin),
            pipeline=collections_cfg.get("pipeline", defaults.collections.pipeline),
        )

        counters = dict(_default_counters())
        for kind in RecordKind:
            counter_cfg = (config.get("counters") or {}).get(kind.value)
            if not counter_cfg:
                continue
            base = counters[kind]
            counters[kind] = CounterSettings(
                document=counter_cfg.get("document", base.document),
                label=counter_cfg.get("label", base.label),
                prefix=counter_cfg.get("prefix", base.prefix),
                count=int(counter_cfg.get("count", base.count)),
            )

        settings = cls(
            lead_sources=_tuple(vocabulary.get("lead_sources"), defaults.lead_sources),
            lead_statuses=_tuple(vocabulary.get("lead_statuses"), defaults.lead_statuses),
            agent_statuses=_tuple(vocabulary.get("agent_statuses"), defaults.agent_statuses),
            connect_mediums=_tuple(vocabulary.get("connect_mediums"), defaults.connect_mediums),
            directions=_tuple(vocabulary.get("directions"), defaults.directions),
            areas_of_operation=_tuple(vocabulary.get("areas_of_operation"), defaults.areas_of_operation),
            business_categories=_tuple(vocabulary.get("business_categories"), defaults.business_categories),
            rnr_ceiling=rnr_ceiling,
            header_synonyms=synonyms,
            collections=collections,
            counters=counters,
        )
        LOGGER.debug("Loaded pipeline settings with %d lead sources", len(settings.lead_sources))
        return settings


def _tuple(value: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


__all__ = [
    "CollectionNames",
    "ConfigurationError",
    "CounterSettings",
    "DEFAULT_HEADER_SYNONYMS",
    "DEFAULT_LEAD_SOURCES",
    "PipelineSettings",
    "load_configuration",
]
