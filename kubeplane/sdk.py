"""In-memory model of integration entities, metric sets and inventory."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class SourceType(Enum):
    """How a metric value is interpreted when it is stored."""

    GAUGE = "gauge"
    RATE = "rate"
    DELTA = "delta"
    PRATE = "prate"
    PDELTA = "pdelta"
    ATTRIBUTE = "attribute"


_SAMPLED = {SourceType.RATE, SourceType.DELTA, SourceType.PRATE, SourceType.PDELTA}
_POSITIVE = {SourceType.PRATE, SourceType.PDELTA}
_PER_SECOND = {SourceType.RATE, SourceType.PRATE}


class MetricError(ValueError):
    """A metric could not be stored in a metric set."""


class EntityError(ValueError):
    """An entity could not be defined."""


def _to_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    raise MetricError(f"metric {name!r}: non-numeric value {value!r}")


class MetricSet:
    """A named set of metrics with an event type."""

    def __init__(
        self,
        event_type: str,
        attributes: Mapping[str, str] | None = None,
        store: dict | None = None,
    ) -> None:
        self.metrics: dict[str, Any] = {}
        self._store: dict = {} if store is None else store
        attributes = dict(attributes or {})
        self._namespace = "::".join(
            [event_type] + [f"{k}=={v}" for k, v in sorted(attributes.items())]
        )
        self.set_metric("event_type", event_type, SourceType.ATTRIBUTE)
        for key, value in attributes.items():
            self.set_metric(key, value, SourceType.ATTRIBUTE)

    def set_metric(self, name: str, value: Any, source_type: SourceType) -> None:
        """Store a metric, converting or sampling it according to its source type."""
        if source_type is SourceType.ATTRIBUTE:
            if not isinstance(value, str):
                raise MetricError(f"attribute {name!r} must be a string, got {value!r}")
            stored: Any = value
        elif source_type is SourceType.GAUGE:
            stored = _to_float(name, value)
        elif source_type in _SAMPLED:
            stored = self._sample(name, value, source_type)
        else:
            raise MetricError(f"source type {source_type!r} not supported")
        self.metrics[name] = stored

    def _sample(self, name: str, value: Any, source_type: SourceType) -> float:
        current = _to_float(name, value)
        key = f"{self._namespace}::{name}"
        now = time.monotonic()
        previous = self._store.get(key)
        self._store[key] = (now, current)
        if previous is None:
            return 0.0
        last_time, last_value = previous
        difference = current - last_value
        if difference < 0 and source_type in _POSITIVE:
            raise MetricError(f"metric {name!r} of type {source_type.value} decreased")
        if source_type in _PER_SECOND:
            elapsed = now - last_time
            return difference / elapsed if elapsed > 0 else 0.0
        return difference

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetricSet):
            return NotImplemented
        return self.metrics == other.metrics

    def __repr__(self) -> str:
        return f"MetricSet({self.metrics!r})"


@dataclass
class Inventory:
    """Inventory items indexed by key and field."""

    items: dict[str, dict[str, Any]] = field(default_factory=dict)

    def set_item(self, key: str, field: str, value: Any) -> None:
        self.items.setdefault(key, {})[field] = value


@dataclass(frozen=True)
class EntityMetadata:
    """Identity of an entity: its name and its namespace (entity type)."""

    name: str
    namespace: str


class Entity:
    """A monitored entity holding metric sets and inventory."""

    def __init__(self, name: str, entity_type: str, store: dict | None = None) -> None:
        self.metadata = EntityMetadata(name, entity_type)
        self.metrics: list[MetricSet] = []
        self.inventory = Inventory()
        self._attributes: dict[str, str] = {}
        self._store: dict = {} if store is None else store

    def new_metric_set(self, event_type: str) -> MetricSet:
        """Create a metric set carrying the entity's attributes and attach it."""
        metric_set = MetricSet(event_type, self._attributes, self._store)
        self.metrics.append(metric_set)
        return metric_set

    def add_attributes(self, attributes: Mapping[str, str]) -> None:
        """Add attributes applied to every metric set created from now on."""
        self._attributes.update(attributes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return (
            self.metadata == other.metadata
            and self.metrics == other.metrics
            and self.inventory == other.inventory
        )

    def __repr__(self) -> str:
        return f"Entity({self.metadata!r}, metrics={self.metrics!r})"


class Integration:
    """A collection of entities reported together."""

    def __init__(self, name: str = "", version: str = "") -> None:
        self.name = name
        self.version = version
        self.entities: list[Entity] = []
        self._store: dict = {}

    def entity(self, name: str, entity_type: str) -> Entity:
        """Return the entity with this name and type, creating it if needed."""
        if not name or not entity_type:
            raise EntityError("entity name and type are required when defining one")
        wanted = EntityMetadata(name, entity_type)
        for existing in self.entities:
            if existing.metadata == wanted:
                return existing
        created = Entity(name, entity_type, self._store)
        self.entities.append(created)
        return created

    def clear(self) -> None:
        """Drop all entities."""
        self.entities = []