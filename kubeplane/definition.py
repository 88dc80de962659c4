"""Metric specifications and the functions that fetch values from raw groups."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from kubeplane.sdk import SourceType

RawMetrics = dict[str, Any]
RawGroups = dict[str, dict[str, RawMetrics]]
FetchFunc = Callable[[str, str, RawGroups], Any]
TransformFunc = Callable[[Any], Any]
FilterFunc = Callable[[Any, str, str, RawGroups], Any]
EntityIDGeneratorFunc = Callable[[str, str, RawGroups], str]
EntityTypeGeneratorFunc = Callable[[str, str, RawGroups, str], str]
NamespaceGetterFunc = Callable[[RawMetrics], str]
GuessFunc = Callable[[str], str]


class FetchError(LookupError):
    """A group, entity or metric was not found in the raw groups."""


class FetchedValues(dict):
    """Several named values returned by a single fetch."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


@dataclass
class Spec:
    """Specification of one metric."""

    name: str
    value_func: FetchFunc
    source_type: SourceType
    optional: bool = False


@dataclass
class SpecGroup:
    """Specs that share entity ID, type, namespace and event type logic."""

    specs: list[Spec] = field(default_factory=list)
    id_generator: Optional[EntityIDGeneratorFunc] = None
    type_generator: Optional[EntityTypeGeneratorFunc] = None
    namespace_getter: Optional[NamespaceGetterFunc] = None
    ms_type_guesser: Optional[GuessFunc] = None


def from_raw(metric_key: str) -> FetchFunc:
    """Fetch a metric directly from the raw groups."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> Any:
        try:
            group = groups[group_label]
        except KeyError:
            raise FetchError(f"group {_quote(group_label)} not found") from None
        try:
            entity = group[entity_id]
        except KeyError:
            raise FetchError(f"entity {_quote(entity_id)} not found") from None
        try:
            return entity[metric_key]
        except KeyError:
            raise FetchError(f"metric {_quote(metric_key)} not found") from None

    return fetch


def transform(fetch_func: FetchFunc, transform_func: TransformFunc) -> FetchFunc:
    """Apply transform_func to whatever fetch_func returns."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> Any:
        return transform_func(fetch_func(group_label, entity_id, groups))

    return fetch


def transform_and_filter(
    fetch_func: FetchFunc, transform_func: TransformFunc, filter_func: FilterFunc
) -> FetchFunc:
    """Fetch, transform, then filter the transformed value."""

    def fetch(group_label: str, entity_id: str, groups: RawGroups) -> Any:
        value = transform_func(fetch_func(group_label, entity_id, groups))
        return filter_func(value, group_label, entity_id, groups)

    return fetch


def _is_separator(ch: str) -> bool:
    if ch.isascii():
        return not (ch.isalnum() or ch == "_")
    if ch.isalpha() or ch.isdigit():
        return False
    return ch.isspace()


def _title(word: str) -> str:
    chars = []
    after_separator = True
    for ch in word:
        chars.append(ch.title() if after_separator else ch)
        after_separator = _is_separator(ch)
    return "".join(chars)


def k8s_metric_set_type_guesser(group_label: str) -> str:
    """Build the event type name from a dash separated group label."""
    return f"K8s{''.join(_title(part) for part in group_label.split('-'))}Sample"