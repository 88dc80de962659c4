"""Populate an integration from raw groups following spec groups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from kubeplane.definition import FetchedValues, GuessFunc, RawGroups, SpecGroup
from kubeplane.sdk import EntityError, Integration, MetricError, MetricSet, SourceType

NAMESPACE_GROUP = "namespace"
NAMESPACE_FILTERED_LABEL = "nrFiltered"


class _NamespaceFilterer(Protocol):
    def is_allowed(self, namespace: str) -> bool: ...


@dataclass
class IntegrationPopulateConfig:
    """Everything needed to populate an integration."""

    integration: Integration
    cluster_name: str
    k8s_version: Any
    ms_type_guesser: GuessFunc
    groups: RawGroups
    specs: dict[str, SpecGroup]
    filterer: Optional[_NamespaceFilterer] = None


def _error(message: str, cause: BaseException) -> RuntimeError:
    err = RuntimeError(message)
    err.__cause__ = cause
    return err


def _populate_cluster(integration: Integration, cluster_name: str, k8s_version: Any) -> None:
    entity = integration.entity(cluster_name, "k8s:cluster")
    metric_set = entity.new_metric_set("K8sClusterSample")
    entity.inventory.set_item("cluster", "name", cluster_name)
    metric_set.set_metric("clusterName", cluster_name, SourceType.ATTRIBUTE)
    version = str(k8s_version)
    entity.inventory.set_item("cluster", "k8sVersion", version)
    metric_set.set_metric("clusterK8sVersion", version, SourceType.ATTRIBUTE)


def _metric_set_populate(
    metric_set: MetricSet,
    group_label: str,
    entity_id: str,
    groups: RawGroups,
    spec_group: SpecGroup,
) -> tuple[bool, list[BaseException]]:
    populated = False
    errors: list[BaseException] = []
    for spec in spec_group.specs:
        try:
            value = spec.value_func(group_label, entity_id, groups)
        except Exception as err:
            if not spec.optional:
                errors.append(_error(f'cannot fetch value for metric "{spec.name}": {err}', err))
            continue

        items = value.items() if isinstance(value, FetchedValues) else [(spec.name, value)]
        for name, item in items:
            try:
                metric_set.set_metric(name, item, spec.source_type)
            except MetricError as err:
                if not spec.optional:
                    errors.append(
                        _error(f"cannot set metric {name} with value {item} in metric set, {err}", err)
                    )
                continue
            populated = True
    return populated, errors


def integration_populator(config: IntegrationPopulateConfig) -> tuple[bool, list[BaseException]]:
    """Populate entities and metric sets; return whether anything was populated and the errors."""
    populated = False
    errors: list[BaseException] = []
    ms_entity_type = ""

    for group_label, entities in config.groups.items():
        spec_group = config.specs.get(group_label)
        if spec_group is None:
            continue

        for entity_id, metrics in entities.items():
            extra_attributes: dict[str, str] = {}

            if config.filterer is not None and spec_group.namespace_getter is not None:
                namespace = spec_group.namespace_getter(metrics)
                allowed = config.filterer.is_allowed(namespace)
                if group_label != NAMESPACE_GROUP:
                    if not allowed:
                        continue
                else:
                    extra_attributes[NAMESPACE_FILTERED_LABEL] = "false" if allowed else "true"

            ms_entity_id = entity_id
            if spec_group.id_generator is not None:
                try:
                    ms_entity_id = spec_group.id_generator(group_label, entity_id, config.groups)
                except Exception as err:
                    errors.append(_error(f"error generating entity ID for {entity_id}: {err}", err))
                    continue

            if spec_group.type_generator is not None:
                try:
                    ms_entity_type = spec_group.type_generator(
                        group_label, entity_id, config.groups, config.cluster_name
                    )
                except Exception as err:
                    errors.append(_error(f"error generating entity type for {entity_id}: {err}", err))
                    continue

            try:
                entity = config.integration.entity(ms_entity_id, ms_entity_type)
            except EntityError as err:
                errors.append(err)
                continue

            extra_attributes["clusterName"] = config.cluster_name
            extra_attributes["displayName"] = entity.metadata.name
            entity.add_attributes(extra_attributes)

            guesser = spec_group.ms_type_guesser or config.ms_type_guesser
            try:
                ms_type = guesser(group_label)
            except Exception as err:
                errors.append(err)
                continue

            metric_set = entity.new_metric_set(ms_type)
            was_populated, populate_errors = _metric_set_populate(
                metric_set, group_label, entity_id, config.groups, spec_group
            )
            errors.extend(
                _error(f"error populating metric for entity ID {entity_id}: {err}", err)
                for err in populate_errors
            )
            if was_populated:
                populated = True

    if populated:
        try:
            _populate_cluster(config.integration, config.cluster_name, config.k8s_version)
        except (EntityError, MetricError) as err:
            errors.append(err)

    return populated, errors