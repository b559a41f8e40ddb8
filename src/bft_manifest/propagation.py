"""
Per-metric strategy resolution for a report table.

A metric without a declared propagation is reserved toward every foreign
entity. strategy_for() makes that default explicit, so callers never
treat a missing declaration as a special case.

plan_table() is the contract a code generator consumes: for every metric
in a table and every grain entity it names the governing strategy, and it
lists the home entities that need placeholder rows. The estimator counts
placeholder rows from the same plan.
"""

from dataclasses import dataclass, field
from typing import Optional

from .model import (
    DEFAULT_STRATEGY,
    BftTable,
    Manifest,
    MetricPropagation,
    PropagationEdge,
    Strategy,
    is_name,
    metric_owner_map,
    propagation_map,
    unique_names,
)

# Strategies whose foreign-row treatment needs one placeholder row per home value
PLACEHOLDER_STRATEGIES = ("reserve", "elimination")


@dataclass
class MetricPlacement:
    """How one metric's value appears on rows of one grain entity."""

    metric: str
    entity: str
    strategy: Optional[Strategy]  # None on the metric's home entity
    weight: Optional[str] = None

    @property
    def is_home(self) -> bool:
        return self.strategy is None


@dataclass
class TablePlan:
    """Resolved strategies for every (metric, grain entity) pair in a table."""

    table: str
    grain: list[str]
    placements: dict[str, dict[str, MetricPlacement]] = field(default_factory=dict)
    placeholder_entities: list[str] = field(default_factory=list)
    reserve_label: str = ""
    elimination_label: str = ""

    def strategy(self, metric: str, entity: str) -> Optional[Strategy]:
        return self.placements[metric][entity].strategy


def find_edge(
    propagation: Optional[MetricPropagation], target_entity: str
) -> Optional[PropagationEdge]:
    """First hop of a propagation path that reaches `target_entity`."""
    if propagation is None:
        return None
    for edge in propagation.path:
        if edge.target_entity == target_entity:
            return edge
    return None


def strategy_for(
    propagation: Optional[MetricPropagation], target_entity: str
) -> Strategy:
    """
    Strategy governing a metric on a foreign entity's rows.

    Total: returns "reserve" when the propagation is absent or has no hop
    reaching `target_entity`.

    Example:
        >>> strategy_for(None, "Professor")
        'reserve'
    """
    edge = find_edge(propagation, target_entity)
    if edge is None:
        return DEFAULT_STRATEGY
    return edge.strategy


def active_chain(
    home_entity: str,
    propagation: Optional[MetricPropagation],
    grain: list[str],
) -> list[str]:
    """
    Entities a metric actually touches within a table's grain.

    The home entity first, then every hop target that is in the grain, in
    path order. Hops leaving the grain are inert.
    """
    grain_set = set(grain)
    chain = [home_entity]
    if propagation is not None:
        for edge in propagation.path:
            target = edge.target_entity
            if is_name(target) and target in grain_set and target not in chain:
                chain.append(target)
    return chain


def needs_placeholder_rows(
    propagation: Optional[MetricPropagation], grain: list[str]
) -> bool:
    """
    True if a metric's home entity needs one placeholder row per value.

    An undeclared propagation is an implicit reserve and needs placeholder
    rows whenever the grain holds a foreign entity. A declared path needs
    them when any in-grain hop uses reserve or elimination.
    """
    if propagation is None:
        return len(grain) > 1
    grain_set = set(grain)
    return any(
        is_name(edge.target_entity)
        and edge.target_entity in grain_set
        and edge.strategy in PLACEHOLDER_STRATEGIES
        for edge in propagation.path
    )


def plan_table(manifest: Manifest, table: BftTable) -> TablePlan:
    """
    Resolve every included metric's strategy on every grain entity.

    Metrics that do not exist, or whose home entity is outside the grain,
    are skipped; validate the manifest first.

    Args:
        manifest: A validated manifest
        table: One of the manifest's tables

    Returns:
        TablePlan with placements keyed by metric, then by grain entity
    """
    owners = metric_owner_map(manifest.entities)
    propagations = propagation_map(manifest.propagations)
    grain = unique_names(table.entities)
    grain_set = set(grain)

    plan = TablePlan(
        table=table.name,
        grain=grain,
        reserve_label=manifest.placeholder_labels.reserve,
        elimination_label=manifest.placeholder_labels.elimination,
    )

    for metric_name in unique_names(table.metrics):
        owner = owners.get(metric_name)
        if owner is None or owner.name not in grain_set:
            continue
        prop = propagations.get(metric_name)

        placements: dict[str, MetricPlacement] = {}
        for entity_name in grain:
            if entity_name == owner.name:
                placements[entity_name] = MetricPlacement(metric_name, entity_name, None)
                continue
            edge = find_edge(prop, entity_name)
            placements[entity_name] = MetricPlacement(
                metric=metric_name,
                entity=entity_name,
                strategy=strategy_for(prop, entity_name),
                weight=edge.weight if edge is not None else None,
            )
        plan.placements[metric_name] = placements

        if needs_placeholder_rows(prop, grain) and owner.name not in plan.placeholder_entities:
            plan.placeholder_entities.append(owner.name)

    return plan
