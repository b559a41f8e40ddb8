"""
Row-count estimation for a declared report table.

When no single metric's propagation spans two groups of entities, the
groups are structurally independent and the table is a UNION ALL of
separately computed row groups, not a cross product. Each metric's
active chain (home entity plus in-grain hop targets) defines a group;
independent groups are estimated separately and summed.

Reserve and elimination strategies add placeholder rows: one per value
of the metric's home entity, i.e. entity.estimated_rows, counted once per
home entity however many of its metrics need them.
"""

import logging

from ..model import (
    BftTable,
    Manifest,
    entity_map,
    is_name,
    metric_owner_map,
    propagation_map,
    unique_names,
)
from ..propagation import active_chain, plan_table
from .rows import RowEstimate, declared_count, estimate_rows

logger = logging.getLogger(__name__)


def table_chains(manifest: Manifest, table: BftTable) -> list[list[str]]:
    """
    Independent entity groups of a table, before subset removal.

    One chain per included metric whose home entity is in the grain, then
    every grain entity no metric touches is folded into the first chain it
    shares a many-to-many relationship with, or becomes its own chain.
    """
    owners = metric_owner_map(manifest.entities)
    propagations = propagation_map(manifest.propagations)
    grain = unique_names(table.entities)
    grain_set = set(grain)

    chains: list[list[str]] = []
    for metric_name in table.metrics:
        owner = owners.get(metric_name) if is_name(metric_name) else None
        if owner is None or owner.name not in grain_set:
            continue
        chains.append(active_chain(owner.name, propagations.get(metric_name), grain))

    covered = {name for chain in chains for name in chain}
    mm_pairs = [
        rel.endpoints
        for rel in manifest.relationships
        if rel.type == "many-to-many" and rel.endpoints is not None
    ]

    for entity_name in grain:
        if entity_name in covered:
            continue
        for chain in chains:
            if any(
                (a == entity_name and b in chain) or (b == entity_name and a in chain)
                for a, b in mm_pairs
            ):
                chain.append(entity_name)
                break
        else:
            chains.append([entity_name])

    return chains


def remove_subset_chains(chains: list[list[str]]) -> list[list[str]]:
    """
    Drop duplicate and strict-subset chains.

    A subset chain's rows already ride along on the larger chain's rows
    and must not be estimated twice. First occurrence order is kept.
    """
    unique: list[list[str]] = []
    for chain in chains:
        if not any(set(u) == set(chain) for u in unique):
            unique.append(chain)

    return [
        chain
        for i, chain in enumerate(unique)
        if not any(i != j and set(chain) < set(other) for j, other in enumerate(unique))
    ]


def estimate_table_rows(manifest: Manifest, table: BftTable) -> RowEstimate:
    """
    Estimate rows for a report table with an explicitly declared grain.

    Args:
        manifest: A validated manifest
        table: One of the manifest's tables

    Returns:
        RowEstimate with chain rows, placeholder rows and their total

    Example:
        >>> est = estimate_table_rows(manifest, manifest.get_table("department_financial"))
        >>> est.rows, est.placeholder_row_count, est.total
        (180000, 2000, 182000)
    """
    effective_chains = remove_subset_chains(table_chains(manifest, table))

    total_rows = 0
    breakdown: list[str] = []
    for chain in effective_chains:
        est = estimate_rows(manifest.entities, manifest.relationships, chain)
        total_rows += est.rows
        breakdown.extend(est.breakdown)
    if len(effective_chains) > 1:
        breakdown.append(f"{len(effective_chains)} independent row groups (UNION ALL)")

    entities = entity_map(manifest.entities)
    placeholder_counts: list[tuple[str, int]] = []
    for entity_name in plan_table(manifest, table).placeholder_entities:
        count = declared_count(entities[entity_name].estimated_rows)
        if count is not None:
            placeholder_counts.append((entity_name, int(count)))

    placeholder_row_count = sum(count for _, count in placeholder_counts)
    if placeholder_row_count > 0:
        detail = ", ".join(f"{name}: {count}" for name, count in placeholder_counts)
        breakdown.append(f"Placeholder rows: +{placeholder_row_count} ({detail})")

    logger.debug(
        "Table %s: %d chain row(s) + %d placeholder row(s)",
        table.name,
        total_rows,
        placeholder_row_count,
    )
    return RowEstimate(
        rows=total_rows,
        placeholder_row_count=placeholder_row_count,
        total=total_rows + placeholder_row_count,
        breakdown=breakdown,
    )
