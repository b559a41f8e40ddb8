"""
Row-count estimation for a set of grain entities.

Grain entities joined by many-to-many relationships multiply out along a
BFS spanning tree; unrelated groups of entities are added, never crossed
(sparse union). Many-to-one relationships never fan out rows.
"""

import logging
import math
from dataclasses import dataclass, field

from ..graph import connected_components, spanning_tree_edges
from ..model import Entity, Relationship, entity_map, unique_names

logger = logging.getLogger(__name__)


@dataclass
class RowEstimate:
    """Projected row count with a human-readable derivation trail."""

    rows: int
    placeholder_row_count: int = 0
    total: int = 0
    breakdown: list[str] = field(default_factory=list)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero for positive values."""
    return math.floor(value + 0.5)


def fan_out(relationship: Relationship, bridge_entity: Entity) -> float:
    """
    Fan-out multiplier for joining a relationship onto an entity.

    Example:
        >>> fan_out(assignment, class_entity)  # 1800 links / 1200 classes
        1.5
    """
    return relationship.estimated_links / bridge_entity.estimated_rows


def declared_count(value) -> int | float | None:
    """A declared cardinality usable for arithmetic, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if value > 0 else None


def estimate_rows(
    entities: list[Entity],
    relationships: list[Relationship],
    grain_entities: list[str],
) -> RowEstimate:
    """
    Estimate the row count for a table with the given grain.

    Rules:
    - Single entity: entity.estimated_rows
    - One M-M bridge: relationship.estimated_links
    - Each further M-M bridge in the spanning tree: multiply by its fan-out
      over the entity already in the tree
    - Unrelated entity groups: sum of their rows (sparse union)

    Unresolvable entities or cardinalities are silently omitted; validate
    the manifest first.

    Args:
        entities: All declared entities
        relationships: All declared relationships
        grain_entities: Entity names defining one output row, in order

    Returns:
        RowEstimate with rows == total and no placeholder rows
    """
    entities_by_name = entity_map(entities)
    grain = unique_names(grain_entities)
    grain_set = set(grain)
    breakdown: list[str] = []

    # Only M-M relationships between grain entities create row fan-out
    mm_rels = [
        rel
        for rel in relationships
        if rel.type == "many-to-many"
        and rel.endpoints is not None
        and rel.endpoints[0] in grain_set
        and rel.endpoints[1] in grain_set
    ]

    components = connected_components(grain, [rel.endpoints for rel in mm_rels])
    total_rows = 0

    for component in components:
        if len(component) == 1:
            entity = entities_by_name.get(component[0])
            count = declared_count(entity.estimated_rows) if entity else None
            if count is None:
                logger.debug("Skipping unresolvable grain entity %s", component[0])
                continue
            total_rows += int(count)
            breakdown.append(f"{entity.name}: {int(count)} rows")
        else:
            total_rows += _estimate_component_rows(
                component, mm_rels, entities_by_name, breakdown
            )

    logger.debug("Estimated %d rows for grain %s", total_rows, grain)
    return RowEstimate(rows=total_rows, total=total_rows, breakdown=breakdown)


def _estimate_component_rows(
    component: list[str],
    mm_rels: list[Relationship],
    entities_by_name: dict[str, Entity],
    breakdown: list[str],
) -> int:
    """
    Multiply fan-outs along a BFS spanning tree rooted at component[0].

    The first tree edge contributes its links verbatim. Each later edge
    multiplies by links / rows of its parent entity (the endpoint already
    in the tree), rounding after every step.
    """
    tree = spanning_tree_edges(
        component, [(rel.endpoints[0], rel.endpoints[1], rel) for rel in mm_rels]
    )
    if not tree:
        return 0

    _, _, base_rel = tree[0]
    base = declared_count(base_rel.estimated_links)
    if base is None:
        logger.debug("Skipping component with unresolvable base %s", base_rel.name)
        return 0
    result = int(base)
    breakdown.append(f"{base_rel.name}: {result} links (base)")

    for parent, _, rel in tree[1:]:
        shared = entities_by_name.get(parent)
        links = declared_count(rel.estimated_links)
        rows = declared_count(shared.estimated_rows) if shared else None
        if links is None or rows is None:
            logger.debug("Skipping fan-out for %s", rel.name)
            continue
        factor = links / rows
        result = round_half_up(result * factor)
        breakdown.append(
            f"{rel.name}: ×{factor:.2f} fan-out "
            f"({links} links / {rows} {shared.name} rows)"
        )

    return int(result)
