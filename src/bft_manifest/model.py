"""
Manifest data model.

Plain in-memory shapes for entities, relationships, metric propagation
paths and report (BFT) tables. The model carries no behavior beyond name
lookups; consistency between the name-based references is checked by
bft_manifest.validation, not enforced here.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

Strategy = Literal["reserve", "elimination", "allocation", "sum_over_sum"]
MetricNature = Literal["additive", "non-additive"]
MetricType = Literal["currency", "integer", "float", "rating", "percentage"]
EntityRole = Literal["leaf", "bridge"]
RelationshipType = Literal["many-to-many", "many-to-one"]

DEFAULT_STRATEGY: Strategy = "reserve"
DEFAULT_PLACEHOLDER_LABEL = "<Unallocated>"


@dataclass
class MetricDef:
    """A measure owned by exactly one entity."""

    name: str
    type: MetricType
    nature: MetricNature


@dataclass
class Entity:
    """A named thing that may have its own rows in output."""

    name: str
    role: EntityRole = "leaf"  # Informational only
    detail: bool = True
    estimated_rows: Any = None  # Positive integer once validated
    metrics: list[MetricDef] = field(default_factory=list)


@dataclass
class Relationship:
    """
    An undirected join between two entities.

    Direction is supplied per metric by its propagation path, never by
    the relationship itself.
    """

    name: str
    between: list[str]
    type: RelationshipType = "many-to-many"
    estimated_links: Any = None  # Positive integer once validated
    weight_column: str | None = None

    @property
    def endpoints(self) -> tuple[str, str] | None:
        """The two entity names, or None unless `between` is a pair of strings."""
        if (
            isinstance(self.between, (list, tuple))
            and len(self.between) == 2
            and all(isinstance(name, str) for name in self.between)
        ):
            return self.between[0], self.between[1]
        return None

    def connects(self, a: str, b: str) -> bool:
        """True if this relationship joins `a` and `b` (either order)."""
        ends = self.endpoints
        if ends is None:
            return False
        return ends == (a, b) or ends == (b, a)


@dataclass
class PropagationEdge:
    """One hop outward from a metric's home entity."""

    relationship: str
    target_entity: str
    strategy: Strategy
    weight: str | None = None  # Required for allocation and sum_over_sum


@dataclass
class MetricPropagation:
    """Ordered hops for one metric, starting at the metric's home entity."""

    metric: str
    path: list[PropagationEdge] = field(default_factory=list)


@dataclass
class BftTable:
    """A report table with an explicitly declared grain."""

    name: str
    entities: list[str] = field(default_factory=list)
    metrics: list[str] = field(default_factory=list)

    @property
    def grain(self) -> list[str]:
        return self.entities


@dataclass
class PlaceholderLabels:
    """Display labels for foreign entity columns on placeholder rows."""

    reserve: str = DEFAULT_PLACEHOLDER_LABEL
    elimination: str = DEFAULT_PLACEHOLDER_LABEL


@dataclass
class Manifest:
    """Aggregate root for a BFT manifest."""

    entities: list[Entity] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    propagations: list[MetricPropagation] = field(default_factory=list)
    bft_tables: list[BftTable] = field(default_factory=list)
    placeholder_labels: PlaceholderLabels = field(default_factory=PlaceholderLabels)

    def get_table(self, name: str) -> BftTable:
        """Get a table declaration by name."""
        for table in self.bft_tables:
            if table.name == name:
                return table
        raise KeyError(f"Unknown table: {name}")


# =============================================================================
# NAME LOOKUPS
# =============================================================================


def is_name(value: Any) -> bool:
    """Names are strings; anything else read from a document is malformed."""
    return isinstance(value, str)


def unique_names(values: list[Any]) -> list[str]:
    """String names in first-occurrence order, duplicates and non-names dropped."""
    return list(dict.fromkeys(v for v in values if is_name(v)))


def entity_map(entities: list[Entity]) -> dict[str, Entity]:
    """Map entity name to Entity (last declaration wins on duplicates)."""
    return {e.name: e for e in entities if is_name(e.name)}


def relationship_map(relationships: list[Relationship]) -> dict[str, Relationship]:
    return {r.name: r for r in relationships if is_name(r.name)}


def propagation_map(propagations: list[MetricPropagation]) -> dict[str, MetricPropagation]:
    return {p.metric: p for p in propagations if is_name(p.metric)}


def metric_owner_map(entities: list[Entity]) -> dict[str, Entity]:
    """Map each metric name to its owning Entity."""
    owners: dict[str, Entity] = {}
    for entity in entities:
        if not is_name(entity.name):
            continue
        for metric in entity.metrics:
            if is_name(metric.name):
                owners[metric.name] = entity
    return owners


def find_metric_def(entities: list[Entity], metric_name: str) -> MetricDef | None:
    """Find a MetricDef by name across all entities."""
    for entity in entities:
        for metric in entity.metrics:
            if metric.name == metric_name:
                return metric
    return None
