"""
Structural and semantic validation for BFT manifests.

Every check runs unconditionally and appends to a single error list, so
one call surfaces every independent problem in the manifest. Data
problems never raise; callers that want a hard failure use
check_manifest(), which raises ManifestValidationError.

Valid enum values are derived from the manifest metamodel
(manifest_schema.yaml) using LinkML's SchemaView, making the metamodel
the single source of truth.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from linkml_runtime.utils.schemaview import SchemaView

from .model import (
    Manifest,
    entity_map,
    find_metric_def,
    is_name,
    metric_owner_map,
    relationship_map,
)

logger = logging.getLogger(__name__)

METAMODEL_PATH = Path(__file__).parent / "manifest_schema.yaml"

# Strategies that misstate a non-summable value on foreign rows
NON_ADDITIVE_FORBIDDEN = ("allocation", "elimination")

# Strategies that split a value and therefore need a weight
WEIGHTED_STRATEGIES = ("allocation", "sum_over_sum")


@dataclass
class ValidationError:
    """A single rule violation found in a manifest."""

    rule: str
    message: str
    path: Optional[str] = None

    def __str__(self):
        location = f" ({self.path})" if self.path else ""
        return f"[{self.rule}] {self.message}{location}"


class ManifestValidationError(Exception):
    """Raised when a manifest fails validation and the caller asked to fail."""

    def __init__(self, errors: list[ValidationError]):
        self.errors = errors
        message = f"Manifest validation failed with {len(errors)} error(s):\n"
        message += "\n".join(f"  - {e}" for e in errors)
        super().__init__(message)


def _is_positive_integer(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, float):
        return value.is_integer() and value > 0
    return False


class ManifestValidator:
    """
    Collects every validation error for one manifest.

    The manifest is never mutated, so a validator (or several) can run
    against a shared manifest from any number of threads.

    Usage:
        errors = ManifestValidator(manifest).validate()
    """

    # Class-level cache for metamodel rules (loaded once per process)
    _metamodel_loaded: bool = False
    _valid_strategies: tuple[str, ...] = ()

    def __init__(self, manifest: Manifest):
        self._load_metamodel_rules()
        self.manifest = manifest
        self._entities = entity_map(manifest.entities)
        self._relationships = relationship_map(manifest.relationships)
        self._metric_owner = metric_owner_map(manifest.entities)

    @classmethod
    def _load_metamodel_rules(cls) -> None:
        """
        Load permissible enum values from manifest_schema.yaml via SchemaView.

        Rules are cached at class level and loaded once per process. Enum
        order follows the metamodel so error messages are stable.
        """
        if cls._metamodel_loaded:
            return

        sv = SchemaView(str(METAMODEL_PATH))
        strategy_enum = sv.get_enum("Strategy")
        cls._valid_strategies = tuple(strategy_enum.permissible_values.keys())

        cls._metamodel_loaded = True

    @classmethod
    def valid_strategies(cls) -> tuple[str, ...]:
        cls._load_metamodel_rules()
        return cls._valid_strategies

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self) -> list[ValidationError]:
        """
        Run every check and return the accumulated errors.

        Order follows check order (uniqueness, cardinality, relationships,
        propagations, tables), not severity.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[ValidationError] = []
        errors.extend(self._check_duplicate_names())
        errors.extend(self._check_positive_cardinalities())
        errors.extend(self._check_relationship_entities())
        errors.extend(self._check_propagations())
        errors.extend(self._check_tables())
        logger.debug("Validated manifest: %d error(s)", len(errors))
        return errors

    def _check_duplicate_names(self) -> list[ValidationError]:
        """Entity, metric, relationship, propagation and table names are unique."""
        m = self.manifest
        all_metrics = [metric.name for e in m.entities for metric in e.metrics]

        errors = []
        errors.extend(_duplicates([e.name for e in m.entities], "entity", "entities"))
        errors.extend(_duplicates(all_metrics, "metric", "metrics"))
        errors.extend(
            _duplicates([r.name for r in m.relationships], "relationship", "relationships")
        )
        errors.extend(
            _duplicates([p.metric for p in m.propagations], "propagation", "propagations")
        )
        errors.extend(_duplicates([t.name for t in m.bft_tables], "table", "bft_tables"))
        return errors

    def _check_positive_cardinalities(self) -> list[ValidationError]:
        errors = []
        for entity in self.manifest.entities:
            if not _is_positive_integer(entity.estimated_rows):
                errors.append(
                    ValidationError(
                        rule="positive-cardinality",
                        message=(
                            f'Entity "{entity.name}" has invalid estimated_rows: '
                            f"{entity.estimated_rows} (must be a positive integer)"
                        ),
                        path=f"entities.{entity.name}.estimated_rows",
                    )
                )
        for rel in self.manifest.relationships:
            if not _is_positive_integer(rel.estimated_links):
                errors.append(
                    ValidationError(
                        rule="positive-cardinality",
                        message=(
                            f'Relationship "{rel.name}" has invalid estimated_links: '
                            f"{rel.estimated_links} (must be a positive integer)"
                        ),
                        path=f"relationships.{rel.name}.estimated_links",
                    )
                )
        return errors

    def _check_relationship_entities(self) -> list[ValidationError]:
        """Each relationship joins exactly two declared entities."""
        errors = []
        for rel in self.manifest.relationships:
            path = f"relationships.{rel.name}.between"
            if rel.endpoints is None:
                errors.append(
                    ValidationError(
                        rule="relationship-between-pair",
                        message=(
                            f'Relationship "{rel.name}" must name exactly 2 entities '
                            f'in "between", got {rel.between!r}'
                        ),
                        path=path,
                    )
                )
                continue

            for entity_name in rel.endpoints:
                if entity_name not in self._entities:
                    errors.append(
                        ValidationError(
                            rule="relationship-entity-exists",
                            message=(
                                f'Relationship "{rel.name}" references nonexistent '
                                f'entity "{entity_name}"'
                            ),
                            path=path,
                        )
                    )
        return errors

    def _check_propagations(self) -> list[ValidationError]:
        """
        Each propagation is a simple path outward from the metric's home.

        The path is walked hop by hop. A hop whose relationship or target
        is unknown is reported and the walk continues from the declared
        target, so later hops are still checked.
        """
        errors = []
        valid_strategies = self.valid_strategies()

        for prop in self.manifest.propagations:
            base_path = f"propagations.{prop.metric}"
            owner = self._metric_owner.get(prop.metric) if is_name(prop.metric) else None
            if owner is None:
                errors.append(
                    ValidationError(
                        rule="propagation-metric-exists",
                        message=f'Propagation references nonexistent metric "{prop.metric}"',
                        path=base_path,
                    )
                )
                continue

            if not prop.path:
                errors.append(
                    ValidationError(
                        rule="propagation-path-nonempty",
                        message=(
                            f'Propagation for "{prop.metric}" has an empty path; '
                            "omit the propagation to use reserve"
                        ),
                        path=base_path,
                    )
                )
                continue

            metric_def = find_metric_def(self.manifest.entities, prop.metric)
            current = owner.name
            visited = {current}

            for i, edge in enumerate(prop.path):
                hop_path = f"{base_path}.path[{i}]"
                rel = (
                    self._relationships.get(edge.relationship)
                    if is_name(edge.relationship)
                    else None
                )
                target_known = (
                    is_name(edge.target_entity) and edge.target_entity in self._entities
                )

                if rel is None:
                    errors.append(
                        ValidationError(
                            rule="propagation-relationship-exists",
                            message=(
                                f'Propagation for "{prop.metric}" references nonexistent '
                                f'relationship "{edge.relationship}"'
                            ),
                            path=hop_path,
                        )
                    )

                if not target_known:
                    errors.append(
                        ValidationError(
                            rule="propagation-entity-exists",
                            message=(
                                f'Propagation for "{prop.metric}" references nonexistent '
                                f'target entity "{edge.target_entity}"'
                            ),
                            path=hop_path,
                        )
                    )

                # Malformed `between` is already reported once per relationship
                if (
                    rel is not None
                    and target_known
                    and rel.endpoints is not None
                    and not rel.connects(current, edge.target_entity)
                ):
                    errors.append(
                        ValidationError(
                            rule="propagation-path-connected",
                            message=(
                                f'Propagation for "{prop.metric}": relationship '
                                f'"{edge.relationship}" does not connect "{current}" '
                                f'to "{edge.target_entity}"'
                            ),
                            path=hop_path,
                        )
                    )

                if edge.strategy not in valid_strategies:
                    errors.append(
                        ValidationError(
                            rule="valid-strategy",
                            message=(
                                f'Propagation for "{prop.metric}" has invalid strategy '
                                f'"{edge.strategy}"; must be one of: '
                                f"{', '.join(valid_strategies)}"
                            ),
                            path=hop_path,
                        )
                    )

                if edge.strategy in WEIGHTED_STRATEGIES and not edge.weight:
                    errors.append(
                        ValidationError(
                            rule="strategy-weight-required",
                            message=(
                                f'Propagation for "{prop.metric}": strategy '
                                f'"{edge.strategy}" requires a weight'
                            ),
                            path=hop_path,
                        )
                    )

                if is_name(edge.target_entity) and edge.target_entity in visited:
                    errors.append(
                        ValidationError(
                            rule="propagation-no-cycle",
                            message=(
                                f'Propagation for "{prop.metric}" creates a cycle: '
                                f'"{edge.target_entity}" already visited'
                            ),
                            path=hop_path,
                        )
                    )
                if is_name(edge.target_entity):
                    visited.add(edge.target_entity)

                if (
                    metric_def is not None
                    and metric_def.nature == "non-additive"
                    and edge.strategy in NON_ADDITIVE_FORBIDDEN
                ):
                    errors.append(
                        ValidationError(
                            rule="non-additive-strategy",
                            message=(
                                f'Non-additive metric "{prop.metric}" cannot use '
                                f'"{edge.strategy}" strategy; must use "sum_over_sum" '
                                'or "reserve"'
                            ),
                            path=hop_path,
                        )
                    )

                current = edge.target_entity

        return errors

    def _check_tables(self) -> list[ValidationError]:
        """Table grain entities and metrics exist and are listed once."""
        errors = []
        for table in self.manifest.bft_tables:
            seen_entities: set[str] = set()
            for entity_name in table.entities:
                if is_name(entity_name) and entity_name in seen_entities:
                    errors.append(
                        ValidationError(
                            rule="table-entity-unique",
                            message=(
                                f'Table "{table.name}" lists entity "{entity_name}" '
                                "more than once"
                            ),
                            path=f"bft_tables.{table.name}.entities",
                        )
                    )

                if not is_name(entity_name) or entity_name not in self._entities:
                    errors.append(
                        ValidationError(
                            rule="table-entity-exists",
                            message=(
                                f'Table "{table.name}" references nonexistent '
                                f'entity "{entity_name}"'
                            ),
                            path=f"bft_tables.{table.name}.entities.{entity_name}",
                        )
                    )
                if is_name(entity_name):
                    seen_entities.add(entity_name)

            seen_metrics: set[str] = set()
            for metric_name in table.metrics:
                if is_name(metric_name) and metric_name in seen_metrics:
                    errors.append(
                        ValidationError(
                            rule="table-metric-unique",
                            message=(
                                f'Table "{table.name}" lists metric "{metric_name}" '
                                "more than once"
                            ),
                            path=f"bft_tables.{table.name}.metrics",
                        )
                    )

                if not is_name(metric_name) or metric_name not in self._metric_owner:
                    errors.append(
                        ValidationError(
                            rule="table-metric-exists",
                            message=(
                                f'Table "{table.name}" references nonexistent '
                                f'metric "{metric_name}"'
                            ),
                            path=f"bft_tables.{table.name}.metrics.{metric_name}",
                        )
                    )
                if is_name(metric_name):
                    seen_metrics.add(metric_name)
        return errors


def _duplicates(names: list[str], kind: str, collection: str) -> list[ValidationError]:
    """One error per repeated occurrence after the first."""
    errors = []
    seen: set[str] = set()
    for name in names:
        if not is_name(name):
            continue
        if name in seen:
            errors.append(
                ValidationError(
                    rule="no-duplicates",
                    message=f'Duplicate {kind} name: "{name}"',
                    path=f"{collection}.{name}",
                )
            )
        seen.add(name)
    return errors


def validate(manifest: Manifest) -> list[ValidationError]:
    """Validate a manifest and return every error found."""
    return ManifestValidator(manifest).validate()


def check_manifest(manifest: Manifest) -> None:
    """
    Validate a manifest and fail loudly.

    Raises:
        ManifestValidationError: If any validation error is found
    """
    errors = validate(manifest)
    if errors:
        raise ManifestValidationError(errors)
