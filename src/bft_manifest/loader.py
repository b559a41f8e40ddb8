"""
YAML loading and saving for BFT manifests.

The loader only checks shape: the document must be a mapping and each
top-level collection a list of mappings. Field values are kept as found
so that bft_manifest.validation reports data problems with full context.

Usage:
    manifest = load_manifest(Path("manifests/university.yaml"))
    text = serialize_manifest(manifest)
    assert parse_manifest(text) == manifest
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .model import (
    DEFAULT_PLACEHOLDER_LABEL,
    BftTable,
    Entity,
    Manifest,
    MetricDef,
    MetricPropagation,
    PlaceholderLabels,
    PropagationEdge,
    Relationship,
)
from .validation import check_manifest

logger = logging.getLogger(__name__)

COLLECTIONS = ("entities", "relationships", "propagations", "bft_tables")


class ManifestLoadError(ValueError):
    """Raised when a document cannot be turned into a manifest at all."""

    pass


def _mapping_list(raw: dict, key: str, where: str) -> list[dict]:
    """Get a list of mappings, treating an omitted key as empty."""
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestLoadError(f"{where}.{key}: expected a list, got {type(value).__name__}")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ManifestLoadError(
                f"{where}.{key}[{i}]: expected a mapping, got {type(item).__name__}"
            )
    return value


def _scalar_list(raw: dict, key: str, where: str) -> list[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestLoadError(f"{where}.{key}: expected a list, got {type(value).__name__}")
    return list(value)


def _parse_entity(raw: dict) -> Entity:
    where = f"entities.{raw.get('name')}"
    return Entity(
        name=raw.get("name"),
        role=raw.get("role", "leaf"),
        detail=raw.get("detail", True),
        estimated_rows=raw.get("estimated_rows"),
        metrics=[
            MetricDef(name=m.get("name"), type=m.get("type"), nature=m.get("nature"))
            for m in _mapping_list(raw, "metrics", where)
        ],
    )


def _parse_relationship(raw: dict) -> Relationship:
    return Relationship(
        name=raw.get("name"),
        between=raw.get("between"),
        type=raw.get("type", "many-to-many"),
        estimated_links=raw.get("estimated_links"),
        weight_column=raw.get("weight_column"),
    )


def _parse_propagation(raw: dict) -> MetricPropagation:
    where = f"propagations.{raw.get('metric')}"
    return MetricPropagation(
        metric=raw.get("metric"),
        path=[
            PropagationEdge(
                relationship=edge.get("relationship"),
                target_entity=edge.get("target_entity"),
                strategy=edge.get("strategy"),
                weight=edge.get("weight"),
            )
            for edge in _mapping_list(raw, "path", where)
        ],
    )


def _parse_table(raw: dict) -> BftTable:
    where = f"bft_tables.{raw.get('name')}"
    return BftTable(
        name=raw.get("name"),
        entities=_scalar_list(raw, "entities", where),
        metrics=_scalar_list(raw, "metrics", where),
    )


def _parse_labels(raw: Any) -> PlaceholderLabels:
    if raw is None:
        return PlaceholderLabels()
    if not isinstance(raw, dict):
        raise ManifestLoadError(
            f"placeholder_labels: expected a mapping, got {type(raw).__name__}"
        )
    return PlaceholderLabels(
        reserve=raw.get("reserve", DEFAULT_PLACEHOLDER_LABEL),
        elimination=raw.get("elimination", DEFAULT_PLACEHOLDER_LABEL),
    )


def parse_manifest(text: str) -> Manifest:
    """
    Parse a YAML document into a Manifest.

    Omitted top-level collections become empty lists.

    Raises:
        ManifestLoadError: If the document is not valid YAML, is not a
            mapping, or a collection is not a list of mappings
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Invalid manifest: {e}") from e

    if not isinstance(raw, dict):
        raise ManifestLoadError("Invalid manifest: expected a YAML mapping")

    return Manifest(
        entities=[_parse_entity(e) for e in _mapping_list(raw, "entities", "manifest")],
        relationships=[
            _parse_relationship(r) for r in _mapping_list(raw, "relationships", "manifest")
        ],
        propagations=[
            _parse_propagation(p) for p in _mapping_list(raw, "propagations", "manifest")
        ],
        bft_tables=[_parse_table(t) for t in _mapping_list(raw, "bft_tables", "manifest")],
        placeholder_labels=_parse_labels(raw.get("placeholder_labels")),
    )


def manifest_to_dict(manifest: Manifest) -> dict:
    """
    Plain-data form of a manifest in canonical key order.

    Optional fields that are None are omitted.
    """

    def between(value):
        return list(value) if isinstance(value, (list, tuple)) else value

    def relationship(rel: Relationship) -> dict:
        out = {
            "name": rel.name,
            "between": between(rel.between),
            "type": rel.type,
            "estimated_links": rel.estimated_links,
        }
        if rel.weight_column is not None:
            out["weight_column"] = rel.weight_column
        return out

    def edge(e: PropagationEdge) -> dict:
        out = {
            "relationship": e.relationship,
            "target_entity": e.target_entity,
            "strategy": e.strategy,
        }
        if e.weight is not None:
            out["weight"] = e.weight
        return out

    return {
        "entities": [
            {
                "name": e.name,
                "role": e.role,
                "detail": e.detail,
                "estimated_rows": e.estimated_rows,
                "metrics": [
                    {"name": m.name, "type": m.type, "nature": m.nature} for m in e.metrics
                ],
            }
            for e in manifest.entities
        ],
        "relationships": [relationship(r) for r in manifest.relationships],
        "propagations": [
            {"metric": p.metric, "path": [edge(e) for e in p.path]}
            for p in manifest.propagations
        ],
        "bft_tables": [
            {"name": t.name, "entities": list(t.entities), "metrics": list(t.metrics)}
            for t in manifest.bft_tables
        ],
        "placeholder_labels": {
            "reserve": manifest.placeholder_labels.reserve,
            "elimination": manifest.placeholder_labels.elimination,
        },
    }


def serialize_manifest(manifest: Manifest) -> str:
    """Canonical YAML text for a manifest."""
    return yaml.safe_dump(
        manifest_to_dict(manifest),
        indent=2,
        width=120,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def load_manifest(manifest_path: Path, validate: bool = True) -> Manifest:
    """
    Load and optionally validate a manifest file.

    Args:
        manifest_path: Path to manifest YAML file
        validate: If True, validate after parsing (default: True)

    Raises:
        ManifestLoadError: If the file is not a well-formed manifest
        ManifestValidationError: If validation is enabled and fails
    """
    with open(manifest_path, encoding="utf-8") as f:
        manifest = parse_manifest(f.read())
    logger.info(
        "Loaded manifest %s (%s)",
        manifest_path,
        ", ".join(f"{len(getattr(manifest, key))} {key}" for key in COLLECTIONS),
    )

    if validate:
        check_manifest(manifest)
    return manifest


def save_manifest(manifest: Manifest, manifest_path: Path) -> None:
    """Write a manifest as canonical YAML."""
    Path(manifest_path).write_text(serialize_manifest(manifest), encoding="utf-8")
    logger.info("Saved manifest %s", manifest_path)
