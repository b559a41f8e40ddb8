"""
Shared fixtures for manifest tests.

Provides:
- The university schema (Student, Class, Professor) as model objects
- A valid university manifest built in code
- Paths to the reference manifests under manifests/
"""

from pathlib import Path

import pytest

from bft_manifest.model import (
    BftTable,
    Entity,
    Manifest,
    MetricDef,
    MetricPropagation,
    PropagationEdge,
    Relationship,
)

MANIFESTS_DIR = Path(__file__).parent.parent / "manifests"
UNIVERSITY_PATH = MANIFESTS_DIR / "university.yaml"
UNIVERSITY_OPS_PATH = MANIFESTS_DIR / "university_ops.yaml"


@pytest.fixture(scope="session")
def university_path():
    return UNIVERSITY_PATH


@pytest.fixture(scope="session")
def university_ops_path():
    return UNIVERSITY_OPS_PATH


@pytest.fixture
def student():
    return Entity(
        name="Student",
        role="leaf",
        detail=True,
        estimated_rows=45000,
        metrics=[
            MetricDef(name="tuition_paid", type="currency", nature="additive"),
            MetricDef(name="satisfaction_score", type="rating", nature="non-additive"),
        ],
    )


@pytest.fixture
def class_entity():
    return Entity(
        name="Class",
        role="bridge",
        detail=True,
        estimated_rows=1200,
        metrics=[MetricDef(name="class_budget", type="currency", nature="additive")],
    )


@pytest.fixture
def professor():
    return Entity(
        name="Professor",
        role="leaf",
        detail=True,
        estimated_rows=800,
        metrics=[
            MetricDef(name="salary", type="currency", nature="additive"),
            MetricDef(name="years_experience", type="integer", nature="non-additive"),
        ],
    )


@pytest.fixture
def enrollment():
    return Relationship(
        name="Enrollment",
        between=["Student", "Class"],
        type="many-to-many",
        estimated_links=120000,
    )


@pytest.fixture
def assignment():
    return Relationship(
        name="Assignment",
        between=["Class", "Professor"],
        type="many-to-many",
        estimated_links=1800,
    )


@pytest.fixture
def entities(student, class_entity, professor):
    return [student, class_entity, professor]


@pytest.fixture
def relationships(enrollment, assignment):
    return [enrollment, assignment]


@pytest.fixture
def tuition_propagation():
    """tuition_paid allocated Student -> Class -> Professor."""
    return MetricPropagation(
        metric="tuition_paid",
        path=[
            PropagationEdge("Enrollment", "Class", "allocation", weight="credit_hours_share"),
            PropagationEdge("Assignment", "Professor", "allocation", weight="teaching_share"),
        ],
    )


@pytest.fixture
def manifest(entities, relationships, tuition_propagation):
    """A valid university manifest with one three-entity table."""
    return Manifest(
        entities=entities,
        relationships=relationships,
        propagations=[
            tuition_propagation,
            MetricPropagation(
                metric="class_budget",
                path=[PropagationEdge("Enrollment", "Student", "elimination")],
            ),
            MetricPropagation(
                metric="satisfaction_score",
                path=[
                    PropagationEdge(
                        "Enrollment", "Class", "sum_over_sum", weight="enrollment_count"
                    )
                ],
            ),
        ],
        bft_tables=[
            BftTable(
                name="department_financial",
                entities=["Student", "Class", "Professor"],
                metrics=["tuition_paid", "class_budget", "salary"],
            ),
            BftTable(
                name="student_advising",
                entities=["Student", "Class"],
                metrics=["tuition_paid", "satisfaction_score"],
            ),
        ],
    )
