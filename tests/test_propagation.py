"""
Tests for strategy resolution and table plans.
"""

import pytest

from bft_manifest.model import (
    BftTable,
    Manifest,
    MetricPropagation,
    PlaceholderLabels,
    PropagationEdge,
)
from bft_manifest.propagation import (
    active_chain,
    find_edge,
    needs_placeholder_rows,
    plan_table,
    strategy_for,
)


class TestStrategyFor:
    """strategy_for() is total and defaults to reserve."""

    def test_missing_propagation_is_reserve(self):
        assert strategy_for(None, "Professor") == "reserve"

    def test_unreached_entity_is_reserve(self, tuition_propagation):
        assert strategy_for(tuition_propagation, "Department") == "reserve"

    def test_declared_hop(self, tuition_propagation):
        assert strategy_for(tuition_propagation, "Class") == "allocation"

    def test_find_edge_returns_first_matching_hop(self, tuition_propagation):
        edge = find_edge(tuition_propagation, "Professor")
        assert edge.relationship == "Assignment"
        assert edge.weight == "teaching_share"
        assert find_edge(None, "Class") is None


class TestActiveChain:
    def test_full_path_in_grain(self, tuition_propagation):
        chain = active_chain("Student", tuition_propagation, ["Student", "Class", "Professor"])
        assert chain == ["Student", "Class", "Professor"]

    def test_hops_outside_grain_are_skipped(self, tuition_propagation):
        """Class is not in the grain, but the later Professor hop still is."""
        chain = active_chain("Student", tuition_propagation, ["Student", "Professor"])
        assert chain == ["Student", "Professor"]

    def test_no_propagation_is_home_only(self):
        assert active_chain("Professor", None, ["Student", "Professor"]) == ["Professor"]


class TestNeedsPlaceholderRows:
    @pytest.mark.parametrize(
        "grain,expected",
        [(["Professor"], False), (["Professor", "Class"], True)],
    )
    def test_implicit_reserve(self, grain, expected):
        assert needs_placeholder_rows(None, grain) is expected

    def test_allocation_only_needs_none(self, tuition_propagation):
        assert not needs_placeholder_rows(tuition_propagation, ["Student", "Class"])

    def test_elimination_in_grain(self):
        prop = MetricPropagation(
            "class_budget", [PropagationEdge("Enrollment", "Student", "elimination")]
        )
        assert needs_placeholder_rows(prop, ["Class", "Student"])

    def test_reserve_hop_outside_grain_is_inert(self):
        prop = MetricPropagation(
            "class_budget", [PropagationEdge("Enrollment", "Student", "reserve")]
        )
        assert not needs_placeholder_rows(prop, ["Class", "Professor"])


class TestPlanTable:
    """Tests for plan_table()."""

    def test_department_financial_plan(self, manifest):
        plan = plan_table(manifest, manifest.get_table("department_financial"))

        assert plan.grain == ["Student", "Class", "Professor"]
        assert list(plan.placements) == ["tuition_paid", "class_budget", "salary"]

        assert plan.strategy("tuition_paid", "Student") is None
        assert plan.placements["tuition_paid"]["Student"].is_home
        assert plan.strategy("tuition_paid", "Class") == "allocation"
        assert plan.placements["tuition_paid"]["Class"].weight == "credit_hours_share"
        assert plan.placements["tuition_paid"]["Professor"].weight == "teaching_share"

        assert plan.strategy("class_budget", "Student") == "elimination"
        assert plan.strategy("class_budget", "Professor") == "reserve"
        assert plan.strategy("salary", "Student") == "reserve"

        assert plan.placeholder_entities == ["Class", "Professor"]

    def test_allocation_plan_has_no_placeholders(self, manifest):
        plan = plan_table(manifest, manifest.get_table("student_advising"))
        assert plan.strategy("satisfaction_score", "Class") == "sum_over_sum"
        assert plan.placeholder_entities == []

    def test_placeholder_entity_listed_once(self, manifest):
        """salary and years_experience share a home entity."""
        table = BftTable("faculty", ["Class", "Professor"], ["salary", "years_experience"])
        plan = plan_table(manifest, table)
        assert plan.placeholder_entities == ["Professor"]

    def test_labels_come_from_manifest(self, entities):
        m = Manifest(
            entities=entities,
            placeholder_labels=PlaceholderLabels(elimination="<Adjustment>"),
        )
        plan = plan_table(m, BftTable("t", ["Professor"], ["salary"]))
        assert plan.reserve_label == "<Unallocated>"
        assert plan.elimination_label == "<Adjustment>"

    def test_unknown_and_out_of_grain_metrics_skipped(self, manifest):
        table = BftTable("t", ["Student", "Class"], ["endowment", "salary", "tuition_paid"])
        plan = plan_table(manifest, table)
        assert list(plan.placements) == ["tuition_paid"]
