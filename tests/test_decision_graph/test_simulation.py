"""Tests for decision_graph.simulation module."""

import pytest

from dtcheck.decision_graph.exceptions import GraphWalkFault
from dtcheck.decision_graph.model import DecisionProject, TestCase
from dtcheck.decision_graph.simulation import coverage, run_test_cases, simulate


class TestSimulate:
    """Tests for simulate."""

    def test_trace(self, simple_project):
        result = simulate(simple_project, {"Temp": "HIGH"})
        assert result.visited_node_ids == ["root", "d1", "l1"]
        assert result.visited_edge_ids == ["e1", "e2"]
        assert result.terminal_result_id == "L1"
        assert result.display == "L1 (Cool)"
        assert not result.is_error

    def test_partial_assignment(self, simple_project, temp_variable, mode_variable):
        nodes = [
            n.model_copy(update={"expression": "Mode == A"}) if n.id == "d1" else n
            for n in simple_project.nodes
        ]
        project = simple_project.replace(
            variables=[temp_variable, mode_variable], nodes=nodes
        )
        result = simulate(project, {"Temp": "HIGH"})
        assert result.is_error
        assert result.fault == GraphWalkFault.MISSING_VARIABLE
        assert result.display == "Error: Missing value for 'Mode' (Mode == A)"
        assert result.terminal_result_id is None
        assert result.visited_node_ids == ["root", "d1"]
        assert result.visited_edge_ids == ["e1"]

    def test_max_steps(self, simple_project):
        result = simulate(simple_project, {"Temp": "LOW"}, max_steps=1)
        assert result.fault == GraphWalkFault.TOO_MANY_STEPS
        assert result.visited_node_ids == ["root"]


class TestRunTestCases:
    """Tests for run_test_cases and coverage."""

    @pytest.fixture()
    def cases(self):
        return [
            TestCase(id="hot", name="Hot day", values={"Temp": "HIGH"}),
            TestCase(id="cold", name="Cold day", values={"Temp": "LOW"}),
        ]

    def test_keyed_by_id(self, simple_project, cases):
        results = run_test_cases(cases, simple_project)
        assert list(results) == ["hot", "cold"]
        assert results["hot"].terminal_result_id == "L1"
        assert results["cold"].terminal_result_id == "L2"

    def test_partial_coverage(self, simple_project, cases):
        results = run_test_cases(cases[:1], simple_project)
        report = coverage(results.values(), simple_project)
        assert report.visited_node_ids == ["root", "d1", "l1"]
        assert report.unvisited_node_ids == ["l2"]
        assert report.unvisited_edge_ids == ["e3"]
        assert report.node_ratio == pytest.approx(0.75)
        assert report.edge_ratio == pytest.approx(2 / 3)

    def test_full_coverage(self, simple_project, cases):
        report = coverage(run_test_cases(cases, simple_project).values(), simple_project)
        assert report.node_ratio == 1.0
        assert report.edge_ratio == 1.0

    def test_empty_project_coverage(self):
        report = coverage([], DecisionProject())
        assert report.node_ratio == 0.0
