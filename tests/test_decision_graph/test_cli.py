"""Tests for the dtcheck command line interface."""

import pytest
from click.testing import CliRunner

from dtcheck.cli import cli
from dtcheck.decision_graph.model import Invariant, TestCase


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def project_file(tmp_path, simple_project):
    project = simple_project.replace(
        test_cases=[TestCase(id="hot", name="Hot day", values={"Temp": "HIGH"})]
    )
    path = tmp_path / "project.json"
    path.write_text(project.model_dump_json(), encoding="utf-8")
    return path


@pytest.fixture()
def violating_file(tmp_path, simple_project):
    project = simple_project.replace(
        invariants=[Invariant(name="Hot idles", condition="Temp == HIGH", expected_result="L2")]
    )
    path = tmp_path / "violating.json"
    path.write_text(project.model_dump_json(), encoding="utf-8")
    return path


class TestValidateCommand:
    """Tests for `dtcheck validate`."""

    def test_valid(self, runner, project_file):
        result = runner.invoke(cli, ["validate", str(project_file)])
        assert result.exit_code == 0
        assert "All structural validation checks passed." in result.output

    def test_invalid(self, runner, tmp_path, simple_project):
        path = tmp_path / "broken.json"
        path.write_text(
            simple_project.replace(edges=simple_project.edges[1:]).model_dump_json(),
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 1
        assert "expected exactly one output edge" in result.output

    def test_unreadable_project(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"nodes": [{"id": "x", "kind": "banana"}]}', encoding="utf-8")
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 2
        assert "invalid project file" in result.output

    def test_malformed_yaml(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("nodes: {id: root, kind: root\n", encoding="utf-8")
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 2
        assert "invalid project file" in result.output


class TestAnalysisCommands:
    """Tests for reachability, state, check and simulate."""

    def test_reachability(self, runner, project_file):
        result = runner.invoke(cli, ["reachability", str(project_file)])
        assert result.exit_code == 0
        assert "L1: reachable" in result.output

    def test_node_state(self, runner, project_file):
        result = runner.invoke(cli, ["state", str(project_file), "--node", "l1"])
        assert result.exit_code == 0
        assert result.output.strip() == "Temp = HIGH"

    def test_edge_state(self, runner, project_file):
        result = runner.invoke(cli, ["state", str(project_file), "--edge", "e3"])
        assert result.output.strip() == "Temp = LOW"

    def test_state_needs_exactly_one_target(self, runner, project_file):
        result = runner.invoke(cli, ["state", str(project_file)])
        assert result.exit_code == 2

    def test_state_unknown_node(self, runner, project_file):
        result = runner.invoke(cli, ["state", str(project_file), "--node", "nope"])
        assert result.exit_code == 1
        assert "Node not found in graph: nope" in result.output

    def test_check_passes(self, runner, project_file):
        result = runner.invoke(cli, ["check", str(project_file)])
        assert result.exit_code == 0
        assert "Temp=HIGH -> L1 (Cool)" in result.output
        assert "2 combination(s), 0 fault(s), 0 violation(s)" in result.output

    def test_check_violations(self, runner, violating_file, tmp_path):
        csv_path = tmp_path / "results.csv"
        result = runner.invoke(
            cli, ["check", str(violating_file), "--violations-only", "--csv", str(csv_path)]
        )
        assert result.exit_code == 1
        assert "Temp=LOW" not in result.output
        assert "VIOLATES: Hot idles" in result.output
        assert csv_path.read_text(encoding="utf-8").startswith(
            "Temp,result,display,is_error,violations"
        )

    def test_simulate(self, runner, project_file):
        result = runner.invoke(cli, ["simulate", str(project_file)])
        assert result.exit_code == 0
        assert "[OK] Hot day: L1 (Cool)" in result.output
        assert "path: root -> d1 -> l1" in result.output
        assert "Coverage: 75% of nodes, 67% of edges" in result.output

    def test_simulate_unknown_case(self, runner, project_file):
        result = runner.invoke(cli, ["simulate", str(project_file), "--case", "nope"])
        assert result.exit_code == 1
        assert "Test case not found: nope" in result.output

    def test_report(self, runner, project_file, tmp_path):
        out = tmp_path / "report.md"
        result = runner.invoke(cli, ["report", str(project_file), "-o", str(out)])
        assert result.exit_code == 0
        assert "```mermaid" in out.read_text(encoding="utf-8")
