"""Tests for decision_graph.visualize module."""

from dtcheck.decision_graph.model import Invariant, Node, NodeKind
from dtcheck.decision_graph.visualize import (
    _build_mermaid_diagram,
    _sanitize_mermaid_id,
    render_report,
    render_report_from_file,
)
from dtcheck.decision_graph.reachability import analyze_states


class TestMermaid:
    """Tests for the mermaid diagram."""

    def test_sanitize_id(self):
        assert _sanitize_mermaid_id("node-1.a b") == "node_1_a_b"

    def test_shapes_and_edges(self, simple_project):
        diagram = _build_mermaid_diagram(simple_project, analyze_states(simple_project))
        assert diagram.startswith("flowchart TD")
        assert '    root(("R0"))' in diagram
        assert '    d1{"D1: Temp == HIGH"}' in diagram
        assert '    l1(["L1 (Cool)"])' in diagram
        assert "    root --> d1" in diagram
        assert '    d1 -->|"yes"| l1' in diagram
        assert "unreachable" not in diagram

    def test_unreachable_nodes_marked(self, simple_project):
        project = simple_project.replace(
            nodes=[*simple_project.nodes, Node(id="island-1", kind=NodeKind.LEAF)]
        )
        diagram = _build_mermaid_diagram(project, analyze_states(project))
        assert "    class island_1 unreachable" in diagram


class TestRenderReport:
    """Tests for render_report and render_report_from_file."""

    def test_sections(self, simple_project):
        md = render_report(simple_project)
        for heading in (
            "# Decision Tree Analysis",
            "## Graph",
            "## Variables",
            "## Node States",
            "## Validation",
            "## Model Check",
        ):
            assert heading in md
        assert "```mermaid" in md
        assert "All structural validation checks passed." in md
        assert "| `L1` | leaf | Cool | yes | Temp = HIGH |" in md

    def test_without_model_check(self, simple_project):
        assert "## Model Check" not in render_report(simple_project, run_model_checker=False)

    def test_violations_listed(self, simple_project):
        project = simple_project.replace(
            invariants=[Invariant(name="Hot idles", condition="Temp == HIGH", expected_result="L2")]
        )
        md = render_report(project)
        assert "### Violations" in md
        assert "| Temp=HIGH | L1 (Cool) | Hot idles |" in md

    def test_from_file_default_output(self, tmp_path, simple_project):
        project_path = tmp_path / "project.json"
        project_path.write_text(simple_project.model_dump_json(), encoding="utf-8")
        md = render_report_from_file(project_path)
        assert (tmp_path / "analysis.md").read_text(encoding="utf-8") == md

    def test_from_file_explicit_output(self, tmp_path, simple_project):
        project_path = tmp_path / "project.json"
        project_path.write_text(simple_project.model_dump_json(), encoding="utf-8")
        out = tmp_path / "out.md"
        render_report_from_file(project_path, out)
        assert out.exists()
        assert not (tmp_path / "analysis.md").exists()
