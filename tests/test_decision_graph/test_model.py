"""Tests for decision_graph.model module."""

import json

import pytest
from pydantic import ValidationError

from dtcheck.decision_graph.model import (
    BranchLabel,
    DecisionProject,
    Edge,
    Node,
    NodeKind,
    Variable,
    is_valid_identifier,
)


class TestVariable:
    """Tests for Variable validation."""

    def test_valid_variable(self):
        var = Variable(name="Temp", domain=["LOW", "HIGH"])
        assert var.domain == ["LOW", "HIGH"]
        assert var.id

    def test_invalid_name(self):
        with pytest.raises(ValidationError, match="Invalid variable name"):
            Variable(name="1Temp", domain=["LOW"])

    def test_reserved_name(self):
        with pytest.raises(ValidationError, match="reserved word"):
            Variable(name="true", domain=["LOW"])

    def test_empty_domain(self):
        with pytest.raises(ValidationError, match="at least one possible value"):
            Variable(name="Temp", domain=[])

    def test_numeric_value_rejected(self):
        with pytest.raises(ValidationError, match="No raw numbers allowed"):
            Variable(name="Speed", domain=["10", "20"])

    def test_reserved_value_rejected(self):
        with pytest.raises(ValidationError, match="reserved word"):
            Variable(name="Flag", domain=["null", "SET"])

    def test_duplicate_values_rejected(self):
        with pytest.raises(ValidationError, match="duplicate values"):
            Variable(name="Temp", domain=["LOW", "LOW"])


class TestIdentifiers:
    """Tests for identifier checks."""

    @pytest.mark.parametrize("text", ["Temp", "_x", "a1", "HIGH_2"])
    def test_valid(self, text):
        assert is_valid_identifier(text)

    @pytest.mark.parametrize("text", ["", "1a", "a-b", "a b", "a.b"])
    def test_invalid(self, text):
        assert not is_valid_identifier(text)


class TestNodeAndEdge:
    """Tests for Node and Edge."""

    def test_result_id_defaults_to_id(self):
        node = Node(id="n1", kind=NodeKind.LEAF)
        assert node.result_id == "n1"
        assert node.display == "n1 (Leaf)"

    def test_result_id_uses_external_id(self):
        node = Node(id="n1", kind=NodeKind.LEAF, external_id="L1", label="Stop")
        assert node.result_id == "L1"
        assert node.display == "L1 (Stop)"

    def test_branch_defaults_to_none(self):
        assert Edge(id="e", source="a", target="b").branch is None

    def test_nodes_are_frozen(self):
        node = Node(id="n1", kind=NodeKind.LEAF)
        with pytest.raises(ValidationError):
            node.label = "changed"


class TestDecisionProject:
    """Tests for the project snapshot and its lookups."""

    def test_lookups(self, simple_project):
        assert simple_project.root is not None
        assert simple_project.root.id == "root"
        assert [n.id for n in simple_project.leaves] == ["l1", "l2"]
        assert simple_project.get_node("d1").expression == "Temp == HIGH"
        assert simple_project.get_node("missing") is None
        assert simple_project.get_edge("e2").target == "l1"
        assert [e.id for e in simple_project.outgoing("d1")] == ["e2", "e3"]
        assert simple_project.outgoing("l1") == []
        assert simple_project.variable_by_name("Temp").id == "v_temp"

    def test_find_edge(self, simple_project):
        assert simple_project.find_edge("d1", BranchLabel.NO).id == "e3"
        assert simple_project.find_edge("root", BranchLabel.OUT, None).id == "e1"
        assert simple_project.find_edge("l1", BranchLabel.YES) is None

    def test_no_root(self):
        project = DecisionProject(nodes=[Node(id="l", kind=NodeKind.LEAF)])
        assert project.root is None

    def test_duplicate_variable_names(self):
        with pytest.raises(ValidationError, match="Duplicate variable names"):
            DecisionProject(
                variables=[
                    Variable(name="Temp", domain=["LOW"]),
                    Variable(name="Temp", domain=["HIGH"]),
                ]
            )

    def test_replace_builds_new_lookups(self, simple_project):
        replaced = simple_project.replace(edges=simple_project.edges[:1])
        assert replaced.outgoing("d1") == []
        assert len(simple_project.outgoing("d1")) == 2

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "project.yaml"
        path.write_text(
            """
variables:
  - {id: v_temp, name: Temp, domain: [LOW, HIGH]}
nodes:
  - {id: root, kind: root}
  - {id: d1, kind: decision, expression: "Temp == HIGH", position: [10, 20]}
  - {id: l1, kind: leaf}
edges:
  - {id: e1, source: root, target: d1, branch: out}
  - {id: e2, source: d1, target: l1, branch: yes}
""",
            encoding="utf-8",
        )
        project = DecisionProject.from_file(path)
        assert project.get_edge("e2").branch == BranchLabel.YES
        assert project.get_node("d1").position == (10, 20)
        assert project.variables[0].domain == ["LOW", "HIGH"]

    def test_yaml_on_off_stay_strings(self, tmp_path):
        path = tmp_path / "fan.yaml"
        path.write_text(
            """
variables:
  - {id: v_fan, name: Fan, domain: [ON, OFF]}
  - {id: v_ok, name: Confirmed, domain: [Y, N, yes, no]}
nodes:
  - {id: root, kind: root}
  - {id: d1, kind: decision, expression: "Fan == ON"}
  - {id: l1, kind: leaf}
  - {id: l2, kind: leaf}
edges:
  - {id: e1, source: root, target: d1}
  - {id: e2, source: d1, target: l1, branch: yes}
  - {id: e3, source: d1, target: l2, branch: no}
test_cases:
  - {id: t1, name: Fan on, values: {Fan: ON, Confirmed: N}}
""",
            encoding="utf-8",
        )
        project = DecisionProject.from_file(path)
        assert project.variables[0].domain == ["ON", "OFF"]
        assert project.variables[1].domain == ["Y", "N", "yes", "no"]
        assert project.test_cases[0].values == {"Fan": "ON", "Confirmed": "N"}
        assert project.get_edge("e3").branch == BranchLabel.NO

    def test_from_json_file(self, tmp_path, simple_project):
        path = tmp_path / "project.json"
        path.write_text(simple_project.model_dump_json(), encoding="utf-8")
        loaded = DecisionProject.from_file(path)
        assert loaded == simple_project

    def test_from_invalid_file(self, tmp_path):
        path = tmp_path / "project.json"
        path.write_text(json.dumps({"nodes": [{"id": "x", "kind": "banana"}]}))
        with pytest.raises(ValidationError):
            DecisionProject.from_file(path)
