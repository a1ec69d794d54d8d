"""Fixtures for the decision graph tests."""

import pytest

from dtcheck.decision_graph.model import (
    BranchLabel,
    DecisionProject,
    Edge,
    Node,
    NodeKind,
    Variable,
)


@pytest.fixture()
def temp_variable() -> Variable:
    """A two-valued temperature variable."""
    return Variable(id="v_temp", name="Temp", domain=["LOW", "HIGH"])


@pytest.fixture()
def mode_variable() -> Variable:
    """A two-valued mode variable."""
    return Variable(id="v_mode", name="Mode", domain=["A", "B"])


@pytest.fixture()
def simple_project(temp_variable: Variable) -> DecisionProject:
    """Root -> D1 (Temp == HIGH); yes -> L1, no -> L2."""
    return DecisionProject(
        variables=[temp_variable],
        nodes=[
            Node(id="root", kind=NodeKind.ROOT, external_id="R0"),
            Node(
                id="d1",
                kind=NodeKind.DECISION,
                external_id="D1",
                expression="Temp == HIGH",
            ),
            Node(id="l1", kind=NodeKind.LEAF, external_id="L1", label="Cool"),
            Node(id="l2", kind=NodeKind.LEAF, external_id="L2", label="Idle"),
        ],
        edges=[
            Edge(id="e1", source="root", target="d1", branch=BranchLabel.OUT),
            Edge(id="e2", source="d1", target="l1", branch=BranchLabel.YES),
            Edge(id="e3", source="d1", target="l2", branch=BranchLabel.NO),
        ],
    )
