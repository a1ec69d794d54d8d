"""Structural validation of a DecisionProject.

Checks graph integrity, branch labelling, guard and invariant expressions,
and test case assignments. Every check returns a list of error messages so
that an editor can show all problems at once.
"""

from __future__ import annotations

from collections import Counter

from dtcheck.decision_graph.exceptions import (
    ExpressionSyntaxError,
    InvalidDomainValueError,
    UnknownIdentifierError,
)
from dtcheck.decision_graph.expressions import validate_expression
from dtcheck.decision_graph.model import BranchLabel, DecisionProject, NodeKind


def validate_project(project: DecisionProject) -> list[str]:
    """Run all structural validation checks on a project.

    Args:
        project: The project snapshot to validate.

    Returns:
        A list of error messages (empty if valid).
    """
    errors: list[str] = []

    errors.extend(_validate_unique_ids(project))
    errors.extend(_validate_root(project))
    errors.extend(_validate_edge_refs(project))
    errors.extend(_validate_branches(project))
    errors.extend(_validate_guards(project))
    errors.extend(_validate_invariants(project))
    errors.extend(_validate_test_cases(project))

    return errors


def _duplicates(ids: list[str]) -> list[str]:
    return sorted(i for i, n in Counter(ids).items() if n > 1)


def _validate_unique_ids(project: DecisionProject) -> list[str]:
    """Check that node, edge and variable ids are unique."""
    errors: list[str] = []
    for kind, ids in (
        ("node", [n.id for n in project.nodes]),
        ("edge", [e.id for e in project.edges]),
        ("variable", [v.id for v in project.variables]),
    ):
        dupes = _duplicates(ids)
        if dupes:
            errors.append(f"Duplicate {kind} ids: {dupes}")
    return errors


def _validate_root(project: DecisionProject) -> list[str]:
    """Check that there is exactly one root with exactly one output edge."""
    roots = [n for n in project.nodes if n.kind == NodeKind.ROOT]
    if not roots:
        return ["Graph has no root node."]
    errors: list[str] = []
    if len(roots) > 1:
        errors.append(f"Graph has {len(roots)} root nodes: {[r.id for r in roots]}")
    for root in roots:
        outputs = [
            e for e in project.outgoing(root.id) if e.branch in (BranchLabel.OUT, None)
        ]
        if len(outputs) != 1:
            errors.append(
                f"Root '{root.id}': expected exactly one output edge, found {len(outputs)}."
            )
    return errors


def _validate_edge_refs(project: DecisionProject) -> list[str]:
    """Check that every edge source and target references an existing node."""
    errors: list[str] = []
    for edge in project.edges:
        if project.get_node(edge.source) is None:
            errors.append(f"Edge '{edge.id}': source '{edge.source}' does not exist.")
        if project.get_node(edge.target) is None:
            errors.append(f"Edge '{edge.id}': target '{edge.target}' does not exist.")
    return errors


def _validate_branches(project: DecisionProject) -> list[str]:
    """Check branch labels: one yes/no edge per decision, nothing out of a leaf."""
    errors: list[str] = []
    for node in project.nodes:
        outgoing = project.outgoing(node.id)
        if node.kind == NodeKind.LEAF and outgoing:
            errors.append(f"Leaf '{node.result_id}': has {len(outgoing)} outgoing edge(s).")
        elif node.kind == NodeKind.DECISION:
            counts = Counter(e.branch for e in outgoing)
            for branch in (BranchLabel.YES, BranchLabel.NO):
                if counts[branch] > 1:
                    errors.append(
                        f"Decision '{node.result_id}': {counts[branch]} '{branch.value}' edges."
                    )
    return errors


def _validate_guards(project: DecisionProject) -> list[str]:
    """Check that every decision guard is present and valid."""
    errors: list[str] = []
    for node in project.nodes:
        if node.kind != NodeKind.DECISION:
            continue
        if not node.expression.strip():
            errors.append(f"Decision '{node.result_id}': expression cannot be empty.")
            continue
        try:
            validate_expression(node.expression, project.variables)
        except (
            ExpressionSyntaxError,
            UnknownIdentifierError,
            InvalidDomainValueError,
        ) as e:
            errors.append(f"Decision '{node.result_id}': {e.message}")
    return errors


def _validate_invariants(project: DecisionProject) -> list[str]:
    """Check invariant conditions and that each expects an existing leaf."""
    errors: list[str] = []
    leaf_ids = {n.result_id for n in project.leaves}
    for inv in project.invariants:
        try:
            validate_expression(inv.condition, project.variables)
        except (
            ExpressionSyntaxError,
            UnknownIdentifierError,
            InvalidDomainValueError,
        ) as e:
            errors.append(f"Invariant '{inv.name}': {e.message}")
        if inv.expected_result not in leaf_ids:
            errors.append(
                f"Invariant '{inv.name}': expected result '{inv.expected_result}' is not a leaf."
            )
    return errors


def _validate_test_cases(project: DecisionProject) -> list[str]:
    """Check that test cases only assign declared variables to legal values."""
    errors: list[str] = []
    for tc in project.test_cases:
        for name, value in tc.values.items():
            variable = project.variable_by_name(name)
            if variable is None:
                errors.append(f"Test case '{tc.name}': unknown variable '{name}'.")
            elif value not in variable.domain:
                errors.append(
                    f"Test case '{tc.name}': invalid value '{value}' for '{name}'."
                )
    return errors
