"""Path-sensitive variable state analysis.

For a target node, every simple path from the root is enumerated. Each path
starts from the universal state (every variable may take any domain value)
and is narrowed by the guards of the decision branches it traverses.
Contradictory paths are discarded and the survivors are unioned per
variable.

Narrowing is an over-approximation: only top-level ``Var == Value`` /
``Var != Value`` conjuncts narrow on a "yes" branch, and only a single
non-compound comparison is negated on a "no" branch.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Final, Union

from dtcheck.decision_graph.exceptions import (
    ExpressionSyntaxError,
    UnknownEdgeError,
    UnknownNodeError,
)
from dtcheck.decision_graph.expressions import (
    And,
    Or,
    conjuncts,
    extract_comparison,
    parse_expression,
)
from dtcheck.decision_graph.model import (
    BranchLabel,
    DecisionProject,
    Edge,
    NodeKind,
    Variable,
)

logger = logging.getLogger(__name__)

VariableState = dict[str, frozenset[str]]
"""Variable id to the set of values still possible."""

_NEGATED = {"==": "!=", "!=": "=="}


class _Unreachable:
    """Sentinel type for a node no assignment can reach."""

    _instance: _Unreachable | None = None

    def __new__(cls) -> _Unreachable:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNREACHABLE"


UNREACHABLE: Final = _Unreachable()

StateResult = Union[VariableState, _Unreachable]


def universal_state(variables: Iterable[Variable]) -> VariableState:
    """Every variable unrestricted to its full domain."""
    return {v.id: frozenset(v.domain) for v in variables}


def is_contradiction(state: Mapping[str, frozenset[str]]) -> bool:
    """True when some variable has no possible value left."""
    return any(not values for values in state.values())


def apply_constraint(
    state: VariableState,
    variable: Variable,
    operator: str,
    value: str,
) -> VariableState:
    """Narrow one variable by ``variable <operator> value``.

    Returns a new state; variables absent from ``state`` are left alone.
    """
    current = state.get(variable.id)
    if current is None:
        return state
    if operator == "==":
        narrowed = frozenset({value}) if value in current else frozenset()
    elif operator == "!=":
        narrowed = current - {value}
    else:
        return state
    new_state = dict(state)
    new_state[variable.id] = narrowed
    return new_state


def apply_branch(
    state: VariableState,
    expression: str,
    branch: BranchLabel | None,
    variables: Iterable[Variable],
) -> VariableState:
    """Narrow ``state`` by taking ``branch`` out of a decision guarded by ``expression``.

    This is the single narrowing step shared by node and edge state queries.
    Branches other than yes/no pass the state through unchanged, as do
    guards that fail to parse.
    """
    if branch not in (BranchLabel.YES, BranchLabel.NO) or not expression.strip():
        return state
    try:
        tree = parse_expression(expression)
    except ExpressionSyntaxError:
        logger.debug("Skipping narrowing for unparseable guard %r", expression)
        return state

    by_name = {v.name: v for v in variables}

    if branch == BranchLabel.YES:
        for part in conjuncts(tree):
            comparison = extract_comparison(part, by_name)
            if comparison is not None:
                state = apply_constraint(
                    state,
                    by_name[comparison.variable],
                    comparison.operator,
                    comparison.value,
                )
        return state

    # No De Morgan expansion for compound guards.
    if isinstance(tree, (And, Or)):
        return state
    comparison = extract_comparison(tree, by_name)
    if comparison is None:
        return state
    return apply_constraint(
        state,
        by_name[comparison.variable],
        _NEGATED[comparison.operator],
        comparison.value,
    )


def merge_states(states: list[VariableState]) -> VariableState:
    """Per-variable union of several states."""
    if not states:
        return {}
    result: VariableState = {}
    for var_id in states[0]:
        values: set[str] = set()
        for s in states:
            values.update(s.get(var_id, ()))
        result[var_id] = frozenset(values)
    return result


def enumerate_paths(project: DecisionProject, source_id: str, target_id: str) -> list[list[Edge]]:
    """All simple paths from ``source_id`` to ``target_id`` as edge lists.

    Uses depth-first search with a per-path visited set; a branch that would
    revisit a node is truncated there. The search keeps an explicit stack,
    so path length is not limited by the interpreter's recursion limit.
    Paths come out in declared edge order.
    """
    paths: list[list[Edge]] = []
    stack: deque[tuple[str, list[Edge], frozenset[str]]] = deque(
        [(source_id, [], frozenset())]
    )
    while stack:
        current_id, path, visited = stack.pop()
        if current_id == target_id:
            paths.append(path)
            continue
        visited = visited | {current_id}
        for edge in reversed(project.outgoing(current_id)):
            if edge.target not in visited:
                stack.append((edge.target, [*path, edge], visited))
    return paths


def _walk_path(project: DecisionProject, path: list[Edge]) -> VariableState:
    state = universal_state(project.variables)
    for edge in path:
        source = project.get_node(edge.source)
        if source is not None and source.kind == NodeKind.DECISION:
            state = apply_branch(state, source.expression, edge.branch, project.variables)
    return state


def calculate_node_state(node_id: str, project: DecisionProject) -> StateResult:
    """Compute the variable values possible when ``node_id`` is reached.

    Args:
        node_id: Id of the target node.
        project: The graph and variable snapshot.

    Returns:
        A mapping of variable id to possible values, or :data:`UNREACHABLE`
        if no path reaches the node or every path is contradictory. A
        project without a root yields the empty state.

    Raises:
        UnknownNodeError: If ``node_id`` is not part of the graph.
    """
    if project.get_node(node_id) is None:
        raise UnknownNodeError(node_id)

    root = project.root
    if root is None:
        return {}

    paths = enumerate_paths(project, root.id, node_id)
    if not paths:
        logger.debug("Node %s has no path from the root", node_id)
        return UNREACHABLE

    valid = [s for s in (_walk_path(project, p) for p in paths) if not is_contradiction(s)]
    logger.debug(
        "Node %s: %d path(s) from the root, %d consistent",
        node_id,
        len(paths),
        len(valid),
    )
    if not valid:
        return UNREACHABLE
    return merge_states(valid)


def calculate_edge_state(edge_id: str, project: DecisionProject) -> StateResult:
    """Compute the variable values possible while traversing ``edge_id``.

    The edge's own branch is applied to the state of its source node, so the
    result may contain contradictory (empty) variables.

    Raises:
        UnknownEdgeError: If ``edge_id`` is not part of the graph.
    """
    edge = project.get_edge(edge_id)
    if edge is None:
        raise UnknownEdgeError(edge_id)
    source_state = calculate_node_state(edge.source, project)
    if isinstance(source_state, _Unreachable):
        return UNREACHABLE
    source = project.get_node(edge.source)
    if source is None or source.kind != NodeKind.DECISION:
        return source_state
    return apply_branch(source_state, source.expression, edge.branch, project.variables)


def format_state(state: StateResult, variables: Iterable[Variable]) -> list[str]:
    """Render one human readable line per variable.

    ``V: Unknown`` (not tracked), ``V: Impossible (Contradiction)`` (empty),
    ``V = x`` (single value), ``V: Any`` (full domain), ``V = a | b``
    (partial set, sorted).
    """
    if isinstance(state, _Unreachable):
        return ["Unreachable"]
    lines: list[str] = []
    for v in variables:
        values = state.get(v.id)
        if values is None:
            lines.append(f"{v.name}: Unknown")
            continue
        ordered = sorted(values)
        if not ordered:
            lines.append(f"{v.name}: Impossible (Contradiction)")
        elif len(ordered) == 1:
            lines.append(f"{v.name} = {ordered[0]}")
        elif len(ordered) == len(v.domain):
            lines.append(f"{v.name}: Any")
        else:
            lines.append(f"{v.name} = {' | '.join(ordered)}")
    return lines
