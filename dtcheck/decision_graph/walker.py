"""Single deterministic walk of the decision graph for one assignment.

Shared by the model checker and the simulator. Faults are returned as part
of the outcome, never raised, so that a batch can keep going.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import BaseModel, Field

from dtcheck.decision_graph.exceptions import (
    ExpressionSyntaxError,
    GraphWalkFault,
    MissingVariableError,
    UnknownIdentifierError,
)
from dtcheck.decision_graph.expressions import ExpressionScope
from dtcheck.decision_graph.model import BranchLabel, DecisionProject, Edge, Node, NodeKind
from dtcheck.settings import analysis_settings

logger = logging.getLogger(__name__)


class WalkOutcome(BaseModel):
    """Where a walk ended and how it got there."""

    result: str | None = Field(
        default=None,
        description="External id of the terminal leaf, or None if the walk faulted.",
    )
    display: str = Field(default="", description="Human readable outcome.")
    fault: GraphWalkFault | None = Field(
        default=None, description="Why the walk stopped early, if it did."
    )
    node_ids: list[str] = Field(
        default_factory=list, description="Visited node ids, in order."
    )
    edge_ids: list[str] = Field(
        default_factory=list, description="Traversed edge ids, in order."
    )

    @property
    def is_error(self) -> bool:
        """True if the walk did not end at a leaf."""
        return self.fault is not None


class _Walk:
    def __init__(
        self,
        project: DecisionProject,
        assignment: Mapping[str, str],
        scope: ExpressionScope,
        max_steps: int,
    ) -> None:
        self.project = project
        self.assignment = assignment
        self.scope = scope
        self.max_steps = max_steps
        self.node_ids: list[str] = []
        self.edge_ids: list[str] = []

    def _fail(self, fault: GraphWalkFault, display: str) -> WalkOutcome:
        logger.debug("Walk for %s stopped: %s", dict(self.assignment), display)
        return WalkOutcome(
            display=display,
            fault=fault,
            node_ids=self.node_ids,
            edge_ids=self.edge_ids,
        )

    def _next_edge(self, node: Node) -> WalkOutcome | Edge:
        """Pick the outgoing edge to follow, or return a fault outcome."""
        if node.kind == NodeKind.ROOT:
            edge = self.project.find_edge(node.id, BranchLabel.OUT, None)
            if edge is None:
                return self._fail(
                    GraphWalkFault.STUCK_NO_OUTGOING_EDGE, "Stuck: Root has no connection"
                )
            return edge

        expression = node.expression.strip()
        if not expression:
            return self._fail(GraphWalkFault.EMPTY_GUARD_EXPRESSION, "Error: Empty Condition")
        try:
            taken = self.scope.evaluate(expression, self.assignment)
        except MissingVariableError as e:
            return self._fail(
                GraphWalkFault.MISSING_VARIABLE,
                f"Error: Missing value for '{e.variable}' ({node.expression})",
            )
        except (ExpressionSyntaxError, UnknownIdentifierError):
            return self._fail(
                GraphWalkFault.INVALID_EXPRESSION,
                f"Error: Invalid Expression ({node.expression})",
            )

        branch = BranchLabel.YES if taken else BranchLabel.NO
        edge = self.project.find_edge(node.id, branch)
        if edge is None:
            return self._fail(
                GraphWalkFault.STUCK_NO_OUTGOING_EDGE,
                f"Stuck: No path for {branch.value.upper()}",
            )
        return edge

    def run(self) -> WalkOutcome:
        current = self.project.root
        if current is None:
            return self._fail(GraphWalkFault.NO_ROOT_NODE, "Error: No Root")

        visited: set[str] = set()
        steps = 0
        while steps < self.max_steps:
            if current.id in visited:
                return self._fail(GraphWalkFault.LOOP_DETECTED, "Error: Loop Detected")
            visited.add(current.id)
            self.node_ids.append(current.id)
            steps += 1

            if current.kind == NodeKind.LEAF:
                return WalkOutcome(
                    result=current.result_id,
                    display=current.display,
                    node_ids=self.node_ids,
                    edge_ids=self.edge_ids,
                )

            picked = self._next_edge(current)
            if isinstance(picked, WalkOutcome):
                return picked
            self.edge_ids.append(picked.id)

            target = self.project.get_node(picked.target)
            if target is None:
                return self._fail(GraphWalkFault.BROKEN_EDGE_TARGET, "Error: Broken Link")
            current = target

        return self._fail(GraphWalkFault.TOO_MANY_STEPS, "Error: Too many steps (Loop?)")


def walk_graph(
    project: DecisionProject,
    assignment: Mapping[str, str],
    scope: ExpressionScope | None = None,
    max_steps: int | None = None,
) -> WalkOutcome:
    """Walk from the root to a leaf following the branches ``assignment`` selects.

    Args:
        project: The graph and variable snapshot.
        assignment: Variable name to domain value; may be partial.
        scope: Pre-built expression scope, to avoid rebuilding it per walk.
        max_steps: Maximum number of nodes visited; defaults to
            ``analysis_settings.max_walk_steps``.

    Returns:
        The terminal leaf or the fault that stopped the walk, with the trace.
    """
    if scope is None:
        scope = ExpressionScope(project.variables)
    if max_steps is None:
        max_steps = analysis_settings.max_walk_steps
    return _Walk(project, assignment, scope, max_steps).run()
