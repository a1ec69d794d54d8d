"""Single-case simulation with a visited node/edge trace.

The walk is the same one the model checker uses; the simulator keeps the
trace so an editor can highlight the path and report coverage.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field

from dtcheck.decision_graph.exceptions import GraphWalkFault
from dtcheck.decision_graph.expressions import ExpressionScope
from dtcheck.decision_graph.model import DecisionProject, TestCase
from dtcheck.decision_graph.walker import walk_graph

logger = logging.getLogger(__name__)


class SimulationResult(BaseModel):
    """Outcome and trace of one simulated assignment."""

    visited_node_ids: list[str] = Field(
        default_factory=list, description="Visited node ids, in order, no repeats."
    )
    visited_edge_ids: list[str] = Field(
        default_factory=list, description="Traversed edge ids, in order."
    )
    terminal_result_id: str | None = Field(
        default=None, description="External id of the leaf reached, if any."
    )
    display: str = Field(default="")
    is_error: bool = Field(default=False)
    fault: GraphWalkFault | None = Field(default=None)


class CoverageReport(BaseModel):
    """Which nodes and edges a set of simulations exercised."""

    visited_node_ids: list[str] = Field(default_factory=list)
    unvisited_node_ids: list[str] = Field(default_factory=list)
    visited_edge_ids: list[str] = Field(default_factory=list)
    unvisited_edge_ids: list[str] = Field(default_factory=list)

    @property
    def node_ratio(self) -> float:
        """Fraction of nodes visited."""
        total = len(self.visited_node_ids) + len(self.unvisited_node_ids)
        return len(self.visited_node_ids) / total if total else 0.0

    @property
    def edge_ratio(self) -> float:
        """Fraction of edges traversed."""
        total = len(self.visited_edge_ids) + len(self.unvisited_edge_ids)
        return len(self.visited_edge_ids) / total if total else 0.0


def simulate(
    project: DecisionProject,
    values: Mapping[str, str],
    scope: ExpressionScope | None = None,
    max_steps: int | None = None,
) -> SimulationResult:
    """Walk the graph for one assignment and record the path taken.

    ``values`` may leave variables unassigned; a guard that reads one
    stops the walk with a missing-variable fault.
    """
    outcome = walk_graph(project, values, scope=scope, max_steps=max_steps)
    return SimulationResult(
        visited_node_ids=outcome.node_ids,
        visited_edge_ids=outcome.edge_ids,
        terminal_result_id=outcome.result,
        display=outcome.display,
        is_error=outcome.is_error,
        fault=outcome.fault,
    )


def run_test_cases(
    test_cases: Iterable[TestCase],
    project: DecisionProject,
    max_steps: int | None = None,
) -> dict[str, SimulationResult]:
    """Simulate each test case, keyed by test case id."""
    scope = ExpressionScope(project.variables)
    results: dict[str, SimulationResult] = {}
    for tc in test_cases:
        results[tc.id] = simulate(project, tc.values, scope=scope, max_steps=max_steps)
        logger.debug("Test case '%s' -> %s", tc.name, results[tc.id].display)
    return results


def coverage(results: Iterable[SimulationResult], project: DecisionProject) -> CoverageReport:
    """Aggregate the traces of several simulations over the project's graph."""
    nodes: set[str] = set()
    edges: set[str] = set()
    for r in results:
        nodes.update(r.visited_node_ids)
        edges.update(r.visited_edge_ids)
    return CoverageReport(
        visited_node_ids=[n.id for n in project.nodes if n.id in nodes],
        unvisited_node_ids=[n.id for n in project.nodes if n.id not in nodes],
        visited_edge_ids=[e.id for e in project.edges if e.id in edges],
        unvisited_edge_ids=[e.id for e in project.edges if e.id not in edges],
    )
