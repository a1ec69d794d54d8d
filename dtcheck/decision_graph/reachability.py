"""Reachability derived from the state analysis.

A node is reachable iff its state is not :data:`UNREACHABLE`, i.e. some
path from the root reaches it without a contradiction.
"""

from __future__ import annotations

import logging

from dtcheck.decision_graph.model import DecisionProject
from dtcheck.decision_graph.state import UNREACHABLE, StateResult, calculate_node_state

logger = logging.getLogger(__name__)


def analyze_states(project: DecisionProject) -> dict[str, StateResult]:
    """Compute the state of every node, keyed by node id in declared order."""
    return {node.id: calculate_node_state(node.id, project) for node in project.nodes}


def analyze_reachability(project: DecisionProject) -> set[str]:
    """Return the ids of all nodes reachable under some assignment."""
    reachable = {
        node_id
        for node_id, state in analyze_states(project).items()
        if state is not UNREACHABLE
    }
    logger.debug("%d of %d node(s) reachable", len(reachable), len(project.nodes))
    return reachable


def unreachable_nodes(project: DecisionProject) -> list[str]:
    """Ids of nodes no assignment can reach, in declared order."""
    reachable = analyze_reachability(project)
    return [n.id for n in project.nodes if n.id not in reachable]
