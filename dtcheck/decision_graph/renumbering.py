"""Renumber decision and leaf nodes by their canvas position.

Decisions become ``D1..Dn`` and leaves ``L1..Ln``, reading top to bottom
then left to right. Edge ids are regenerated and cached model checker and
simulation results are remapped so they stay valid for the new graph.
"""

from __future__ import annotations

from functools import cmp_to_key

from pydantic import BaseModel, Field

from dtcheck.decision_graph.model import DecisionProject, Edge, Node, NodeKind
from dtcheck.decision_graph.model_checker import ModelCheckerResult
from dtcheck.decision_graph.simulation import SimulationResult

ROW_TOLERANCE = 50.0
"""Nodes whose y coordinates differ by no more than this share a row."""


class RenumberResult(BaseModel):
    """A renumbered project and the remapped cached results."""

    project: DecisionProject
    node_id_map: dict[str, str] = Field(
        default_factory=dict, description="Old node id to new node id."
    )
    edge_id_map: dict[str, str] = Field(
        default_factory=dict, description="Old edge id to new edge id."
    )
    model_results: list[ModelCheckerResult] = Field(default_factory=list)
    simulation_results: dict[str, SimulationResult] = Field(default_factory=dict)


def _compare_positions(a: Node, b: Node) -> int:
    (ax, ay), (bx, by) = a.position, b.position  # type: ignore[misc]
    if abs(ay - by) > ROW_TOLERANCE:
        return -1 if ay < by else 1
    if ax == bx:
        return 0
    return -1 if ax < bx else 1


def _reading_order(nodes: list[Node]) -> list[Node]:
    placed = sorted(
        (n for n in nodes if n.position is not None), key=cmp_to_key(_compare_positions)
    )
    return placed + [n for n in nodes if n.position is None]


def _edge_id(edge: Edge, source: str, target: str, taken: set[str]) -> str:
    new_id = f"e{source}-{target}"
    if new_id in taken:
        suffix = edge.branch.value if edge.branch is not None else "out"
        new_id = f"{new_id}-{suffix}"
    n = 2
    base = new_id
    while new_id in taken:
        new_id = f"{base}-{n}"
        n += 1
    taken.add(new_id)
    return new_id


def renumber_nodes(
    project: DecisionProject,
    model_results: list[ModelCheckerResult] | None = None,
    simulation_results: dict[str, SimulationResult] | None = None,
) -> RenumberResult:
    """Assign ``D<n>`` / ``L<n>`` ids in reading order.

    Args:
        project: The project to renumber.
        model_results: Cached model checker results to remap.
        simulation_results: Cached simulation results, keyed by test case id.

    Returns:
        The renumbered project, the id maps and the remapped results.
    """
    id_map: dict[str, str] = {}
    external_map: dict[str, str] = {}
    for kind, prefix in ((NodeKind.DECISION, "D"), (NodeKind.LEAF, "L")):
        ordered = _reading_order([n for n in project.nodes if n.kind == kind])
        for index, node in enumerate(ordered, start=1):
            new_id = f"{prefix}{index}"
            id_map[node.id] = new_id
            external_map[node.result_id] = new_id

    nodes = [
        n.model_copy(update={"id": id_map[n.id], "external_id": id_map[n.id]})
        if n.id in id_map
        else n
        for n in project.nodes
    ]

    edge_map: dict[str, str] = {}
    taken: set[str] = set()
    edges: list[Edge] = []
    for edge in project.edges:
        source = id_map.get(edge.source, edge.source)
        target = id_map.get(edge.target, edge.target)
        new_id = _edge_id(edge, source, target, taken)
        edge_map.setdefault(edge.id, new_id)
        edges.append(edge.model_copy(update={"id": new_id, "source": source, "target": target}))

    invariants = [
        inv.model_copy(
            update={"expected_result": external_map.get(inv.expected_result, inv.expected_result)}
        )
        for inv in project.invariants
    ]

    new_model_results = [
        r.model_copy(update={"result": external_map.get(r.result, r.result)})
        if r.result is not None
        else r
        for r in model_results or []
    ]

    new_simulation_results = {
        key: r.model_copy(
            update={
                "visited_node_ids": [id_map.get(i, i) for i in r.visited_node_ids],
                "visited_edge_ids": [edge_map.get(i, i) for i in r.visited_edge_ids],
                "terminal_result_id": (
                    external_map.get(r.terminal_result_id, r.terminal_result_id)
                    if r.terminal_result_id is not None
                    else None
                ),
            }
        )
        for key, r in (simulation_results or {}).items()
    }

    return RenumberResult(
        project=project.replace(nodes=nodes, edges=edges, invariants=invariants),
        node_id_map=id_map,
        edge_id_map=edge_map,
        model_results=new_model_results,
        simulation_results=new_simulation_results,
    )
