"""Decision graph analysis.

Provides the snapshot models for variables and decision graphs, a guard
expression language, path-sensitive state and reachability analysis, an
exhaustive model checker with invariant cross-checks, a tracing simulator,
structural validation, renumbering, and a Markdown report.
"""

from dtcheck.decision_graph.exceptions import (
    DecisionGraphError,
    ExpressionSyntaxError,
    GraphWalkFault,
    InvalidDomainValueError,
    MissingVariableError,
    UnknownEdgeError,
    UnknownIdentifierError,
    UnknownNodeError,
)
from dtcheck.decision_graph.expressions import (
    ExpressionScope,
    check_expression,
    completion_suggestion,
    format_expression,
    parse_comparison,
    parse_expression,
    validate_expression,
)
from dtcheck.decision_graph.model import (
    BranchLabel,
    DecisionProject,
    Edge,
    Invariant,
    Node,
    NodeKind,
    TestCase,
    Variable,
)
from dtcheck.decision_graph.model_checker import (
    CheckedCombination,
    ModelCheckerResult,
    ModelCheckReport,
    ModelCheckSummary,
    check_invariants,
    combination_count,
    generate_combinations,
    model_check,
    review_results,
    run_model_check,
)
from dtcheck.decision_graph.reachability import (
    analyze_reachability,
    analyze_states,
    unreachable_nodes,
)
from dtcheck.decision_graph.renumbering import RenumberResult, renumber_nodes
from dtcheck.decision_graph.simulation import (
    CoverageReport,
    SimulationResult,
    coverage,
    run_test_cases,
    simulate,
)
from dtcheck.decision_graph.state import (
    UNREACHABLE,
    VariableState,
    apply_branch,
    calculate_edge_state,
    calculate_node_state,
    format_state,
)
from dtcheck.decision_graph.validation import validate_project
from dtcheck.decision_graph.walker import WalkOutcome, walk_graph

__all__ = [
    "UNREACHABLE",
    "BranchLabel",
    "CheckedCombination",
    "CoverageReport",
    "DecisionGraphError",
    "DecisionProject",
    "Edge",
    "ExpressionScope",
    "ExpressionSyntaxError",
    "GraphWalkFault",
    "InvalidDomainValueError",
    "Invariant",
    "MissingVariableError",
    "ModelCheckReport",
    "ModelCheckSummary",
    "ModelCheckerResult",
    "Node",
    "NodeKind",
    "RenumberResult",
    "SimulationResult",
    "TestCase",
    "UnknownEdgeError",
    "UnknownIdentifierError",
    "UnknownNodeError",
    "Variable",
    "VariableState",
    "WalkOutcome",
    "analyze_reachability",
    "analyze_states",
    "apply_branch",
    "calculate_edge_state",
    "calculate_node_state",
    "check_expression",
    "check_invariants",
    "combination_count",
    "completion_suggestion",
    "coverage",
    "format_expression",
    "format_state",
    "generate_combinations",
    "model_check",
    "parse_comparison",
    "parse_expression",
    "renumber_nodes",
    "review_results",
    "run_model_check",
    "run_test_cases",
    "simulate",
    "unreachable_nodes",
    "validate_expression",
    "validate_project",
    "walk_graph",
]
