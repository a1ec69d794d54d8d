"""Exhaustive model checking of a decision graph.

Every combination of variable values is walked through the graph and the
terminal leaf is cross-checked against the declared invariants. Results are
ordered lexicographically by declared variable order, then domain order.
"""

from __future__ import annotations

import itertools
import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping

import pandas as pd
from pydantic import BaseModel, Field

from dtcheck.decision_graph.exceptions import DecisionGraphError, GraphWalkFault
from dtcheck.decision_graph.expressions import ExpressionScope
from dtcheck.decision_graph.model import DecisionProject, Invariant, Variable
from dtcheck.decision_graph.walker import walk_graph
from dtcheck.settings import analysis_settings

logger = logging.getLogger(__name__)


class ModelCheckerResult(BaseModel):
    """Outcome of walking the graph for one combination."""

    assignment: dict[str, str] = Field(description="Variable name to value.")
    result: str | None = Field(
        default=None,
        description="External id of the terminal leaf, or None on a walk fault.",
    )
    display: str = Field(description="Human readable outcome.")
    fault: GraphWalkFault | None = Field(default=None)

    @property
    def is_error(self) -> bool:
        """True if the walk faulted."""
        return self.fault is not None


class CheckedCombination(BaseModel):
    """A model checker result together with the invariants it violates."""

    result: ModelCheckerResult
    violations: list[Invariant] = Field(default_factory=list)


class ModelCheckSummary(BaseModel):
    """Outcome counts of a model check."""

    combinations: int
    errors: int
    violations: int
    outcomes: dict[str, int] = Field(
        default_factory=dict, description="Terminal leaf or fault display to count."
    )


class ModelCheckReport(BaseModel):
    """Model checker results cross-checked against a set of invariants."""

    variables: list[Variable] = Field(default_factory=list)
    rows: list[CheckedCombination] = Field(default_factory=list)

    @property
    def violation_count(self) -> int:
        """Number of combinations violating at least one invariant."""
        return sum(1 for row in self.rows if row.violations)

    @property
    def error_count(self) -> int:
        """Number of combinations whose walk faulted."""
        return sum(1 for row in self.rows if row.result.is_error)

    def violated_invariants(self) -> list[Invariant]:
        """Distinct violated invariants, in order of first violation."""
        seen: dict[str, Invariant] = {}
        for row in self.rows:
            for inv in row.violations:
                seen.setdefault(inv.id, inv)
        return list(seen.values())

    def summary(self) -> ModelCheckSummary:
        """Counts per outcome, for display."""
        outcomes = Counter(
            row.result.result if row.result.result is not None else row.result.display
            for row in self.rows
        )
        return ModelCheckSummary(
            combinations=len(self.rows),
            errors=self.error_count,
            violations=self.violation_count,
            outcomes=dict(sorted(outcomes.items())),
        )

    def to_dataframe(self) -> pd.DataFrame:
        """One row per combination with a column per variable."""
        names = [v.name for v in self.variables]
        records = []
        for row in self.rows:
            record: dict[str, object] = {n: row.result.assignment.get(n) for n in names}
            record["result"] = row.result.result
            record["display"] = row.result.display
            record["is_error"] = row.result.is_error
            record["violations"] = ", ".join(inv.name for inv in row.violations)
            records.append(record)
        columns = [*names, "result", "display", "is_error", "violations"]
        return pd.DataFrame.from_records(records, columns=columns)


def combination_count(variables: Iterable[Variable]) -> int:
    """Product of the domain sizes; zero when there are no variables."""
    sizes = [len(v.domain) for v in variables]
    if not sizes:
        return 0
    return math.prod(sizes)


def generate_combinations(variables: Iterable[Variable]) -> list[dict[str, str]]:
    """Cartesian product of all domains as name-to-value assignments.

    The first declared variable varies slowest. No variables means no
    combinations.
    """
    variables = list(variables)
    if not variables:
        return []
    names = [v.name for v in variables]
    return [
        dict(zip(names, values))
        for values in itertools.product(*(v.domain for v in variables))
    ]


def run_model_check(
    project: DecisionProject,
    max_steps: int | None = None,
) -> list[ModelCheckerResult]:
    """Walk the graph once per combination of variable values.

    Args:
        project: The graph and variable snapshot.
        max_steps: Per-walk step bound; defaults to the configured bound.

    Returns:
        One result per combination, in combination order. Walk faults are
        recorded per result and never stop the enumeration.
    """
    count = combination_count(project.variables)
    if count > analysis_settings.combination_warning_threshold:
        logger.warning(
            "Model checking %d combinations; this may take a while.", count
        )

    scope = ExpressionScope(project.variables)
    results: list[ModelCheckerResult] = []
    for combo in generate_combinations(project.variables):
        outcome = walk_graph(project, combo, scope=scope, max_steps=max_steps)
        results.append(
            ModelCheckerResult(
                assignment=combo,
                result=outcome.result,
                display=outcome.display,
                fault=outcome.fault,
            )
        )
    logger.info(
        "Model check finished: %d combination(s), %d fault(s)",
        len(results),
        sum(1 for r in results if r.is_error),
    )
    return results


def check_invariants(
    assignment: Mapping[str, str],
    result: str | None,
    invariants: Iterable[Invariant],
    scope: ExpressionScope,
) -> list[Invariant]:
    """Invariants whose condition holds but whose expected leaf was not reached.

    An invariant whose condition cannot be evaluated is skipped with a
    warning rather than counted as a violation.
    """
    violations: list[Invariant] = []
    for inv in invariants:
        try:
            holds = scope.evaluate(inv.condition, assignment)
        except DecisionGraphError as e:
            logger.warning(
                "Skipping invariant '%s': cannot evaluate %r (%s)",
                inv.name,
                inv.condition,
                e.message,
            )
            continue
        if holds and result != inv.expected_result:
            violations.append(inv)
    return violations


def review_results(
    results: Iterable[ModelCheckerResult],
    project: DecisionProject,
) -> ModelCheckReport:
    """Attach the violations of the project's current invariants to each result.

    Violations are derived at query time, so cached results can be
    re-reviewed after invariants are edited.
    """
    scope = ExpressionScope(project.variables)
    rows = [
        CheckedCombination(
            result=r,
            violations=check_invariants(r.assignment, r.result, project.invariants, scope),
        )
        for r in results
    ]
    return ModelCheckReport(variables=project.variables, rows=rows)


def model_check(project: DecisionProject, max_steps: int | None = None) -> ModelCheckReport:
    """Run the model checker and review the results in one call."""
    return review_results(run_model_check(project, max_steps=max_steps), project)
