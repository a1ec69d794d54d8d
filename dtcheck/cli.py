"""CLI for dtcheck.

Every command takes a project file (JSON or YAML) describing variables,
nodes, edges, invariants and test cases, and runs one analysis on it.
"""

import logging
import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from dtcheck.decision_graph import (
    UNREACHABLE,
    DecisionGraphError,
    DecisionProject,
    analyze_states,
    calculate_edge_state,
    calculate_node_state,
    coverage,
    format_state,
    model_check,
    run_test_cases,
    validate_project,
)
from dtcheck.decision_graph.visualize import render_report_from_file
from dtcheck.settings import analysis_settings

_project_argument = click.argument(
    "project_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)


def _load(project_path: Path) -> DecisionProject:
    try:
        return DecisionProject.from_file(project_path)
    except (ValidationError, yaml.YAMLError) as e:
        click.echo(f"Error: invalid project file {project_path}:\n{e}", err=True)
        sys.exit(2)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity.")
def cli(verbose: int):
    """CLI for dtcheck."""
    level = analysis_settings.log_level
    if verbose == 1:
        level = "INFO"
    elif verbose > 1:
        level = "DEBUG"
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command(help="Run structural validation checks on a project.")
@_project_argument
def validate(project_path: Path):
    """Validate the project structure, guards, invariants and test cases."""
    errors = validate_project(_load(project_path))
    if not errors:
        click.echo("All structural validation checks passed.")
        return
    for e in errors:
        click.echo(f"- {e}")
    sys.exit(1)


@cli.command(help="List reachable and unreachable nodes.")
@_project_argument
def reachability(project_path: Path):
    """Report which nodes some assignment can reach."""
    project = _load(project_path)
    for node_id, state in analyze_states(project).items():
        node = project.get_node(node_id)
        label = node.result_id if node is not None else node_id
        status = "unreachable" if state is UNREACHABLE else "reachable"
        click.echo(f"{label}: {status}")


@cli.command(help="Show the possible variable values at a node or edge.")
@_project_argument
@click.option("--node", "node_id", default=None, help="Node id to inspect.")
@click.option("--edge", "edge_id", default=None, help="Edge id to inspect.")
def state(project_path: Path, node_id: str | None, edge_id: str | None):
    """Print the formatted state of one node or edge."""
    if (node_id is None) == (edge_id is None):
        raise click.UsageError("Pass exactly one of --node or --edge.")
    project = _load(project_path)
    try:
        if node_id is not None:
            result = calculate_node_state(node_id, project)
        else:
            result = calculate_edge_state(edge_id, project)  # type: ignore[arg-type]
    except DecisionGraphError as e:
        raise click.ClickException(e.message) from e
    for line in format_state(result, project.variables):
        click.echo(line)


@cli.command(help="Exhaustively evaluate every combination and check invariants.")
@_project_argument
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write all results to this CSV file.",
)
@click.option(
    "--violations-only", is_flag=True, help="Only print combinations with violations."
)
def check(project_path: Path, csv_path: Path | None, violations_only: bool):
    """Run the model checker; exits non-zero when an invariant is violated."""
    project = _load(project_path)
    checked = model_check(project)

    for row in checked.rows:
        if violations_only and not row.violations:
            continue
        assignment = ", ".join(f"{k}={v}" for k, v in row.result.assignment.items())
        line = f"{assignment} -> {row.result.display}"
        if row.violations:
            line += f"  VIOLATES: {', '.join(inv.name for inv in row.violations)}"
        click.echo(line)

    summary = checked.summary()
    click.echo(
        f"{summary.combinations} combination(s), {summary.errors} fault(s), "
        f"{summary.violations} violation(s)"
    )
    if csv_path is not None:
        checked.to_dataframe().to_csv(csv_path, index=False)
        click.echo(f"Results written to {csv_path}")
    if summary.violations:
        sys.exit(1)


@cli.command(help="Run the project's test cases and report coverage.")
@_project_argument
@click.option("--case", "case_id", default=None, help="Only run this test case id.")
def simulate(project_path: Path, case_id: str | None):
    """Simulate test cases and print the path each one takes."""
    project = _load(project_path)
    cases = project.test_cases
    if case_id is not None:
        cases = [tc for tc in cases if tc.id == case_id]
        if not cases:
            raise click.ClickException(f"Test case not found: {case_id}")

    results = run_test_cases(cases, project)
    for tc in cases:
        r = results[tc.id]
        marker = "ERROR" if r.is_error else "OK"
        click.echo(f"[{marker}] {tc.name}: {r.display}")
        click.echo(f"    path: {' -> '.join(r.visited_node_ids)}")

    covered = coverage(results.values(), project)
    click.echo(
        f"Coverage: {covered.node_ratio:.0%} of nodes, {covered.edge_ratio:.0%} of edges"
    )


@cli.command(help="Write a Markdown analysis report with a mermaid diagram.")
@_project_argument
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output path; defaults to analysis.md next to the project file.",
)
def report(project_path: Path, output_path: Path | None):
    """Render the analysis report."""
    _load(project_path)
    render_report_from_file(project_path, output_path)
    target = output_path or project_path.parent / "analysis.md"
    click.echo(f"Report written to {target}")


if __name__ == "__main__":
    cli()
