"""Render a DecisionProject analysis as a Markdown document with a Mermaid diagram.

Generates a readable report including the graph, the variable state at each
node, validation results, and model checker outcomes with invariant
violations.
"""

from __future__ import annotations

from pathlib import Path

from dtcheck.decision_graph.model import DecisionProject, NodeKind
from dtcheck.decision_graph.model_checker import ModelCheckReport, model_check
from dtcheck.decision_graph.reachability import analyze_states
from dtcheck.decision_graph.state import UNREACHABLE, StateResult, format_state
from dtcheck.decision_graph.validation import validate_project


def _sanitize_mermaid_id(node_id: str) -> str:
    """Make a node ID safe for mermaid (no hyphens, dots, etc.)."""
    return node_id.replace("-", "_").replace(".", "_").replace(" ", "_")


def _escape_mermaid_label(text: str) -> str:
    """Escape a label string for safe use in mermaid node definitions."""
    return text.replace('"', "'").replace("\n", " ")


def _truncate(text: str, max_len: int = 50) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _build_mermaid_diagram(project: DecisionProject, states: dict[str, StateResult]) -> str:
    """Build a mermaid flowchart string from the project graph."""
    lines: list[str] = ["flowchart TD"]
    unreachable: list[str] = []

    for node in project.nodes:
        sid = _sanitize_mermaid_id(node.id)
        if node.kind == NodeKind.ROOT:
            lines.append(f'    {sid}(("{_escape_mermaid_label(node.result_id)}"))')
        elif node.kind == NodeKind.DECISION:
            label = _escape_mermaid_label(
                f"{node.result_id}: {_truncate(node.expression or '(empty)', 40)}"
            )
            lines.append(f'    {sid}{{"{label}"}}')
        else:
            lines.append(f'    {sid}(["{_escape_mermaid_label(node.display)}"])')
        if states.get(node.id) is UNREACHABLE:
            unreachable.append(sid)

    for edge in project.edges:
        src = _sanitize_mermaid_id(edge.source)
        tgt = _sanitize_mermaid_id(edge.target)
        if edge.branch is not None and edge.branch.value in ("yes", "no"):
            lines.append(f'    {src} -->|"{edge.branch.value}"| {tgt}')
        else:
            lines.append(f"    {src} --> {tgt}")

    if unreachable:
        lines.append("    classDef unreachable stroke-dasharray: 5 5,opacity:0.5")
        lines.append(f"    class {','.join(unreachable)} unreachable")

    return "\n".join(lines)


def _build_variable_table(project: DecisionProject) -> str:
    lines: list[str] = ["| Name | Domain | Description |", "|---|---|---|"]
    for v in project.variables:
        domain = ", ".join(f"`{d}`" for d in v.domain)
        lines.append(f"| `{v.name}` | {domain} | {_truncate(v.description, 60)} |")
    return "\n".join(lines)


def _build_node_inventory(project: DecisionProject, states: dict[str, StateResult]) -> str:
    """Build a summary of all nodes with their reachable state."""
    lines: list[str] = [
        "| ID | Type | Guard / Label | Reachable | State |",
        "|---|---|---|---|---|",
    ]
    for node in project.nodes:
        state = states[node.id]
        detail = node.expression if node.kind == NodeKind.DECISION else node.label
        reachable = "no" if state is UNREACHABLE else "yes"
        rendered = "<br>".join(format_state(state, project.variables))
        lines.append(
            f"| `{node.result_id}` | {node.kind.value} | {_truncate(detail, 60)} "
            f"| {reachable} | {rendered} |"
        )
    return "\n".join(lines)


def _build_validation_section(project: DecisionProject) -> str:
    """Build a validation results section."""
    errors = validate_project(project)
    if not errors:
        return "All structural validation checks passed."

    lines = [f"Found **{len(errors)}** issue(s):", ""]
    for e in errors:
        lines.append(f"- {e}")
    return "\n".join(lines)


def _build_model_check_section(report: ModelCheckReport) -> str:
    summary = report.summary()
    lines = [
        f"- **Combinations**: {summary.combinations}",
        f"- **Walk faults**: {summary.errors}",
        f"- **Combinations violating an invariant**: {summary.violations}",
        "",
        "| Outcome | Count |",
        "|---|---|",
    ]
    for outcome, count in summary.outcomes.items():
        lines.append(f"| {outcome} | {count} |")

    violating = [row for row in report.rows if row.violations]
    if violating:
        lines.extend(["", "### Violations", "", "| Assignment | Result | Violated |", "|---|---|---|"])
        for row in violating:
            assignment = ", ".join(f"{k}={v}" for k, v in row.result.assignment.items())
            names = ", ".join(inv.name for inv in row.violations)
            lines.append(f"| {assignment} | {row.result.display} | {names} |")
    return "\n".join(lines)


def render_report(project: DecisionProject, run_model_checker: bool = True) -> str:
    """Generate a Markdown document analysing a DecisionProject.

    Args:
        project: The project to analyse.
        run_model_checker: Whether to include exhaustive model checking.

    Returns:
        A complete Markdown string with a mermaid diagram and analysis.
    """
    states = analyze_states(project)
    n_unreachable = sum(1 for s in states.values() if s is UNREACHABLE)

    sections: list[str] = ["# Decision Tree Analysis", ""]

    sections.append("## Summary")
    sections.append("")
    sections.append(f"- **Variables**: {len(project.variables)}")
    sections.append(f"- **Nodes**: {len(project.nodes)} ({n_unreachable} unreachable)")
    sections.append(f"- **Edges**: {len(project.edges)}")
    sections.append(f"- **Invariants**: {len(project.invariants)}")
    sections.append("")

    sections.append("## Graph")
    sections.append("")
    sections.append("```mermaid")
    sections.append(_build_mermaid_diagram(project, states))
    sections.append("```")
    sections.append("")

    sections.append("## Variables")
    sections.append("")
    sections.append(_build_variable_table(project))
    sections.append("")

    sections.append("## Node States")
    sections.append("")
    sections.append(_build_node_inventory(project, states))
    sections.append("")

    sections.append("## Validation")
    sections.append("")
    sections.append(_build_validation_section(project))
    sections.append("")

    if run_model_checker:
        sections.append("## Model Check")
        sections.append("")
        sections.append(_build_model_check_section(model_check(project)))
        sections.append("")

    return "\n".join(sections)


def render_report_from_file(
    project_path: str | Path,
    output_path: str | Path | None = None,
) -> str:
    """Load a project from a file and write its analysis report.

    Args:
        project_path: Path to a project JSON or YAML file.
        output_path: Optional path to write the output Markdown.
            If None, defaults to the same directory as project_path
            with the name ``analysis.md``.

    Returns:
        The generated Markdown string.
    """
    project_path = Path(project_path)
    project = DecisionProject.from_file(project_path)

    md = render_report(project)

    if output_path is None:
        output_path = project_path.parent / "analysis.md"
    else:
        output_path = Path(output_path)

    output_path.write_text(md, encoding="utf-8")
    return md
