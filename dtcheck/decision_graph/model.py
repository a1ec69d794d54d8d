"""Snapshot models for a decision graph and its variables.

A :class:`DecisionProject` bundles the variables, graph, invariants and test
cases that an editor hands to the analyses. Every analysis takes the project
as read-only input and returns fresh result objects.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

EXPRESSION_LITERALS = frozenset({"true", "false", "null", "undefined"})

RESERVED_WORDS = EXPRESSION_LITERALS | frozenset({
    "and",
    "or",
    "not",
    "in",
    "is",
    "if",
    "else",
    "return",
    "var",
    "let",
    "const",
    "function",
    "new",
    "this",
    "typeof",
    "NaN",
    "Infinity",
})


class _ProjectLoader(yaml.SafeLoader):
    """SafeLoader that reads only true/false as booleans, as YAML 1.2 does.

    Bare yes/no/on/off are common enum labels and must stay strings.
    """


_ProjectLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:bool"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_ProjectLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def is_valid_identifier(text: str) -> bool:
    """Check whether a string can be used as a variable name or domain value."""
    return bool(IDENTIFIER_PATTERN.match(text))


def _new_id() -> str:
    return str(uuid4())


class NodeKind(str, Enum):
    """The role of a node in the decision graph."""

    ROOT = "root"
    DECISION = "decision"
    LEAF = "leaf"


class BranchLabel(str, Enum):
    """The discriminator on an edge leaving a root or decision node."""

    YES = "yes"
    NO = "no"
    OUT = "out"


class Variable(BaseModel):
    """An enumerated variable with a closed, ordered domain."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, description="Opaque variable id.")
    name: str = Field(description="Identifier used in guard expressions.")
    domain: list[str] = Field(
        description="Ordered legal values of the variable, e.g. ['LOW', 'HIGH']."
    )
    description: str = Field(default="", description="Optional free-text notes.")

    @model_validator(mode="after")
    def _check_name_and_domain(self) -> Variable:
        if not is_valid_identifier(self.name):
            msg = (
                f'Invalid variable name: "{self.name}". Must start with a letter/_ '
                "and contain only letters, numbers, _."
            )
            raise ValueError(msg)
        if self.name in RESERVED_WORDS:
            msg = f'Invalid variable name: "{self.name}" is a reserved word.'
            raise ValueError(msg)
        if not self.domain:
            msg = f"Variable '{self.name}': at least one possible value is required."
            raise ValueError(msg)
        for value in self.domain:
            if not is_valid_identifier(value):
                msg = (
                    f'Invalid value: "{value}". Must start with a letter/_ and contain '
                    "only letters, numbers, _. (No raw numbers allowed)"
                )
                raise ValueError(msg)
            if value in RESERVED_WORDS:
                msg = f'Invalid value: "{value}" is a reserved word.'
                raise ValueError(msg)
        if len(set(self.domain)) != len(self.domain):
            msg = f"Variable '{self.name}': duplicate values are not allowed."
            raise ValueError(msg)
        return self


class Node(BaseModel):
    """A root, decision or leaf node of the graph."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque node id referenced by edges.")
    kind: NodeKind = Field(description="Whether this is the root, a decision or a leaf.")
    external_id: str | None = Field(
        default=None,
        description="User-facing id (e.g. 'D1', 'L2'); defaults to the node id.",
    )
    label: str = Field(default="", description="Display label, used for leaves.")
    expression: str = Field(
        default="", description="Guard expression of a decision node."
    )
    position: tuple[float, float] | None = Field(
        default=None,
        description="Editor canvas position, only consulted when renumbering.",
    )

    @property
    def result_id(self) -> str:
        """The id reported when a walk terminates at this node."""
        return self.external_id or self.id

    @property
    def display(self) -> str:
        """Leaf display text, e.g. ``L1 (Stop)``."""
        return f"{self.result_id} ({self.label or 'Leaf'})"


class Edge(BaseModel):
    """A directed edge, optionally labelled with the branch it represents."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque edge id.")
    source: str = Field(description="Id of the node the edge leaves.")
    target: str = Field(description="Id of the node the edge enters.")
    branch: BranchLabel | None = Field(
        default=None,
        description="'yes'/'no' for decision outputs, 'out' or None for the root output.",
    )


class Invariant(BaseModel):
    """Whenever ``condition`` holds, evaluation must end at ``expected_result``."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(description="Short human readable name.")
    condition: str = Field(description="Boolean expression over variables.")
    expected_result: str = Field(
        description="External id of the leaf the evaluation must terminate at."
    )


class TestCase(BaseModel):
    """A named concrete assignment used by the simulator."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(default="New Case")
    values: dict[str, str] = Field(
        default_factory=dict,
        description="Variable name to domain value; may be partial.",
    )


class DecisionProject(BaseModel):
    """An immutable snapshot of everything the analyses need.

    Lookup tables are built once on construction. When ids are duplicated
    the first occurrence wins; :func:`validate_project` reports duplicates.
    """

    model_config = ConfigDict(frozen=True)

    variables: list[Variable] = Field(default_factory=list)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    invariants: list[Invariant] = Field(default_factory=list)
    test_cases: list[TestCase] = Field(default_factory=list)

    _node_map: dict[str, Node] = PrivateAttr(default_factory=dict)
    _edge_map: dict[str, Edge] = PrivateAttr(default_factory=dict)
    _outgoing: dict[str, list[Edge]] = PrivateAttr(default_factory=dict)
    _variables_by_name: dict[str, Variable] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_unique_variable_names(self) -> DecisionProject:
        names = [v.name for v in self.variables]
        if len(names) != len(set(names)):
            seen: set[str] = set()
            dupes = [n for n in names if n in seen or seen.add(n)]  # type: ignore[func-returns-value]
            msg = f"Duplicate variable names: {dupes}"
            raise ValueError(msg)
        return self

    def model_post_init(self, __context: Any) -> None:
        """Build the adjacency and lookup tables."""
        for node in self.nodes:
            self._node_map.setdefault(node.id, node)
        for edge in self.edges:
            self._edge_map.setdefault(edge.id, edge)
            self._outgoing.setdefault(edge.source, []).append(edge)
        for variable in self.variables:
            self._variables_by_name[variable.name] = variable

    @property
    def root(self) -> Node | None:
        """The first root node, if any."""
        for node in self.nodes:
            if node.kind == NodeKind.ROOT:
                return node
        return None

    @property
    def leaves(self) -> list[Node]:
        """All leaf nodes in declared order."""
        return [n for n in self.nodes if n.kind == NodeKind.LEAF]

    def get_node(self, node_id: str) -> Node | None:
        """Look up a node by id."""
        return self._node_map.get(node_id)

    def get_edge(self, edge_id: str) -> Edge | None:
        """Look up an edge by id."""
        return self._edge_map.get(edge_id)

    def outgoing(self, node_id: str) -> list[Edge]:
        """Edges leaving a node, in declared order."""
        return list(self._outgoing.get(node_id, ()))

    def find_edge(self, source: str, *branches: BranchLabel | None) -> Edge | None:
        """Return the first edge leaving ``source`` whose branch is one of ``branches``."""
        for edge in self._outgoing.get(source, ()):
            if edge.branch in branches:
                return edge
        return None

    def variable_by_name(self, name: str) -> Variable | None:
        """Look up a variable by its expression name."""
        return self._variables_by_name.get(name)

    def replace(self, **changes: Any) -> DecisionProject:
        """Return a new snapshot with some collections replaced."""
        data = {
            "variables": self.variables,
            "nodes": self.nodes,
            "edges": self.edges,
            "invariants": self.invariants,
            "test_cases": self.test_cases,
        }
        data.update(changes)
        return DecisionProject(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> DecisionProject:
        """Load a project from a JSON or YAML file.

        Args:
            path: Path to a ``.json``, ``.yaml`` or ``.yml`` file.

        Returns:
            The validated project.

        Raises:
            pydantic.ValidationError: If the content does not describe a valid project.
            yaml.YAMLError: If a YAML file cannot be parsed.
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.model_validate_json(text)
        raw = yaml.load(text, Loader=_ProjectLoader) or {}
        return cls.model_validate(raw)
