"""Guard and invariant expressions.

Expressions are small boolean formulas over variable names and enum
literals, e.g. ``Temp == HIGH && Mode != 'OFF'``. They are tokenized,
parsed by recursive descent into an immutable AST, validated against the
declared variables, and evaluated by walking the AST.

Grammar::

    or    := and ('||' and)*
    and   := cmp ('&&' cmp)*
    cmp   := unary (('==' | '!=' | '<' | '<=' | '>' | '>=') unary)?
    unary := '!' unary | atom
    atom  := IDENT | STRING | '(' or ')'
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from dtcheck.decision_graph.exceptions import (
    DecisionGraphError,
    ExpressionSyntaxError,
    InvalidDomainValueError,
    MissingVariableError,
    UnknownIdentifierError,
)
from dtcheck.decision_graph.model import (
    RESERVED_WORDS,
    Variable,
    is_valid_identifier,
)

__all__ = [
    "RESERVED_WORDS",
    "And",
    "Compare",
    "Comparison",
    "Expr",
    "ExpressionCheck",
    "ExpressionScope",
    "Literal",
    "Name",
    "Not",
    "Or",
    "check_expression",
    "completion_suggestion",
    "conjuncts",
    "extract_comparison",
    "format_expression",
    "is_valid_identifier",
    "parse_comparison",
    "parse_expression",
    "validate_expression",
]

EQUALITY_OPERATORS = ("==", "!=")
ORDERING_OPERATORS = ("<", "<=", ">", ">=")

_LITERAL_VALUES: dict[str, bool | None] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<ident>[A-Za-z_$][A-Za-z0-9_$]*)
    |(?P<string>'[^']*'|"[^"]*")
    |(?P<op>==|!=|<=|>=|&&|\|\||<|>|!)
    |(?P<lparen>\()
    |(?P<rparen>\))
    """,
    re.VERBOSE,
)

_COMPARISON_RE = re.compile(r"([a-zA-Z_$][a-zA-Z0-9_$]*)\s*(==|!=)\s*(.+)")


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Name:
    """A bare identifier: a variable name or an unquoted domain value."""

    identifier: str


@dataclass(frozen=True)
class Literal:
    """A quoted string or one of the boolean/null keywords."""

    value: str | bool | None


@dataclass(frozen=True)
class Compare:
    """A binary comparison."""

    left: Expr
    op: str
    right: Expr


@dataclass(frozen=True)
class Not:
    """Logical negation."""

    operand: Expr


@dataclass(frozen=True)
class And:
    """Conjunction of two or more operands."""

    operands: tuple[Expr, ...]


@dataclass(frozen=True)
class Or:
    """Disjunction of two or more operands."""

    operands: tuple[Expr, ...]


Expr = Union[Name, Literal, Compare, Not, And, Or]


@dataclass(frozen=True)
class Comparison:
    """A simple ``Var == Value`` or ``Var != Value`` condition."""

    variable: str
    operator: str
    value: str


@dataclass(frozen=True)
class ExpressionCheck:
    """Outcome of validating an expression for an editor."""

    is_valid: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Tokenizer and parser
# ---------------------------------------------------------------------------


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(expression):
        match = _TOKEN_RE.match(expression, pos)
        if match is None:
            char = expression[pos]
            if char == "=":
                raise ExpressionSyntaxError(
                    expression, "Invalid operator: Use '==' for comparison, not '='."
                )
            if char in "'\"":
                raise ExpressionSyntaxError(
                    expression, f"Unterminated string starting at position {pos}"
                )
            raise ExpressionSyntaxError(
                expression, f"Unexpected character '{char}' at position {pos}"
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append(_Token(kind, match.group(), pos))
        pos = match.end()
    tokens.append(_Token("end", "", len(expression)))
    return tokens


class _Parser:
    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.index = 0

    def _peek(self) -> _Token:
        return self.tokens[self.index]

    def _advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _accept_op(self, *ops: str) -> str | None:
        token = self._peek()
        if token.kind == "op" and token.text in ops:
            self.index += 1
            return token.text
        return None

    def _error(self, detail: str) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(self.expression, detail)

    def parse(self) -> Expr:
        if self._peek().kind == "end":
            raise self._error("Expression cannot be empty")
        tree = self._parse_or()
        token = self._peek()
        if token.kind != "end":
            raise self._error(
                f"Unexpected token '{token.text}' at position {token.pos}"
            )
        return tree

    def _parse_or(self) -> Expr:
        operands = [self._parse_and()]
        while self._accept_op("||"):
            operands.append(self._parse_and())
        return operands[0] if len(operands) == 1 else Or(tuple(operands))

    def _parse_and(self) -> Expr:
        operands = [self._parse_compare()]
        while self._accept_op("&&"):
            operands.append(self._parse_compare())
        return operands[0] if len(operands) == 1 else And(tuple(operands))

    def _parse_compare(self) -> Expr:
        left = self._parse_unary()
        op = self._accept_op(*EQUALITY_OPERATORS, *ORDERING_OPERATORS)
        if op is None:
            return left
        right = self._parse_unary()
        if self._accept_op(*EQUALITY_OPERATORS, *ORDERING_OPERATORS):
            raise self._error("Chained comparisons are not supported; use '&&'")
        return Compare(left, op, right)

    def _parse_unary(self) -> Expr:
        # Binds tighter than comparison: !A == B is (!A) == B.
        if self._accept_op("!"):
            return Not(self._parse_unary())
        return self._parse_atom()

    def _parse_atom(self) -> Expr:
        token = self._advance()
        if token.kind == "ident":
            if token.text in _LITERAL_VALUES:
                return Literal(_LITERAL_VALUES[token.text])
            return Name(token.text)
        if token.kind == "string":
            return Literal(token.text[1:-1])
        if token.kind == "lparen":
            inner = self._parse_or()
            closing = self._advance()
            if closing.kind != "rparen":
                raise self._error(f"Expected ')' at position {closing.pos}")
            return inner
        if token.kind == "end":
            raise self._error("Unexpected end of expression")
        raise self._error(f"Unexpected token '{token.text}' at position {token.pos}")


@lru_cache(maxsize=1024)
def parse_expression(expression: str) -> Expr:
    """Parse an expression string into an AST.

    Raises:
        ExpressionSyntaxError: If the expression is empty or malformed.
    """
    return _Parser(expression).parse()


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _truthy(value: str | bool | None) -> bool:
    if value is None:
        return False
    return bool(value)


class ExpressionScope:
    """Names visible to an expression: declared variables and their domain values."""

    def __init__(self, variables: Iterable[Variable]) -> None:
        """Collect variable names and the union of all domains."""
        self.variables = list(variables)
        self.variable_names = frozenset(v.name for v in self.variables)
        self.domain_values = frozenset(
            value for v in self.variables for value in v.domain
        )

    def evaluate(self, expression: str | Expr, assignment: Mapping[str, str]) -> bool:
        """Evaluate an expression against a (possibly partial) assignment.

        Args:
            expression: Expression source or an already parsed AST.
            assignment: Variable name to domain value.

        Returns:
            The truth value of the expression.

        Raises:
            ExpressionSyntaxError: If the source cannot be parsed.
            MissingVariableError: If a declared variable has no assigned value.
            UnknownIdentifierError: If a name resolves to nothing.
        """
        tree = parse_expression(expression) if isinstance(expression, str) else expression
        return _truthy(self._eval(tree, assignment))

    def _resolve(self, name: str, assignment: Mapping[str, str]) -> str:
        if name in assignment:
            return assignment[name]
        if name in self.variable_names:
            raise MissingVariableError(name)
        if name in self.domain_values:
            return name
        raise UnknownIdentifierError(name)

    def _eval(self, node: Expr, assignment: Mapping[str, str]) -> str | bool | None:
        if isinstance(node, Name):
            return self._resolve(node.identifier, assignment)
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Not):
            return not _truthy(self._eval(node.operand, assignment))
        if isinstance(node, And):
            return all(_truthy(self._eval(op, assignment)) for op in node.operands)
        if isinstance(node, Or):
            return any(_truthy(self._eval(op, assignment)) for op in node.operands)
        if isinstance(node, Compare):
            left = self._eval(node.left, assignment)
            right = self._eval(node.right, assignment)
            return _compare(left, node.op, right)
        msg = f"Unknown expression node: {node!r}"
        raise DecisionGraphError(msg)


def _compare(left: str | bool | None, op: str, right: str | bool | None) -> bool:
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    if not isinstance(left, str) or not isinstance(right, str):
        return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    msg = f"Unknown operator: {op}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Static helpers over the AST
# ---------------------------------------------------------------------------


def _walk(node: Expr) -> Iterator[Expr]:
    yield node
    if isinstance(node, Not):
        yield from _walk(node.operand)
    elif isinstance(node, (And, Or)):
        for op in node.operands:
            yield from _walk(op)
    elif isinstance(node, Compare):
        yield from _walk(node.left)
        yield from _walk(node.right)


def _operand_text(node: Expr) -> str | None:
    if isinstance(node, Name):
        return node.identifier
    if isinstance(node, Literal) and isinstance(node.value, str):
        return node.value
    return None


def conjuncts(tree: Expr) -> tuple[Expr, ...]:
    """Split an expression on its top-level ``&&``."""
    if isinstance(tree, And):
        return tree.operands
    return (tree,)


def extract_comparison(node: Expr, variable_names: Iterable[str]) -> Comparison | None:
    """Recognize ``Var == Value`` / ``Var != Value`` (either operand order).

    Comparisons between two variables are not recognized.
    """
    if not isinstance(node, Compare) or node.op not in EQUALITY_OPERATORS:
        return None
    names = set(variable_names)
    left, right = _operand_text(node.left), _operand_text(node.right)
    if left is None or right is None:
        return None
    if isinstance(node.left, Name) and left in names and right not in names:
        return Comparison(left, node.op, right)
    if isinstance(node.right, Name) and right in names and left not in names:
        return Comparison(right, node.op, left)
    return None


def validate_expression(expression: str, variables: Iterable[Variable]) -> Expr:
    """Validate an expression before it is accepted by the editor.

    Checks, in order: syntax, that every identifier is a declared variable
    or a legal domain value, and that each ``Var == Value`` comparison uses
    a value from the variable's domain.

    Returns:
        The parsed AST.

    Raises:
        ExpressionSyntaxError: If the expression does not parse.
        UnknownIdentifierError: If a name resolves to nothing.
        InvalidDomainValueError: If a comparison uses an illegal value.
    """
    variables = list(variables)
    tree = parse_expression(expression)
    scope = ExpressionScope(variables)

    for node in _walk(tree):
        if isinstance(node, Name) and not (
            node.identifier in scope.variable_names
            or node.identifier in scope.domain_values
        ):
            raise UnknownIdentifierError(node.identifier)

    by_name = {v.name: v for v in variables}
    for node in _walk(tree):
        comparison = extract_comparison(node, scope.variable_names)
        if comparison is None:
            continue
        variable = by_name[comparison.variable]
        if comparison.value not in variable.domain:
            raise InvalidDomainValueError(variable.name, comparison.value, variable.domain)
    return tree


def check_expression(expression: str, variables: Iterable[Variable]) -> ExpressionCheck:
    """Non-raising form of :func:`validate_expression` for editors."""
    try:
        validate_expression(expression, variables)
    except (ExpressionSyntaxError, UnknownIdentifierError, InvalidDomainValueError) as e:
        return ExpressionCheck(is_valid=False, error=e.message)
    return ExpressionCheck(is_valid=True)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def format_expression(expression: str) -> str:
    """Canonicalize operator spacing; formatting twice changes nothing."""
    text = re.sub(r"\s*(==|!=|<=|>=|&&|\|\|)\s*", r" \1 ", expression)
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\(\s+", "(", text)
    text = re.sub(r"\s+\)", ")", text)
    return text.strip()


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def parse_comparison(expression: str) -> Comparison | None:
    """Match the first ``Var == Value`` pattern in free text, quotes stripped."""
    match = _COMPARISON_RE.search(expression)
    if match is None:
        return None
    return Comparison(match.group(1), match.group(2), _strip_quotes(match.group(3)))


def completion_suggestion(text: str, cursor: int, variables: Iterable[Variable]) -> str:
    """Return the characters that would complete the word at ``cursor``.

    After ``Var ==`` or ``Var !=`` the candidates are that variable's domain
    values; otherwise variable names. Matching is case-insensitive and the
    first candidate in declared order wins.
    """
    variables = list(variables)
    word_chars = re.compile(r"[a-zA-Z0-9_$]")

    start = cursor
    while start > 0 and word_chars.match(text[start - 1]):
        start -= 1
    prefix = text[start:cursor]

    if not prefix or (cursor < len(text) and word_chars.match(text[cursor])):
        return ""

    candidates: list[str] = []
    context = re.search(r"([a-zA-Z0-9_$]+)\s*(==|!=)\s*$", text[:start].rstrip())
    if context:
        variable = next((v for v in variables if v.name == context.group(1)), None)
        if variable is not None:
            candidates = [
                value for value in variable.domain if value.upper().startswith(prefix.upper())
            ]

    if not candidates:
        candidates = [v.name for v in variables if v.name.upper().startswith(prefix.upper())]

    if not candidates:
        return ""
    return candidates[0][len(prefix):]
