"""Exception classes for the decision graph module."""

from enum import Enum


class DecisionGraphError(Exception):
    """A base exception for the decision graph module."""

    def __init__(self, message: str):
        """Initialize the exception with a message."""
        self.message = message
        super().__init__(self.message)


class ExpressionSyntaxError(DecisionGraphError):
    """An error raised when an expression cannot be parsed."""

    def __init__(self, expression: str, detail: str):
        """Initialize the exception with a message.

        Args:
            expression (str): The expression that failed to parse.
            detail (str): What went wrong.
        """
        self.expression = expression
        self.detail = detail
        self.message = f"Syntax Error: {detail}"
        super().__init__(self.message)


class UnknownIdentifierError(DecisionGraphError):
    """An error raised when an expression references an unknown name."""

    def __init__(self, identifier: str):
        """Initialize the exception with a message.

        Args:
            identifier (str): The offending token.
        """
        self.identifier = identifier
        self.message = f'Unknown identifier: "{identifier}". Check variable names.'
        super().__init__(self.message)


class InvalidDomainValueError(DecisionGraphError):
    """An error raised when a variable is compared against a value outside its domain."""

    def __init__(self, variable: str, value: str, domain: list[str]):
        """Initialize the exception with a message.

        Args:
            variable (str): The variable name.
            value (str): The illegal value.
            domain (list[str]): The legal values of the variable.
        """
        self.variable = variable
        self.value = value
        self.domain = list(domain)
        self.message = (
            f"Invalid value '{value}' for variable '{variable}'. "
            f"Allowed values: {', '.join(domain)}"
        )
        super().__init__(self.message)


class MissingVariableError(DecisionGraphError):
    """An error raised when a guard references a variable absent from the assignment."""

    def __init__(self, variable: str):
        """Initialize the exception with a message.

        Args:
            variable (str): The variable with no assigned value.
        """
        self.variable = variable
        self.message = f"No value assigned to variable '{variable}'"
        super().__init__(self.message)


class UnknownNodeError(DecisionGraphError):
    """An error raised when a node id is not part of the graph."""

    def __init__(self, node_id: str):
        """Initialize the exception with a message."""
        self.node_id = node_id
        self.message = f"Node not found in graph: {node_id}"
        super().__init__(self.message)


class UnknownEdgeError(DecisionGraphError):
    """An error raised when an edge id is not part of the graph."""

    def __init__(self, edge_id: str):
        """Initialize the exception with a message."""
        self.edge_id = edge_id
        self.message = f"Edge not found in graph: {edge_id}"
        super().__init__(self.message)


class GraphWalkFault(str, Enum):
    """A fault met while walking the graph for a single assignment.

    Faults are carried in walk results rather than raised, so that one bad
    combination never aborts a batch.
    """

    NO_ROOT_NODE = "no_root_node"
    LOOP_DETECTED = "loop_detected"
    TOO_MANY_STEPS = "too_many_steps"
    STUCK_NO_OUTGOING_EDGE = "stuck_no_outgoing_edge"
    BROKEN_EDGE_TARGET = "broken_edge_target"
    EMPTY_GUARD_EXPRESSION = "empty_guard_expression"
    INVALID_EXPRESSION = "invalid_expression"
    MISSING_VARIABLE = "missing_variable"
