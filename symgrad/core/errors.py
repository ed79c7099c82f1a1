# symgrad/core/errors.py
"""Error kinds raised while building or evaluating a graph."""

from __future__ import annotations


class GraphError(Exception):
    """Base class for symgrad failures."""


class UninitializedVariableError(GraphError):
    """A Variable was evaluated before any value was assigned to it."""

    def __init__(self, name: str):
        super().__init__(f"variable {name} not initialized")
        self.name = name


class UnboundPlaceholderError(GraphError):
    """A Placeholder was evaluated without a matching feed."""

    def __init__(self, name: str):
        super().__init__(f"missing placeholder {name}")
        self.name = name


class DuplicateVariableError(GraphError, ValueError):
    """A variable name was declared twice without `reuse=True`."""

    def __init__(self, name: str):
        super().__init__(f"Variable {name} already exists, set reuse=True to share it")
        self.name = name


class UnsupportedOperationError(GraphError, NotImplementedError):
    """The operation tag has no evaluation or derivative rule."""


class UnsupportedReductionError(GraphError, ValueError):
    """Reduction axis outside None, 0, 1 or a list of those."""


class ShapeMismatchError(GraphError, ValueError):
    """Operand shapes are incompatible (matmul inner dims, reshape sizes, ...)."""


class NotATensorError(GraphError, TypeError):
    """A gradient target is not a graph node."""
