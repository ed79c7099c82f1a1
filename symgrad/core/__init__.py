# symgrad/core/__init__.py

"""
Core public API of symgrad.

Exports:
    Graph, GraphKeys    : Node registry and its standard collection names.
    get_default_graph   : The graph new nodes are added to.
    use_graph           : Context manager to temporarily switch the default graph.
    Tensor, Operation   : Data node and computation node.
    Variable            : Mutable state, set by its initializer or assign ops.
    Placeholder         : Value supplied through feed_dict.
    Session             : Evaluates nodes (one Evaluator per run call).
    gradients           : Build the node for d(ys)/d(xs).
"""

from .graph import Graph, GraphKeys, get_default_graph, reset_default_graph, use_graph
from .node import Operation, Tensor, constant
from .var import (
    Placeholder,
    Variable,
    get_variable,
    global_variables_initializer,
    placeholder,
    variable,
    variables_initializer,
)
from .session import Session
from .config import SessionConfig
from .math_gradients import derivative, gradients

__all__ = [
    "Graph", "GraphKeys", "get_default_graph", "reset_default_graph", "use_graph",
    "Tensor", "Operation", "constant",
    "Variable", "Placeholder", "variable", "get_variable", "placeholder",
    "variables_initializer", "global_variables_initializer",
    "Session", "SessionConfig",
    "derivative", "gradients",
]
