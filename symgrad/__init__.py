# symgrad/__init__.py
# Deferred-evaluation computation graphs with symbolic differentiation

__version__ = "0.1.0"

from .core import errors
from .core import dtypes
from .core.dtypes import DataType, float32, int32, string, boolean
from .core.graph import Graph, GraphKeys, get_default_graph, reset_default_graph, use_graph
from .core.node import Operation, Tensor, constant
from .core.var import (
    Placeholder,
    Variable,
    get_variable,
    global_variables_initializer,
    placeholder,
    variable,
    variables_initializer,
)
from .core.session import Session
from .core.config import SessionConfig
from .core.math_gradients import gradients

# Graph builders
from . import ops
from .ops import *  # noqa: F401,F403
from .ops import nn

from . import train

__all__ = [
    "errors",
    "dtypes",
    "DataType", "float32", "int32", "string", "boolean",
    "Graph", "GraphKeys", "get_default_graph", "reset_default_graph", "use_graph",
    "Tensor", "Operation", "constant",
    "Variable", "Placeholder", "variable", "get_variable", "placeholder",
    "variables_initializer", "global_variables_initializer",
    "Session", "SessionConfig",
    "gradients",
    "ops", "train",
] + ops.__all__
