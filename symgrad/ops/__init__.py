# symgrad/ops/__init__.py

from . import arithmetic
from . import transcendental
from . import array_ops
from . import random_ops
from . import control_flow
from . import nn

# Convenience re-exports so users can do: from symgrad.ops import matmul, sin, ...
from .arithmetic import (
    add, sub, mul, div, pow, negate, multiply, divide, subtract,
    equal, less, greater, where, matmul, reduce_sum, reduce_prod,
)
from .transcendental import sin, cos, tan, tanh, exp, log, sqrt, square, abs, sign, erf
from .array_ops import (
    reshape, transpose, concat, slice, index, shape, rank,
    zeros, ones, eye, zeros_like, ones_like, zeros_initializer, ones_initializer,
    identity, stop_gradient, print_tensor, pad,
)
from .random_ops import random_uniform, random_normal, set_random_seed
from .control_flow import cond, group

__all__ = [
    "add", "sub", "mul", "div", "pow", "negate", "multiply", "divide", "subtract",
    "equal", "less", "greater", "where", "matmul", "reduce_sum", "reduce_prod",
    "sin", "cos", "tan", "tanh", "exp", "log", "sqrt", "square", "abs", "sign", "erf",
    "reshape", "transpose", "concat", "slice", "index", "shape", "rank",
    "zeros", "ones", "eye", "zeros_like", "ones_like", "zeros_initializer", "ones_initializer",
    "identity", "stop_gradient", "print_tensor", "pad",
    "random_uniform", "random_normal", "set_random_seed",
    "cond", "group",
    "nn",
]
