# symgrad/core/math_gradients.py
"""
Symbolic reverse-mode differentiation.

`derivative(y, x)` returns a new graph node whose value is dy/dx. Nothing is
evaluated here: the Evaluator runs the derivative node like any other.
Derivative sub-graphs are memoized per graph so that shared sub-expressions
are differentiated once.

For an operation the derivative is built from its operands' derivatives
(chain rule) using the rules in `_RULES`. `_ds` unwraps a top-level
reduce_sum so that a scalar sum used as an operand contributes its
elementwise values.
"""
from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, List, Optional

from ..ops.arithmetic import equal, less, matmul, reduce_prod, where
from ..ops.array_ops import ones, ones_like, shape, zeros, zeros_like
from ..ops.control_flow import cond
from ..ops.transcendental import cos, exp, log, sign, sin, sqrt, square, tanh
from .dtypes import DataType
from .errors import NotATensorError, UnsupportedOperationError
from .graph import use_graph
from .node import Operation, Tensor, constant
from .var import Placeholder, Variable


class _Context:
    """What a rule needs besides the node: the target and the recursion."""

    def __init__(self, wrt, stop_gradients, target_shape, dtype):
        self.wrt = wrt
        self.stop_gradients = stop_gradients
        self.target_shape = target_shape
        self.dtype = dtype

    def d(self, node):
        return derivative(node, self.wrt, self.stop_gradients, self.target_shape, self.dtype)

    def cons(self, value, like=None):
        return constant(value, dtype=_grad_dtype(like, self.dtype))


def _grad_dtype(node, dtype=None) -> DataType:
    if dtype is not None:
        return dtype
    if isinstance(node, Tensor) and node.data_type in (DataType.FLOAT32, DataType.INT32):
        return node.data_type
    return DataType.FLOAT32


def _ds(node):
    """Strip a top-level reduce_sum."""
    if isinstance(node, Operation) and node.operation == "reduce_sum":
        return node.items[0]
    return node


def derivative(tensor, wrt, stop_gradients: Optional[Iterable[Tensor]] = None,
               target_shape: Optional[List[int]] = None, dtype=None):
    """
    Build the node for d(tensor)/d(wrt).

    Args:
        tensor: node being differentiated.
        wrt: node to differentiate with respect to.
        stop_gradients: nodes treated as constants.
        target_shape: concrete shape of `wrt`; used to shape matmul gradients.
        dtype: data type of the constants introduced by the rules.
    """
    if not isinstance(wrt, Tensor):
        raise NotATensorError(f"{wrt!r} is not a graph node")
    stop_gradients = list(stop_gradients or [])
    graph = tensor.graph if isinstance(tensor, Tensor) else wrt.graph
    key = (
        tensor.name if isinstance(tensor, Tensor) else repr(tensor),
        wrt.name,
        tuple(sorted(s.name for s in stop_gradients)),
        None if target_shape is None else tuple(target_shape),
        dtype,
    )
    cached = graph.gradient_cache.get(key)
    if cached is not None:
        return cached

    with use_graph(graph):
        ctx = _Context(wrt, stop_gradients, target_shape, dtype)
        result = _derivative(tensor, ctx)
    graph.gradient_cache[key] = result
    return result


def _derivative(tensor, ctx: _Context):
    if tensor is ctx.wrt:
        if isinstance(tensor, Variable):
            return ones(shape(tensor), dtype=_grad_dtype(tensor, ctx.dtype))
        return ctx.cons(1, tensor)
    if any(tensor is s for s in ctx.stop_gradients):
        return ctx.cons(0, tensor)
    if isinstance(tensor, Variable):
        return zeros(shape(tensor), dtype=_grad_dtype(tensor, ctx.dtype))
    if isinstance(tensor, Placeholder):
        return ctx.cons(0, tensor)
    if isinstance(tensor, Operation):
        rule = _RULES.get(tensor.operation)
        if rule is None:
            raise UnsupportedOperationError(f"no gradient for {tensor.operation}")
        return rule(tensor, ctx)
    return ctx.cons(0, tensor)


# ---------------------------------------------------------------------------
# rules: (node, ctx) -> derivative node
# ---------------------------------------------------------------------------
def _broadcast_rule(combine: Callable):
    """
    add/sub over operands with different element counts: the gradient of
    the smaller operand is scaled by how many times it was broadcast.
    """
    def rule(node, ctx):
        a, b = node.items
        ga, gb = ctx.d(a), ctx.d(b)
        n_a, n_b = reduce_prod(shape(a)), reduce_prod(shape(b))
        return cond(less(n_a, n_b),
                    lambda: combine(ga * (n_b / n_a), gb),
                    lambda: combine(ga, gb * (n_a / n_b)))
    return rule


def _mul_rule(node, ctx):
    a, b = node.items
    return ctx.d(a) * _ds(b) + _ds(a) * ctx.d(b)


def _div_rule(node, ctx):
    a, b = node.items
    gx = ctx.d(a) / _ds(b)
    gy = ctx.d(b) * ((-_ds(a) / _ds(b)) / _ds(b))
    return gx + gy


def _pow_rule(node, ctx):
    x, y = node.items
    gx = _ds(y) * (_ds(x) ** (_ds(y) - 1)) * ctx.d(x)
    # log(x) only where it is defined
    log_x = where(log(x), zeros_like(x), x > 0)
    gy = _ds(x) ** _ds(y) * log_x * ctx.d(y)
    return gx + gy


def _where_rule(node, ctx):
    a, b = node.items
    mask = where(ones_like(a), zeros_like(a), node.options["pred"])
    return ctx.d(a) * mask + ctx.d(b) * (1 - mask)


def _cond_rule(node, ctx):
    a, b = node.items
    return cond(node.options["pred"], ctx.d(a), ctx.d(b))


def _passthrough_rule(node, ctx):
    return ctx.d(node.items[0])


def _zero_rule(node, ctx):
    return ctx.cons(0, node)


def _unsupported_rule(node, ctx):
    raise UnsupportedOperationError(f"no gradient for {node.operation}")


def _matmul_rule(node, ctx):
    """
    d(a @ b): each operand's derivative is weighted by the product of the
    other operand with a ones matrix of the output's shape. A term whose
    shape does not match the target's is replaced by zeros.
    """
    a, b = node.items
    s0, s1 = shape(a), shape(b)
    ones_a = ones([s0[0], s1[1]], dtype=_grad_dtype(a))
    ones_b = ones([s0[0], s1[1]], dtype=_grad_dtype(b))
    matmul_da = matmul(ones_a, b, transpose_b=True)
    matmul_db = matmul(a, ones_b, transpose_a=True)

    target_shape = ctx.target_shape
    if target_shape is None or any(d is None for d in target_shape):
        target = shape(ctx.wrt)
    else:
        target = list(target_shape)
    zero_vect = zeros(target, dtype=_grad_dtype(ctx.wrt, ctx.dtype))

    norm_a = ctx.d(a) * matmul_da
    norm_b = ctx.d(b) * matmul_db
    return (cond(equal(shape(norm_a), target), norm_a, zero_vect)
            + cond(equal(shape(norm_b), target), norm_b, zero_vect))


def _unary(fn: Callable):
    """Rule for f(a): fn(node, a, _ds(a)) * d(a)."""
    def rule(node, ctx):
        a = node.items[0]
        return fn(node, a, _ds(a)) * ctx.d(a)
    return rule


_RULES: Dict[str, Callable] = {
    "add": _broadcast_rule(lambda x, y: x + y),
    "sub": _broadcast_rule(lambda x, y: x - y),
    "mul": _mul_rule,
    "div": _div_rule,
    "pow": _pow_rule,
    "where": _where_rule,
    "cond": _cond_rule,
    "matmul": _matmul_rule,
    "negate": _unary(lambda node, a, ds: -1),
    "abs": _unary(lambda node, a, ds: sign(ds)),
    "square": _unary(lambda node, a, ds: 2 * ds),
    "exp": _unary(lambda node, a, ds: node),
    "log": _unary(lambda node, a, ds: 1 / ds),
    "tanh": _unary(lambda node, a, ds: 1 - tanh(ds) ** 2),
    "tan": _unary(lambda node, a, ds: 1 / cos(ds) ** 2),
    "sin": _unary(lambda node, a, ds: cos(a)),
    "cos": _unary(lambda node, a, ds: -sin(a)),
    "sqrt": _unary(lambda node, a, ds: 1 / (2 * sqrt(ds))),
    "erf": _unary(lambda node, a, ds: (2 / math.sqrt(math.pi)) * exp(-square(a))),
    "identity": _passthrough_rule,
    "print": _passthrough_rule,
    "pad": _passthrough_rule,
    "reduce_sum": _passthrough_rule,
    "stop_gradient": _zero_rule,
    # piecewise constant or independent of their inputs
    "equal": _zero_rule,
    "less": _zero_rule,
    "greater": _zero_rule,
    "sign": _zero_rule,
    "shape": _zero_rule,
    "rank": _zero_rule,
    "zeros": _zero_rule,
    "ones": _zero_rule,
    "eye": _zero_rule,
    "zeros_like": _zero_rule,
    "ones_like": _zero_rule,
    "random_uniform": _zero_rule,
    "random_normal": _zero_rule,
    "reduce_prod": _unsupported_rule,
    "reshape": _unsupported_rule,
    "transpose": _unsupported_rule,
    "concat": _unsupported_rule,
    "slice": _unsupported_rule,
    "index": _unsupported_rule,
    "assign": _unsupported_rule,
    "assign_add": _unsupported_rule,
    "assign_sub": _unsupported_rule,
    "gradients": _unsupported_rule,
    "flow_group": _unsupported_rule,
}


def gradients(ys, xs, stop_gradients=None, name=None) -> Operation:
    """
    Build a node evaluating to [d(ys)/d(x) for x in xs].

    Each gradient has the shape of its target: the derivative of a scalar
    reduction is spread over every element of the target.
    """
    if isinstance(xs, Tensor):
        xs = [xs]
    options = {"stop_gradients": list(stop_gradients or [])}
    if name:
        options["name"] = name
    return Operation("gradients", ys, list(xs), options, wrap_operands=False)
