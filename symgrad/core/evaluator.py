# symgrad/core/evaluator.py
"""
Tree-walking interpreter that turns graph nodes into concrete values.

`evaluate_step` performs one level of reduction and returns either a
`Concrete` value or a `Symbolic` node (a retained node, or a lazily rebuilt
operation over operands that could not be reduced). `evaluate_fully`
repeats the step until the result is concrete or stops changing, which is
how sub-graphs produced during evaluation (gradients) get evaluated too.
"""
from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Union

import numpy as np
from scipy.special import erf as scipy_erf

from ..kernels.backend import MatmulBackend, NumpyBackend
from .dtypes import DataType, cast
from .errors import (
    NotATensorError,
    ShapeMismatchError,
    UnboundPlaceholderError,
    UninitializedVariableError,
    UnsupportedOperationError,
    UnsupportedReductionError,
)
from .node import Operation, Tensor, constant
from .var import Placeholder, Variable


@dataclass(frozen=True)
class Concrete:
    value: Any


@dataclass(frozen=True)
class Symbolic:
    node: Tensor


StepResult = Union[Concrete, Symbolic]


# ---------------------------------------------------------------------------
# value helpers
# ---------------------------------------------------------------------------
def _scalarize(value):
    """0-d arrays become numpy scalars; everything else passes through."""
    if isinstance(value, np.ndarray) and value.ndim == 0:
        return value[()]
    return value


def broadcast_apply(fn: Callable, a, b):
    """
    Apply a binary elementwise `fn` with the rank-aware broadcast rule:
      - a rank-0 side is applied against every leaf of the other side
      - equal ranks must have equal shapes
      - otherwise recurse into the higher-rank side's children against the
        lower-rank side as a whole (rank-2 + rank-1 adds the vector to each row)
    """
    ra, rb = np.ndim(a), np.ndim(b)
    if ra == 0 or rb == 0:
        return _scalarize(fn(a, b))
    if ra == rb:
        if np.shape(a) != np.shape(b):
            raise ShapeMismatchError(
                f"Incompatible shapes {list(np.shape(a))} and {list(np.shape(b))}"
            )
        return _scalarize(fn(np.asarray(a), np.asarray(b)))
    if ra > rb:
        parts = [broadcast_apply(fn, item, b) for item in a]
    else:
        parts = [broadcast_apply(fn, a, item) for item in b]
    return np.array(parts)


def _sign(x):
    x = np.asarray(x)
    if x.dtype.kind in "iub":
        return _scalarize(np.sign(x))
    return _scalarize(np.where(np.isnan(x), 0.0, np.sign(x)))


def _materialize(value, dtype: DataType):
    """Literal (nested list / scalar / ndarray) -> concrete numpy value."""
    if value is None or isinstance(value, str):
        return value
    storage = dtype.storage if dtype is not None else None
    try:
        arr = np.asarray(value, dtype=storage)
    except ValueError as exc:
        raise ShapeMismatchError(f"Ragged or malformed literal: {exc}") from exc
    return _scalarize(arr)


def _apply_declared_shape(value, dims):
    """Reshape a flat literal / fill a scalar so it matches a declared shape."""
    if dims is None or any(d is None for d in dims) or isinstance(value, str):
        return value
    if list(np.shape(value)) == list(dims):
        return value
    if np.ndim(value) == 0:
        return np.full(dims, value)
    if np.size(value) == int(np.prod(dims, dtype=np.int64)):
        return _scalarize(np.reshape(value, dims))
    raise ShapeMismatchError(
        f"Literal of shape {list(np.shape(value))} does not fit declared shape {list(dims)}"
    )


def _as_dims(value) -> list:
    return [int(d) for d in np.ravel(np.asarray(value, dtype=np.int64))]


def _reshape(value, shape):
    flat = np.ravel(value)
    dims = _as_dims(shape)
    unknown = [i for i, d in enumerate(dims) if d == -1]
    if len(unknown) > 1:
        raise ShapeMismatchError(f"Only one dimension can be inferred, got {dims}")
    known = int(np.prod([d for d in dims if d != -1], dtype=np.int64))
    if unknown:
        if known == 0 or flat.size % known != 0:
            raise ShapeMismatchError(f"Cannot reshape {flat.size} elements into {dims}")
        dims[unknown[0]] = flat.size // known
    elif known != flat.size:
        raise ShapeMismatchError(f"Cannot reshape {flat.size} elements into {dims}")
    return _scalarize(flat.reshape(dims))


def _check_axis(axis):
    if axis is None or (isinstance(axis, (int, np.integer)) and axis in (0, 1)):
        return
    if isinstance(axis, (list, tuple, np.ndarray)) and all(
            isinstance(a, (int, np.integer)) and a in (0, 1) for a in axis):
        return
    raise UnsupportedReductionError(f"Unsupported reduction axis {axis!r}")


_BINARY_FUNCS = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "div": operator.truediv,
    "pow": operator.pow,
    "less": np.less,
    "greater": np.greater,
}

_UNARY_FUNCS = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "tanh": np.tanh,
    "log": np.log,
    "exp": np.exp,
    "sqrt": np.sqrt,
    "erf": scipy_erf,
    "abs": np.abs,
    "square": np.square,
    "sign": _sign,
    "negate": np.negative,
}


# ---------------------------------------------------------------------------
# evaluator
# ---------------------------------------------------------------------------
class Evaluator:
    """
    Interpreter bound to one graph and one evaluation request.

    Args:
        graph: graph whose nodes are evaluated (new lazy nodes go here too).
        feeds: placeholder node -> supplied value (literal or node).
        retain: nodes that must stay symbolic.
        backend: accelerator used for the final matrix product of `matmul`.
    """

    def __init__(self, graph, feeds: Optional[Dict[Tensor, Any]] = None,
                 retain: Optional[Iterable[Tensor]] = None,
                 backend: Optional[MatmulBackend] = None):
        self.graph = graph
        self.feeds = dict(feeds or {})
        self.retain = list(retain or [])
        self._retained = {id(node) for node in self.retain}
        self.backend = backend or NumpyBackend()
        # id(node) -> concrete value, valid for this request only
        self.cache: Dict[int, Any] = {}

    # ----------------------------- driving loop ----------------------------- #
    def evaluate_fully(self, node):
        """Reduce `node` until it is concrete; a node comes back only if it stays symbolic."""
        if not isinstance(node, Tensor):
            return node
        start = node
        if id(start) in self.cache:
            return self.cache[id(start)]
        while True:
            result = self.evaluate_step(node)
            if isinstance(result, Concrete):
                if not isinstance(start, Variable):
                    self.cache[id(start)] = result.value
                return result.value
            if result.node is node:
                return node
            node = result.node

    def evaluate_step(self, node) -> StepResult:
        if not isinstance(node, Tensor):
            return Concrete(node)
        if id(node) in self._retained:
            return Symbolic(node)
        if isinstance(node, Variable):
            return self._eval_variable(node)
        if id(node) in self.cache:
            return Concrete(self.cache[id(node)])
        if isinstance(node, Placeholder):
            return self._eval_placeholder(node)
        if isinstance(node, Operation):
            return self._eval_operation(node)
        return self._eval_tensor(node)

    def _resolve(self, item):
        """Fully evaluate an operand slot; lists are resolved element by element."""
        if isinstance(item, (list, tuple)):
            return [self._resolve(sub) for sub in item]
        return self.evaluate_fully(item)

    # ------------------------------ leaf nodes ------------------------------ #
    def _eval_variable(self, node: Variable) -> StepResult:
        if node.value is None:
            raise UninitializedVariableError(node.name)
        return Concrete(node.value)

    def _eval_placeholder(self, node: Placeholder) -> StepResult:
        if node not in self.feeds:
            raise UnboundPlaceholderError(node.name)
        value = self.evaluate_fully(self.feeds[node])
        if isinstance(value, Tensor):
            return Symbolic(value)
        if node.data_type is DataType.UNKNOWN:
            return Concrete(_materialize(value, None))
        return Concrete(cast(value, node.data_type))

    def _eval_tensor(self, node: Tensor) -> StepResult:
        value = node.value
        if isinstance(value, Tensor):
            resolved = self.evaluate_fully(value)
            return Symbolic(resolved) if isinstance(resolved, Tensor) else Concrete(resolved)
        if isinstance(value, (list, tuple)) and _has_node(value):
            resolved = self._resolve(value)
            if _has_node(resolved):
                if _same_nodes(value, resolved):
                    return Symbolic(node)
                return Symbolic(constant(_wrap_leaves(value, resolved, node.graph),
                                         dtype=node.data_type, graph=node.graph))
            try:
                return Concrete(_materialize(resolved, node.data_type))
            except ShapeMismatchError:
                # children of different shapes (e.g. one gradient per target)
                return Concrete(resolved)
        value = _materialize(value, node.data_type)
        return Concrete(_apply_declared_shape(value, node.shape.dims))

    # ------------------------------ operations ------------------------------ #
    def _eval_operation(self, node: Operation) -> StepResult:
        handler = self._HANDLERS.get(node.operation)
        if handler is None:
            raise UnsupportedOperationError(f"unknown op {node.operation}")
        return handler(self, node)

    def _lazy(self, node: Operation, resolved: list) -> StepResult:
        """
        Rebuild `node` over operands that stayed symbolic. Returns the node
        itself when nothing changed, so evaluate_fully terminates.
        """
        if _same_nodes(node.items, resolved):
            return Symbolic(node)
        items = _wrap_leaves(node.items, resolved, node.graph)
        rebuilt = Operation(node.operation, items[0], items[1], dict(node.options),
                            wrap_operands=False, graph=node.graph)
        return Symbolic(rebuilt)

    def _binary(self, node):
        a, b = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(b, Tensor):
            return self._lazy(node, [a, b])
        return Concrete(broadcast_apply(_BINARY_FUNCS[node.operation], a, b))

    def _unary(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            return self._lazy(node, [a, None])
        with np.errstate(divide="ignore", invalid="ignore"):
            return Concrete(_scalarize(_UNARY_FUNCS[node.operation](a)))

    def _passthrough(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            return self._lazy(node, [a, node.items[1]])
        return Concrete(a)

    def _print(self, node):
        a, data = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(data, Tensor):
            return self._lazy(node, [a, data])
        print(f"{node.options.get('message', '')} {data}")
        return Concrete(a)

    def _equal(self, node):
        a, b = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(b, Tensor):
            return self._lazy(node, [a, b])
        same = np.shape(a) == np.shape(b) and bool(np.array_equal(a, b))
        return Concrete(np.bool_(same))

    def _where(self, node):
        pred = self.evaluate_fully(node.options["pred"])
        if isinstance(pred, Tensor):
            return Symbolic(node)
        a, b = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(b, Tensor):
            return self._lazy(node, [a, b])
        return Concrete(_scalarize(np.where(pred, a, b)))

    def _cond(self, node):
        pred = self.evaluate_fully(node.options["pred"])
        if isinstance(pred, Tensor):
            return Symbolic(node)
        branch = node.items[0] if bool(np.all(pred)) else node.items[1]
        value = self.evaluate_fully(branch)
        return Symbolic(value) if isinstance(value, Tensor) else Concrete(value)

    def _matmul(self, node):
        a, b = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(b, Tensor):
            return self._lazy(node, [a, b])
        a, b = np.asarray(a), np.asarray(b)
        if node.options.get("transpose_a") and a.ndim == 2:
            a = a.T
        if node.options.get("transpose_b") and b.ndim == 2:
            b = b.T
        # a bare scalar becomes a square matrix matching the other side's inner dim
        if a.ndim == 0 and b.ndim == 2:
            a = np.full((b.shape[0], b.shape[0]), a, dtype=b.dtype)
        if b.ndim == 0 and a.ndim == 2:
            b = np.full((a.shape[1], a.shape[1]), b, dtype=a.dtype)
        if a.ndim != 2 or b.ndim != 2:
            raise ShapeMismatchError(
                f"matmul expects rank-2 operands, got shapes {list(a.shape)} and {list(b.shape)}"
            )
        if a.shape[1] != b.shape[0]:
            raise ShapeMismatchError(
                f"matmul inner dimensions differ: {list(a.shape)} x {list(b.shape)}"
            )
        return Concrete(self.backend.matmul(a, b))

    def _reduce(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            return self._lazy(node, [a, None])
        axis = self.evaluate_fully(node.options.get("axis"))
        if isinstance(axis, np.ndarray):
            axis = axis.tolist()
        _check_axis(axis)
        if isinstance(axis, (list, tuple)):
            axis = tuple(sorted(set(int(x) for x in axis)))
        fn = np.sum if node.operation == "reduce_sum" else np.prod
        try:
            return Concrete(_scalarize(fn(a, axis=axis, keepdims=bool(node.options.get("keepdims")))))
        except np.exceptions.AxisError as exc:
            raise ShapeMismatchError(str(exc)) from exc

    def _reshape(self, node):
        a, shape = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(shape, Tensor):
            return self._lazy(node, [a, shape])
        return Concrete(_reshape(a, shape))

    def _transpose(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            return self._lazy(node, [a, None])
        return Concrete(_scalarize(np.transpose(a, node.options.get("perm"))))

    def _concat(self, node):
        values = self._resolve(node.items[0])
        if _has_node(values):
            return self._lazy(node, [values, None])
        axis = int(self.evaluate_fully(node.options.get("axis", 0)))
        if axis < 0:
            axis += np.ndim(values[0])
        try:
            return Concrete(np.concatenate([np.asarray(v) for v in values], axis=axis))
        except ValueError as exc:
            raise ShapeMismatchError(str(exc)) from exc

    def _slice(self, node):
        a, begin = self._resolve(node.items[0]), self._resolve(node.items[1])
        size = self.evaluate_fully(node.options.get("size"))
        if isinstance(a, Tensor) or isinstance(begin, Tensor) or isinstance(size, Tensor):
            return self._lazy(node, [a, begin])
        begin, size = _as_dims(begin), _as_dims(size)
        if len(begin) != len(size):
            raise ShapeMismatchError(f"slice begin {begin} and size {size} differ in length")
        window = tuple(slice(start, None if n == -1 else start + n) for start, n in zip(begin, size))
        return Concrete(_scalarize(np.asarray(a)[window]))

    def _index(self, node):
        a, i = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(i, Tensor):
            return self._lazy(node, [a, i])
        return Concrete(_scalarize(a[int(i)]))

    def _shape(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            if a.shape.is_fully_defined():
                return Concrete(np.asarray(a.shape.dims, dtype=np.int64))
            return self._lazy(node, [a, None])
        return Concrete(np.asarray(np.shape(a), dtype=np.int64))

    def _rank(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            if a.rank is not None:
                return Concrete(np.int64(a.rank))
            return self._lazy(node, [a, None])
        return Concrete(np.int64(np.ndim(a)))

    def _resolve_dims(self, spec) -> Optional[list]:
        if spec is None:
            return None
        dims = self._resolve(spec)
        if _has_node(dims):
            return None
        return _as_dims(dims)

    def _fill(self, node):
        if node.items[0] is None:
            dims = []
        else:
            dims = self._resolve_dims(node.items[0])
            if dims is None:
                return Symbolic(node)
        fill = np.zeros if node.operation == "zeros" else np.ones
        return Concrete(_scalarize(fill(dims, dtype=node.data_type.storage or np.float64)))

    def _fill_like(self, node):
        a = self._resolve(node.items[0])
        if isinstance(a, Tensor):
            return self._lazy(node, [a, None])
        fill = np.zeros_like if node.operation == "zeros_like" else np.ones_like
        return Concrete(_scalarize(fill(np.asarray(a))))

    def _eye(self, node):
        rows = self.evaluate_fully(node.items[0])
        cols = self.evaluate_fully(node.items[1]) if node.items[1] is not None else rows
        if isinstance(rows, Tensor) or isinstance(cols, Tensor):
            return Symbolic(node)
        return Concrete(np.eye(int(rows), int(cols), dtype=node.data_type.storage or np.float64))

    def _pad(self, node):
        a, paddings = self._resolve(node.items[0]), self._resolve(node.items[1])
        if isinstance(a, Tensor) or isinstance(paddings, Tensor):
            return self._lazy(node, [a, paddings])
        pad_width = np.asarray(paddings, dtype=np.int64).tolist()
        return Concrete(np.pad(np.asarray(a), pad_width,
                               constant_values=node.options.get("constant_values", 0)))

    def _random(self, node):
        from ..ops.random_ops import generator_for
        spec = node.options.get("shape")
        dims = self._resolve_dims(spec)
        if dims is None:
            if spec is not None:
                return Symbolic(node)
            dims = []
        rng = generator_for(node)
        opts = node.options
        if node.operation == "random_uniform":
            if node.data_type is DataType.INT32:
                values = rng.integers(opts.get("minval", 0), opts.get("maxval"), size=dims)
            else:
                values = rng.uniform(opts.get("minval", 0), opts.get("maxval", 1), size=dims)
        else:
            values = rng.normal(opts.get("mean", 0.0), opts.get("stddev", 1.0), size=dims)
        return Concrete(cast(values, node.data_type))

    def _assign(self, node):
        var = node.items[0]
        value = self._resolve(node.items[1])
        if isinstance(value, Tensor):
            return self._lazy(node, [var, value])
        if node.operation != "assign":
            if var.value is None:
                raise UninitializedVariableError(var.name)
            fn = operator.add if node.operation == "assign_add" else operator.sub
            value = broadcast_apply(fn, var.value, value)
        if var.data_type is not DataType.UNKNOWN:
            value = cast(value, var.data_type)
        var.value = value
        return Concrete(value)

    def _gradients(self, node):
        from .math_gradients import derivative
        ys, xs = node.items
        stop_gradients = node.options.get("stop_gradients") or []
        results = []
        for target in xs:
            if not isinstance(target, Tensor):
                raise NotATensorError(f"{target!r} is not a graph node")
            target_value = self.evaluate_fully(target)
            if isinstance(target_value, Tensor):
                target_shape = target.shape.as_list()
            else:
                target_shape = list(np.shape(target_value))
            grad = derivative(ys, target, stop_gradients=stop_gradients, target_shape=target_shape)
            value = self.evaluate_fully(grad)
            if not isinstance(value, Tensor) and target_shape is not None \
                    and np.ndim(value) < len(target_shape):
                # gradient of a sum: spread over every element of the target
                try:
                    value = np.broadcast_to(value, target_shape).copy()
                except ValueError as exc:
                    raise ShapeMismatchError(str(exc)) from exc
            results.append(value)
        if _has_node(results):
            return Symbolic(constant(_wrap_leaves(results, results, node.graph), graph=node.graph))
        return Concrete(results)

    def _group(self, node):
        for item in node.items[0]:
            self.evaluate_fully(item)
        return Concrete(None)

    _HANDLERS: Dict[str, Callable] = {
        "add": _binary, "sub": _binary, "mul": _binary, "div": _binary, "pow": _binary,
        "less": _binary, "greater": _binary,
        "equal": _equal, "where": _where, "cond": _cond,
        "sin": _unary, "cos": _unary, "tan": _unary, "tanh": _unary, "log": _unary,
        "exp": _unary, "sqrt": _unary, "erf": _unary, "abs": _unary, "square": _unary,
        "sign": _unary, "negate": _unary,
        "identity": _passthrough, "stop_gradient": _passthrough, "print": _print, "pad": _pad,
        "matmul": _matmul, "reduce_sum": _reduce, "reduce_prod": _reduce,
        "reshape": _reshape, "transpose": _transpose, "concat": _concat, "slice": _slice,
        "index": _index, "shape": _shape, "rank": _rank,
        "zeros": _fill, "ones": _fill, "eye": _eye, "zeros_like": _fill_like, "ones_like": _fill_like,
        "random_uniform": _random, "random_normal": _random,
        "assign": _assign, "assign_add": _assign, "assign_sub": _assign,
        "gradients": _gradients, "flow_group": _group,
    }


# ---------------------------------------------------------------------------
# structure helpers for lists that mix values and nodes
# ---------------------------------------------------------------------------
def _has_node(value) -> bool:
    if isinstance(value, Tensor):
        return True
    if isinstance(value, (list, tuple)):
        return any(_has_node(v) for v in value)
    return False


def _same_nodes(original, resolved) -> bool:
    """True when every symbolic leaf of `resolved` is the original node in that slot."""
    if isinstance(resolved, Tensor):
        return resolved is original
    if isinstance(resolved, (list, tuple)) and isinstance(original, (list, tuple)):
        return all(_same_nodes(o, r) for o, r in zip(original, resolved))
    return True


def _wrap_leaves(original, resolved, graph):
    """Rebuild operands: symbolic leaves stay nodes, values that replaced nodes become constants."""
    if isinstance(resolved, Tensor):
        return resolved
    if isinstance(resolved, list) and isinstance(original, (list, tuple)):
        return [_wrap_leaves(o, r, graph) for o, r in zip(original, resolved)]
    if isinstance(original, Tensor) and resolved is not None:
        return constant(resolved, graph=graph)
    return resolved
