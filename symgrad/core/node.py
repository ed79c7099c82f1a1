# symgrad/core/node.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from . import graph as graph_mod  # module access so use_graph() swaps are seen
from .dtypes import DataType, as_dtype, infer_dtype
from .shape import TensorShape, shape_of_literal

# Every operation tag the Evaluator and math_gradients must handle.
OPERATION_KINDS = frozenset({
    # elementwise binary
    "add", "sub", "mul", "div", "pow",
    # comparisons / selection
    "equal", "less", "greater", "where", "cond",
    # elementwise unary
    "sin", "cos", "tan", "tanh", "log", "exp", "sqrt", "erf",
    "abs", "square", "sign", "negate",
    # pass-through
    "identity", "print", "stop_gradient", "pad",
    # linear algebra / reductions
    "matmul", "reduce_sum", "reduce_prod",
    # array manipulation
    "reshape", "transpose", "concat", "slice", "index", "shape", "rank",
    # generators
    "zeros", "ones", "eye", "zeros_like", "ones_like",
    "random_uniform", "random_normal",
    # state and graph control
    "assign", "assign_add", "assign_sub", "gradients", "flow_group",
})

_ELEMENTWISE_BINARY = ("add", "sub", "mul", "div", "pow", "less", "greater")
_SAME_SHAPE_UNARY = (
    "sin", "cos", "tan", "tanh", "log", "exp", "sqrt", "erf", "abs", "square",
    "sign", "negate", "identity", "print", "stop_gradient", "zeros_like", "ones_like",
)


class Tensor:
    """
    Data node of a graph.

    Attributes
    ----------
    name : str
        Unique within the owning graph. Default names carry the rank as a
        suffix, e.g. "Const:0", "Const_1:0".
    data_type : DataType
    shape : TensorShape
    is_const : bool
    value : Any
        A scalar, a nested list of scalars, an ndarray, or a nested list
        holding child nodes that still need evaluating.
    graph : Graph
        The graph that registered this node.
    """

    _default_name = "Const"

    def __init__(self, data_type=None, shape=None, *, value: Any = None,
                 is_const: bool = False, name: Optional[str] = None, graph=None):
        self.graph = graph or graph_mod.get_default_graph()
        self.data_type: DataType = as_dtype(data_type)
        self.shape = shape if isinstance(shape, TensorShape) else TensorShape(shape)
        self.is_const = is_const
        self.value = value
        self.name = name or self._build_name()
        self._register()

    def _build_name(self) -> str:
        base = self.graph.unique_name(self._default_name)
        return f"{base}:{self.rank if self.rank is not None else 0}"

    def _register(self):
        self.graph.register(self)

    @property
    def rank(self) -> Optional[int]:
        return self.shape.rank

    @property
    def dtype(self) -> DataType:
        return self.data_type

    def eval(self, feed_dict=None, session=None, retain=None):
        """Evaluate this node in a (new) Session bound to its graph."""
        from .session import Session
        session = session or Session(graph=self.graph)
        return session.run(self, feed_dict=feed_dict, retain=retain)

    def __str__(self):
        return self.name

    def __repr__(self):
        return (f"{type(self).__name__}({self.name!r}, dtype={self.data_type}, "
                f"shape={self.shape.as_list()!r})")

    # Python operators only build graph nodes; nothing is evaluated here
    def __add__(self, other):
        from ..ops.arithmetic import add
        return add(self, other)

    def __radd__(self, other):
        from ..ops.arithmetic import add
        return add(other, self)

    def __sub__(self, other):
        from ..ops.arithmetic import sub
        return sub(self, other)

    def __rsub__(self, other):
        from ..ops.arithmetic import sub
        return sub(other, self)

    def __mul__(self, other):
        from ..ops.arithmetic import mul
        return mul(self, other)

    def __rmul__(self, other):
        from ..ops.arithmetic import mul
        return mul(other, self)

    def __truediv__(self, other):
        from ..ops.arithmetic import div
        return div(self, other)

    def __rtruediv__(self, other):
        from ..ops.arithmetic import div
        return div(other, self)

    def __pow__(self, other):
        from ..ops.arithmetic import pow
        return pow(self, other)

    def __rpow__(self, other):
        from ..ops.arithmetic import pow
        return pow(other, self)

    def __neg__(self):
        from ..ops.arithmetic import negate
        return negate(self)

    def __lt__(self, other):
        from ..ops.arithmetic import less
        return less(self, other)

    def __gt__(self, other):
        from ..ops.arithmetic import greater
        return greater(self, other)

    def __getitem__(self, index):
        from ..ops.array_ops import index as _index
        return _index(self, index)

    def __iter__(self):
        # __getitem__ builds nodes, so implicit iteration would never stop
        raise TypeError("Tensor objects are not iterable")


class Operation(Tensor):
    """
    A node tagged with a computation kind.

    Attributes
    ----------
    operation : str
        One of OPERATION_KINDS.
    items : list
        Exactly two operand slots; the second is None for unary/nullary ops.
        Non-node operands are wrapped as constants unless the builder opts
        out (shape dimensions, target lists, ...).
    options : dict
        Op-specific parameters (axis, keepdims, transpose_a, shape, pred, ...).
    """

    def __init__(self, operation: str, a=None, b=None, options: Optional[Dict[str, Any]] = None,
                 *, name: Optional[str] = None, wrap_operands: bool = True, graph=None):
        if operation not in OPERATION_KINDS:
            raise ValueError(f"Unknown operation kind {operation!r}")
        graph = graph or graph_mod.get_default_graph()
        self.operation = operation
        self.options: Dict[str, Any] = dict(options or {})
        if wrap_operands:
            a = as_node(a, graph=graph)
            b = as_node(b, graph=graph)
        self.items: List[Any] = [a, b]
        self._default_name = self.options.pop("name", None) or operation
        data_type = self.options.get("dtype") or self._infer_dtype()
        super().__init__(data_type, self._infer_shape(), name=name, graph=graph)

    @property
    def inputs(self) -> List[Tensor]:
        """Operand nodes, including nodes held inside list operands."""
        found = []
        for item in self.items:
            _collect_nodes(item, found)
        for key in ("pred", "begin", "size"):
            _collect_nodes(self.options.get(key), found)
        return found

    def _infer_dtype(self) -> DataType:
        op = self.operation
        if op in ("equal", "less", "greater"):
            return DataType.BOOLEAN
        if op in ("shape", "rank"):
            return DataType.INT32
        if op in ("zeros", "ones", "eye", "random_uniform", "random_normal"):
            return DataType.FLOAT32
        for item in self.items:
            if isinstance(item, Tensor):
                return item.data_type
        return DataType.UNKNOWN

    def _infer_shape(self) -> Optional[List[Optional[int]]]:
        """Static shape when it follows from operand shapes; None otherwise."""
        op = self.operation
        a, b = self.items
        sa = a.shape.dims if isinstance(a, Tensor) else None
        sb = b.shape.dims if isinstance(b, Tensor) else None
        if op in _ELEMENTWISE_BINARY:
            if sa is None or sb is None:
                return None
            return sa if len(sa) >= len(sb) else sb
        if op in _SAME_SHAPE_UNARY:
            return sa
        if op in ("equal", "rank"):
            return []
        if op == "shape":
            return None if sa is None else [len(sa)]
        if op == "matmul":
            if sa is None or sb is None or len(sa) != 2 or len(sb) != 2:
                return None
            rows = sa[1] if self.options.get("transpose_a") else sa[0]
            cols = sb[0] if self.options.get("transpose_b") else sb[1]
            return [rows, cols]
        if op in ("reduce_sum", "reduce_prod"):
            if self.options.get("axis") is None and not self.options.get("keepdims"):
                return []
            return None
        if op in ("zeros", "ones"):
            return _static_dims(a)
        if op in ("random_uniform", "random_normal"):
            return _static_dims(self.options.get("shape"))
        if op == "eye":
            rows, cols = a, (b if b is not None else a)
            if isinstance(rows, int) and isinstance(cols, int):
                return [rows, cols]
        return None


def _static_dims(spec) -> Optional[List[int]]:
    if isinstance(spec, (list, tuple)) and all(isinstance(d, (int, np.integer)) for d in spec):
        return [int(d) for d in spec]
    return None


def _collect_nodes(item, found: list):
    if isinstance(item, Tensor):
        found.append(item)
    elif isinstance(item, (list, tuple)):
        for sub in item:
            _collect_nodes(sub, found)


def constant(value, dtype=None, shape=None, name: Optional[str] = None, graph=None) -> Tensor:
    """
    Build a constant node from a scalar, string, nested list or ndarray.

    A declared `shape` different from the literal's own is applied at
    evaluation time (flat lists are reshaped, scalars are filled).
    """
    if isinstance(value, Tensor):
        return value
    if not isinstance(value, (bool, int, float, str, list, tuple, np.ndarray, np.generic)):
        raise TypeError(
            f"constant() accepts scalars, strings, sequences or ndarrays, but got {type(value)}"
        )
    if isinstance(value, tuple):
        value = list(value)
    data_type = as_dtype(dtype) if dtype is not None else _literal_dtype(value)
    dims = list(shape) if shape is not None else shape_of_literal(value)
    return Tensor(data_type, dims, value=value, is_const=True, name=name, graph=graph)


def _literal_dtype(value) -> DataType:
    ptr = value
    while isinstance(ptr, (list, tuple)) and len(ptr) > 0:
        ptr = ptr[0]
    if isinstance(ptr, Tensor):
        return ptr.data_type
    return infer_dtype(value)


def as_node(value, graph=None):
    """Wrap a non-node operand as a constant; None and nodes pass through."""
    if value is None or isinstance(value, Tensor):
        return value
    return constant(value, graph=graph)
