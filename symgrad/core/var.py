# symgrad/core/var.py
from __future__ import annotations

from typing import Any, Optional

from . import graph as graph_mod
from .dtypes import DataType, as_dtype
from .node import Operation, Tensor, as_node, constant
from .shape import shape_of_literal

# initializer ops that take their shape from the variable they initialize
_SHAPED_INITIALIZERS = ("zeros", "ones", "random_uniform", "random_normal")


class Variable(Tensor):
    """
    Graph node holding mutable state.

    Attributes
    ----------
    value : Any
        Current concrete value; None until the initializer (or an assign op)
        has been evaluated.
    initializer_value : Tensor | None
        Node whose value the initializer assigns.
    trainable : bool
        Whether optimizers update this variable.
    """

    _default_name = "Variable"

    def __init__(self, data_type=None, shape=None, *, initializer=None,
                 name: Optional[str] = None, trainable: bool = True,
                 reuse: bool = False, graph=None):
        self.trainable = trainable
        self.initializer_value = initializer
        self._reuse = reuse
        self._initializer_op: Optional[Operation] = None
        super().__init__(data_type, shape, name=name, graph=graph)
        self.value = None

    def _register(self):
        self.graph.add_variable(self, reuse=self._reuse)

    @property
    def initializer(self) -> Operation:
        """The assign op that sets this variable to its initial value."""
        if self._initializer_op is None:
            init = self.initializer_value
            if init is None:
                raise ValueError(f"Variable {self.name} has no initializer")
            if (isinstance(init, Operation) and init.operation in _SHAPED_INITIALIZERS
                    and _missing_shape(init)):
                init = _reshaped_initializer(init, self)
            self._initializer_op = self.assign(init, name=f"{self.name.split(':')[0]}/Assign")
        return self._initializer_op

    def assign(self, value, name: Optional[str] = None) -> Operation:
        return Operation("assign", self, value, {"name": name or "Assign"}, graph=self.graph)

    def assign_add(self, value, name: Optional[str] = None) -> Operation:
        return Operation("assign_add", self, value, {"name": name or "AssignAdd"}, graph=self.graph)

    def assign_sub(self, value, name: Optional[str] = None) -> Operation:
        return Operation("assign_sub", self, value, {"name": name or "AssignSub"}, graph=self.graph)


class Placeholder(Tensor):
    """Node whose value is supplied through `feed_dict` on every run."""

    _default_name = "Placeholder"


def _missing_shape(init: Operation) -> bool:
    if init.operation in ("zeros", "ones"):
        return init.items[0] is None
    return init.options.get("shape") is None


def _reshaped_initializer(init: Operation, var: Variable) -> Operation:
    dims = var.shape.as_list() or []
    if init.operation in ("zeros", "ones"):
        return Operation(init.operation, dims, None, {"dtype": var.data_type},
                         wrap_operands=False, graph=var.graph)
    options = dict(init.options, shape=dims, dtype=var.data_type)
    return Operation(init.operation, None, None, options, graph=var.graph)


def variable(value, dtype=None, name: Optional[str] = None, trainable: bool = True,
             graph=None) -> Variable:
    """Create a Variable initialized to `value` (a literal or a node)."""
    graph = graph or graph_mod.get_default_graph()
    init = as_node(value, graph=graph)
    data_type = as_dtype(dtype) if dtype is not None else init.data_type
    dims = init.shape.as_list() if isinstance(value, Tensor) else shape_of_literal(value)
    return Variable(data_type, dims, initializer=init, name=name,
                    trainable=trainable, graph=graph)


def get_variable(name: str, shape=None, dtype=DataType.FLOAT32, initializer=None,
                 trainable: bool = True, reuse: bool = False, graph=None) -> Variable:
    """
    Create a named Variable, or return the existing one when `reuse` is set.

    A literal `initializer` is wrapped as a constant; a zeros/ones/random
    initializer without a shape takes the variable's shape.
    """
    graph = graph or graph_mod.get_default_graph()
    existing = graph.get_node(name)
    if reuse and isinstance(existing, Variable):
        return existing
    if initializer is not None and not isinstance(initializer, Tensor):
        initializer = constant(initializer, dtype=dtype, graph=graph)
    if shape is None and isinstance(initializer, Tensor):
        shape = initializer.shape.as_list()
    return Variable(dtype, shape, initializer=initializer, name=name,
                    trainable=trainable, reuse=reuse, graph=graph)


def placeholder(dtype, shape=None, name: Optional[str] = None, graph=None) -> Placeholder:
    return Placeholder(dtype, shape, name=name, graph=graph)


def variables_initializer(var_list) -> Operation:
    from ..ops.control_flow import group
    if isinstance(var_list, Variable):
        var_list = [var_list]
    return group([v.initializer for v in var_list])


def global_variables_initializer(graph=None) -> Operation:
    graph = graph or graph_mod.get_default_graph()
    return variables_initializer(graph.get_collection(graph_mod.GraphKeys.GLOBAL_VARIABLES))
