# symgrad/train/optimizer.py
from __future__ import annotations

from typing import List, Optional, Tuple

from ..core.graph import GraphKeys
from ..core.math_gradients import gradients
from ..core.node import Operation
from ..core.var import Variable
from ..ops.arithmetic import mul
from ..ops.array_ops import index
from ..ops.control_flow import group


class GradientDescentOptimizer:
    """
    Plain gradient descent: var <- var - learning_rate * d(loss)/d(var).

    Usage:
        train_op = GradientDescentOptimizer(0.1).minimize(loss)
        for _ in range(steps):
            sess.run(train_op, feed_dict=...)
    """

    def __init__(self, learning_rate: float):
        self.learning_rate = learning_rate

    def _var_list(self, loss, var_list) -> List[Variable]:
        if isinstance(var_list, Variable):
            return [var_list]
        if var_list is not None:
            return list(var_list)
        return loss.graph.get_collection(GraphKeys.TRAINABLE_VARIABLES)

    def compute_gradients(self, loss, var_list: Optional[List[Variable]] = None
                          ) -> List[Tuple[Operation, Variable]]:
        """(gradient node, variable) pairs; all gradients share one `gradients` node."""
        variables = self._var_list(loss, var_list)
        grads = gradients(loss, variables)
        return [(index(grads, i), var) for i, var in enumerate(variables)]

    def apply_gradients(self, grads_and_vars) -> Operation:
        updates = [var.assign_sub(mul(self.learning_rate, grad))
                   for grad, var in grads_and_vars]
        return group(updates, name="GradientDescent")

    def minimize(self, loss, var_list: Optional[List[Variable]] = None) -> Operation:
        return self.apply_gradients(self.compute_gradients(loss, var_list))
