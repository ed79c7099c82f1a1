# symgrad/ops/nn.py
from ..core.node import as_node
from .arithmetic import div, negate, reduce_sum
from .transcendental import exp


def softmax(logits, name=None):
    """exp(logits) / sum(exp(logits)), built from primitive ops."""
    return div(exp(logits), reduce_sum(exp(logits)), name=name)


def sigmoid(x, name=None):
    """1 / (1 + exp(-x)); the gradient follows from the div/exp rules."""
    return div(1.0, 1.0 + exp(negate(as_node(x))), name=name)
