# symgrad/ops/control_flow.py
from ..core.node import Operation, Tensor, as_node


def cond(pred, true_fn, false_fn, name=None):
    """
    Select a branch on a boolean `pred`; only the selected branch is
    evaluated. Branches may be nodes, literals, or zero-argument callables
    that build them.
    """
    true_branch = true_fn() if callable(true_fn) else true_fn
    false_branch = false_fn() if callable(false_fn) else false_fn
    options = {"pred": as_node(pred)}
    if name:
        options["name"] = name
    return Operation("cond", true_branch, false_branch, options)


def group(inputs, name=None):
    """Evaluate every input in order; the group itself yields None."""
    if isinstance(inputs, Tensor):
        inputs = [inputs]
    inputs = [as_node(i) for i in inputs]
    return Operation("flow_group", inputs, None, {"name": name or "group"}, wrap_operands=False)
