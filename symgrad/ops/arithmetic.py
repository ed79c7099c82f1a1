# symgrad/ops/arithmetic.py
from ..core.node import Operation, as_node


def _binary(tag, x, y, name=None, **options):
    """Generic binary builder; non-node operands become constants."""
    return Operation(tag, x, y, dict(options, name=name) if name else options)


def add(x, y, name=None): return _binary("add", x, y, name)
def sub(x, y, name=None): return _binary("sub", x, y, name)
def mul(x, y, name=None): return _binary("mul", x, y, name)
def div(x, y, name=None): return _binary("div", x, y, name)
def pow(x, y, name=None): return _binary("pow", x, y, name)

multiply = mul
divide = div
subtract = sub


def negate(x, name=None):
    return Operation("negate", x, None, {"name": name} if name else None)


def equal(x, y, name=None):
    """Whole-value equality: one boolean, False when shapes differ."""
    return _binary("equal", x, y, name)


def less(x, y, name=None):
    """Elementwise x < y."""
    return _binary("less", x, y, name)


def greater(x, y, name=None):
    """Elementwise x > y."""
    return _binary("greater", x, y, name)


def where(x, y, pred, name=None):
    """Elementwise select: x where `pred` holds, y elsewhere."""
    return _binary("where", x, y, name, pred=as_node(pred))


def matmul(a, b, transpose_a=False, transpose_b=False, name=None):
    """
    Matrix product of two rank-2 tensors.

    A rank-0 operand is broadcast into a matrix compatible with the other
    one; inner dimensions must agree.
    """
    return _binary("matmul", a, b, name, transpose_a=transpose_a, transpose_b=transpose_b)


def _reduction(tag, input_tensor, axis, keepdims, name):
    if isinstance(axis, tuple):
        axis = list(axis)
    return Operation(tag, input_tensor, None,
                     {"axis": axis, "keepdims": keepdims, **({"name": name} if name else {})})


def reduce_sum(input_tensor, axis=None, keepdims=False, name=None):
    """
    Sum over `axis`: None sums everything, 0 sums down columns, 1 across
    rows, a list reduces each listed axis.
    """
    return _reduction("reduce_sum", input_tensor, axis, keepdims, name)


def reduce_prod(input_tensor, axis=None, keepdims=False, name=None):
    return _reduction("reduce_prod", input_tensor, axis, keepdims, name)