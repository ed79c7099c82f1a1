# symgrad/ops/array_ops.py
from ..core.node import Operation, Tensor, as_node


def _opts(name, **options):
    if name:
        options["name"] = name
    return options


def reshape(tensor, shape, name=None):
    """At most one dimension of `shape` may be -1; it is inferred from the element count."""
    return Operation("reshape", tensor, shape, _opts(name))


def transpose(tensor, perm=None, name=None):
    return Operation("transpose", tensor, None, _opts(name, perm=perm))


def concat(values, axis, name=None):
    """Concatenate `values` along `axis` (negative axes count from the end)."""
    if isinstance(values, Tensor):
        values = [values]
    values = [as_node(v) for v in values]
    return Operation("concat", values, None, _opts(name, axis=axis), wrap_operands=False)


def slice(tensor, begin, size, name=None):
    """`size[i] == -1` takes everything from begin[i] to the end of that dimension."""
    return Operation("slice", tensor, begin, _opts(name, size=as_node(size)))


def index(tensor, i, name=None):
    return Operation("index", tensor, i, _opts(name))


def shape(tensor, name=None):
    return Operation("shape", tensor, None, _opts(name))


def rank(tensor, name=None):
    return Operation("rank", tensor, None, _opts(name))


def zeros(shape, dtype=None, name=None):
    """`shape` may hold ints, scalar nodes, or be a node producing the shape."""
    return Operation("zeros", shape, None, _opts(name, dtype=dtype), wrap_operands=False)


def ones(shape, dtype=None, name=None):
    return Operation("ones", shape, None, _opts(name, dtype=dtype), wrap_operands=False)


def eye(num_rows, num_columns=None, dtype=None, name=None):
    return Operation("eye", num_rows, num_columns, _opts(name, dtype=dtype), wrap_operands=False)


def zeros_like(tensor, name=None):
    return Operation("zeros_like", tensor, None, _opts(name))


def ones_like(tensor, name=None):
    return Operation("ones_like", tensor, None, _opts(name))


def zeros_initializer(dtype=None):
    """Zeros op whose shape is filled in by the variable it initializes."""
    return Operation("zeros", None, None, _opts(None, dtype=dtype), wrap_operands=False)


def ones_initializer(dtype=None):
    return Operation("ones", None, None, _opts(None, dtype=dtype), wrap_operands=False)


def identity(tensor, name=None):
    return Operation("identity", tensor, None, _opts(name))


def stop_gradient(tensor, name=None):
    """Identity whose derivative is always zero."""
    return Operation("stop_gradient", tensor, None, _opts(name))


def print_tensor(tensor, data, message="", name=None):
    """Identity on `tensor` that writes `message` and `data` to stdout when evaluated."""
    return Operation("print", tensor, data, _opts(name, message=message))


def pad(tensor, paddings, constant_values=0, name=None):
    return Operation("pad", tensor, paddings, _opts(name, constant_values=constant_values))
