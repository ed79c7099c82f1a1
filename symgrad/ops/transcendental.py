# symgrad/ops/transcendental.py
from ..core.node import Operation


def _unary(tag, x, name=None):
    return Operation(tag, x, None, {"name": name} if name else None)


def sin(x, name=None): return _unary("sin", x, name)
def cos(x, name=None): return _unary("cos", x, name)
def tan(x, name=None): return _unary("tan", x, name)
def tanh(x, name=None): return _unary("tanh", x, name)
def exp(x, name=None): return _unary("exp", x, name)
def log(x, name=None): return _unary("log", x, name)
def sqrt(x, name=None): return _unary("sqrt", x, name)
def square(x, name=None): return _unary("square", x, name)


def abs(x, name=None):
    """Elementwise absolute value; gradient is sign(x)."""
    return _unary("abs", x, name)


def sign(x, name=None):
    """-1 for negative, 1 for positive, 0 for zero and NaN."""
    return _unary("sign", x, name)


def erf(x, name=None):
    """
    Error function: erf(x) = (2/√π) ∫₀ˣ e^(-t²) dt

    Derivative: d/dx erf(x) = (2/√π) * e^(-x²)
    """
    return _unary("erf", x, name)
