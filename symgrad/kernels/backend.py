# symgrad/kernels/backend.py
"""Backends for the dense kernels the evaluator can delegate to."""

from typing import Dict

import numpy as np


class MatmulBackend:
    """
    Interface for an accelerator that multiplies rectangular buffers.

    Implementations receive two 2-D arrays of the same dtype, `[m x k]` and
    `[k x n]`, already transposed and shape-checked by the evaluator, and
    return the `[m x n]` product.

    `sigmoid` is an extension point for accelerators that ship a fused
    activation kernel. Graph evaluation never calls it: `nn.sigmoid` is built
    from primitive ops so that its gradient comes from their rules.
    """
    name = "base"

    def matmul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def sigmoid(self, a: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class NumpyBackend(MatmulBackend):
    """In-process reference implementation."""
    name = "numpy"

    def matmul(self, a, b):
        return np.matmul(a, b)

    def sigmoid(self, a):
        return 1.0 / (1.0 + np.exp(-np.asarray(a, dtype=np.float64)))


_REGISTRY: Dict[str, MatmulBackend] = {"numpy": NumpyBackend()}


def register_backend(name: str, backend: MatmulBackend) -> None:
    """Make `backend` selectable through `SessionConfig(backend=name)`."""
    _REGISTRY[name] = backend


def get_backend(name: str) -> MatmulBackend:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"Unknown backend {name!r}; registered: {', '.join(sorted(_REGISTRY))}"
        ) from None


def available_backends():
    return sorted(_REGISTRY)
