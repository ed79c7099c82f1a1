# symgrad/kernels/__init__.py
from .backend import (
    MatmulBackend,
    NumpyBackend,
    available_backends,
    get_backend,
    register_backend,
)

__all__ = [
    "MatmulBackend",
    "NumpyBackend",
    "available_backends",
    "get_backend",
    "register_backend",
]
