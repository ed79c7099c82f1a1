# symgrad/core/shape.py
from __future__ import annotations

from typing import List, Optional, Sequence


class TensorShape:
    """
    Dimensions of a node.

    `dims` is None when nothing is known yet (e.g. a placeholder declared
    without a shape); individual entries may be None for unknown sizes.
    """

    def __init__(self, dims: Optional[Sequence[Optional[int]]] = None):
        self.dims: Optional[List[Optional[int]]] = None if dims is None else list(dims)

    @property
    def rank(self) -> Optional[int]:
        return None if self.dims is None else len(self.dims)

    def is_fully_defined(self) -> bool:
        return self.dims is not None and all(d is not None for d in self.dims)

    def as_list(self) -> Optional[List[Optional[int]]]:
        return None if self.dims is None else list(self.dims)

    def __getitem__(self, index):
        if self.dims is None:
            return None
        return self.dims[index]

    def __len__(self):
        return 0 if self.dims is None else len(self.dims)

    def __eq__(self, other):
        if isinstance(other, TensorShape):
            return self.dims == other.dims
        if isinstance(other, (list, tuple)):
            return self.dims == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        return f"TensorShape({self.dims!r})"

    def __str__(self):
        if self.dims is None:
            return "TensorShape(None)"
        dimensions = ",".join(f"Dimension({d})" for d in self.dims)
        return f"TensorShape([{dimensions}])"


def shape_of_literal(value) -> List[int]:
    """
    Shape of a nested list literal found by walking first elements.
    Scalars have shape []; an empty list has shape [0].
    """
    dims = []
    ptr = value
    while isinstance(ptr, (list, tuple)):
        dims.append(len(ptr))
        if len(ptr) == 0:
            return dims
        ptr = ptr[0]
    # leaves may be arrays or nodes with a known shape
    inner = getattr(ptr, "shape", None)
    if isinstance(inner, TensorShape):
        inner = inner.dims
    if inner is not None:
        dims.extend(inner)
    return dims
