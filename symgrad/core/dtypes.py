# symgrad/core/dtypes.py
from __future__ import annotations

from enum import Enum

import numpy as np


class DataType(Enum):
    """Declared element type of a node."""
    FLOAT32 = "float32"
    INT32 = "int32"
    STRING = "string"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"

    def __str__(self):
        return self.value

    @property
    def storage(self):
        """numpy dtype used for concrete values (float32 is stored in double precision)."""
        return _STORAGE[self]


_STORAGE = {
    DataType.FLOAT32: np.float64,
    DataType.INT32: np.int64,
    DataType.STRING: np.str_,
    DataType.BOOLEAN: np.bool_,
    DataType.UNKNOWN: None,
}

_ALIASES = {
    "float": DataType.FLOAT32,
    "float32": DataType.FLOAT32,
    "float64": DataType.FLOAT32,
    "int": DataType.INT32,
    "int32": DataType.INT32,
    "int64": DataType.INT32,
    "string": DataType.STRING,
    "str": DataType.STRING,
    "bool": DataType.BOOLEAN,
    "boolean": DataType.BOOLEAN,
    "unknown": DataType.UNKNOWN,
}

float32 = DataType.FLOAT32
int32 = DataType.INT32
string = DataType.STRING
boolean = DataType.BOOLEAN


def as_dtype(dtype) -> DataType:
    """Accept a DataType, one of its string names, or a Python/numpy type."""
    if dtype is None:
        return DataType.UNKNOWN
    if isinstance(dtype, DataType):
        return dtype
    if isinstance(dtype, str):
        try:
            return _ALIASES[dtype.lower()]
        except KeyError:
            raise TypeError(f"Unsupported data type {dtype!r}") from None
    if dtype is float:
        return DataType.FLOAT32
    if dtype is bool:
        return DataType.BOOLEAN
    if dtype is int:
        return DataType.INT32
    if dtype is str:
        return DataType.STRING
    return as_dtype(np.dtype(dtype).name)


def infer_dtype(value) -> DataType:
    """Data type of a literal, looking at its first leaf for sequences."""
    while isinstance(value, (list, tuple)) and len(value) > 0:
        value = value[0]
    if isinstance(value, np.ndarray):
        return infer_dtype(value.dtype.type())
    # bool before int: bool is an int subclass
    if isinstance(value, (bool, np.bool_)):
        return DataType.BOOLEAN
    if isinstance(value, (int, np.integer)):
        return DataType.INT32
    if isinstance(value, (str, np.str_)):
        return DataType.STRING
    return DataType.FLOAT32


def cast(value, dtype: DataType):
    """Cast a concrete value to the storage type of `dtype`."""
    storage = as_dtype(dtype).storage
    if storage is None or isinstance(value, str):
        return value
    if storage is np.str_:
        return str(value) if np.ndim(value) == 0 else np.asarray(value, dtype=storage)
    arr = np.asarray(value, dtype=storage)
    return arr[()] if arr.ndim == 0 else arr
