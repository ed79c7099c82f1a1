# symgrad/ops/random_ops.py
from typing import Optional

import numpy as np

from ..core.dtypes import DataType
from ..core.node import Operation

# Generator shared by ops created without an explicit seed
_global_rng = np.random.default_rng()


def set_random_seed(seed: Optional[int]) -> None:
    """Reseed the generator used by unseeded random ops."""
    global _global_rng
    _global_rng = np.random.default_rng(seed)


def _random_op(tag, shape, dtype, seed, name, **options):
    # every evaluation draws fresh values from this generator
    generator = np.random.default_rng(seed) if seed is not None else None
    return Operation(tag, None, None,
                     dict(options, shape=shape, dtype=dtype, seed=seed, generator=generator,
                          **({"name": name} if name else {})))


def random_uniform(shape, minval=0, maxval=1, dtype=DataType.FLOAT32, seed=None, name=None):
    """Values uniform in [minval, maxval)."""
    return _random_op("random_uniform", shape, dtype, seed, name, minval=minval, maxval=maxval)


def random_normal(shape, mean=0.0, stddev=1.0, dtype=DataType.FLOAT32, seed=None, name=None):
    """Values drawn from N(mean, stddev**2)."""
    return _random_op("random_normal", shape, dtype, seed, name, mean=mean, stddev=stddev)


def generator_for(op: Operation) -> np.random.Generator:
    return op.options.get("generator") or _global_rng
