# symgrad/train/__init__.py

from .optimizer import GradientDescentOptimizer
from .saver import Saver

__all__ = ["GradientDescentOptimizer", "Saver"]
