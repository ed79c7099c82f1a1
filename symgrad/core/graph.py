# symgrad/core/graph.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from .errors import DuplicateVariableError


class GraphKeys:
    """Standard collection names."""
    GLOBAL_VARIABLES = "variables"
    TRAINABLE_VARIABLES = "trainable_variables"


class Graph:
    """
    Registry of every node built while this graph is the default one.

    Attributes
    ----------
    nodes : dict
        name -> node. Names are unique; nodes are never removed.
    collections : dict
        name -> ordered list of nodes (e.g. global variables).
    gradient_cache : dict
        Derivative sub-graphs already built for a (node, wrt, ...) key.
    """

    def __init__(self):
        self.nodes: Dict[str, object] = {}
        self.collections: Dict[str, List[object]] = {}
        self.gradient_cache: Dict[tuple, object] = {}
        # base name -> last suffix handed out, so lookups stay O(1) per collision
        self._name_counters: Dict[str, int] = {}

    def __repr__(self):
        return f"Graph(nodes={len(self.nodes)}, collections={sorted(self.collections)})"

    def _uniquify(self, name: str) -> str:
        if name not in self.nodes and name not in self._name_counters:
            self._name_counters[name] = 0
            return name
        counter = self._name_counters.get(name, 0)
        while True:
            counter += 1
            candidate = f"{name}_{counter}"
            if candidate not in self.nodes:
                break
        self._name_counters[name] = counter
        return candidate

    def unique_name(self, base: str) -> str:
        """Reserve `base`, or `base_N` for the N-th reuse of the same base."""
        return self._uniquify(base)

    def register(self, node) -> None:
        """Store `node`, renaming it to `name_N` if the name is taken."""
        if node.name in self.nodes:
            node.name = self._uniquify(node.name)
        else:
            self._name_counters.setdefault(node.name, 0)
        self.nodes[node.name] = node

    def get_node(self, name: str):
        return self.nodes.get(name)

    def has_node(self, name: str) -> bool:
        return name in self.nodes

    def add_to_collection(self, name: str, node) -> None:
        self.collections.setdefault(name, []).append(node)

    def get_collection(self, name: str) -> List[object]:
        return list(self.collections.get(name, []))

    def add_variable(self, node, reuse: bool = False) -> None:
        """Register a Variable and append it to the global-variables collection."""
        if node.name in self.nodes and not reuse:
            raise DuplicateVariableError(node.name)
        self.register(node)
        self.add_to_collection(GraphKeys.GLOBAL_VARIABLES, node)
        if getattr(node, "trainable", False):
            self.add_to_collection(GraphKeys.TRAINABLE_VARIABLES, node)


# One default graph per thread, created lazily on first use
_local = threading.local()


def get_default_graph() -> Graph:
    graph = getattr(_local, "graph", None)
    if graph is None:
        graph = _local.graph = Graph()
    return graph


def reset_default_graph() -> Graph:
    """Replace this thread's default graph with a fresh one."""
    _local.graph = Graph()
    return _local.graph


@contextmanager
def use_graph(graph: Optional[Graph] = None):
    """
    Context manager to temporarily build into another graph:
        with use_graph() as g:
            ... build nodes ...
    """
    prev = getattr(_local, "graph", None)
    try:
        _local.graph = graph or Graph()
        yield _local.graph
    finally:
        _local.graph = prev
