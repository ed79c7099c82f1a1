# symgrad/core/session.py
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from ..kernels.backend import get_backend
from . import graph as graph_mod
from .config import SessionConfig
from .evaluator import Evaluator
from .node import Tensor


class Session:
    """
    Entry point for evaluating nodes of one graph.

        with Session() as sess:
            sess.run(global_variables_initializer())
            value = sess.run(y, feed_dict={x: [[1.0, 2.0]]})

    Every `run` call is one evaluation request: memoized values live only
    for that call, variable values persist on the Variable nodes.
    """

    def __init__(self, graph=None, config: Optional[SessionConfig] = None):
        self.graph = graph or graph_mod.get_default_graph()
        self.config = config or SessionConfig()
        self.backend = get_backend(self.config.backend)
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        self._closed = True

    def _feeds(self, feed_dict: Optional[Dict[Any, Any]]) -> Dict[Tensor, Any]:
        """Bind feeds to placeholder nodes; string keys name a node of this session's graph."""
        feeds = {}
        for key, value in (feed_dict or {}).items():
            if not isinstance(key, Tensor):
                node = self.graph.get_node(str(key))
                if node is None:
                    raise KeyError(f"No node named {key!r} in {self.graph!r}")
                key = node
            feeds[key] = value
        return feeds

    def run(self, *fetches, feed_dict=None, retain=None):
        """
        Evaluate one or more fetches.

        Args:
            *fetches: nodes, literals, or lists of them.
            feed_dict: placeholder (or placeholder name) -> value.
            retain: nodes to keep symbolic; results depending on them come
                back as graph nodes.

        Returns:
            The value of the single fetch, or a list with one value per fetch.
        """
        if self._closed:
            raise RuntimeError("Attempted to use a closed Session.")
        evaluator = Evaluator(self.graph, self._feeds(feed_dict), retain, self.backend)

        t0 = time.time()
        results = [self._fetch(evaluator, f) for f in fetches]
        if self.config.verbose:
            names = ", ".join(str(f) for f in fetches)
            print(f"[Session] run({names}) in {time.time() - t0:.4f}s")

        return results[0] if len(results) == 1 else results

    def _fetch(self, evaluator: Evaluator, fetch):
        if isinstance(fetch, (list, tuple)):
            return [self._fetch(evaluator, f) for f in fetch]
        return evaluator.evaluate_fully(fetch)
