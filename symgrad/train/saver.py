# symgrad/train/saver.py
from __future__ import annotations

import json
import os
from typing import List, Optional

import numpy as np

from ..core.dtypes import cast
from ..core.graph import GraphKeys
from ..core.var import Variable


class Saver:
    """
    Write variable values to a JSON checkpoint and read them back.

    Checkpoint format:
        {"variables": {"<variable name>": <nested list or scalar>, ...}}
    """

    def __init__(self, var_list: Optional[List[Variable]] = None):
        if isinstance(var_list, Variable):
            var_list = [var_list]
        self.var_list = var_list

    def _variables(self, session) -> List[Variable]:
        if self.var_list is not None:
            return list(self.var_list)
        return session.graph.get_collection(GraphKeys.GLOBAL_VARIABLES)

    def save(self, session, path: str) -> str:
        """Save every variable that currently has a value; returns `path`."""
        payload = {
            var.name: np.asarray(var.value).tolist()
            for var in self._variables(session)
            if var.value is not None
        }
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            json.dump({"variables": payload}, f, indent=2)
        return path

    def restore(self, session, path: str) -> None:
        """Re-bind the values of variables of the session's graph found in `path`."""
        with open(path) as f:
            payload = json.load(f)["variables"]
        for var in self._variables(session):
            if var.name in payload:
                var.value = cast(payload[var.name], var.data_type)
