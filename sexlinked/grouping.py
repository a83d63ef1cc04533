"""Explicit group-by/aggregate helpers driven by pure reducer functions.

``group_by(frame, keys).aggregate(value, reducers)`` replaces an implicit
grouping context: each reducer maps the non-missing values of one group to a
single float, and the result has one row per group sorted by the keys.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

Reducer = Callable[[np.ndarray], float]


def count(values: np.ndarray) -> float:
    return float(values.size)


def mean(values: np.ndarray) -> float:
    if values.size == 0:
        return float("nan")
    return float(np.mean(values))


def sem(values: np.ndarray) -> float:
    """Standard error of the mean using the Bessel-corrected sample SD."""
    n = values.size
    if n < 2:
        return float("nan")
    return float(np.std(values, ddof=1) / math.sqrt(n))


@dataclass(frozen=True)
class GroupBy:
    frame: pd.DataFrame
    keys: Tuple[str, ...]

    def aggregate(self, value: str, reducers: Mapping[str, Reducer]) -> pd.DataFrame:
        missing = [c for c in (*self.keys, value) if c not in self.frame.columns]
        if missing:
            raise KeyError(f"group_by: missing columns {missing}")
        columns = list(self.keys) + list(reducers)
        if self.frame.empty:
            return pd.DataFrame(columns=columns)

        values = pd.to_numeric(self.frame[value], errors="coerce")
        rows = []
        for key, sub in values.groupby([self.frame[k] for k in self.keys], sort=True):
            # sorted so float reductions do not depend on row order
            arr = np.sort(sub.dropna().to_numpy(dtype=float))
            key = key if isinstance(key, tuple) else (key,)
            row = dict(zip(self.keys, key))
            for name, fn in reducers.items():
                row[name] = fn(arr)
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)


def group_by(frame: pd.DataFrame, keys: Sequence[str]) -> GroupBy:
    if isinstance(keys, str):
        keys = [keys]
    return GroupBy(frame, tuple(keys))
