"""Small pure helpers for core computations."""

from __future__ import annotations

import numpy as np
import pandas as pd


def unique_in_order(values: np.ndarray) -> list:
    """Distinct values in order of first appearance."""
    return list(pd.unique(pd.Series(np.asarray(values, dtype=object))))


def condition_ratio(n_a: int, n_b: int) -> float:
    hi = max(int(n_a), int(n_b))
    if min(int(n_a), int(n_b)) <= 0:
        return 0.0
    return float(min(int(n_a), int(n_b)) / hi)
