from __future__ import annotations

import numpy as np
import pytest
from scipy.spatial.distance import pdist, squareform


def _two_blob_cluster(rng: np.random.Generator, n_a: int, n_b: int, shift: float) -> np.ndarray:
    a = rng.normal(size=(n_a, 2))
    b = rng.normal(size=(n_b, 2)) + np.array([shift, 0.0])
    return np.vstack([a, b])


@pytest.fixture
def mixed_dataset():
    """Cluster 'sep' has condition groups far apart, 'mix' has them overlapping,
    'solo' only contains condition 'ctrl'."""
    rng = np.random.default_rng(42)
    xy_sep = _two_blob_cluster(rng, 12, 10, shift=8.0)
    xy_mix = _two_blob_cluster(rng, 15, 9, shift=0.0) + 30.0
    xy_solo = rng.normal(size=(6, 2)) - 30.0
    xy = np.vstack([xy_sep, xy_mix, xy_solo])
    clusters = np.array(["sep"] * 22 + ["mix"] * 24 + ["solo"] * 6, dtype=object)
    conditions = np.array(
        ["ctrl"] * 12 + ["trt"] * 10 + ["ctrl"] * 15 + ["trt"] * 9 + ["ctrl"] * 6,
        dtype=object,
    )
    return clusters, conditions, squareform(pdist(xy))


@pytest.fixture
def six_obs_scenario():
    clusters = [1, 1, 1, 1, 2, 2]
    conditions = ["A", "A", "B", "B", "A", "B"]
    d = np.ones((6, 6), dtype=float)
    np.fill_diagonal(d, 0.0)
    # Observations 1 (A) and 2 (B) of cluster 1 are far apart.
    d[1, 2] = d[2, 1] = 10.0
    return clusters, conditions, d
