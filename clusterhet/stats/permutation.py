"""Permutation null models for within-cluster condition contrasts."""

from __future__ import annotations

import numpy as np


def _check_split(is_a: np.ndarray) -> tuple[np.ndarray, int, int]:
    a = np.asarray(is_a, dtype=bool).ravel()
    n_a = int(a.sum())
    n_b = int(a.size - n_a)
    if n_a == 0 or n_b == 0:
        raise ValueError("Cross-condition statistic undefined when one condition is absent.")
    return a, n_a, n_b


def shuffle_split(m: int, n_a: int, rng: np.random.Generator) -> np.ndarray:
    """Uniform random split of `m` positions into groups of size `n_a` and `m - n_a`."""
    if n_a < 0 or n_a > m:
        raise ValueError("Group size exceeds cluster size.")
    order = rng.permutation(int(m))
    mask = np.zeros(int(m), dtype=bool)
    mask[order[:n_a]] = True
    return mask


def permuted_masks(m: int, n_a: int, n: int, rng: np.random.Generator) -> np.ndarray:
    """Draw `n` independent size-preserving relabellings as an (n, m) boolean array."""
    if n_a < 0 or n_a > m:
        raise ValueError("Group size exceeds cluster size.")
    base = np.zeros(int(m), dtype=bool)
    base[:n_a] = True
    # Row-wise Fisher-Yates: each row is a uniform permutation of the base labels.
    return rng.permuted(np.tile(base, (int(n), 1)), axis=1)


def cross_statistic(dist_sub: np.ndarray, is_a: np.ndarray, statistic: str = "mean") -> float:
    """Mean (or median) distance between every A member and every B member."""
    a, _, _ = _check_split(is_a)
    block = np.asarray(dist_sub, dtype=float)[np.ix_(a, ~a)]
    if statistic == "mean":
        return float(np.mean(block))
    if statistic == "median":
        return float(np.median(block))
    raise ValueError(f"Unknown statistic '{statistic}'.")


def cross_mean_batch(dist_sub: np.ndarray, masks: np.ndarray) -> np.ndarray:
    """Cross-condition mean distance for each row of a boolean mask batch."""
    x = np.asarray(masks, dtype=float)
    if x.ndim != 2 or x.shape[1] != dist_sub.shape[0]:
        raise ValueError("masks must have shape (n_perm, cluster_size).")
    n_a = x.sum(axis=1)
    n_b = x.shape[1] - n_a
    if np.any(n_a == 0) or np.any(n_b == 0):
        raise ValueError("Every mask must contain both groups.")
    cross = np.einsum("ij,ij->i", x @ dist_sub, 1.0 - x)
    return cross / (n_a * n_b)


def permutation_null(
    dist_sub: np.ndarray,
    is_a: np.ndarray,
    n_resamples: int,
    rng: np.random.Generator,
    *,
    statistic: str = "mean",
    batch_size: int = 256,
) -> np.ndarray:
    """Statistics of `n_resamples` random relabellings holding group sizes fixed."""
    a, n_a, _ = _check_split(is_a)
    d = np.asarray(dist_sub, dtype=float)
    m = int(a.size)
    n_total = int(n_resamples)
    if n_total <= 0:
        raise ValueError("n_resamples must be positive.")
    step = max(1, int(batch_size))

    null = np.empty(n_total, dtype=float)
    for start in range(0, n_total, step):
        stop = min(n_total, start + step)
        masks = permuted_masks(m, n_a, stop - start, rng)
        if statistic == "mean":
            null[start:stop] = cross_mean_batch(d, masks)
        else:
            null[start:stop] = [cross_statistic(d, row, statistic) for row in masks]
    return null
