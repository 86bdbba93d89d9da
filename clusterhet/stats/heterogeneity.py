"""Per-cluster heterogeneity statistics: z-score, permutation p-value and IQR call."""

from __future__ import annotations

import logging
from typing import Hashable

import numpy as np

from clusterhet.core.types import (
    IQR_DIFF,
    IQR_SAME,
    STATUS_OK,
    STATUS_SINGLE_CONDITION,
    STATUS_ZERO_VARIANCE,
    ClusterResult,
)
from clusterhet.core.utils import condition_ratio
from clusterhet.stats.permutation import cross_statistic, permutation_null

logger = logging.getLogger(__name__)

_REL_TOL = 1e-12


def _null_sd(null: np.ndarray) -> float:
    arr = np.asarray(null, dtype=float).ravel()
    if arr.size == 0:
        raise ValueError("null must be non-empty.")
    return float(np.std(arr, ddof=1 if arr.size > 1 else 0))


def _is_zero_spread(sd: float, center: float) -> bool:
    return sd <= _REL_TOL * max(1.0, abs(center))


def z_score(observed: float, null: np.ndarray) -> float:
    """Standardized deviation of `observed` from the null; NaN for a zero-spread null."""
    arr = np.asarray(null, dtype=float).ravel()
    mu = float(np.mean(arr))
    sd = _null_sd(arr)
    if _is_zero_spread(sd, mu):
        return float("nan")
    return float((float(observed) - mu) / sd)


def two_tailed_p(observed: float, null: np.ndarray) -> float:
    """Fraction of null draws at least as far from the null mean as `observed`.

    Floored at 1/len(null) so that a finite resample never reports p == 0.
    """
    arr = np.asarray(null, dtype=float).ravel()
    if arr.size == 0:
        raise ValueError("null must be non-empty.")
    mu = float(np.mean(arr))
    dev_obs = abs(float(observed) - mu)
    tol = _REL_TOL * max(1.0, abs(mu))
    hits = int(np.sum(np.abs(arr - mu) >= dev_obs - tol))
    return float(max(1, hits) / arr.size)


def iqr_bounds(null: np.ndarray, k: float = 1.5) -> tuple[float, float, float, float]:
    """Return (q1, q3, lower fence, upper fence) of the null distribution."""
    arr = np.asarray(null, dtype=float).ravel()
    q1, q3 = (float(v) for v in np.quantile(arr, [0.25, 0.75]))
    iqr = q3 - q1
    return q1, q3, q1 - float(k) * iqr, q3 + float(k) * iqr


def iqr_call(observed: float, null: np.ndarray, k: float = 1.5) -> str:
    _, _, lower, upper = iqr_bounds(null, k)
    tol = _REL_TOL * max(1.0, abs(lower), abs(upper))
    if lower - tol <= float(observed) <= upper + tol:
        return IQR_SAME
    return IQR_DIFF


def single_condition_result(cluster: Hashable, n_a: int, n_b: int) -> ClusterResult:
    nan = float("nan")
    return ClusterResult(
        cluster=cluster,
        n_a=int(n_a),
        n_b=int(n_b),
        ratio=condition_ratio(n_a, n_b),
        observed=nan,
        null_mean=nan,
        null_sd=nan,
        z_score=nan,
        p_value=nan,
        iqr_call=None,
        status=STATUS_SINGLE_CONDITION,
    )


def cluster_heterogeneity(
    cluster: Hashable,
    dist_sub: np.ndarray,
    is_a: np.ndarray,
    n_resamples: int,
    rng: np.random.Generator,
    *,
    iqr_k: float = 1.5,
    statistic: str = "mean",
    batch_size: int = 256,
    keep_null: bool = False,
) -> ClusterResult:
    """Permutation test of condition separation inside a single cluster.

    `dist_sub` is the cluster's own (m, m) block of the distance matrix and
    `is_a` marks which of its members carry condition A. The function is pure
    given `rng`, so clusters can be evaluated in any order or concurrently.
    """
    a = np.asarray(is_a, dtype=bool).ravel()
    n_a = int(a.sum())
    n_b = int(a.size - n_a)
    if n_a == 0 or n_b == 0:
        logger.info(
            "Cluster %s has a single condition (n_a=%d, n_b=%d); reporting sentinel row.",
            cluster,
            n_a,
            n_b,
        )
        return single_condition_result(cluster, n_a, n_b)

    # The statistic is symmetric in A and B; anchor the null on the first member
    # so it does not depend on which condition is named A.
    side = a if a[0] else ~a
    observed = cross_statistic(dist_sub, side, statistic)
    null = permutation_null(
        dist_sub, side, n_resamples, rng, statistic=statistic, batch_size=batch_size
    )
    mu = float(np.mean(null))
    sd = _null_sd(null)
    z = z_score(observed, null)
    status = STATUS_OK
    if not np.isfinite(z):
        status = STATUS_ZERO_VARIANCE
        logger.debug("Cluster %s null distribution has zero spread; z-score is NaN.", cluster)

    q1, q3, _, _ = iqr_bounds(null, iqr_k)
    return ClusterResult(
        cluster=cluster,
        n_a=n_a,
        n_b=n_b,
        ratio=condition_ratio(n_a, n_b),
        observed=float(observed),
        null_mean=mu,
        null_sd=sd,
        z_score=z,
        p_value=two_tailed_p(observed, null),
        iqr_call=iqr_call(observed, null, iqr_k),
        status=status,
        null=null if keep_null else None,
        q1=q1,
        q3=q3,
    )
