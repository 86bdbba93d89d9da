"""Input-contract checks run before any cluster is processed.

Every check raises :class:`InputContractError`; its ``contract`` attribute names
the violated contract so callers can branch on it without parsing messages.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Hashable, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp
from scipy.spatial.distance import squareform

from clusterhet.core.types import STATISTICS
from clusterhet.core.utils import unique_in_order


class InputContractError(ValueError):
    """Raised when analysis inputs violate the engine's input contract."""

    def __init__(self, contract: str, message: str) -> None:
        super().__init__(f"{message} [contract: {contract}]")
        self.contract = contract


@dataclass(frozen=True)
class ValidatedInputs:
    """Aligned, positional view of the three analysis inputs."""

    clusters: np.ndarray
    cluster_codes: np.ndarray
    is_a: np.ndarray
    distances: np.ndarray
    cluster_order: list
    condition_a: Hashable
    condition_b: Hashable

    @property
    def n_obs(self) -> int:
        return int(self.clusters.size)


def _as_labels(name: str, labels: Any) -> tuple[np.ndarray, pd.Index | None]:
    index: pd.Index | None = None
    if isinstance(labels, pd.Series):
        index = labels.index
        values = labels.to_numpy(dtype=object)
    else:
        values = np.asarray(labels, dtype=object)
    if values.ndim != 1:
        raise InputContractError(
            "label_shape", f"{name} must be one-dimensional, got shape {values.shape}."
        )
    missing = pd.isna(pd.Series(values, dtype=object)).to_numpy()
    if np.any(missing):
        first = int(np.flatnonzero(missing)[0])
        raise InputContractError(
            "missing_labels",
            f"{name} contains {int(missing.sum())} missing value(s) (first at position {first}).",
        )
    if index is not None and index.has_duplicates:
        raise InputContractError("index_mismatch", f"{name} index contains duplicate entries.")
    return values, index


def _align_to(
    name: str, values: np.ndarray, index: pd.Index | None, target: pd.Index | None
) -> np.ndarray:
    if index is None or target is None or index.equals(target):
        return values
    if len(index) != len(target) or not index.isin(target).all():
        missing = [str(x) for x in target.difference(index)[:5]]
        raise InputContractError(
            "index_mismatch",
            f"{name} index does not cover the same observations "
            f"(examples missing: {', '.join(missing) or 'n/a'}).",
        )
    return pd.Series(values, index=index).reindex(target).to_numpy(dtype=object)


def as_square_distances(
    distance_matrix: Any, n_obs: int, index: pd.Index | None = None
) -> np.ndarray:
    """Return a dense (n_obs, n_obs) float matrix aligned with the label index."""
    if isinstance(distance_matrix, pd.DataFrame):
        frame = distance_matrix
        if index is not None and not (frame.index.equals(index) and frame.columns.equals(index)):
            if (
                frame.index.has_duplicates
                or frame.columns.has_duplicates
                or frame.shape != (len(index), len(index))
                or not frame.index.isin(index).all()
                or not frame.columns.isin(index).all()
            ):
                raise InputContractError(
                    "index_mismatch",
                    "distance matrix index/columns do not match the label index.",
                )
            frame = frame.loc[index, index]
        arr = frame.to_numpy(dtype=float)
    elif sp.issparse(distance_matrix):
        arr = np.asarray(distance_matrix.toarray(), dtype=float)
    else:
        try:
            arr = np.asarray(distance_matrix, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InputContractError(
                "distance_values", f"distance matrix is not numeric: {exc}"
            ) from exc

    if arr.ndim == 1:
        expected = n_obs * (n_obs - 1) // 2
        if arr.size != expected:
            raise InputContractError(
                "distance_shape",
                f"condensed distance vector has length {arr.size}; "
                f"expected {expected} for {n_obs} observations.",
            )
        arr = squareform(arr, checks=False)

    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise InputContractError(
            "distance_shape", f"distance matrix must be square, got shape {arr.shape}."
        )
    if arr.shape[0] != n_obs:
        raise InputContractError(
            "distance_shape",
            f"distance matrix covers {arr.shape[0]} observations but labels cover {n_obs}.",
        )
    if not np.isfinite(arr).all():
        raise InputContractError("distance_values", "distance matrix contains NaN/inf.")
    if np.any(arr < 0.0):
        raise InputContractError("distance_values", "distance matrix contains negative entries.")
    if not np.allclose(arr, arr.T, rtol=1e-6, atol=1e-9):
        raise InputContractError("distance_symmetry", "distance matrix is not symmetric.")
    return arr


def check_run_parameters(
    n_resamples: Any, iqr_k: Any, statistic: str, seed: Any = None
) -> int:
    if isinstance(n_resamples, bool) or not isinstance(n_resamples, numbers.Integral):
        raise InputContractError(
            "n_resamples", f"n_resamples must be an integer, got {n_resamples!r}."
        )
    if int(n_resamples) <= 0:
        raise InputContractError("n_resamples", f"n_resamples must be positive, got {n_resamples}.")
    k = float(iqr_k)
    if not np.isfinite(k) or k < 0.0:
        raise InputContractError("iqr_k", f"iqr_k must be finite and >= 0, got {iqr_k}.")
    if statistic not in STATISTICS:
        raise InputContractError(
            "statistic", f"statistic must be one of {list(STATISTICS)}, got {statistic!r}."
        )
    if seed is not None and (
        isinstance(seed, bool) or not isinstance(seed, numbers.Integral) or int(seed) < 0
    ):
        raise InputContractError("seed", f"seed must be None or a non-negative integer, got {seed!r}.")
    return int(n_resamples)


def validate_inputs(
    cluster_labels: Any,
    condition_labels: Any,
    distance_matrix: Any,
    *,
    conditions: Sequence[Hashable] | None = None,
) -> ValidatedInputs:
    """Check and align cluster labels, condition labels and distances."""
    clusters, cl_index = _as_labels("cluster_labels", cluster_labels)
    conds, co_index = _as_labels("condition_labels", condition_labels)

    if clusters.size == 0:
        raise InputContractError("empty_input", "cluster_labels must be non-empty.")
    if clusters.size != conds.size:
        raise InputContractError(
            "length_mismatch",
            f"cluster_labels has {clusters.size} entries but condition_labels has {conds.size}.",
        )
    target = cl_index if cl_index is not None else co_index
    conds = _align_to("condition_labels", conds, co_index, target)

    present = unique_in_order(conds)
    if len(present) != 2:
        raise InputContractError(
            "condition_count",
            f"condition_labels must contain exactly two distinct values, found {len(present)}: "
            f"{present[:10]}.",
        )
    if conditions is not None:
        order = list(conditions)
        if len(order) != 2 or set(order) != set(present):
            raise InputContractError(
                "conditions",
                f"conditions={order!r} must name exactly the two values present: {present}.",
            )
        cond_a, cond_b = order
    else:
        cond_a, cond_b = present

    distances = as_square_distances(distance_matrix, int(clusters.size), index=target)
    codes, uniques = pd.factorize(clusters, sort=False)
    return ValidatedInputs(
        clusters=clusters,
        cluster_codes=np.asarray(codes, dtype=int),
        is_a=np.asarray(conds == cond_a, dtype=bool),
        distances=distances,
        cluster_order=list(uniques),
        condition_a=cond_a,
        condition_b=cond_b,
    )
