"""Run the heterogeneity engine on an AnnData object."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import numpy as np
import pandas as pd
import scipy.sparse as sp
from scipy.spatial.distance import pdist, squareform

from clusterhet.core.engine import analyze
from clusterhet.core.types import HeterogeneityConfig
from clusterhet.core.validation import InputContractError

logger = logging.getLogger(__name__)

CLUSTER_KEY_CANDIDATES = ("leiden", "louvain", "cluster", "clusters", "seurat_clusters")
CONDITION_KEY_CANDIDATES = ("condition", "treatment", "group", "sample_group", "stim")


def detect_obs_col(adata, provided: str | None, candidates: Iterable[str]) -> str:
    if provided is not None:
        if provided in adata.obs.columns:
            return str(provided)
        raise KeyError(f"adata.obs['{provided}'] not found.")
    for c in candidates:
        if c in adata.obs.columns:
            return str(c)
    raise KeyError(f"Required column not found. Tried: {', '.join(candidates)}")


def distances_from_adata(
    adata,
    *,
    distance_key: str | None = None,
    basis: str = "X_pca",
    metric: str = "euclidean",
    n_dims: int | None = None,
) -> np.ndarray:
    """Full pairwise distances from `adata.obsp[distance_key]` or an embedding in `adata.obsm`."""
    n_obs = int(adata.n_obs)
    if distance_key is not None:
        if distance_key not in adata.obsp:
            raise KeyError(f"adata.obsp['{distance_key}'] not found.")
        d = adata.obsp[distance_key]
        if sp.issparse(d):
            if d.nnz < n_obs * (n_obs - 1):
                raise InputContractError(
                    "distance_values",
                    f"adata.obsp['{distance_key}'] is a sparse neighbour graph, not a full "
                    "distance matrix; pass an embedding basis instead.",
                )
            return np.asarray(d.toarray(), dtype=float)
        return np.asarray(d, dtype=float)

    if basis not in adata.obsm:
        raise KeyError(f"adata.obsm['{basis}'] is required to compute distances.")
    emb = np.asarray(adata.obsm[basis], dtype=float)
    if emb.ndim != 2:
        raise ValueError(f"adata.obsm['{basis}'] must be 2D, got shape {emb.shape}.")
    if n_dims is not None:
        if int(n_dims) <= 0:
            raise ValueError("n_dims must be positive.")
        emb = emb[:, : int(n_dims)]
    logger.info(
        "Computing %s distances on %s (%d cells x %d dims).", metric, basis, emb.shape[0], emb.shape[1]
    )
    return squareform(pdist(emb, metric=metric))


def analyze_adata(
    adata,
    cluster_key: str | None = None,
    condition_key: str | None = None,
    *,
    distance_key: str | None = None,
    basis: str = "X_pca",
    metric: str = "euclidean",
    n_dims: int | None = None,
    config: HeterogeneityConfig | None = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """Per-cluster heterogeneity for labels stored in `adata.obs`.

    Remaining keyword arguments (`n_resamples`, `seed`, `n_jobs`, ...) are
    forwarded to :func:`clusterhet.analyze`.
    """
    cl_col = detect_obs_col(adata, cluster_key, CLUSTER_KEY_CANDIDATES)
    co_col = detect_obs_col(adata, condition_key, CONDITION_KEY_CANDIDATES)
    distances = distances_from_adata(
        adata, distance_key=distance_key, basis=basis, metric=metric, n_dims=n_dims
    )
    obs = adata.obs
    out = analyze(
        np.asarray(obs[cl_col].astype(object)),
        np.asarray(obs[co_col].astype(object)),
        distances,
        config=config,
        **kwargs,
    )
    out.attrs.update({"cluster_key": cl_col, "condition_key": co_col})
    return out
