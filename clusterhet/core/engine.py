"""Heterogeneity engine: one permutation test per cluster (no plotting, no filesystem I/O)."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Hashable, Sequence

import numpy as np
import pandas as pd

from clusterhet.core.types import RESULT_COLUMNS, ClusterResult, HeterogeneityConfig
from clusterhet.core.validation import ValidatedInputs, check_run_parameters, validate_inputs
from clusterhet.parallel import parallel_map
from clusterhet.stats.heterogeneity import cluster_heterogeneity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterTask:
    cluster: Hashable
    members: np.ndarray
    seed: np.random.SeedSequence


def resolve_config(
    config: HeterogeneityConfig | None = None, **overrides: Any
) -> HeterogeneityConfig:
    """Apply non-None keyword overrides on top of `config` (or the defaults)."""
    base = config or HeterogeneityConfig()
    updates = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(base, **updates) if updates else base


def build_tasks(inputs: ValidatedInputs, seed: int | None) -> list[ClusterTask]:
    """One task per cluster in report order, each with its own spawned seed stream."""
    streams = np.random.SeedSequence(seed).spawn(len(inputs.cluster_order))
    return [
        ClusterTask(
            cluster=cluster,
            members=np.flatnonzero(inputs.cluster_codes == code),
            seed=stream,
        )
        for code, (cluster, stream) in enumerate(zip(inputs.cluster_order, streams))
    ]


def results_to_frame(
    records: Sequence[ClusterResult], attrs: dict[str, Any] | None = None
) -> pd.DataFrame:
    """Tabulate per-cluster records in their given order."""
    df = pd.DataFrame([r.as_row() for r in records], columns=RESULT_COLUMNS)
    df["iqr_call"] = df["iqr_call"].astype(object)
    if attrs:
        df.attrs.update(attrs)
    return df


def _run(
    cluster_labels: Any,
    condition_labels: Any,
    distance_matrix: Any,
    cfg: HeterogeneityConfig,
    conditions: Sequence[Hashable] | None,
    keep_null: bool,
    backend: str,
) -> tuple[list[ClusterResult], ValidatedInputs]:
    n_resamples = check_run_parameters(cfg.n_resamples, cfg.iqr_k, cfg.statistic, cfg.seed)
    inputs = validate_inputs(
        cluster_labels, condition_labels, distance_matrix, conditions=conditions
    )
    tasks = build_tasks(inputs, cfg.seed)
    logger.info(
        "Analyzing %d clusters over %d observations (%s vs %s, n_resamples=%d, statistic=%s, n_jobs=%d)",
        len(tasks),
        inputs.n_obs,
        inputs.condition_a,
        inputs.condition_b,
        n_resamples,
        cfg.statistic,
        int(cfg.n_jobs),
    )
    distances = inputs.distances
    is_a = inputs.is_a

    def _one(task: ClusterTask) -> ClusterResult:
        idx = task.members
        return cluster_heterogeneity(
            task.cluster,
            distances[np.ix_(idx, idx)],
            is_a[idx],
            n_resamples,
            np.random.default_rng(task.seed),
            iqr_k=float(cfg.iqr_k),
            statistic=cfg.statistic,
            batch_size=int(cfg.batch_size),
            keep_null=keep_null,
        )

    records = parallel_map(_one, tasks, n_jobs=int(cfg.n_jobs), backend=backend)
    n_degenerate = sum(1 for r in records if r.is_degenerate)
    if n_degenerate:
        logger.info("%d of %d clusters reported with sentinel values.", n_degenerate, len(records))
    return records, inputs


def analyze_records(
    cluster_labels: Any,
    condition_labels: Any,
    distance_matrix: Any,
    n_resamples: int | None = None,
    seed: int | None = None,
    *,
    config: HeterogeneityConfig | None = None,
    iqr_k: float | None = None,
    statistic: str | None = None,
    n_jobs: int | None = None,
    conditions: Sequence[Hashable] | None = None,
    keep_null: bool = False,
    backend: str = "threading",
) -> list[ClusterResult]:
    """Same as :func:`analyze` but returns the `ClusterResult` objects."""
    cfg = resolve_config(
        config, n_resamples=n_resamples, seed=seed, iqr_k=iqr_k, statistic=statistic, n_jobs=n_jobs
    )
    records, _ = _run(
        cluster_labels, condition_labels, distance_matrix, cfg, conditions, keep_null, backend
    )
    return records


def analyze(
    cluster_labels: Any,
    condition_labels: Any,
    distance_matrix: Any,
    n_resamples: int | None = None,
    seed: int | None = None,
    *,
    config: HeterogeneityConfig | None = None,
    iqr_k: float | None = None,
    statistic: str | None = None,
    n_jobs: int | None = None,
    conditions: Sequence[Hashable] | None = None,
    backend: str = "threading",
) -> pd.DataFrame:
    """Per-cluster heterogeneity between two conditions.

    Args:
        cluster_labels: Cluster id per observation (sequence, array or Series).
        condition_labels: Condition per observation; exactly two distinct values.
            Condition A is the first value to appear unless `conditions` is given.
        distance_matrix: Symmetric (N, N) distances, a DataFrame indexed like the
            labels, a sparse matrix, or a condensed distance vector.
        n_resamples: Permutations per cluster (default 1000). p-values cannot be
            smaller than 1 / n_resamples.
        seed: Seed for reproducible permutations; None draws fresh entropy.
        config: Base configuration; explicit keyword arguments override it.
        n_jobs: Number of workers across clusters. Results do not depend on it.

    Returns:
        DataFrame with one row per cluster in first-appearance order and columns
        cluster, n_a, n_b, ratio, observed, null_mean, null_sd, z_score, p_value,
        iqr_call, status. Single-condition clusters carry NaN statistics, a None
        IQR call and status "single_condition"; a zero-spread null gives a NaN
        z-score and status "zero_variance". p-values are raw (uncorrected).

    Raises:
        InputContractError: If the inputs violate the input contract. Raised
            before any cluster is processed.
    """
    cfg = resolve_config(
        config, n_resamples=n_resamples, seed=seed, iqr_k=iqr_k, statistic=statistic, n_jobs=n_jobs
    )
    records, inputs = _run(
        cluster_labels, condition_labels, distance_matrix, cfg, conditions, False, backend
    )
    return results_to_frame(
        records,
        attrs={
            "condition_a": inputs.condition_a,
            "condition_b": inputs.condition_b,
            "n_resamples": int(cfg.n_resamples),
            "iqr_k": float(cfg.iqr_k),
            "statistic": cfg.statistic,
            "seed": cfg.seed,
        },
    )
