"""Typed configuration and result containers for heterogeneity analyses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable

import numpy as np

IQR_SAME = "Same"
IQR_DIFF = "Diff"

STATUS_OK = "ok"
STATUS_SINGLE_CONDITION = "single_condition"
STATUS_ZERO_VARIANCE = "zero_variance"

STATISTICS = ("mean", "median")

RESULT_COLUMNS = [
    "cluster",
    "n_a",
    "n_b",
    "ratio",
    "observed",
    "null_mean",
    "null_sd",
    "z_score",
    "p_value",
    "iqr_call",
    "status",
]


@dataclass(frozen=True)
class HeterogeneityConfig:
    """Permutation/null configuration for one analysis run."""

    n_resamples: int = 1000
    seed: int | None = None
    iqr_k: float = 1.5
    statistic: str = "mean"
    n_jobs: int = 1
    batch_size: int = 256


@dataclass(frozen=True)
class ClusterResult:
    """Per-cluster output of the heterogeneity engine.

    - `ratio`: min(n_a, n_b) / max(n_a, n_b), 0 when one condition is absent.
    - `observed`: cross-condition distance statistic of the real labels.
    - `z_score`: NaN when the null has zero spread or the cluster is single-condition.
    - `iqr_call`: "Same"/"Diff", None when the cluster is single-condition.
    - `null`: permuted statistics, only kept when requested.
    """

    cluster: Hashable
    n_a: int
    n_b: int
    ratio: float
    observed: float
    null_mean: float
    null_sd: float
    z_score: float
    p_value: float
    iqr_call: str | None
    status: str
    null: np.ndarray | None = field(default=None, repr=False, compare=False)
    q1: float = float("nan")
    q3: float = float("nan")

    @property
    def is_degenerate(self) -> bool:
        return self.status != STATUS_OK

    def as_row(self) -> dict[str, Any]:
        return {
            "cluster": self.cluster,
            "n_a": int(self.n_a),
            "n_b": int(self.n_b),
            "ratio": float(self.ratio),
            "observed": float(self.observed),
            "null_mean": float(self.null_mean),
            "null_sd": float(self.null_sd),
            "z_score": float(self.z_score),
            "p_value": float(self.p_value),
            "iqr_call": self.iqr_call,
            "status": self.status,
        }
