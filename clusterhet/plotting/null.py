"""Diagnostic histogram of one cluster's permutation null."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from clusterhet.core.types import ClusterResult
from clusterhet.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from clusterhet.plotting.utils import save_figure
from clusterhet.stats.heterogeneity import iqr_bounds


def plot_null_distribution(
    result: ClusterResult,
    out_png: str | Path | None = None,
    *,
    title: str | None = None,
    iqr_k: float = 1.5,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> tuple[plt.Figure, plt.Axes]:
    """Histogram of permuted statistics with the observed value and IQR fences.

    Requires a result produced with ``keep_null=True``. When `out_png` is
    given the figure is saved and closed.
    """
    if result.null is None:
        raise ValueError(
            f"Cluster {result.cluster} carries no null distribution; rerun with keep_null=True."
        )
    arr = np.asarray(result.null, dtype=float).ravel()
    _, _, lower, upper = iqr_bounds(arr, iqr_k)

    fig, ax = plt.subplots(figsize=style.figsize_null)
    n_bins = int(min(40, max(10, np.ceil(np.sqrt(arr.size)))))
    ax.hist(arr, bins=n_bins, color="steelblue", alpha=0.7, edgecolor="black")
    ax.axvspan(lower, upper, color="#cccccc", alpha=0.35, label=f"IQR band (k={iqr_k:g})")
    ax.axvline(result.observed, color="red", linestyle="--", linewidth=2, label="Observed")
    ax.set_xlabel("Cross-condition distance")
    ax.set_ylabel("Count")
    ax.set_title(
        title
        or f"Cluster {result.cluster}: z={result.z_score:.2f}, p={result.p_value:.3g}, {result.iqr_call}"
    )
    ax.legend(loc="best", fontsize=style.legend_fontsize)
    fig.tight_layout()
    if out_png is not None:
        save_figure(fig, Path(out_png), style=style)
    return fig, ax
