"""Two-panel ratio vs z-score figure built from a heterogeneity result table.

Clusters whose ratio or z-score is NaN (single-condition clusters and
zero-spread nulls) are not placed on the axes; they are listed in a footnote
under the figure instead so that every cluster stays accounted for.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from clusterhet.core.types import IQR_DIFF, IQR_SAME
from clusterhet.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from clusterhet.plotting.utils import render_na_panel, save_figure

REQUIRED_COLUMNS = ("cluster", "ratio", "z_score", "p_value", "iqr_call")


def _numeric(df: pd.DataFrame, key: str) -> np.ndarray:
    return pd.to_numeric(df[key], errors="coerce").to_numpy(dtype=float)


def excluded_clusters(result_table: pd.DataFrame) -> pd.DataFrame:
    """Rows that cannot be placed on the ratio/z-score plane."""
    ratio = _numeric(result_table, "ratio")
    z = _numeric(result_table, "z_score")
    return result_table.loc[~(np.isfinite(ratio) & np.isfinite(z))]


def _footnote(excluded: pd.DataFrame, max_items: int = 12) -> str:
    items = []
    for _, row in excluded.head(max_items).iterrows():
        status = row.get("status", None)
        items.append(f"{row['cluster']} [{status}]" if status else str(row["cluster"]))
    more = excluded.shape[0] - len(items)
    text = "not plotted (z-score undefined): " + ", ".join(items)
    if more > 0:
        text += f", +{more} more"
    return text


def _scatter_groups(
    ax: plt.Axes,
    x: np.ndarray,
    y: np.ndarray,
    labels: np.ndarray,
    groups: list[tuple[str, np.ndarray, str]],
    *,
    label_points: bool,
    style: PlotStyle,
) -> None:
    for name, mask, color in groups:
        if not np.any(mask):
            continue
        ax.scatter(
            x[mask],
            y[mask],
            s=style.point_size,
            alpha=style.point_alpha,
            color=color,
            edgecolors="black",
            linewidths=0.4,
            label=f"{name} (n={int(mask.sum())})",
        )
    if label_points:
        for xi, yi, lab in zip(x, y, labels):
            ax.annotate(
                str(lab),
                (xi, yi),
                xytext=(4, 3),
                textcoords="offset points",
                fontsize=style.label_fontsize,
            )
    ax.axhline(0.0, color="black", linestyle="--", linewidth=0.8)
    ax.set_xlim(-0.05, 1.05)
    ax.set_xlabel("Condition ratio (min/max)")
    ax.set_ylabel("z-score")
    ax.grid(alpha=0.25, linewidth=0.6)
    ax.legend(loc="best", fontsize=style.legend_fontsize, frameon=True)


def plot_heterogeneity(
    result_table: pd.DataFrame,
    title: str,
    *,
    alpha: float = 0.05,
    label_points: bool = True,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> tuple[plt.Figure, tuple[plt.Axes, plt.Axes]]:
    """Render ratio (x) vs z-score (y), coloured by IQR call (left) and by p <= alpha (right)."""
    missing = [col for col in REQUIRED_COLUMNS if col not in result_table.columns]
    if missing:
        raise ValueError(f"Missing required result columns: {missing}")

    fig, (ax_iqr, ax_sig) = plt.subplots(1, 2, figsize=style.figsize_panels, sharey=True)
    fig.suptitle(str(title), fontsize=style.title_fontsize + 1)

    excluded = excluded_clusters(result_table)
    plotted = result_table.drop(index=excluded.index)
    if plotted.empty:
        reason = "empty table" if result_table.empty else "no cluster with a defined z-score"
        render_na_panel(ax_iqr, reason, style=style)
        render_na_panel(ax_sig, reason, style=style)
    else:
        x = _numeric(plotted, "ratio")
        y = _numeric(plotted, "z_score")
        p = _numeric(plotted, "p_value")
        labels = plotted["cluster"].to_numpy(dtype=object)
        calls = plotted["iqr_call"].to_numpy(dtype=object)

        _scatter_groups(
            ax_iqr,
            x,
            y,
            labels,
            [
                (IQR_SAME, calls == IQR_SAME, style.color_same),
                (IQR_DIFF, calls == IQR_DIFF, style.color_diff),
            ],
            label_points=label_points,
            style=style,
        )
        ax_iqr.set_title("IQR call")

        sig = np.isfinite(p) & (p <= float(alpha))
        _scatter_groups(
            ax_sig,
            x,
            y,
            labels,
            [
                (f"p <= {alpha:g}", sig, style.color_sig),
                (f"p > {alpha:g}", ~sig, style.color_nonsig),
            ],
            label_points=label_points,
            style=style,
        )
        ax_sig.set_title("Permutation p-value (uncorrected)")

    if not excluded.empty:
        fig.text(
            0.01,
            0.01,
            _footnote(excluded),
            fontsize=style.footnote_fontsize,
            color="#555555",
            ha="left",
            va="bottom",
        )
        fig.tight_layout(rect=(0.0, 0.05, 1.0, 1.0))
    else:
        fig.tight_layout()
    return fig, (ax_iqr, ax_sig)


render = plot_heterogeneity


def plot_heterogeneity_to_file(
    result_table: pd.DataFrame,
    out_png: str | Path,
    title: str,
    *,
    alpha: float = 0.05,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> Path:
    fig, _ = plot_heterogeneity(result_table, title, alpha=alpha, style=style)
    return save_figure(fig, Path(out_png), style=style)
