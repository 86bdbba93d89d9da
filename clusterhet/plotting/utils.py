"""Shared plotting utilities used by figure factories."""

from __future__ import annotations

from pathlib import Path

import matplotlib.figure
import matplotlib.pyplot as plt

from clusterhet.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle


def save_figure(
    fig: matplotlib.figure.Figure,
    out_path: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
    bbox_tight: bool = False,
    close: bool = True,
) -> Path:
    """Save figure deterministically and optionally close it."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    save_kwargs: dict[str, object] = {
        "dpi": style.dpi,
        "facecolor": "white",
        "pad_inches": 0.02,
    }
    if bbox_tight:
        save_kwargs["bbox_inches"] = "tight"
    fig.savefig(out_path, **save_kwargs)
    if close:
        plt.close(fig)
    return out_path


def render_na_panel(ax: plt.Axes, reason: str, style: PlotStyle = DEFAULT_PLOT_STYLE) -> None:
    ax.set_xticks([])
    ax.set_yticks([])
    ax.text(
        0.5,
        0.55,
        "NA",
        transform=ax.transAxes,
        ha="center",
        va="center",
        fontsize=style.title_fontsize,
    )
    ax.text(
        0.5,
        0.38,
        f"({reason})",
        transform=ax.transAxes,
        ha="center",
        va="center",
        fontsize=style.footnote_fontsize,
        color="#555555",
    )
