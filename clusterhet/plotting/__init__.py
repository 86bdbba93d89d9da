"""Plotting API for heterogeneity result tables."""

from clusterhet.plotting.heterogeneity import (
    excluded_clusters,
    plot_heterogeneity,
    plot_heterogeneity_to_file,
    render,
)
from clusterhet.plotting.null import plot_null_distribution
from clusterhet.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_plot_style,
    plot_style_dict,
)
from clusterhet.plotting.utils import render_na_panel, save_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "save_figure",
    "render_na_panel",
    "plot_heterogeneity",
    "plot_heterogeneity_to_file",
    "render",
    "excluded_clusters",
    "plot_null_distribution",
]
