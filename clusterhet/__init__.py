"""clusterhet public API."""

from clusterhet._version import __version__
from clusterhet.core.engine import analyze, analyze_records
from clusterhet.core.types import ClusterResult, HeterogeneityConfig
from clusterhet.core.validation import InputContractError
from clusterhet.plotting.heterogeneity import plot_heterogeneity, render


def analyze_adata(*args, **kwargs):
    """Lazy wrapper to avoid importing AnnData helpers at import time."""
    from clusterhet.pipeline.adata import analyze_adata as _analyze_adata

    return _analyze_adata(*args, **kwargs)


__all__ = [
    "__version__",
    "analyze",
    "analyze_records",
    "analyze_adata",
    "plot_heterogeneity",
    "render",
    "ClusterResult",
    "HeterogeneityConfig",
    "InputContractError",
]
