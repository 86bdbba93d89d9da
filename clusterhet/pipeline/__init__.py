"""AnnData adapters and pipeline I/O helpers."""

from clusterhet.pipeline.adata import analyze_adata, detect_obs_col, distances_from_adata
from clusterhet.pipeline.io import (
    ensure_dir,
    read_distance_matrix,
    read_label_table,
    setup_logger,
    write_json,
    write_result_table,
)

__all__ = [
    "analyze_adata",
    "detect_obs_col",
    "distances_from_adata",
    "ensure_dir",
    "read_distance_matrix",
    "read_label_table",
    "setup_logger",
    "write_json",
    "write_result_table",
]
