"""Core compute subpackage."""

from clusterhet.core.engine import analyze, analyze_records, results_to_frame
from clusterhet.core.types import (
    IQR_DIFF,
    IQR_SAME,
    RESULT_COLUMNS,
    STATUS_OK,
    STATUS_SINGLE_CONDITION,
    STATUS_ZERO_VARIANCE,
    ClusterResult,
    HeterogeneityConfig,
)
from clusterhet.core.validation import InputContractError, validate_inputs

__all__ = [
    "HeterogeneityConfig",
    "ClusterResult",
    "InputContractError",
    "RESULT_COLUMNS",
    "IQR_SAME",
    "IQR_DIFF",
    "STATUS_OK",
    "STATUS_SINGLE_CONDITION",
    "STATUS_ZERO_VARIANCE",
    "analyze",
    "analyze_records",
    "results_to_frame",
    "validate_inputs",
]
