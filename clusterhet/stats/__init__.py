"""Statistical utilities for within-cluster condition contrasts."""

from clusterhet.stats.heterogeneity import (
    cluster_heterogeneity,
    iqr_bounds,
    iqr_call,
    two_tailed_p,
    z_score,
)
from clusterhet.stats.permutation import (
    cross_mean_batch,
    cross_statistic,
    permutation_null,
    permuted_masks,
    shuffle_split,
)

__all__ = [
    "cluster_heterogeneity",
    "cross_statistic",
    "cross_mean_batch",
    "permutation_null",
    "permuted_masks",
    "shuffle_split",
    "z_score",
    "two_tailed_p",
    "iqr_bounds",
    "iqr_call",
]
