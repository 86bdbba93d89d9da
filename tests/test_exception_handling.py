from __future__ import annotations

import logging

import numpy as np
import pytest

from clusterhet import analyze
from clusterhet.core import engine


def test_single_condition_cluster_is_logged_and_skipped(mixed_dataset, caplog):
    caplog.set_level(logging.INFO)
    clusters, conditions, d = mixed_dataset
    out = analyze(clusters, conditions, d, n_resamples=30, seed=0)
    assert out.shape[0] == 3
    assert "single condition" in caplog.text
    assert "solo" in caplog.text
    assert "1 of 3 clusters reported with sentinel values" in caplog.text


def test_unexpected_cluster_error_propagates(mixed_dataset, monkeypatch):
    clusters, conditions, d = mixed_dataset

    def _raise_runtime(*_args, **_kwargs):
        raise RuntimeError("random source failed")

    monkeypatch.setattr(engine, "cluster_heterogeneity", _raise_runtime)
    with pytest.raises(RuntimeError, match="random source failed"):
        analyze(clusters, conditions, d, n_resamples=30, seed=0)


def test_zero_variance_logged_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="clusterhet")
    d = np.ones((4, 4))
    np.fill_diagonal(d, 0.0)
    out = analyze(["z"] * 4, ["a", "b", "a", "b"], d, n_resamples=20, seed=0)
    assert out.loc[0, "status"] == "zero_variance"
    assert "zero spread" in caplog.text
