from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
import scipy.sparse as sp

from clusterhet import InputContractError, analyze
from clusterhet.core import engine
from clusterhet.core.validation import as_square_distances, validate_inputs


def _dist(n: int) -> np.ndarray:
    d = np.ones((n, n), dtype=float)
    np.fill_diagonal(d, 0.0)
    return d


def _raises(contract: str, *args, **kwargs) -> InputContractError:
    with pytest.raises(InputContractError) as excinfo:
        analyze(*args, **kwargs)
    assert excinfo.value.contract == contract
    return excinfo.value


def test_more_than_two_conditions_fails_fast():
    err = _raises("condition_count", [0, 0, 1, 1], ["a", "b", "c", "a"], _dist(4), n_resamples=10)
    assert "exactly two" in str(err)


def test_single_condition_dataset_fails_fast():
    _raises("condition_count", [0, 0, 1, 1], ["a", "a", "a", "a"], _dist(4), n_resamples=10)


def test_label_length_mismatch():
    _raises("length_mismatch", [0, 0, 1], ["a", "b", "a", "b"], _dist(4), n_resamples=10)


def test_distance_matrix_smaller_than_labels():
    err = _raises("distance_shape", [0, 0, 1, 1, 1], ["a", "b", "a", "b", "a"], _dist(4))
    assert "4 observations" in str(err)


def test_non_square_distance_matrix():
    _raises("distance_shape", [0, 0, 1], ["a", "b", "a"], np.ones((3, 4)))


def test_asymmetric_distance_matrix():
    d = _dist(4)
    d[0, 1] = 5.0
    _raises("distance_symmetry", [0, 0, 1, 1], ["a", "b", "a", "b"], d)


def test_negative_and_nonfinite_distances():
    d = _dist(4)
    d[0, 1] = d[1, 0] = -1.0
    _raises("distance_values", [0, 0, 1, 1], ["a", "b", "a", "b"], d)
    d[0, 1] = d[1, 0] = np.nan
    _raises("distance_values", [0, 0, 1, 1], ["a", "b", "a", "b"], d)


def test_bad_condensed_length():
    _raises("distance_shape", [0, 0, 1, 1], ["a", "b", "a", "b"], np.ones(5))


@pytest.mark.parametrize("bad", [0, -3, 2.5, True])
def test_non_positive_or_non_integer_resample_count(bad):
    _raises("n_resamples", [0, 0, 1, 1], ["a", "b", "a", "b"], _dist(4), n_resamples=bad)


def test_numpy_integer_resample_count_accepted():
    out = analyze([0, 0, 1, 1], ["a", "b", "a", "b"], _dist(4), n_resamples=np.int64(5), seed=0)
    assert out.shape[0] == 2


def test_bad_statistic_and_iqr_k():
    _raises("statistic", [0, 0], ["a", "b"], _dist(2), statistic="max")
    _raises("iqr_k", [0, 0], ["a", "b"], _dist(2), iqr_k=-1.0)


def test_missing_labels_rejected():
    _raises("missing_labels", [0, None, 1, 1], ["a", "b", "a", "b"], _dist(4))
    _raises("missing_labels", [0, 0, 1, 1], ["a", "b", np.nan, "b"], _dist(4))


def test_series_index_mismatch():
    clusters = pd.Series([0, 0, 1, 1], index=["c0", "c1", "c2", "c3"])
    conditions = pd.Series(["a", "b", "a", "b"], index=["c0", "c1", "c2", "cX"])
    err = _raises("index_mismatch", clusters, conditions, _dist(4))
    assert "c3" in str(err)


def test_distance_frame_index_mismatch():
    ids = ["c0", "c1", "c2", "c3"]
    clusters = pd.Series([0, 0, 1, 1], index=ids)
    conditions = pd.Series(["a", "b", "a", "b"], index=ids)
    d = pd.DataFrame(_dist(4), index=["x0", "x1", "x2", "x3"], columns=["x0", "x1", "x2", "x3"])
    _raises("index_mismatch", clusters, conditions, d)


def test_explicit_conditions_must_match_present_values():
    _raises("conditions", [0, 0, 1, 1], ["a", "b", "a", "b"], _dist(4), conditions=("a", "z"))


def test_validation_happens_before_any_cluster_work(monkeypatch):
    def _no_cluster_work(*_args, **_kwargs):
        raise AssertionError("cluster processed before validation finished")

    monkeypatch.setattr(engine, "cluster_heterogeneity", _no_cluster_work)
    with pytest.raises(InputContractError):
        analyze([0, 0, 1, 1], ["a", "b", "c", "a"], _dist(4), n_resamples=10)
    with pytest.raises(InputContractError):
        analyze([0, 0, 1, 1], ["a", "b", "a", "b"], _dist(4), n_resamples=0)


def test_input_contract_error_is_value_error():
    assert issubclass(InputContractError, ValueError)


def test_validate_inputs_aligns_and_orders():
    out = validate_inputs(["q", "p", "q"], ["y", "x", "x"], _dist(3))
    assert out.cluster_order == ["q", "p"]
    assert out.cluster_codes.tolist() == [0, 1, 0]
    assert out.condition_a == "y"
    assert out.is_a.tolist() == [True, False, False]
    assert out.n_obs == 3


def test_sparse_distances_are_densified():
    arr = as_square_distances(sp.csr_matrix(_dist(3)), 3)
    np.testing.assert_array_equal(arr, _dist(3))


def test_distance_frame_with_duplicate_index():
    ids = ["c0", "c1", "c2", "c3"]
    clusters = pd.Series([0, 0, 1, 1], index=ids)
    conditions = pd.Series(["a", "b", "a", "b"], index=ids)
    dup = ["c0", "c0", "c1", "c2"]
    d = pd.DataFrame(_dist(4), index=dup, columns=dup)
    err = _raises("index_mismatch", clusters, conditions, d)
    assert "label index" in str(err)


@pytest.mark.parametrize("bad", [-1, 2.5, True, "7"])
def test_bad_seed_rejected(bad):
    err = _raises("seed", [0, 0, 1, 1], ["a", "b", "a", "b"], _dist(4), n_resamples=10, seed=bad)
    assert "non-negative integer" in str(err)
