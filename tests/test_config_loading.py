from __future__ import annotations

import json
from pathlib import Path

import pytest

from clusterhet.config import config_from_dict, load_heterogeneity_config, load_json_config
from clusterhet.core.types import HeterogeneityConfig


def test_load_project_config():
    root = Path(__file__).resolve().parents[1]
    raw = load_json_config(root / "configs" / "heterogeneity_example.json")
    assert set(raw) == {"heterogeneity"}
    cfg = load_heterogeneity_config(root / "configs" / "heterogeneity_example.json")
    assert cfg == HeterogeneityConfig(n_resamples=1000, seed=0, iqr_k=1.5, statistic="mean", n_jobs=1)


def test_config_from_root_object():
    cfg = config_from_dict({"n_resamples": 250, "seed": 3})
    assert cfg.n_resamples == 250
    assert cfg.seed == 3
    assert cfg.iqr_k == 1.5


def test_unknown_config_key_rejected():
    with pytest.raises(ValueError, match="Unknown heterogeneity config keys"):
        config_from_dict({"heterogeneity": {"n_perm": 10}})


def test_invalid_json_reports_line_and_column(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"a": 1,}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=r"line \d+, column \d+"):
        load_json_config(bad)


def test_non_object_json_config_rejected(tmp_path: Path):
    bad = tmp_path / "list.json"
    bad.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError, match="expected JSON object"):
        load_json_config(bad)


def test_non_json_extension_rejected(tmp_path: Path):
    bad = tmp_path / "cfg.yaml"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Use a .json config file"):
        load_json_config(bad)


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_json_config(tmp_path / "nope.json")
