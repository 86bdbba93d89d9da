from __future__ import annotations

import importlib.util
import json
import os
from pathlib import Path

import matplotlib

os.environ.setdefault("MPLBACKEND", "Agg")
matplotlib.use("Agg", force=True)

import numpy as np
import pandas as pd
import pytest

from clusterhet import cli


def _write_inputs(tmp_path: Path, mixed_dataset) -> tuple[Path, Path]:
    clusters, conditions, d = mixed_dataset
    ids = [f"cell{i}" for i in range(len(clusters))]
    labels = pd.DataFrame({"cluster": clusters, "condition": conditions}, index=pd.Index(ids, name="obs"))
    labels_path = tmp_path / "labels.csv"
    labels.to_csv(labels_path)
    dist_path = tmp_path / "distances.npy"
    np.save(dist_path, d)
    return labels_path, dist_path


def test_run_writes_table_figure_and_metadata(tmp_path, mixed_dataset, capsys):
    labels_path, dist_path = _write_inputs(tmp_path, mixed_dataset)
    outdir = tmp_path / "out"
    rc = cli.main(
        [
            "run",
            "--labels",
            labels_path.as_posix(),
            "--distances",
            dist_path.as_posix(),
            "--cluster-col",
            "cluster",
            "--condition-col",
            "condition",
            "--n-resamples",
            "60",
            "--seed",
            "1",
            "--outdir",
            outdir.as_posix(),
        ]
    )
    assert rc == 0
    table = pd.read_csv(outdir / "tables" / "heterogeneity.csv")
    assert table["cluster"].tolist() == ["sep", "mix", "solo"]
    assert (outdir / "figures" / "heterogeneity.png").exists()
    assert (outdir / "logs" / "clusterhet.log").exists()

    meta = json.loads((outdir / "metadata.json").read_text(encoding="utf-8"))
    assert meta["config"]["n_resamples"] == 60
    assert meta["config"]["seed"] == 1
    assert meta["condition_a"] == "ctrl"
    assert meta["status_counts"] == {"ok": 2, "single_condition": 1}
    assert "sep" in capsys.readouterr().out


def test_run_with_labelled_csv_distances_and_config(tmp_path, mixed_dataset):
    clusters, conditions, d = mixed_dataset
    labels_path, _ = _write_inputs(tmp_path, mixed_dataset)
    ids = [f"cell{i}" for i in range(len(clusters))]
    order = np.random.default_rng(0).permutation(len(ids))
    frame = pd.DataFrame(d, index=ids, columns=ids).iloc[order, order]
    dist_csv = tmp_path / "distances.csv"
    frame.to_csv(dist_csv)
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps({"heterogeneity": {"n_resamples": 40, "seed": 2}}), encoding="utf-8")

    outdir = tmp_path / "out_csv"
    rc = cli.main(
        [
            "run",
            "--labels",
            labels_path.as_posix(),
            "--distances",
            dist_csv.as_posix(),
            "--cluster-col",
            "cluster",
            "--condition-col",
            "condition",
            "--config",
            cfg_path.as_posix(),
            "--outdir",
            outdir.as_posix(),
        ]
    )
    assert rc == 0
    meta = json.loads((outdir / "metadata.json").read_text(encoding="utf-8"))
    assert meta["config"]["n_resamples"] == 40
    table = pd.read_csv(outdir / "tables" / "heterogeneity.csv")
    assert table.shape[0] == 3


def test_run_requires_distances_for_label_tables(tmp_path, mixed_dataset):
    labels_path, _ = _write_inputs(tmp_path, mixed_dataset)
    with pytest.raises(SystemExit):
        cli.run_main(["--labels", labels_path.as_posix(), "--outdir", tmp_path.as_posix()])


def test_smoke_command_passes_gate(tmp_path, capsys):
    rc = cli.main(["smoke", "--n-resamples", "200", "--outdir", tmp_path.as_posix()])
    assert rc == 0
    out = capsys.readouterr().out
    assert "separated_cluster_gate=PASS" in out
    meta = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert meta["config"]["seed"] == 0
    assert meta["status_counts"]["single_condition"] == 1


def test_smoke_script_wrapper_calls_cli():
    root = Path(__file__).resolve().parents[1]
    script_path = root / "scripts" / "heterogeneity_smoke.py"
    spec = importlib.util.spec_from_file_location("heterogeneity_smoke", script_path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    assert module.smoke_main is cli.smoke_main
