"""Pipeline I/O, logging, and utility helpers."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd


def ensure_dir(path: str | Path) -> None:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        val = float(obj)
        return None if math.isnan(val) else val
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return obj.as_posix()
    return str(obj)


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=_json_default)


def setup_logger(log_path: Path, logger_name: str) -> logging.Logger:
    ensure_dir(log_path.parent)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger


def read_label_table(path: str | Path, cluster_col: str, condition_col: str) -> pd.DataFrame:
    """Read per-observation labels from CSV/TSV; the first column is the observation id."""
    in_path = Path(path)
    if not in_path.exists():
        raise FileNotFoundError(f"Label table '{in_path}' not found.")
    sep = "\t" if in_path.suffix.lower() in {".tsv", ".txt"} else ","
    df = pd.read_csv(in_path, sep=sep, index_col=0)
    df.index = df.index.astype(str)
    for col in (cluster_col, condition_col):
        if col not in df.columns:
            raise KeyError(
                f"Column '{col}' not found in '{in_path}'. Available: {', '.join(map(str, df.columns))}"
            )
    return df


def read_distance_matrix(path: str | Path) -> np.ndarray | pd.DataFrame:
    """Read a square matrix (.npy, or labelled .csv/.tsv) or a condensed vector (.npy)."""
    in_path = Path(path)
    if not in_path.exists():
        raise FileNotFoundError(f"Distance file '{in_path}' not found.")
    suffix = in_path.suffix.lower()
    if suffix == ".npy":
        return np.load(in_path, allow_pickle=False)
    if suffix in {".csv", ".tsv", ".txt"}:
        sep = "," if suffix == ".csv" else "\t"
        df = pd.read_csv(in_path, sep=sep, index_col=0)
        df.index = df.index.astype(str)
        df.columns = df.columns.astype(str)
        return df
    raise ValueError(f"Unsupported distance format '{suffix}'. Use .npy, .csv or .tsv.")


def write_result_table(df: pd.DataFrame, out_csv: str | Path) -> Path:
    out = Path(out_csv)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    return out
