"""Command-line interfaces for clusterhet."""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from clusterhet._version import __version__
from clusterhet.config import load_heterogeneity_config
from clusterhet.core.engine import analyze, resolve_config
from clusterhet.core.types import HeterogeneityConfig
from clusterhet.pipeline.io import (
    read_distance_matrix,
    read_label_table,
    setup_logger,
    write_json,
    write_result_table,
)
from clusterhet.plotting.heterogeneity import plot_heterogeneity_to_file
from clusterhet.plotting.styles import apply_plot_style, plot_style_dict


def _add_run_parameters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="JSON config with a 'heterogeneity' section")
    parser.add_argument("--n-resamples", type=int, default=None, help="Permutations per cluster")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--iqr-k", type=float, default=None, help="IQR fence multiplier")
    parser.add_argument(
        "--statistic", choices=["mean", "median"], default=None, help="Cross-condition aggregate"
    )
    parser.add_argument("--n-jobs", type=int, default=None, help="Parallel workers across clusters")
    parser.add_argument("--alpha", type=float, default=0.05, help="Significance level for the plot")
    parser.add_argument("--title", default="Condition heterogeneity per cluster", help="Plot title")
    parser.add_argument("--outdir", default=".", help="Output directory root")


def _resolve_cli_config(args: argparse.Namespace) -> HeterogeneityConfig:
    base = load_heterogeneity_config(args.config) if args.config else None
    return resolve_config(
        base,
        n_resamples=args.n_resamples,
        seed=args.seed,
        iqr_k=args.iqr_k,
        statistic=args.statistic,
        n_jobs=args.n_jobs,
    )


def _write_outputs(
    table: pd.DataFrame,
    cfg: HeterogeneityConfig,
    outdir: Path,
    *,
    title: str,
    alpha: float,
    inputs: dict[str, str | None],
) -> dict[str, str]:
    csv_path = write_result_table(table, outdir / "tables" / "heterogeneity.csv")
    apply_plot_style()
    png_path = plot_heterogeneity_to_file(
        table, outdir / "figures" / "heterogeneity.png", title, alpha=alpha
    )
    outputs = {"table": csv_path.as_posix(), "figure": png_path.as_posix()}
    write_json(
        outdir / "metadata.json",
        {
            "clusterhet_version": __version__,
            "config": dataclasses.asdict(cfg),
            "inputs": inputs,
            "condition_a": str(table.attrs.get("condition_a")),
            "condition_b": str(table.attrs.get("condition_b")),
            "n_clusters": int(table.shape[0]),
            "status_counts": {str(k): int(v) for k, v in table["status"].value_counts().items()},
            "outputs": outputs,
            "plot_style": plot_style_dict(),
        },
    )
    return outputs


def run_main(argv: Iterable[str] | None = None) -> int:
    """Run the per-cluster heterogeneity analysis on files.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(description="clusterhet per-cluster heterogeneity")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--labels", default=None, help="CSV/TSV with one row per observation")
    src.add_argument("--h5ad", default=None, help="AnnData file holding labels (and distances)")
    parser.add_argument("--cluster-col", default=None, help="Cluster label column")
    parser.add_argument("--condition-col", default=None, help="Condition label column")
    parser.add_argument("--distances", default=None, help="Distance matrix (.npy/.csv/.tsv)")
    parser.add_argument("--distance-key", default=None, help="adata.obsp key with full distances")
    parser.add_argument("--basis", default="X_pca", help="adata.obsm embedding for distances")
    parser.add_argument("--n-dims", type=int, default=None, help="Leading embedding dims to use")
    _add_run_parameters(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.labels is not None and (
        args.distances is None or args.cluster_col is None or args.condition_col is None
    ):
        parser.error("--labels requires --distances, --cluster-col and --condition-col.")

    outdir = Path(args.outdir)
    logger = setup_logger(outdir / "logs" / "clusterhet.log", "clusterhet")
    cfg = _resolve_cli_config(args)

    if args.h5ad is not None:
        import anndata as ad

        h5ad_path = Path(args.h5ad)
        if not h5ad_path.exists():
            raise FileNotFoundError(f"Input file '{h5ad_path}' not found.")
        from clusterhet.pipeline.adata import analyze_adata

        adata = ad.read_h5ad(h5ad_path)
        logger.info("Loaded %s (%d cells)", h5ad_path.as_posix(), adata.n_obs)
        table = analyze_adata(
            adata,
            args.cluster_col,
            args.condition_col,
            distance_key=args.distance_key,
            basis=args.basis,
            n_dims=args.n_dims,
            config=cfg,
        )
    else:
        labels = read_label_table(args.labels, args.cluster_col, args.condition_col)
        distances = read_distance_matrix(args.distances)
        logger.info("Loaded %d observations from %s", labels.shape[0], args.labels)
        if isinstance(distances, pd.DataFrame):
            clusters, conditions = labels[args.cluster_col], labels[args.condition_col]
        else:
            clusters = labels[args.cluster_col].to_numpy(dtype=object)
            conditions = labels[args.condition_col].to_numpy(dtype=object)
        table = analyze(clusters, conditions, distances, config=cfg)

    outputs = _write_outputs(
        table,
        cfg,
        outdir,
        title=args.title,
        alpha=args.alpha,
        inputs={
            "labels": args.labels,
            "h5ad": args.h5ad,
            "distances": args.distances,
            "distance_key": args.distance_key,
        },
    )
    logger.info("Wrote %s", outputs["table"])
    logger.info("Wrote %s", outputs["figure"])
    print(table.to_string(index=False))
    return 0


def _synthetic_inputs(seed: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    blocks = []
    clusters: list[str] = []
    conditions: list[str] = []
    # C0: conditions split apart, C1: conditions mixed, C2: control only.
    for name, offset_b, n_ctrl, n_trt in [("C0", 6.0, 20, 20), ("C1", 0.0, 25, 15), ("C2", 0.0, 12, 0)]:
        center = rng.normal(scale=20.0, size=2)
        blocks.append(center + rng.normal(size=(n_ctrl, 2)))
        blocks.append(center + np.array([offset_b, 0.0]) + rng.normal(size=(n_trt, 2)))
        clusters += [name] * (n_ctrl + n_trt)
        conditions += ["ctrl"] * n_ctrl + ["trt"] * n_trt
    xy = np.vstack(blocks)
    return np.asarray(clusters), np.asarray(conditions), squareform(pdist(xy))


def smoke_main(argv: Iterable[str] | None = None) -> int:
    """Run the engine on a small synthetic dataset and write the usual outputs.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(description="clusterhet synthetic smoke test")
    _add_run_parameters(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)

    outdir = Path(args.outdir)
    logger = setup_logger(outdir / "logs" / "clusterhet.log", "clusterhet")
    cfg = _resolve_cli_config(args)
    if cfg.seed is None:
        cfg = dataclasses.replace(cfg, seed=0)

    clusters, conditions, distances = _synthetic_inputs(int(cfg.seed))
    table = analyze(clusters, conditions, distances, config=cfg)
    _write_outputs(
        table,
        cfg,
        outdir,
        title=args.title,
        alpha=args.alpha,
        inputs={"synthetic": "smoke"},
    )

    separated = table.loc[table["cluster"] == "C0"].iloc[0]
    gate_status = "PASS" if separated["iqr_call"] == "Diff" else "FAIL"
    logger.info("separated_cluster_gate=%s (z=%.3f)", gate_status, float(separated["z_score"]))
    print(table.to_string(index=False))
    print(f"separated_cluster_gate={gate_status}")
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(description="clusterhet CLI")
    parser.add_argument("--version", action="version", version=f"clusterhet {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run per-cluster heterogeneity on input files", add_help=False)
    sub.add_parser("smoke", help="Run on a synthetic dataset", add_help=False)

    args, remainder = parser.parse_known_args(list(argv) if argv is not None else None)
    if args.command == "run":
        return run_main(remainder)
    if args.command == "smoke":
        return smoke_main(remainder)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
