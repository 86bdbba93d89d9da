"""Deterministic, order-stable parallel map over per-cluster tasks."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from joblib import Parallel, delayed

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)

BACKENDS = ("threading", "loky", "multiprocessing")


def _item_seed(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("seed")
    return getattr(item, "seed", None)


def _validate_items_have_seed(items: list[Any]) -> None:
    missing = [idx for idx, item in enumerate(items) if _item_seed(item) is None]
    if missing:
        head = ",".join(str(i) for i in missing[:5])
        raise ValueError(
            "parallel_map requires every item to carry its own `seed` "
            f"(missing at indices: {head}{'...' if len(missing) > 5 else ''})."
        )


def _call_indexed(func: Callable[[T], R], indexed: tuple[int, T]) -> tuple[int, R]:
    idx, item = indexed
    return idx, func(item)


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    n_jobs: int = 1,
    backend: str = "threading",
    chunk_size: int | str = "auto",
) -> list[R]:
    """Apply `func` to items and return results aligned to input order.

    Every item must carry its own `seed` so results do not depend on which
    worker picks it up. The default threading backend shares read-only
    arrays by reference.
    """
    seq = list(items)
    if not seq:
        return []
    _validate_items_have_seed(seq)
    if backend not in BACKENDS:
        raise ValueError(f"backend must be one of {list(BACKENDS)}, got {backend!r}.")

    jobs = int(n_jobs)
    if jobs == 0:
        raise ValueError("n_jobs must be non-zero.")
    if jobs == 1 or len(seq) == 1:
        logger.debug("parallel_map serial execution: n_items=%d", len(seq))
        return [func(item) for item in seq]

    logger.debug(
        "parallel_map n_items=%d n_jobs=%d backend=%s batch_size=%s",
        len(seq),
        jobs,
        backend,
        chunk_size,
    )
    rows = Parallel(n_jobs=jobs, backend=backend, batch_size=chunk_size)(
        delayed(_call_indexed)(func, pair) for pair in enumerate(seq)
    )
    rows.sort(key=lambda x: x[0])
    return [row for _, row in rows]
