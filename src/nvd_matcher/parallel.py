"""Thread pool helpers for resolving many CVEs at once.

Each CVE is resolved independently, so a page of records fans out over a
ThreadPoolExecutor.  A failing record never takes the batch down: its slot
comes back as None and the failure is logged with the record's label.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from time import monotonic
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


@dataclass
class ParallelMetrics:
    """Metrics for one parallel batch."""

    operation: str
    workers: int
    tasks_submitted: int
    tasks_completed: int = 0
    tasks_failed: int = 0
    total_time_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.tasks_submitted == 0:
            return 0.0
        return self.tasks_completed / self.tasks_submitted

    def log_summary(self) -> None:
        logger.info(
            f"{self.operation}: {self.tasks_completed}/{self.tasks_submitted} "
            f"succeeded ({self.success_rate:.0%}) in {self.total_time_seconds:.2f}s "
            f"with {self.workers} workers"
        )


def parallel_map(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int = 8,
    label: str = "parallel_map",
    item_label: Optional[Callable[[T], str]] = None,
) -> tuple[list[Optional[R]], ParallelMetrics]:
    """Apply fn to every item, returning results in input order.

    Args:
        fn: Function to apply to each item
        items: Items to process
        max_workers: Maximum concurrent workers
        label: Batch label for logging
        item_label: Optional function naming an item in failure logs

    Returns:
        Tuple of (results, metrics).  Failed items are None in results.
    """
    items_list = list(items)
    metrics = ParallelMetrics(
        operation=label,
        workers=max(1, min(max_workers, len(items_list))),
        tasks_submitted=len(items_list),
    )
    results: list[Optional[R]] = [None] * len(items_list)
    if not items_list:
        return results, metrics

    def _name(idx: int) -> str:
        if item_label is None:
            return f"[{idx}]"
        return item_label(items_list[idx])

    start = monotonic()
    with ThreadPoolExecutor(max_workers=metrics.workers) as executor:
        future_to_idx = {
            executor.submit(fn, item): idx for idx, item in enumerate(items_list)
        }

        for future in as_completed(future_to_idx):
            idx = future_to_idx[future]
            try:
                results[idx] = future.result()
                metrics.tasks_completed += 1
            except Exception as e:
                logger.warning(f"{label} {_name(idx)} failed: {e}")
                metrics.tasks_failed += 1
                metrics.errors.append(f"{_name(idx)}: {e}")

    metrics.total_time_seconds = monotonic() - start
    metrics.log_summary()

    return results, metrics
