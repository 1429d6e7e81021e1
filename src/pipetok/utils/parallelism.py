"""Data-parallel helpers for batch operations.

Items of a batch are independent, so they are mapped over a thread pool. The
stages of a single item always run sequentially inside one worker.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from pipetok.config import RuntimeConfig
from pipetok.utils.logging import get_logger

T = TypeVar("T")
R = TypeVar("R")

logger = get_logger(__name__)


def parallel_map(
    fn: Callable[[T], R],
    items: Sequence[T] | Iterable[T],
    config: RuntimeConfig | None = None,
) -> list[R]:
    """Apply `fn` to every item, preserving order.

    Falls back to a plain loop when parallelism is disabled or the batch has a
    single item. Exceptions raised by `fn` propagate to the caller.
    """
    items = list(items)
    cfg = config or RuntimeConfig.from_env()
    workers = cfg.max_workers(len(items))
    if workers <= 1:
        return [fn(item) for item in items]
    logger.debug("Mapping %d items over %d threads", len(items), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(fn, items))
