from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_BATCH_SIZE = 500


def iter_batches(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Consecutive slices of at most `size` items (order preserved)."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def process_in_batches(
    items: Sequence[T],
    fn: Callable[[Sequence[T]], Iterable[R]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    pause: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Optional[logging.Logger] = None,
) -> List[R]:
    """Apply `fn` to each batch and concatenate the results in input order.

    `pause` seconds are yielded between batches (not after the last one).
    The output is independent of `batch_size` as long as `fn` treats rows
    independently.
    """
    out: List[R] = []
    total = len(items)
    for i, batch in enumerate(iter_batches(items, batch_size)):
        if i and pause > 0:
            sleep(pause)
        out.extend(fn(batch))
        if logger:
            logger.debug("batch %d: %d/%d rows done", i + 1, min(total, (i + 1) * batch_size), total)
    return out
