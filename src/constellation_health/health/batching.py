"""Sequential batch scheduling with adaptive backoff.

Items are processed in batches, one batch in flight at a time. When a batch
fails the error is classified into a BatchAction:

    reduce_batch_size  halve the batch size (never below the floor) and retry
                       the same items at the smaller size
    continue           drop the failed batch and move on
    abort              stop and return what has been collected so far

Position in the item list is tracked with a single cursor, so changing the
batch size mid-run never skips or repeats items.
"""

from __future__ import annotations

import errno
import gc
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Optional, Sequence, TypeVar

import psutil

from ..exceptions import BatchError, ErrorCode
from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# errno values meaning the process ran out of memory or descriptors
_EXHAUSTION_ERRNOS = frozenset({errno.ENOMEM, errno.EMFILE, errno.ENFILE})


class BatchAction(str, Enum):
    CONTINUE = "continue"
    REDUCE_BATCH_SIZE = "reduce_batch_size"
    ABORT = "abort"


@dataclass
class BatchRun(Generic[R]):
    """Outcome of one scheduled run."""

    results: list[R] = field(default_factory=list)
    batch_sizes: list[int] = field(default_factory=list)  # completed batches only
    skipped: int = 0  # items dropped with a failed batch
    aborted: bool = False


def process_memory_mb() -> Optional[float]:
    """Resident set size of this process in MB, or None if unavailable."""
    try:
        return psutil.Process().memory_info().rss / 1024 / 1024
    except psutil.Error as e:
        logger.debug(f"Memory sampling failed: {e}")
        return None


def is_resource_exhaustion(error: BaseException) -> bool:
    """True for out-of-memory, out-of-descriptor and thread-start failures."""
    if isinstance(error, MemoryError):
        return True
    if isinstance(error, OSError) and error.errno in _EXHAUSTION_ERRNOS:
        return True
    return isinstance(error, RuntimeError) and "can't start new thread" in str(error)


def classify_batch_error(error: BaseException) -> BatchAction:
    """Pick the recovery policy for a failed batch.

    Resource exhaustion shrinks the batch; timeouts and anything unexpected
    skip it; a non-recoverable BatchError stops the run.
    """
    if isinstance(error, BatchError):
        if not error.recoverable:
            return BatchAction.ABORT
        if error.code == ErrorCode.CH400:
            return BatchAction.REDUCE_BATCH_SIZE
        return BatchAction.CONTINUE

    if is_resource_exhaustion(error):
        return BatchAction.REDUCE_BATCH_SIZE
    return BatchAction.CONTINUE


class BatchScheduler:
    """Runs a batch function over a sequence with adaptive batch sizing."""

    def __init__(
        self,
        batch_size: int = 50,
        min_batch_size: int = 10,
        memory_check_interval: int = 5,
        gc_interval: int = 10,
        memory_warning_mb: float = 512.0,
        memory_probe: Callable[[], Optional[float]] = process_memory_mb,
        classifier: Callable[[BaseException], BatchAction] = classify_batch_error,
    ):
        self.batch_size = batch_size
        self.min_batch_size = min(min_batch_size, batch_size)
        self.memory_check_interval = memory_check_interval
        self.gc_interval = gc_interval
        self.memory_warning_mb = memory_warning_mb
        self.memory_probe = memory_probe
        self.classifier = classifier

    def run(self, items: Sequence[T], process: Callable[[list[T]], list[R]]) -> BatchRun[R]:
        """
        Process ``items`` batch by batch.

        ``process`` receives one batch and returns its results; any exception
        it raises is a batch-level failure handled by the backoff policy.
        """
        run: BatchRun[R] = BatchRun()
        total = len(items)
        size = self.batch_size
        cursor = 0
        batch_index = 0

        logger.info(f"Processing {total} files in batches of {size}")

        while cursor < total:
            batch = list(items[cursor : cursor + size])
            logger.debug(
                f"Processing batch {batch_index + 1} ({len(batch)} files, {cursor}/{total} done)"
            )

            if batch_index % self.memory_check_interval == 0:
                self._check_memory(batch_index)

            try:
                results = process(batch)
            except Exception as e:
                action = self.classifier(e)

                if action is BatchAction.REDUCE_BATCH_SIZE and size > self.min_batch_size:
                    size = max(self.min_batch_size, size // 2)
                    logger.warning(
                        f"Batch {batch_index + 1} exhausted resources ({e}); "
                        f"reduced batch size to {size}, continuing..."
                    )
                elif action is BatchAction.ABORT:
                    logger.error(f"Aborting batch processing at batch {batch_index + 1}: {e}")
                    run.aborted = True
                    break
                else:
                    logger.warning(
                        f"Batch {batch_index + 1} failed ({e}); skipping {len(batch)} files"
                    )
                    run.skipped += len(batch)
                    cursor += len(batch)

                batch_index += 1
                continue

            run.results.extend(results)
            run.batch_sizes.append(len(batch))
            cursor += len(batch)

            if batch_index % self.gc_interval == 0:
                gc.collect()

            batch_index += 1

        return run

    def _check_memory(self, batch_index: int) -> None:
        used = self.memory_probe()
        if used is None:
            return
        logger.debug(f"batch-{batch_index + 1} - Memory: {used:.0f}MB")
        if used > self.memory_warning_mb:
            logger.warning(
                f"High memory usage before batch {batch_index + 1}: {used:.0f}MB "
                f"(threshold {self.memory_warning_mb:.0f}MB)"
            )
