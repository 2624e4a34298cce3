"""
ShardForge Build Metrics
=========================
Bookkeeping for a single ``LocalDatasetBuilder.build`` call: how many
entries survived the filter, how many each partition ended up with,
how long the build took and, optionally, how much memory it needed.

The tracker is driven by the builder itself. Every partition reports
its effective count as soon as it is known; the finished numbers are
attached to the resulting dataset as ``dataset.stats``.

    build()
      └─ BuildTracker(n_entries=103, n_partitions=4)
           record_partition(0, cnt=25)
           record_partition(1, cnt=25)
           record_partition(2, cnt=0)     ← empty partition
           record_partition(3, cnt=53)
      → BuildStats(partition_sizes=[25, 25, 0, 53], non_empty=3, ...)

Usage:
    >>> dataset = builder.build(ctx_builder, data_builder)
    >>> dataset.stats.partition_sizes
    [25, 25, 0, 53]
    >>> dataset.stats.consumed == 103
    True
"""

from __future__ import annotations

import logging
import time
import tracemalloc
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class BuildStats:
    """
    Summary of one dataset build.

    Parameters
    ----------
    n_entries : int
        Upstream entries that passed the filter.
    n_partitions : int
        Partitions requested (empty ones included).
    seed : int
        Base seed of the transformer chain at build time.
    partition_sizes : list[int]
        Effective count per partition, in partition order.
    duration_seconds : float
        Wall-clock build time.
    peak_mb : float or None
        Peak traced Python memory during the build. None unless memory
        tracking was requested.
    """
    n_entries: int
    n_partitions: int
    seed: int = 0
    partition_sizes: list[int] = field(default_factory=list)
    duration_seconds: float = 0.0
    peak_mb: Optional[float] = None

    @property
    def non_empty(self) -> int:
        """Partitions for which a context and data were built."""
        return sum(1 for size in self.partition_sizes if size > 0)

    @property
    def consumed(self) -> int:
        """Sum of effective counts; differs from n_entries when a chain resizes."""
        return sum(self.partition_sizes)

    def to_dict(self) -> dict:
        return {
            "n_entries": self.n_entries,
            "n_partitions": self.n_partitions,
            "seed": self.seed,
            "partition_sizes": list(self.partition_sizes),
            "non_empty": self.non_empty,
            "consumed": self.consumed,
            "duration_seconds": round(self.duration_seconds, 4),
            "peak_mb": None if self.peak_mb is None else round(self.peak_mb, 2),
        }


class BuildTracker:
    """
    Context manager that records a build's partition sizes, time and memory.

    Memory is measured with tracemalloc, so only Python-level allocations
    (numpy buffers included, torch storage not) are counted. If tracing
    is already on when the build starts, the tracker reads the peak but
    leaves tracing running for whoever started it.

    Parameters
    ----------
    n_entries : int
        Entries that passed the filter.
    n_partitions : int
        Partitions requested.
    seed : int
        Base seed of the transformer chain.
    track_memory : bool
        Measure peak memory of the build.
    """

    def __init__(
        self,
        n_entries: int,
        n_partitions: int,
        seed: int = 0,
        track_memory: bool = False,
    ):
        self.stats = BuildStats(
            n_entries=n_entries,
            n_partitions=n_partitions,
            seed=seed,
        )
        self.track_memory = track_memory
        self._owns_tracing = False
        self._start: float = 0.0

    def record_partition(self, idx: int, cnt: int) -> None:
        """Record the effective count of partition ``idx`` (in order)."""
        if idx != len(self.stats.partition_sizes):
            raise ValueError(
                f"Partition {idx} recorded out of order; expected "
                f"{len(self.stats.partition_sizes)}"
            )
        self.stats.partition_sizes.append(cnt)

    def __enter__(self) -> BuildTracker:
        if self.track_memory:
            if not tracemalloc.is_tracing():
                tracemalloc.start()
                self._owns_tracing = True
            tracemalloc.reset_peak()
        self._start = time.time()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stats.duration_seconds = time.time() - self._start

        if self.track_memory:
            _, peak = tracemalloc.get_traced_memory()
            if self._owns_tracing:
                tracemalloc.stop()
                self._owns_tracing = False
            self.stats.peak_mb = peak / (1024 * 1024)

        if exc_type is not None:
            return

        memory = "" if self.stats.peak_mb is None else f", peak={self.stats.peak_mb:.1f}MB"
        logger.info(
            f"Built {self.stats.non_empty} non-empty of "
            f"{self.stats.n_partitions} partitions ({self.stats.consumed:,} of "
            f"{self.stats.n_entries:,} entries consumed, "
            f"time={self.stats.duration_seconds:.2f}s{memory})"
        )

    def __repr__(self) -> str:
        return (
            f"BuildTracker(partitions={len(self.stats.partition_sizes)}/"
            f"{self.stats.n_partitions}, entries={self.stats.n_entries:,})"
        )
