"""
ShardForge Local Dataset
=========================
The container produced by ``LocalDatasetBuilder.build``: one
(context, data) pair per partition, held in two index-aligned lists.

    partition:   0        1        2        3
    contexts:  [ctx_0,   ctx_1,   None,    ctx_3]
    datas:     [data_0,  data_1,  None,    data_3]

A ``None`` slot means the partition ended up empty (every upstream
entry was filtered out, or the transformer chain produced nothing), so
no context or data was ever built for it.

Computation follows a map/reduce shape: a function is mapped over every
non-empty partition and the per-partition results are folded together.

Usage:
    >>> total_rows = dataset.compute(lambda data, idx: data.rows, lambda a, b: a + b, 0)
    >>> with dataset:
    ...     means = dataset.compute_with_ctx(lambda ctx, data, idx: data.features.mean())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from shardforge.utils.metrics import BuildStats

logger = logging.getLogger(__name__)


class LocalDataset:
    """
    In-process dataset made of partition contexts and partition data.

    Parameters
    ----------
    contexts : sequence
        Partition contexts; ``None`` marks an empty partition.
    datas : sequence
        Partition data objects, aligned with ``contexts``.
    stats : BuildStats or None
        Partition sizes and timing of the build that produced the dataset.

    Raises
    ------
    ValueError
        If the two sequences have different lengths.
    """

    def __init__(
        self,
        contexts: Sequence[Any],
        datas: Sequence[Any],
        stats: Optional[BuildStats] = None,
    ):
        if len(contexts) != len(datas):
            raise ValueError(
                f"contexts ({len(contexts)}) and datas ({len(datas)}) "
                f"must have one entry per partition"
            )
        self._contexts = tuple(contexts)
        self._datas = tuple(datas)
        self._closed = False
        self.stats = stats

    @property
    def contexts(self) -> tuple:
        return self._contexts

    @property
    def datas(self) -> tuple:
        return self._datas

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        """Number of partitions, empty ones included."""
        return len(self._contexts)

    def partition(self, idx: int) -> tuple[Any, Any]:
        """Return the (context, data) pair of partition ``idx``."""
        if idx < 0 or idx >= len(self._contexts):
            raise IndexError(
                f"Partition {idx} out of range for dataset with "
                f"{len(self._contexts)} partitions"
            )
        return self._contexts[idx], self._datas[idx]

    def compute(
        self,
        map_fn: Callable[[Any, int], Any],
        reduce_fn: Optional[Callable[[Any, Any], Any]] = None,
        identity: Any = None,
    ) -> Any:
        """
        Map ``map_fn(data, partition_idx)`` over non-empty partitions.

        Parameters
        ----------
        map_fn : callable
            Per-partition computation.
        reduce_fn : callable or None
            Binary fold ``(accumulated, partition_result) -> accumulated``.
            None returns the list of partition results instead.
        identity : any
            Starting value of the fold.
        """
        return self.compute_with_ctx(
            lambda ctx, data, idx: map_fn(data, idx),
            reduce_fn,
            identity,
        )

    def compute_with_ctx(
        self,
        map_fn: Callable[[Any, Any, int], Any],
        reduce_fn: Optional[Callable[[Any, Any], Any]] = None,
        identity: Any = None,
    ) -> Any:
        """Same as ``compute`` but ``map_fn`` also receives the context."""
        if self._closed:
            raise RuntimeError("Cannot compute on a closed dataset")

        results = [
            map_fn(ctx, data, idx)
            for idx, (ctx, data) in enumerate(zip(self._contexts, self._datas))
            if data is not None
        ]

        if reduce_fn is None:
            return results

        acc = identity
        for res in results:
            acc = reduce_fn(acc, res)
        return acc

    def close(self) -> None:
        """
        Release every partition data object that supports ``close()``.

        Every data object gets its ``close()`` call even if an earlier one
        raises; the first error is re-raised once all of them were tried,
        and the dataset counts as closed either way.
        """
        if self._closed:
            return

        self._closed = True
        first_error: Optional[Exception] = None

        for idx, data in enumerate(self._datas):
            close = getattr(data, "close", None)
            if not callable(close):
                continue
            try:
                close()
            except Exception as exc:
                logger.error(f"Failed to close partition {idx}: {exc}")
                if first_error is None:
                    first_error = exc

        if first_error is not None:
            raise first_error

        logger.debug(f"Closed dataset with {len(self._datas)} partitions")

    def __enter__(self) -> LocalDataset:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        non_empty = sum(1 for d in self._datas if d is not None)
        return (
            f"LocalDataset(partitions={len(self._datas)}, "
            f"non_empty={non_empty}, closed={self._closed})"
        )
