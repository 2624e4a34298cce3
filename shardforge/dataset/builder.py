"""
ShardForge Dataset Builder
===========================
Splits an in-memory collection of training records into N ordered
partitions and builds a (context, data) pair for each one.

How It Works (Analogy):
    Think of a stack of exam papers being handed to N graders. The stack
    is split into N piles of equal height (the last grader also takes
    whatever is left over). Before grading, each pile may be reshuffled,
    thinned out or bootstrapped by the transformer chain, with a
    different random seed per grader, so no two graders get the same
    reshuffle. Each grader first writes a short cover note (the
    *context*) and then the full report (the *data*), with the cover note
    in hand.

Partition Plan (N entries, P partitions):
    S = max(1, N // P)                  nominal partition size
    w = min(S, N - ptr)                 window of partition p (< P - 1)
    w = N - ptr                         window of the last partition
    seed_p = seed + 0 + 1 + ... + p     per-partition seed
    cnt = len(chain(E[ptr:ptr+w], seed_p))   effective count
    ptr += cnt

    Example (5 entries, 2 partitions, no transformers):
        {1: a, 2: b, 3: c, 4: d, 5: e}
        → partition 0: [1, 2]
        → partition 1: [3, 4, 5]

Views:
    The context builder and the data builder each receive their own
    iterator over the partition. When the chain has transformers, the
    context builder gets the transformed window and the data builder
    gets the raw ``cnt`` entries starting at the partition offset. With
    an empty chain both get the raw window. Both views always report the
    same ``cnt``.

Usage:
    >>> builder = LocalDatasetBuilder(records, partitions=4)
    >>> dataset = builder.build(
    ...     lambda entries, cnt: cnt,
    ...     lambda entries, cnt, ctx: [e.value for e in entries],
    ... )
    >>> len(dataset)
    4
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping, Optional, TYPE_CHECKING

from tqdm import tqdm

from shardforge.data.transformers import UpstreamTransformerChain
from shardforge.data.upstream import (
    EntryFilter,
    UpstreamEntry,
    accept_all,
    materialize_entries,
)
from shardforge.data.window import IteratorWindow
from shardforge.dataset.local import LocalDataset
from shardforge.utils.metrics import BuildTracker

if TYPE_CHECKING:
    from shardforge.config import ShardForgeConfig

logger = logging.getLogger(__name__)

PartitionContextBuilder = Callable[[Iterator[UpstreamEntry], int], Any]
PartitionDataBuilder = Callable[[Iterator[UpstreamEntry], int, Any], Any]


def _cursor(entries: list[UpstreamEntry], start: int) -> Iterator[UpstreamEntry]:
    """Lazy iterator over ``entries`` from ``start`` to the end, without copying."""
    for idx in range(start, len(entries)):
        yield entries[idx]


class LocalDatasetBuilder:
    """
    Immutable builder that turns an upstream mapping into a LocalDataset.

    Parameters
    ----------
    upstream : Mapping
        Key → value collection with the training records. Read only.
    partitions : int
        Number of partitions to produce (>= 1).
    entry_filter : callable or None
        Predicate ``(key, value) -> bool``. None keeps everything.
    transformers : UpstreamTransformerChain or None
        Chain applied to every partition window. None = empty chain.
    show_progress : bool
        Display a tqdm progress bar over partitions while building.
    track_memory : bool
        Record the peak memory of every build in ``dataset.stats``.

    Raises
    ------
    TypeError
        If ``upstream`` is not a mapping, ``partitions`` is not an int, or
        ``entry_filter`` is not callable.
    ValueError
        If ``partitions`` < 1.
    """

    def __init__(
        self,
        upstream: Mapping[Any, Any],
        partitions: int,
        entry_filter: Optional[EntryFilter] = None,
        transformers: Optional[UpstreamTransformerChain] = None,
        show_progress: bool = False,
        track_memory: bool = False,
    ):
        if not isinstance(upstream, Mapping):
            raise TypeError(
                f"upstream must be a mapping, got {type(upstream).__name__}"
            )
        if isinstance(partitions, bool) or not isinstance(partitions, int):
            raise TypeError(
                f"partitions must be an int, got {type(partitions).__name__}"
            )
        if partitions < 1:
            raise ValueError(f"partitions must be >= 1, got {partitions}")
        if entry_filter is not None and not callable(entry_filter):
            raise TypeError("entry_filter must be callable or None")

        self._upstream = upstream
        self._partitions = partitions
        self._filter = entry_filter if entry_filter is not None else accept_all
        self._transformers = (
            transformers if transformers is not None
            else UpstreamTransformerChain.empty()
        )
        self._show_progress = show_progress
        self._track_memory = track_memory

    @classmethod
    def from_config(
        cls,
        upstream: Mapping[Any, Any],
        config: ShardForgeConfig,
        entry_filter: Optional[EntryFilter] = None,
    ) -> LocalDatasetBuilder:
        """Create a builder from the partition and transform sections of a config."""
        config.validate()
        return cls(
            upstream,
            partitions=config.partition.n_partitions,
            entry_filter=entry_filter,
            transformers=config.transform.build_chain(),
            show_progress=config.partition.show_progress,
            track_memory=config.partition.track_memory,
        )

    @property
    def upstream(self) -> Mapping[Any, Any]:
        return self._upstream

    @property
    def partitions(self) -> int:
        return self._partitions

    @property
    def entry_filter(self) -> EntryFilter:
        return self._filter

    def upstream_transformers_chain(self) -> UpstreamTransformerChain:
        """
        The builder's transformer chain, by reference.

        Changing the chain (its seed, or its transformers) affects every
        later ``build`` call of this builder and of builders derived from
        it with ``with_filter``.
        """
        return self._transformers

    def with_filter(self, filter_to_add: EntryFilter) -> LocalDatasetBuilder:
        """
        Return a new builder whose filter is ``current AND filter_to_add``.

        The receiver is left untouched; the new builder shares its
        upstream, partition count and transformer chain.
        """
        if not callable(filter_to_add):
            raise TypeError("filter_to_add must be callable")

        current = self._filter

        def combined(key, value):
            return current(key, value) and filter_to_add(key, value)

        return LocalDatasetBuilder(
            self._upstream,
            self._partitions,
            entry_filter=combined,
            transformers=self._transformers,
            show_progress=self._show_progress,
            track_memory=self._track_memory,
        )

    def build(
        self,
        context_builder: PartitionContextBuilder,
        data_builder: PartitionDataBuilder,
    ) -> LocalDataset:
        """
        Partition the upstream and build every partition's context and data.

        Parameters
        ----------
        context_builder : callable
            ``(entries, count) -> context``. Called once per non-empty
            partition.
        data_builder : callable
            ``(entries, count, context) -> data``. Called once per
            non-empty partition, right after its context was built.

        Returns
        -------
        LocalDataset
            ``partitions`` (context, data) slots; empty partitions hold
            ``None`` in both. Partition sizes and timing are in
            ``dataset.stats``.

        Raises
        ------
        TypeError
            If either builder is not callable.

        Notes
        -----
        Exceptions raised by the filter, the chain or either builder
        propagate as-is. Data objects built for earlier partitions are
        not closed in that case.
        """
        if not callable(context_builder):
            raise TypeError("context_builder must be callable")
        if not callable(data_builder):
            raise TypeError("data_builder must be callable")

        entries = materialize_entries(self._upstream, self._filter)
        n_entries = len(entries)
        part_size = max(1, n_entries // self._partitions)

        chain = self._transformers
        transformed = not chain.is_empty()
        seed = chain.seed

        logger.info(
            f"Building {self._partitions} partitions from {n_entries:,} "
            f"entries (nominal size={part_size:,}, transformers={len(chain)}, "
            f"seed={seed})"
        )

        contexts: list[Any] = []
        datas: list[Any] = []
        ptr = 0

        with BuildTracker(
            n_entries,
            self._partitions,
            seed=seed,
            track_memory=self._track_memory,
        ) as tracker:
            for part in tqdm(
                range(self._partitions),
                desc="Building partitions",
                disable=not self._show_progress,
            ):
                # A growing chain (bagging) can move ptr past the end
                remaining = max(0, n_entries - ptr)
                if part == self._partitions - 1:
                    window = remaining
                else:
                    window = min(part_size, remaining)

                seed += part

                if transformed:
                    cnt = sum(
                        1 for _ in self._transformed_view(entries, ptr, window, seed)
                    )
                else:
                    cnt = window

                if cnt > 0:
                    ctx = context_builder(
                        self._resolve_view(entries, ptr, window, cnt, seed, transformed),
                        cnt,
                    )
                    data = data_builder(
                        self._resolve_view(entries, ptr, window, cnt, seed, False),
                        cnt,
                        ctx,
                    )
                else:
                    ctx = None
                    data = None

                logger.debug(
                    f"  Partition {part}: offset={ptr:,}, window={window:,}, "
                    f"count={cnt:,}, seed={seed}"
                )

                contexts.append(ctx)
                datas.append(data)
                tracker.record_partition(part, cnt)
                ptr += cnt

        return LocalDataset(contexts, datas, stats=tracker.stats)

    # ─── Views ──────────────────────────────────────────────────────────

    def _transformed_view(
        self,
        entries: list[UpstreamEntry],
        ptr: int,
        window: int,
        seed: int,
    ) -> Iterator[UpstreamEntry]:
        """Chain output for the ``window`` entries starting at ``ptr``."""
        source = IteratorWindow(_cursor(entries, ptr), count=window)
        return self._transformers.transform(source, seed)

    def _resolve_view(
        self,
        entries: list[UpstreamEntry],
        ptr: int,
        window: int,
        cnt: int,
        seed: int,
        transformed: bool,
    ) -> Iterator[UpstreamEntry]:
        """
        Iterator handed to a partition builder.

        The transformed view re-runs the chain on the same window with
        the same seed as the sizing pass, so it yields exactly ``cnt``
        entries. The raw view reads ``cnt`` entries from ``ptr`` on and
        may come up short only if the chain grew the partition past the
        end of the upstream.
        """
        if transformed:
            return self._transformed_view(entries, ptr, window, seed)
        return IteratorWindow(_cursor(entries, ptr), count=cnt)

    def __repr__(self) -> str:
        return (
            f"LocalDatasetBuilder(upstream={len(self._upstream):,} entries, "
            f"partitions={self._partitions}, "
            f"transformers={self._transformers!r})"
        )
