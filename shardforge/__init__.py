"""
ShardForge
==========
Deterministic partitioning of in-memory training records.

This package provides:
    1. Filtering an upstream key → value collection of records
    2. Splitting the survivors into N ordered partitions
    3. Seeded, per-partition transformations (bagging, subsampling,
       shuffling) that are reproducible from a single base seed
    4. Building a lightweight context and a heavier data object for
       every partition through user-supplied callbacks
    5. Map/reduce computation over the built partitions, and torch
       DataLoaders per partition

Quick Start:
    >>> from shardforge.dataset import LocalDatasetBuilder, EmptyContextBuilder
    >>> builder = LocalDatasetBuilder({1: "a", 2: "b", 3: "c"}, partitions=2)
    >>> dataset = builder.build(
    ...     EmptyContextBuilder(),
    ...     lambda entries, cnt, ctx: [e.value for e in entries],
    ... )
    >>> dataset.datas
    (['a'], ['b', 'c'])

Subpackages:
    - shardforge.data    — Upstream entries, iterator windows, transformers
    - shardforge.dataset — Dataset builder, local dataset, ready-made builders
    - shardforge.utils   — Timing and memory tracking
"""

__version__ = "0.1.0"
