"""
shardforge.data — Upstream Data Primitives
===========================================
Building blocks the dataset builder works with:

    1. **Upstream entries** (`upstream.py`):
       Immutable (key, value) records and the materializer that filters
       the upstream collection into an ordered list of them.

    2. **Iterator window** (`window.py`):
       Hands out at most N elements of a shared iterator: the partition
       "window".

    3. **Transformers** (`transformers.py`):
       Seeded bagging / subsampling / shuffling steps combined into an
       UpstreamTransformerChain.

Information Flow:
    upstream mapping
        → materialize_entries (filter)
        → IteratorWindow (one partition)
        → UpstreamTransformerChain (seeded per partition)
"""

from shardforge.data.upstream import UpstreamEntry, accept_all, materialize_entries
from shardforge.data.window import IteratorWindow
from shardforge.data.transformers import (
    BaggingUpstreamTransformer,
    ShuffleUpstreamTransformer,
    SubsampleUpstreamTransformer,
    UpstreamTransformer,
    UpstreamTransformerChain,
)
