"""
ShardForge Upstream Entries
============================
The smallest unit of data that flows through ShardForge: a single
(key, value) record taken from the upstream collection.

Materialization:
    The upstream is any in-memory mapping (a dict of training records,
    for example). Before partitioning, we walk its entries once, drop
    the ones rejected by the filter, and keep the rest in a plain list
    in the mapping's own iteration order.

    upstream {1: "a", 2: "b", 3: "c"}  +  filter(k, v): k != 2
        → [UpstreamEntry(1, "a"), UpstreamEntry(3, "c")]

Usage:
    >>> from shardforge.data.upstream import materialize_entries
    >>> entries = materialize_entries({1: "a", 2: "b"}, lambda k, v: k > 1)
    >>> entries
    [UpstreamEntry(key=2, value='b')]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

EntryFilter = Callable[[Any, Any], bool]


@dataclass(frozen=True)
class UpstreamEntry:
    """
    An immutable (key, value) pair from the upstream collection.

    Two entries are equal when both their keys and values are equal.
    """
    key: Any
    value: Any


def accept_all(key: Any, value: Any) -> bool:
    """Default filter that lets every upstream entry through."""
    return True


def materialize_entries(
    upstream: Mapping[Any, Any],
    entry_filter: Optional[EntryFilter] = None,
) -> list[UpstreamEntry]:
    """
    Filter the upstream mapping and collect the survivors in order.

    The filter is called exactly once per upstream entry. The result is
    built fresh on every call; nothing is cached between builds.

    Parameters
    ----------
    upstream : Mapping
        Read-only key → value collection.
    entry_filter : callable or None
        Predicate ``(key, value) -> bool``. None keeps every entry.

    Returns
    -------
    list[UpstreamEntry]
        Accepted entries in the upstream's iteration order.
    """
    if entry_filter is None:
        entry_filter = accept_all

    entries = [
        UpstreamEntry(key, value)
        for key, value in upstream.items()
        if entry_filter(key, value)
    ]

    logger.debug(
        f"Materialized {len(entries):,} of {len(upstream):,} upstream entries"
    )
    return entries
