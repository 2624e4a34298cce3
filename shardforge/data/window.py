"""
ShardForge Iterator Window
===========================
Wraps an iterator so it hands out at most ``count`` elements, mapping
each one on the way out.

Analogy:
    A ticket counter that serves a fixed number of people from a queue.
    Whoever is served leaves the queue for good; the next counter picks
    up the queue where this one stopped.

Usage:
    >>> from shardforge.data.window import IteratorWindow
    >>> source = iter(range(10))
    >>> list(IteratorWindow(source, count=3))
    [0, 1, 2]
    >>> list(IteratorWindow(source, lambda x: x * 10, count=2))
    [30, 40]
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

_EMPTY = object()


def _identity(item: Any) -> Any:
    return item


class IteratorWindow:
    """
    Bounded, mapping view over a shared source iterator.

    Parameters
    ----------
    delegate : Iterator
        Source iterator. The window consumes it one element per
        produced item; ``has_next`` may hold one element ahead.
    mapper : callable or None
        Function applied to every element handed out. None = identity.
    count : int
        Maximum number of elements to produce (>= 0).
    """

    def __init__(
        self,
        delegate: Iterator[Any],
        mapper: Optional[Callable[[Any], Any]] = None,
        count: int = 0,
    ):
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        self._delegate = delegate
        self._mapper = mapper if mapper is not None else _identity
        self._count = count
        self._produced = 0
        # One-element look-ahead taken by has_next(); owned by this window
        self._pending = _EMPTY

    @property
    def produced(self) -> int:
        """Number of elements handed out so far."""
        return self._produced

    def has_next(self) -> bool:
        """
        True while the source has elements and the quota isn't used up.

        Answering this needs one element of look-ahead: while the quota is
        not used up, the next source element is pulled and held by the
        window until ``__next__`` hands it out. A window abandoned right
        after a ``True`` answer keeps that element, and the shared source
        has already moved past it. Once the quota is reached nothing more
        is pulled, so draining a window never over-consumes the source.
        """
        if self._produced >= self._count:
            return False
        if self._pending is _EMPTY:
            self._pending = next(self._delegate, _EMPTY)
        return self._pending is not _EMPTY

    def __iter__(self) -> IteratorWindow:
        return self

    def __next__(self) -> Any:
        if not self.has_next():
            raise StopIteration

        item = self._pending
        self._pending = _EMPTY
        self._produced += 1
        return self._mapper(item)

    def __repr__(self) -> str:
        return f"IteratorWindow(produced={self._produced}, count={self._count})"
