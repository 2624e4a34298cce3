"""
ShardForge Upstream Transformers
=================================
Seeded transformations applied to each partition's stream of upstream
entries before the partition's context and data are built.

A transformer may resample, reorder or drop entries, so the number of
entries coming out can differ from the number going in. Everything is
driven by a ``numpy.random.Generator`` created from the chain's seed,
which makes each transformation reproducible: same seed + same input
window = same output.

Available Transformers (with analogies):

1. BAGGING — "Drawing with replacement"
   Each entry is emitted Poisson(ratio) times. With ratio=1.0 the
   partition keeps roughly its original size, but some records appear
   twice and others not at all, which is the classic bootstrap sample used by
   bagged ensembles.

2. SUBSAMPLE — "Coin flip per record"
   Each entry survives independently with a fixed probability.

3. SHUFFLE — "Shuffled deck"
   Same entries, random order.

Chains:
    Transformers are combined into an UpstreamTransformerChain. One
    generator is created per transform() call and shared by every
    transformer in the chain, in order.

Usage:
    >>> chain = UpstreamTransformerChain.of(
    ...     BaggingUpstreamTransformer(subsample_ratio=1.0), seed=7
    ... )
    >>> bagged = list(chain.transform(entries))
    >>> bagged == list(chain.transform(entries))  # deterministic
    True
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, Optional

import numpy as np

from shardforge.data.upstream import UpstreamEntry

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42
_SEED_MASK = 0xFFFF_FFFF_FFFF_FFFF


class UpstreamTransformer(ABC):
    """
    Base class for a single step of an upstream transformation chain.

    Subclasses must be pure functions of ``(entries, rng)``: given the
    same input and a generator in the same state, they must produce the
    same output.
    """

    @abstractmethod
    def transform(
        self,
        entries: Iterable[UpstreamEntry],
        rng: np.random.Generator,
    ) -> Iterator[UpstreamEntry]:
        """
        Transform a stream of upstream entries.

        Parameters
        ----------
        entries : iterable of UpstreamEntry
            Input stream (one partition window).
        rng : numpy.random.Generator
            Seeded generator shared by the whole chain.

        Returns
        -------
        Iterator[UpstreamEntry]
            Transformed stream, possibly of a different length.
        """


class BaggingUpstreamTransformer(UpstreamTransformer):
    """
    Bootstrap-style resampling: repeat each entry Poisson(ratio) times.

    Parameters
    ----------
    subsample_ratio : float
        Mean number of copies per entry (> 0). 1.0 keeps the expected
        partition size unchanged.
    """

    def __init__(self, subsample_ratio: float = 1.0):
        if subsample_ratio <= 0:
            raise ValueError(
                f"subsample_ratio must be positive, got {subsample_ratio}"
            )
        self.subsample_ratio = subsample_ratio

    def transform(self, entries, rng):
        for entry in entries:
            for _ in range(int(rng.poisson(self.subsample_ratio))):
                yield entry

    def __repr__(self) -> str:
        return f"BaggingUpstreamTransformer(ratio={self.subsample_ratio})"


class SubsampleUpstreamTransformer(UpstreamTransformer):
    """
    Keep each entry independently with probability ``keep_probability``.
    """

    def __init__(self, keep_probability: float = 0.5):
        if not 0.0 < keep_probability <= 1.0:
            raise ValueError(
                f"keep_probability must be in (0, 1], got {keep_probability}"
            )
        self.keep_probability = keep_probability

    def transform(self, entries, rng):
        for entry in entries:
            if rng.random() < self.keep_probability:
                yield entry

    def __repr__(self) -> str:
        return f"SubsampleUpstreamTransformer(p={self.keep_probability})"


class ShuffleUpstreamTransformer(UpstreamTransformer):
    """Random permutation of the window. Needs the whole window in memory."""

    def transform(self, entries, rng):
        buffered = list(entries)
        for idx in rng.permutation(len(buffered)):
            yield buffered[idx]

    def __repr__(self) -> str:
        return "ShuffleUpstreamTransformer()"


class UpstreamTransformerChain:
    """
    Ordered, seed-parameterized composition of upstream transformers.

    The chain owns a base seed. ``transform`` accepts an explicit seed so
    that callers (the dataset builder) can derive one seed per partition
    without touching the chain's own state.

    Parameters
    ----------
    transformers : iterable of UpstreamTransformer
        Steps applied in order.
    seed : int
        Base seed used when ``transform`` is called without one.
    """

    def __init__(
        self,
        transformers: Iterable[UpstreamTransformer] = (),
        seed: int = DEFAULT_SEED,
    ):
        self._transformers: list[UpstreamTransformer] = []
        self._seed = int(seed)
        for transformer in transformers:
            self.add_upstream_transformer(transformer)

    @classmethod
    def empty(cls, seed: int = DEFAULT_SEED) -> UpstreamTransformerChain:
        """Chain with no transformers (identity)."""
        return cls(seed=seed)

    @classmethod
    def of(
        cls,
        *transformers: UpstreamTransformer,
        seed: int = DEFAULT_SEED,
    ) -> UpstreamTransformerChain:
        """Chain made of the given transformers."""
        return cls(transformers, seed=seed)

    @property
    def seed(self) -> int:
        """Base seed of the chain."""
        return self._seed

    def set_seed(self, seed: int) -> UpstreamTransformerChain:
        self._seed = int(seed)
        return self

    def modify_seed(self, fn: Callable[[int], int]) -> UpstreamTransformerChain:
        """Replace the base seed with ``fn(seed)``."""
        self._seed = int(fn(self._seed))
        return self

    def add_upstream_transformer(
        self,
        transformer: UpstreamTransformer,
    ) -> UpstreamTransformerChain:
        """Append a transformer to the end of the chain."""
        if not isinstance(transformer, UpstreamTransformer):
            raise TypeError(
                f"Expected an UpstreamTransformer, got {type(transformer).__name__}"
            )
        self._transformers.append(transformer)
        return self

    @property
    def transformers(self) -> tuple[UpstreamTransformer, ...]:
        return tuple(self._transformers)

    def is_empty(self) -> bool:
        return not self._transformers

    def __len__(self) -> int:
        return len(self._transformers)

    def transform(
        self,
        entries: Iterable[UpstreamEntry],
        seed: Optional[int] = None,
    ) -> Iterator[UpstreamEntry]:
        """
        Pipe ``entries`` through every transformer.

        A fresh generator is created on each call, so repeated calls with
        the same seed and the same input yield the same output.

        Parameters
        ----------
        entries : iterable of UpstreamEntry
            Input stream.
        seed : int or None
            Seed for this call. None uses the chain's base seed. Any int
            is accepted; negative seeds are folded into the unsigned 64-bit
            range numpy expects, so -1 and 2**64 - 1 give the same stream.

        Returns
        -------
        Iterator[UpstreamEntry]
            Lazily transformed stream. The empty chain returns the input
            unchanged.
        """
        seed = self._seed if seed is None else seed
        rng = np.random.default_rng(seed & _SEED_MASK)

        stream = iter(entries)
        for transformer in self._transformers:
            stream = iter(transformer.transform(stream, rng))
        return stream

    def __repr__(self) -> str:
        steps = ", ".join(repr(t) for t in self._transformers) or "empty"
        return f"UpstreamTransformerChain([{steps}], seed={self._seed})"
