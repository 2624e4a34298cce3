"""
ShardForge Primitive Builders
==============================
Ready-made context and data builders for the most common case: turning
each partition's upstream records into a numpy feature matrix (plus an
optional label vector).

    upstream {k: record}  →  feature_extractor(k, record)  →  row of floats
                          →  label_extractor(k, record)    →  label

    partition entries  →  FeatureMatrixData(features: (rows, cols))
                       →  LabeledData(features: (rows, cols), labels: (rows,))

Usage:
    >>> builder = LocalDatasetBuilder(records, partitions=3)
    >>> dataset = builder.build(
    ...     EmptyContextBuilder(),
    ...     LabeledDataBuilder(
    ...         feature_extractor=lambda k, v: v["features"],
    ...         label_extractor=lambda k, v: v["label"],
    ...     ),
    ... )
    >>> feature_mean(dataset)
    array([...])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

import numpy as np

from shardforge.data.upstream import UpstreamEntry
from shardforge.dataset.local import LocalDataset

logger = logging.getLogger(__name__)

FeatureExtractor = Callable[[Any, Any], Sequence[float]]
LabelExtractor = Callable[[Any, Any], float]


# =============================================================================
# Contexts
# =============================================================================

@dataclass(frozen=True)
class EmptyContext:
    """Context that only records how many entries its partition holds."""
    size: int


class EmptyContextBuilder:
    """Context builder producing an ``EmptyContext`` without reading entries."""

    def __call__(self, entries: Iterable[UpstreamEntry], cnt: int) -> EmptyContext:
        return EmptyContext(size=cnt)


# =============================================================================
# Partition Data
# =============================================================================

class FeatureMatrixData:
    """
    Partition data holding a dense feature matrix.

    Attributes
    ----------
    features : numpy.ndarray or None
        Array of shape (rows, cols); None once closed.
    """

    def __init__(self, features: np.ndarray):
        features = np.asarray(features, dtype=np.float64)
        if features.ndim != 2:
            raise ValueError(
                f"features must be 2-D (rows, cols), got shape {features.shape}"
            )
        self.features: Optional[np.ndarray] = features

    @property
    def rows(self) -> int:
        return 0 if self.features is None else self.features.shape[0]

    @property
    def cols(self) -> int:
        return 0 if self.features is None else self.features.shape[1]

    def close(self) -> None:
        """Drop the arrays so they can be garbage collected."""
        self.features = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rows={self.rows}, cols={self.cols})"


class LabeledData(FeatureMatrixData):
    """Feature matrix plus one label per row."""

    def __init__(self, features: np.ndarray, labels: np.ndarray):
        super().__init__(features)
        labels = np.asarray(labels, dtype=np.float64)
        if labels.shape != (self.rows,):
            raise ValueError(
                f"labels must have shape ({self.rows},), got {labels.shape}"
            )
        self.labels: Optional[np.ndarray] = labels

    def close(self) -> None:
        super().close()
        self.labels = None


def _stack_rows(rows: list[Sequence[float]], cnt: int) -> np.ndarray:
    """Stack extracted rows into a (rows, cols) matrix; rejects ragged rows."""
    if not rows:
        return np.zeros((0, 0), dtype=np.float64)

    width = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != width:
            raise ValueError(
                f"Feature row {i} has {len(row)} values, expected {width}"
            )
    if len(rows) != cnt:
        logger.warning(
            f"Partition announced {cnt} entries but yielded {len(rows)}"
        )
    return np.asarray(rows, dtype=np.float64).reshape(len(rows), width)


class FeatureMatrixDataBuilder:
    """
    Data builder that extracts one feature row per upstream entry.

    Parameters
    ----------
    feature_extractor : callable
        ``(key, value) -> sequence of floats``. Every row must have the
        same length.
    """

    def __init__(self, feature_extractor: FeatureExtractor):
        if not callable(feature_extractor):
            raise TypeError("feature_extractor must be callable")
        self.feature_extractor = feature_extractor

    def __call__(
        self,
        entries: Iterable[UpstreamEntry],
        cnt: int,
        ctx: Any,
    ) -> FeatureMatrixData:
        rows = [list(self.feature_extractor(e.key, e.value)) for e in entries]
        return FeatureMatrixData(_stack_rows(rows, cnt))


class LabeledDataBuilder:
    """
    Data builder producing ``LabeledData`` from feature and label extractors.

    Parameters
    ----------
    feature_extractor : callable
        ``(key, value) -> sequence of floats``.
    label_extractor : callable
        ``(key, value) -> float``.
    """

    def __init__(
        self,
        feature_extractor: FeatureExtractor,
        label_extractor: LabelExtractor,
    ):
        if not callable(feature_extractor) or not callable(label_extractor):
            raise TypeError("feature_extractor and label_extractor must be callable")
        self.feature_extractor = feature_extractor
        self.label_extractor = label_extractor

    def __call__(
        self,
        entries: Iterable[UpstreamEntry],
        cnt: int,
        ctx: Any,
    ) -> LabeledData:
        rows: list[Sequence[float]] = []
        labels: list[float] = []
        for entry in entries:
            rows.append(list(self.feature_extractor(entry.key, entry.value)))
            labels.append(float(self.label_extractor(entry.key, entry.value)))
        return LabeledData(_stack_rows(rows, cnt), np.asarray(labels))


# =============================================================================
# Dataset Statistics
# =============================================================================

def _partition_moments(data: FeatureMatrixData, idx: int) -> tuple:
    features = data.features
    return features.shape[0], features.sum(axis=0), (features ** 2).sum(axis=0)


def _merge_moments(acc: Optional[tuple], part: tuple) -> tuple:
    if acc is None:
        return part
    return acc[0] + part[0], acc[1] + part[1], acc[2] + part[2]


def _moments(dataset: LocalDataset) -> tuple:
    moments = dataset.compute(_partition_moments, _merge_moments, None)
    if moments is None or moments[0] == 0:
        raise ValueError("Cannot compute statistics of an empty dataset")
    return moments


def feature_mean(dataset: LocalDataset) -> np.ndarray:
    """Column-wise mean of the feature matrices across all partitions."""
    n, total, _ = _moments(dataset)
    return total / n


def feature_std(dataset: LocalDataset) -> np.ndarray:
    """Column-wise population standard deviation across all partitions."""
    n, total, total_sq = _moments(dataset)
    mean = total / n
    variance = np.maximum(total_sq / n - mean ** 2, 0.0)
    return np.sqrt(variance)
