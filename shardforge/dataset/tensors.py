"""
ShardForge Tensor Views
========================
PyTorch ``Dataset`` wrappers around built partitions, so a partition can
be fed straight into a ``DataLoader`` and a training loop, with one loader
per partition, e.g. one per ensemble member or per expert module.

Usage:
    >>> loaders = partition_loaders(dataset, batch_size=32, shuffle=True)
    >>> for features, labels in loaders[0]:
    ...     loss = criterion(model(features), labels)
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import torch
from torch.utils.data import DataLoader, Dataset

from shardforge.dataset.local import LocalDataset
from shardforge.dataset.primitives import FeatureMatrixData, LabeledData

logger = logging.getLogger(__name__)


class PartitionTensorDataset(Dataset):
    """
    Torch dataset over a single partition's feature matrix.

    Items are ``(features, label)`` pairs for ``LabeledData`` and bare
    ``features`` tensors for ``FeatureMatrixData``. Tensors are float32
    and are converted once, up front.

    Parameters
    ----------
    data : FeatureMatrixData or LabeledData
        Built (not closed) partition data.

    Raises
    ------
    ValueError
        If the partition data has already been closed.
    """

    def __init__(self, data: Union[FeatureMatrixData, LabeledData]):
        if data.features is None:
            raise ValueError("Cannot wrap partition data that has been closed")

        self.features = torch.as_tensor(data.features, dtype=torch.float32)
        self.labels: Optional[torch.Tensor] = None
        if isinstance(data, LabeledData):
            self.labels = torch.as_tensor(data.labels, dtype=torch.float32)

    def __len__(self) -> int:
        return self.features.shape[0]

    def __getitem__(self, idx: int):
        if idx < 0 or idx >= len(self):
            raise IndexError(
                f"Index {idx} out of range for partition of size {len(self)}"
            )
        if self.labels is None:
            return self.features[idx]
        return self.features[idx], self.labels[idx]

    def __repr__(self) -> str:
        return (
            f"PartitionTensorDataset(rows={len(self)}, "
            f"cols={self.features.shape[1]}, labeled={self.labels is not None})"
        )


def partition_loaders(
    dataset: LocalDataset,
    batch_size: int = 32,
    shuffle: bool = False,
) -> list[DataLoader]:
    """
    Build one DataLoader per non-empty partition, in partition order.

    Parameters
    ----------
    dataset : LocalDataset
        Dataset whose partition data are FeatureMatrixData/LabeledData.
    batch_size : int
        Batch size of every loader.
    shuffle : bool
        Shuffle rows within each partition every epoch.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    loaders = dataset.compute(
        lambda data, idx: DataLoader(
            PartitionTensorDataset(data),
            batch_size=batch_size,
            shuffle=shuffle,
        )
    )
    logger.info(f"Created {len(loaders)} partition loaders (batch_size={batch_size})")
    return loaders
