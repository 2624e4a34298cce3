"""
shardforge.dataset — Partitioned Datasets
==========================================
    - builder.py    — LocalDatasetBuilder: filter, partition, transform,
                      and build (context, data) per partition
    - local.py      — LocalDataset: the built partitions, with
                      map/reduce computation and close()
    - primitives.py — Ready-made context/data builders over numpy
                      feature matrices, plus dataset statistics
    - tensors.py    — torch Dataset / DataLoader views of partitions
"""

from shardforge.dataset.local import LocalDataset
from shardforge.dataset.builder import LocalDatasetBuilder
from shardforge.dataset.primitives import (
    EmptyContext,
    EmptyContextBuilder,
    FeatureMatrixData,
    FeatureMatrixDataBuilder,
    LabeledData,
    LabeledDataBuilder,
    feature_mean,
    feature_std,
)
from shardforge.dataset.tensors import PartitionTensorDataset, partition_loaders
