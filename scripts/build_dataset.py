#!/usr/bin/env python3
"""
ShardForge — Dataset Build Script
==================================
Loads labeled training records, partitions them with a
LocalDatasetBuilder, and writes a JSON summary of the partitions.

Records file format (JSON object, key → record):
    {
        "r1": {"features": [0.1, 2.0, 3.5], "label": 1},
        "r2": {"features": [0.4, 1.0, 2.5], "label": 0},
        ...
    }

Usage:
    python scripts/build_dataset.py --records data/records.json --config configs/default.yaml
    python scripts/build_dataset.py --smoke-test  # Synthetic records
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from shardforge.config import ShardForgeConfig
from shardforge.dataset import (
    EmptyContextBuilder,
    LabeledDataBuilder,
    LocalDatasetBuilder,
    feature_mean,
    feature_std,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_records(path: Path) -> dict:
    """
    Load labeled records from a JSON file.

    Parameters
    ----------
    path : Path
        JSON file holding an object of key → {"features", "label"}.

    Returns
    -------
    dict
        Records in file order.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file does not hold a JSON object.
    """
    if not path.exists():
        raise FileNotFoundError(f"Records file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, dict):
        raise ValueError(
            f"Records file must contain a JSON object (key → record), "
            f"got {type(records).__name__}"
        )

    logger.info(f"Loaded {len(records):,} records from {path}")
    return records


def synthetic_records(n_records: int = 200, n_features: int = 4, seed: int = 0) -> dict:
    """Generate random labeled records for smoke testing."""
    rng = np.random.default_rng(seed)
    features = rng.normal(size=(n_records, n_features))
    labels = (features.sum(axis=1) > 0).astype(int)
    return {
        f"r{i}": {"features": features[i].tolist(), "label": int(labels[i])}
        for i in range(n_records)
    }


def main():
    parser = argparse.ArgumentParser(
        description="ShardForge Dataset Build",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Build from a records file:
    python scripts/build_dataset.py --records data/records.json --config configs/default.yaml

    # Quick smoke test:
    python scripts/build_dataset.py --smoke-test

    # Override partition count and write a summary:
    python scripts/build_dataset.py --records data/records.json --partitions 8 --output summary.json
        """,
    )
    parser.add_argument(
        "--config", type=str, default="configs/default.yaml",
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--records", type=str, default=None,
        help="Path to JSON records file",
    )
    parser.add_argument(
        "--smoke-test", action="store_true",
        help="Use synthetic records and the smoke-test config",
    )
    parser.add_argument(
        "--partitions", type=int, default=None,
        help="Override number of partitions",
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Where to write the JSON summary",
    )
    args = parser.parse_args()

    if args.smoke_test:
        config = ShardForgeConfig.for_smoke_test()
        records = synthetic_records(seed=config.transform.seed)
        logger.info("Running in SMOKE TEST mode (synthetic records)")
    else:
        if args.records is None:
            parser.error("--records is required unless --smoke-test is given")
        config = ShardForgeConfig.from_yaml(args.config)
        records = load_records(Path(args.records))

    if args.partitions is not None:
        config.partition.n_partitions = args.partitions
    config.partition.track_memory = True

    logger.info(f"\n{config}")

    builder = LocalDatasetBuilder.from_config(records, config)
    dataset = builder.build(
        EmptyContextBuilder(),
        LabeledDataBuilder(
            feature_extractor=lambda k, v: v["features"],
            label_extractor=lambda k, v: v["label"],
        ),
    )
    stats = dataset.stats

    with dataset:
        for i, size in enumerate(stats.partition_sizes):
            logger.info(f"  Partition {i}: {size:,} records")

        mean = feature_mean(dataset)
        std = feature_std(dataset)

        summary = {
            "n_records": len(records),
            **stats.to_dict(),
            "feature_mean": mean.tolist(),
            "feature_std": std.tolist(),
        }

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Summary written to {output_path}")

    logger.info("Dataset build complete!")
    logger.info(f"  Partition sizes: {stats.partition_sizes}")
    logger.info(f"  Time: {stats.duration_seconds:.2f}s, peak memory: {stats.peak_mb:.1f}MB")


if __name__ == "__main__":
    main()
