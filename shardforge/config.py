"""
ShardForge Configuration System
================================
Centralized configuration for building partitioned datasets, using
Python dataclasses. Every knob that shapes a build (how many
partitions, which transformers, which seed) lives here.

Usage:
    # Load from YAML file:
    >>> config = ShardForgeConfig.from_yaml("configs/default.yaml")

    # Create programmatically:
    >>> config = ShardForgeConfig(
    ...     partition=PartitionConfig(n_partitions=8),
    ...     transform=TransformConfig(seed=7, bagging_ratio=1.0),
    ... )

    # Save to YAML:
    >>> config.to_yaml("configs/my_experiment.yaml")

    # Turn the transform section into a chain:
    >>> chain = config.transform.build_chain()
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from shardforge.data.transformers import (
    BaggingUpstreamTransformer,
    ShuffleUpstreamTransformer,
    SubsampleUpstreamTransformer,
    UpstreamTransformerChain,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Partition Configuration
# =============================================================================

@dataclass
class PartitionConfig:
    """
    How the upstream collection is split.

    Parameters
    ----------
    n_partitions : int
        Number of partitions. Every build produces exactly this many
        (context, data) slots, empty partitions included.
        Analogy: the number of graders the exam stack is split between.

    show_progress : bool
        Show a tqdm progress bar while partitions are built.

    track_memory : bool
        Measure peak memory of each build (reported in ``dataset.stats``).
    """
    n_partitions: int = 4
    show_progress: bool = False
    track_memory: bool = False

    def validate(self) -> None:
        """
        Check that partition parameters are valid.

        Raises
        ------
        ValueError
            If n_partitions is not a positive integer.
        """
        if isinstance(self.n_partitions, bool) or not isinstance(self.n_partitions, int):
            raise ValueError(
                f"n_partitions must be an integer, got {self.n_partitions!r}"
            )
        if self.n_partitions < 1:
            raise ValueError(f"n_partitions must be >= 1, got {self.n_partitions}")


# =============================================================================
# Transform Configuration
# =============================================================================

@dataclass
class TransformConfig:
    """
    Upstream transformer chain applied to every partition.

    Transformers are chained in a fixed order: bagging, then
    subsampling, then shuffling. Leaving all of them off gives the empty
    chain, where partitions are plain contiguous slices.

    Parameters
    ----------
    seed : int
        Base seed of the chain. Partition p is transformed with
        seed + 0 + 1 + ... + p, so partitions differ from each other but
        every build with the same seed is reproducible.

    bagging_ratio : float or None
        Mean number of copies per entry for bootstrap bagging.
        None disables bagging.

    keep_probability : float or None
        Probability of keeping each entry. None disables subsampling.

    shuffle : bool
        Shuffle the entries inside each partition.
    """
    seed: int = 42
    bagging_ratio: Optional[float] = None
    keep_probability: Optional[float] = None
    shuffle: bool = False

    def validate(self) -> None:
        """Validate transform parameters."""
        if isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise ValueError(f"seed must be an integer, got {self.seed!r}")
        if self.bagging_ratio is not None and self.bagging_ratio <= 0:
            raise ValueError(
                f"bagging_ratio must be positive, got {self.bagging_ratio}"
            )
        if self.keep_probability is not None and not 0.0 < self.keep_probability <= 1.0:
            raise ValueError(
                f"keep_probability must be in (0, 1], got {self.keep_probability}"
            )

    def build_chain(self) -> UpstreamTransformerChain:
        """Create the UpstreamTransformerChain described by this section."""
        self.validate()

        chain = UpstreamTransformerChain.empty(seed=self.seed)
        if self.bagging_ratio is not None:
            chain.add_upstream_transformer(
                BaggingUpstreamTransformer(subsample_ratio=self.bagging_ratio)
            )
        if self.keep_probability is not None:
            chain.add_upstream_transformer(
                SubsampleUpstreamTransformer(keep_probability=self.keep_probability)
            )
        if self.shuffle:
            chain.add_upstream_transformer(ShuffleUpstreamTransformer())
        return chain


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class ShardForgeConfig:
    """
    Master configuration combining all sub-configurations.

    Parameters
    ----------
    partition : PartitionConfig
        Partition count and progress display.
    transform : TransformConfig
        Transformer chain and seed.
    """
    partition: PartitionConfig = field(default_factory=PartitionConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)

    def validate(self) -> None:
        """
        Validate all sub-configurations.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        self.partition.validate()
        self.transform.validate()

        logger.debug(
            f"Config validated: {self.partition.n_partitions} partitions, "
            f"seed={self.transform.seed}"
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> ShardForgeConfig:
        """
        Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        ShardForgeConfig
            Loaded and validated configuration.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        ValueError
            If the YAML file is empty or contains invalid values.
        yaml.YAMLError
            If the YAML file is malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Config file not found: {path}. "
                f"Create one from configs/default.yaml as a template."
            )

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raise ValueError(f"Config file is empty: {path}")

        config = cls(
            partition=PartitionConfig(**raw.get("partition", {})),
            transform=TransformConfig(**raw.get("transform", {})),
        )

        config.validate()
        return config

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to a YAML file.

        Creates parent directories if they don't exist.

        Parameters
        ----------
        path : str or Path
            Output YAML file path.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.to_dict(),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        logger.info(f"Config saved to {path}")

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)

    @classmethod
    def for_smoke_test(cls) -> ShardForgeConfig:
        """
        Create a minimal configuration for quick smoke testing.

        Returns
        -------
        ShardForgeConfig
            Three partitions, bootstrap bagging, fixed seed.
        """
        return cls(
            partition=PartitionConfig(n_partitions=3, show_progress=False),
            transform=TransformConfig(seed=7, bagging_ratio=1.0),
        )

    def __repr__(self) -> str:
        """Pretty-print the configuration."""
        steps = [
            name for name, enabled in (
                (f"bagging({self.transform.bagging_ratio})", self.transform.bagging_ratio is not None),
                (f"subsample({self.transform.keep_probability})", self.transform.keep_probability is not None),
                ("shuffle", self.transform.shuffle),
            ) if enabled
        ]
        lines = [
            "ShardForgeConfig(",
            f"  Partitions:   {self.partition.n_partitions}",
            f"  Transformers: {', '.join(steps) or 'none'}",
            f"  Seed:         {self.transform.seed}",
            ")",
        ]
        return "\n".join(lines)
