"""
ShardForge — Setup Script
==========================
Installs ShardForge as a local editable package so that all internal
imports (e.g. `from shardforge.dataset import LocalDatasetBuilder`) work
seamlessly from any script or notebook.

Usage:
    cd /path/to/shardforge
    pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name="shardforge",
    version="0.1.0",
    description=(
        "ShardForge: Deterministic, seed-aware partitioning of in-memory "
        "training records into per-partition contexts and data"
    ),
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    python_requires=">=3.10",
    install_requires=[
        "torch>=2.1.0",
        "numpy>=1.24.0",
        "tqdm>=4.65.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
)
