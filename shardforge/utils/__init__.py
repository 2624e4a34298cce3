"""
shardforge.utils — Build Instrumentation
=========================================
    - metrics.py — BuildTracker / BuildStats: partition sizes, timing
                   and peak memory of a dataset build
"""

from shardforge.utils.metrics import BuildStats, BuildTracker
