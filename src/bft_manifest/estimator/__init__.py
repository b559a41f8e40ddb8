"""
Row-count estimator for BFT report tables.

This module provides:
- Spanning-tree fan-out estimation for a set of grain entities
- Table-level estimation with independent row groups (UNION ALL)
- Placeholder row counting for reserve and elimination metrics
"""

from .rows import RowEstimate, estimate_rows, fan_out
from .tables import estimate_table_rows, remove_subset_chains, table_chains

__all__ = [
    # Rows
    "RowEstimate",
    "estimate_rows",
    "fan_out",
    # Tables
    "estimate_table_rows",
    "table_chains",
    "remove_subset_chains",
]
