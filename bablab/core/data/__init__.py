"""Data access, return conversion and snapshot interfaces."""

from bablab.core.data.base import DataProvider, monthly_log_returns
from bablab.core.data.eodhd_provider import EODHDProvider
from bablab.core.data.snapshots import ParquetSnapshotStore
from bablab.core.data.universe import UniverseData, load_universe

__all__ = [
    "DataProvider",
    "EODHDProvider",
    "ParquetSnapshotStore",
    "UniverseData",
    "load_universe",
    "monthly_log_returns",
]
