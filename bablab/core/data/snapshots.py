"""Parquet snapshots of intermediate series artifacts."""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path

import pandas as pd

from bablab.core.timeseries import UNDEFINED_DTYPE
from bablab.core.utils.errors import SnapshotError

_NAME_SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9_.-]+")
_SNAPSHOT_COLUMNS: tuple[str, str, str] = ("key", "date", "value")


def _sanitize_name(name: str) -> str:
    """Sanitize logical snapshot names so they are safe as filenames."""
    clean_name = _NAME_SANITIZE_PATTERN.sub("_", name.strip())
    if not clean_name:
        raise ValueError("Snapshot name cannot be empty.")
    return clean_name


def _to_long_frame(series_by_key: Mapping[str, pd.Series]) -> pd.DataFrame:
    """Stack keyed series into one long frame, keeping undefined entries."""
    frames: list[pd.DataFrame] = []
    for key in sorted(series_by_key):
        series = series_by_key[key]
        frames.append(
            pd.DataFrame(
                {
                    "key": key,
                    "date": pd.DatetimeIndex(series.index),
                    "value": pd.array(series.to_numpy(), dtype=UNDEFINED_DTYPE),
                }
            )
        )
    if not frames:
        return pd.DataFrame(
            {
                "key": pd.Series(dtype=str),
                "date": pd.Series(dtype="datetime64[ns]"),
                "value": pd.Series(dtype=UNDEFINED_DTYPE),
            }
        )
    return pd.concat(frames, ignore_index=True)


class ParquetSnapshotStore:
    """Save and load keyed series snapshots by logical name."""

    def __init__(self, snapshot_dir: Path) -> None:
        """
        Initialize a snapshot store.

        Args:
            snapshot_dir: Directory where one parquet file per logical name is stored.
        """
        self.snapshot_dir = snapshot_dir.expanduser().resolve()
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)

    def snapshot_path(self, name: str) -> Path:
        """Build the parquet file path for a logical name."""
        return self.snapshot_dir / f"{_sanitize_name(name)}.parquet"

    def exists(self, name: str) -> bool:
        """Return whether a snapshot exists for ``name``."""
        return self.snapshot_path(name).exists()

    def save(self, name: str, series_by_key: Mapping[str, pd.Series]) -> Path:
        """
        Persist a mapping of keys to date-indexed series.

        Args:
            name: Logical snapshot name (for example ``rolling_betas``).
            series_by_key: Series to persist; undefined values are preserved.

        Returns:
            Written snapshot path.
        """
        path = self.snapshot_path(name)
        try:
            _to_long_frame(series_by_key).to_parquet(path, engine="pyarrow", index=False)
        except Exception as exc:
            raise SnapshotError(f"Failed to write snapshot '{name}' at {path}: {exc}") from exc
        return path

    def load(self, name: str) -> dict[str, pd.Series]:
        """
        Load a snapshot written by :meth:`save`.

        Args:
            name: Logical snapshot name.

        Returns:
            Mapping of key to ``Float64`` series in sorted key order.

        Raises:
            SnapshotError: If the snapshot is missing or unreadable.
        """
        path = self.snapshot_path(name)
        if not path.exists():
            raise SnapshotError(f"Snapshot '{name}' not found at {path}.")
        try:
            frame = pd.read_parquet(path, engine="pyarrow")
        except Exception as exc:
            raise SnapshotError(f"Failed to read snapshot '{name}' at {path}: {exc}") from exc

        missing = [column for column in _SNAPSHOT_COLUMNS if column not in frame.columns]
        if missing:
            raise SnapshotError(f"Snapshot '{name}' is missing columns: {missing}")

        loaded: dict[str, pd.Series] = {}
        for key, group in frame.groupby("key", sort=True):
            series = pd.Series(
                pd.array(group["value"].to_numpy(), dtype=UNDEFINED_DTYPE),
                index=pd.DatetimeIndex(group["date"], name="date"),
                name=str(key),
            )
            loaded[str(key)] = series.sort_index()
        return loaded
