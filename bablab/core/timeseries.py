"""Date-indexed series helpers with an explicit "undefined" sentinel.

Every series produced by BabLab uses pandas' nullable ``Float64`` dtype, so an
undefined value is ``pd.NA`` rather than a floating-point NaN or infinity.
Alignment is an inner join on dates; no other component handles missing dates.
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd

UNDEFINED_DTYPE = "Float64"


def to_float_series(series: pd.Series, name: str | None = None) -> pd.Series:
    """
    Normalize a date-indexed series to sorted, de-duplicated ``Float64`` values.

    NaN and infinite inputs become ``pd.NA``. Duplicate dates keep the last value.

    Args:
        series: Input series indexed by dates.
        name: Optional series name; defaults to the input name.

    Returns:
        Normalized series.
    """
    if not isinstance(series.index, pd.DatetimeIndex):
        index = pd.DatetimeIndex(pd.to_datetime(series.index))
        series = pd.Series(series.to_numpy(), index=index, name=series.name)

    numeric = pd.to_numeric(series, errors="coerce").astype("float64")
    numeric = numeric.replace([np.inf, -np.inf], np.nan)
    numeric = numeric.sort_index()
    numeric = numeric.loc[~numeric.index.duplicated(keep="last")]
    normalized = numeric.astype(UNDEFINED_DTYPE)
    normalized.name = name if name is not None else series.name
    return normalized


def undefined_series(index: pd.DatetimeIndex, name: str | None = None) -> pd.Series:
    """Return an all-undefined ``Float64`` series over ``index``."""
    return pd.Series(pd.NA, index=index, dtype=UNDEFINED_DTYPE, name=name)


def series_from_values(
    values: list[float | None],
    index: pd.DatetimeIndex,
    name: str | None = None,
) -> pd.Series:
    """Build a ``Float64`` series where ``None`` entries are undefined."""
    cleaned: list[float | None] = [
        None if value is None or not math.isfinite(value) else float(value) for value in values
    ]
    return pd.Series(pd.array(cleaned, dtype=UNDEFINED_DTYPE), index=index, name=name)


def align(left: pd.Series, right: pd.Series) -> pd.DataFrame:
    """
    Inner-join two series on their dates.

    Args:
        left: First series.
        right: Second series.

    Returns:
        Frame with ``left`` and ``right`` columns over dates present in both inputs,
        in ascending order. Values may still be undefined.
    """
    left_values = to_float_series(left)
    right_values = to_float_series(right)
    common_index = left_values.index.intersection(right_values.index).sort_values()
    return pd.DataFrame(
        {
            "left": left_values.reindex(common_index),
            "right": right_values.reindex(common_index),
        },
        index=common_index,
    )


def drop_undefined(series: pd.Series) -> pd.Series:
    """Remove undefined entries; numeric zeros are kept."""
    return to_float_series(series).dropna()


def to_excess_returns(
    returns: pd.Series,
    annual_rate: float,
    periods_per_year: int = 12,
) -> pd.Series:
    """
    Subtract the per-period risk-free rate from a return series.

    Args:
        returns: Periodic return series.
        annual_rate: Annual risk-free rate as a decimal.
        periods_per_year: Number of return periods per year.

    Returns:
        Excess return series (undefined entries stay undefined).
    """
    if periods_per_year <= 0:
        raise ValueError("periods_per_year must be > 0.")
    period_rate = (1.0 + annual_rate) ** (1.0 / periods_per_year) - 1.0
    return to_float_series(returns) - period_rate


def cumulative_wealth(returns: pd.Series) -> pd.Series:
    """Return the ``cumprod(1 + r)`` wealth curve over defined entries."""
    defined = drop_undefined(returns)
    return (1.0 + defined.astype("float64")).cumprod()
