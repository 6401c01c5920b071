"""Lagged long/short portfolio return aggregation."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

import pandas as pd

from bablab.core.backtest.types import StrategyReturns
from bablab.core.research.ranking import GroupAssignment
from bablab.core.timeseries import series_from_values, to_float_series
from bablab.core.utils.errors import PipelineError
from bablab.core.utils.logging import get_logger

_LOGGER_NAME = "bablab.core.backtest.engine"


def _validate_assignments(assignments: Sequence[GroupAssignment]) -> None:
    """Require dated assignments in strictly increasing date order."""
    previous: pd.Timestamp | None = None
    for assignment in assignments:
        if assignment.date is None:
            raise PipelineError("Group assignments must carry a rebalancing date.")
        if not assignment.groups:
            raise PipelineError(f"Group assignment on {assignment.date} has no groups.")
        if previous is not None and assignment.date <= previous:
            raise PipelineError(
                "Group assignment dates must be strictly increasing: "
                f"{assignment.date} follows {previous}."
            )
        previous = assignment.date


def _group_mean(
    members: frozenset[str],
    returns_by_entity: Mapping[str, pd.Series],
    date: pd.Timestamp,
) -> tuple[float | None, int]:
    """Equal-weighted mean of members' returns at ``date`` and the count of missing members."""
    values: list[float] = []
    missing = 0
    for entity in sorted(members):
        series = returns_by_entity.get(entity)
        value = series.get(date) if series is not None else None
        if value is None or value is pd.NA or not math.isfinite(float(value)):
            missing += 1
            continue
        values.append(float(value))
    if not values:
        return None, missing
    return sum(values) / len(values), missing


def aggregate_long_short_returns(
    returns_by_entity: Mapping[str, pd.Series],
    assignments: Sequence[GroupAssignment],
    leverage: float = 1.0,
) -> StrategyReturns:
    """
    Compute long-lowest / short-highest group returns with a one-period lag.

    Execution model:
    - Groups are decided at rebalancing date ``prev``.
    - The portfolio is held over the following period and earns returns dated ``curr``.
    - Returns dated ``curr`` never use membership decided at ``curr``.

    Args:
        returns_by_entity: Mapping of entity to periodic return series.
        assignments: Group assignments with strictly increasing dates.
        leverage: Scalar applied to the long-minus-short spread.

    Returns:
        Strategy returns indexed by every assignment date except the first.
    """
    if leverage <= 0:
        raise PipelineError("leverage must be greater than 0.")
    _validate_assignments(assignments)

    logger = get_logger(_LOGGER_NAME)
    normalized = {entity: to_float_series(series) for entity, series in returns_by_entity.items()}

    dates: list[pd.Timestamp] = []
    values: list[float | None] = []
    missing_total = 0
    for previous, current in zip(assignments[:-1], assignments[1:]):
        date = current.date
        assert date is not None
        low_mean, low_missing = _group_mean(previous.lowest, normalized, date)
        high_mean, high_missing = _group_mean(previous.highest, normalized, date)
        if low_missing or high_missing:
            logger.debug(
                "%d group members lack a return on %s", low_missing + high_missing, date
            )
        missing_total += low_missing + high_missing

        dates.append(date)
        if low_mean is None or high_mean is None:
            values.append(None)
        else:
            values.append(leverage * (low_mean - high_mean))

    returns = series_from_values(values, pd.DatetimeIndex(dates), name="strategy")
    undefined = sum(value is None for value in values)
    if undefined:
        logger.warning("%d of %d strategy periods are undefined", undefined, len(values))
    return StrategyReturns(
        returns=returns,
        missing_member_observations=missing_total,
        undefined_periods=undefined,
    )
