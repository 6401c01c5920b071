"""Cross-sectional ranking of entities into beta-ordered groups."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

from bablab.core.utils.logging import get_logger

_LOGGER_NAME = "bablab.core.research.ranking"


@dataclass(frozen=True)
class GroupAssignment:
    """Partition of the ranked universe at one rebalancing date.

    ``groups[0]`` holds the lowest values and ``groups[-1]`` the highest.
    """

    date: pd.Timestamp | None
    groups: tuple[frozenset[str], ...]

    @property
    def n_groups(self) -> int:
        """Number of groups in the partition."""
        return len(self.groups)

    @property
    def lowest(self) -> frozenset[str]:
        """Members of group 1."""
        return self.groups[0]

    @property
    def highest(self) -> frozenset[str]:
        """Members of group N."""
        return self.groups[-1]

    def members(self) -> frozenset[str]:
        """Union of every group."""
        return frozenset().union(*self.groups)

    def composition(self) -> dict[str, list[str]]:
        """Sorted members keyed ``group_1`` (lowest) to ``group_N`` (highest)."""
        return {
            f"group_{position}": sorted(group)
            for position, group in enumerate(self.groups, start=1)
        }


def _defined_value(value: object) -> float | None:
    """Return ``value`` as a finite float, or ``None`` for undefined values."""
    if value is None or value is pd.NA:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def quantile_breakpoints(values: Iterable[float], n_groups: int) -> np.ndarray:
    """Return the ``n_groups + 1`` breakpoints at probabilities ``0, 1/N, ..., 1``."""
    probabilities = np.linspace(0.0, 1.0, n_groups + 1)
    return np.quantile(np.asarray(list(values), dtype=float), probabilities)


def rank_into_groups(
    betas: Mapping[str, object],
    n_groups: int = 5,
    date: pd.Timestamp | None = None,
) -> GroupAssignment | None:
    """
    Partition entities into ``n_groups`` population-ordered groups by value.

    Intervals are right-closed ``(b_i, b_{i+1}]`` with the first one also closed
    on the left, so the minimum is included and a value sitting exactly on an
    interior breakpoint belongs to the lower group.

    Args:
        betas: Mapping of entity to beta; undefined values are discarded.
        n_groups: Number of groups.
        date: Rebalancing date recorded on the assignment.

    Returns:
        Group assignment, or ``None`` when fewer than ``n_groups`` entities
        have a defined value.
    """
    if n_groups < 1:
        raise ValueError("n_groups must be >= 1.")

    defined: dict[str, float] = {}
    for entity, value in betas.items():
        number = _defined_value(value)
        if number is not None:
            defined[entity] = number

    if len(defined) < n_groups:
        get_logger(_LOGGER_NAME).warning(
            "Not enough entities with valid betas on %s: %d < %d",
            date,
            len(defined),
            n_groups,
        )
        return None

    entities = sorted(defined)
    values = np.array([defined[entity] for entity in entities], dtype=float)
    breakpoints = quantile_breakpoints(values, n_groups)
    # Number of interior breakpoints strictly below each value gives its 0-based group.
    group_ids = np.searchsorted(breakpoints[1:-1], values, side="left")

    buckets: list[set[str]] = [set() for _ in range(n_groups)]
    for entity, group_id in zip(entities, group_ids, strict=True):
        buckets[int(group_id)].add(entity)
    return GroupAssignment(date=date, groups=tuple(frozenset(bucket) for bucket in buckets))


def beta_cross_section(
    betas_by_entity: Mapping[str, pd.Series],
    date: pd.Timestamp,
) -> dict[str, object]:
    """Extract every entity's beta at ``date``; entities without that date are undefined."""
    cross_section: dict[str, object] = {}
    for entity in sorted(betas_by_entity):
        series = betas_by_entity[entity]
        cross_section[entity] = series.loc[date] if date in series.index else pd.NA
    return cross_section


def rebalancing_dates(betas_by_entity: Mapping[str, pd.Series]) -> pd.DatetimeIndex:
    """Sorted union of dates on which at least one entity has a defined beta."""
    dates: set[pd.Timestamp] = set()
    for entity in sorted(betas_by_entity):
        dates.update(betas_by_entity[entity].dropna().index)
    return pd.DatetimeIndex(sorted(dates))


def rank_all_dates(
    betas_by_entity: Mapping[str, pd.Series],
    dates: Iterable[pd.Timestamp],
    n_groups: int = 5,
) -> list[GroupAssignment]:
    """
    Rank the cross-section at each date.

    Dates are ranked independently; dates with insufficient data are dropped.

    Args:
        betas_by_entity: Mapping of entity to beta series.
        dates: Candidate rebalancing dates.
        n_groups: Number of groups.

    Returns:
        Successful assignments sorted by date.
    """
    assignments: list[GroupAssignment] = []
    for date in sorted(dates):
        assignment = rank_into_groups(
            beta_cross_section(betas_by_entity, date),
            n_groups=n_groups,
            date=pd.Timestamp(date),
        )
        if assignment is not None:
            assignments.append(assignment)
    return assignments
