"""Month-over-month comparison for a single selected production period."""

from __future__ import annotations

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult
from portfolio_analytics.filters import FacetFilters, apply_filters


def previous_period(year: int, month: int) -> tuple[int, int]:
    """Calendar month before (year, month); January rolls back to December."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def change_pct(current: float, previous: float) -> float:
    """Relative change in percent; a zero prior period reads as 100% growth (or 0% if still zero)."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def _selected_period(filters: FacetFilters) -> tuple[int, int] | None:
    if len(filters.year) != 1 or len(filters.month) != 1:
        return None
    (year,) = filters.year
    (month,) = filters.month
    if not year.isdigit() or not month.isdigit():
        return None
    return int(year), int(month)


def month_over_month(df: pd.DataFrame, filters: FacetFilters) -> AnalysisResult | None:
    """Compare the selected month with the one before it.

    Returns None unless exactly one year and one month are selected. The
    previous month keeps every other facet restriction unchanged.
    """
    period = _selected_period(filters)
    if period is None:
        return None
    prev_year, prev_month = previous_period(*period)

    current = apply_filters(df, filters)
    previous = apply_filters(df, filters.with_values(year=[prev_year], month=[prev_month]))

    rows = []
    for metric, cur, prev in (
        ("premium", round(float(current["premium"].sum()), 2), round(float(previous["premium"].sum()), 2)),
        ("policies", len(current), len(previous)),
    ):
        rows.append({"metric": metric, "current": cur, "previous": prev, "change_pct": change_pct(cur, prev)})

    return AnalysisResult.from_df(
        "month_over_month",
        "Month-over-Month Trend",
        pd.DataFrame(rows),
        metadata={
            "period": f"{period[0]}-{period[1]:02d}",
            "previous_period": f"{prev_year}-{prev_month:02d}",
        },
    )
