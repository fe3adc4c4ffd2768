"""Months survived by cancelled policies, averaged per category."""

from __future__ import annotations

from datetime import date

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult


def _survival_months(year: str, month: str, cancelled_on: object) -> int | None:
    if not isinstance(cancelled_on, date) or not year.isdigit() or not month.isdigit():
        return None
    return (cancelled_on.year - int(year)) * 12 + (cancelled_on.month - int(month))


def survival_by_category(df: pd.DataFrame) -> AnalysisResult:
    """Average production-to-cancellation gap in months.

    Only cancelled policies with a known production period and a parseable
    cancellation date contribute.
    """
    cancelled = df[df["is_cancelled"]]
    rows = []
    for category, year, month, cancelled_on in zip(
        cancelled["category"],
        cancelled["production_year"],
        cancelled["production_month"],
        cancelled["cancellation_date"],
    ):
        months = _survival_months(year, month, cancelled_on)
        if months is not None:
            rows.append((category, months))

    samples = pd.DataFrame(
        {
            "category": pd.Series([c for c, _ in rows], dtype=object),
            "months": pd.Series([m for _, m in rows], dtype=float),
        }
    )
    grouped = (
        samples.groupby("category", sort=True)
        .agg(avg_months=("months", "mean"), policies=("months", "count"))
        .reset_index()
    )
    grouped["avg_months"] = grouped["avg_months"].astype(float).round(1)

    overall = round(float(samples["months"].mean()), 1) if len(samples) else 0.0
    return AnalysisResult.from_df(
        "survival_by_category",
        "Average Months to Cancellation",
        grouped,
        metadata={"avg_months": overall, "samples": len(samples)},
    )
