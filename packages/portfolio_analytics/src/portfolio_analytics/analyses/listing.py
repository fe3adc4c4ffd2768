"""Policy-level listings: the filtered policy table and one entity's portfolio."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult

LISTING_COLUMNS = [
    "policy_number",
    "entity_code",
    "entity_name",
    "advisor",
    "policyholder",
    "product",
    "category",
    "company",
    "premium",
    "status",
    "effective_date",
    "cancellation_date",
    "cancellation_reason",
    "production_year",
    "production_month",
]

Period = tuple[int, int, int, int]


def days_alive(effective: object, cancelled_on: object, as_of: date) -> int:
    """Days from effect to cancellation (or *as_of*), never negative; 0 without an effective date."""
    if not isinstance(effective, date):
        return 0
    end = cancelled_on if isinstance(cancelled_on, date) else as_of
    return max(0, (end - effective).days)


def _period_value(year: str, month: str) -> int | None:
    if not year.isdigit() or not month.isdigit():
        return None
    return int(year) * 100 + int(month)


def in_period(df: pd.DataFrame, period: Period) -> pd.Series:
    """Mask of rows whose production period lies within the inclusive range."""
    start_year, start_month, end_year, end_month = period
    start = start_year * 100 + start_month
    end = end_year * 100 + end_month
    values = [_period_value(y, m) for y, m in zip(df["production_year"], df["production_month"])]
    return pd.Series([v is not None and start <= v <= end for v in values], index=df.index, dtype=bool)


def list_policies(df: pd.DataFrame, as_of: date, period: Period | None = None) -> AnalysisResult:
    rows = df if period is None else df[in_period(df, period)]
    listing = rows[LISTING_COLUMNS].copy().reset_index(drop=True)
    listing["days_alive"] = [
        days_alive(e, c, as_of) for e, c in zip(listing["effective_date"], listing["cancellation_date"])
    ]
    return AnalysisResult.from_df(
        "policy_listing",
        "Policy Listing",
        listing,
        metadata={
            "policies": len(listing),
            "premium": round(float(listing["premium"].sum()), 2),
            "period": period,
        },
    )


def entity_portfolio(
    df: pd.DataFrame,
    code: str,
    name: str,
    advisor: str,
    rules: Sequence,
) -> AnalysisResult:
    """Non-cancelled policies of one entity plus next-best-action categories.

    A category is recommended when a mined rule's antecedent is held and its
    consequent is not; each consequent is listed once, from its best rule.
    """
    held_rows = df[(df["entity_code"] == code) & ~df["is_cancelled"]]
    policies = held_rows[["policy_number", "product", "company", "premium", "category", "status"]].reset_index(
        drop=True
    )
    held = sorted(set(policies["category"]))

    recommendations = []
    seen: set[str] = set()
    for rule in rules:
        if rule.antecedent in held and rule.consequent not in held and rule.consequent not in seen:
            seen.add(rule.consequent)
            recommendations.append(
                {
                    "category": rule.consequent,
                    "because_of": rule.antecedent,
                    "lift": rule.lift,
                    "confidence": rule.confidence,
                }
            )

    return AnalysisResult.from_df(
        "entity_portfolio",
        f"Portfolio: {name or code}",
        policies,
        metadata={
            "code": code,
            "name": name,
            "advisor": advisor,
            "held_categories": held,
            "active_policies": len(policies),
        },
        extra={
            "recommendations": pd.DataFrame(
                recommendations, columns=["category", "because_of", "lift", "confidence"]
            )
        },
    )
