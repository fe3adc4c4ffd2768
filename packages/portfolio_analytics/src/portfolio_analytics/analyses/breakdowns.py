"""Grouped breakdowns of the filtered policy frame.

Each function aggregates the frame it is given. Entity and advisor views
also drop unresolved rows themselves; the engine passes registered policies only.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import pandas as pd

from portfolio_analytics.analyses.base import (
    AnalysisResult,
    count_entities,
    resolved_only,
    safe_percentage,
    safe_ratio,
)
from portfolio_analytics.resolver import UNASSIGNED_ADVISOR


def _sorted(df: pd.DataFrame, by: list[str], ascending: list[bool]) -> pd.DataFrame:
    return df.sort_values(by, ascending=ascending, kind="mergesort").reset_index(drop=True)


def _count_advisors(advisors: pd.Series) -> int:
    return int(advisors[advisors != UNASSIGNED_ADVISOR].nunique())


def compute_totals(df: pd.DataFrame) -> dict[str, float | int]:
    """Headline figures over every matching policy."""
    policies = len(df)
    premium = float(df["premium"].sum()) if policies else 0.0
    cancelled = int(df["is_cancelled"].sum())
    return {
        "premium": round(premium, 2),
        "policies": policies,
        "cancelled": cancelled,
        "active": int(df["is_active"].sum()),
        "entities": count_entities(df["entity_code"]),
        "avg_ticket": safe_ratio(premium, policies),
        "churn_rate_pct": safe_percentage(cancelled, policies),
    }


def entity_breakdown(df: pd.DataFrame) -> AnalysisResult:
    resolved = resolved_only(df)
    grouped = (
        resolved.groupby("entity_code", sort=True)
        .agg(
            entity=("entity_name", "first"),
            advisor=("advisor", "first"),
            premium=("premium", "sum"),
            policies=("policy_number", "count"),
            cancellations=("is_cancelled", "sum"),
        )
        .reset_index()
    )
    grouped["premium"] = grouped["premium"].astype(float).round(2)
    grouped["cancellations"] = grouped["cancellations"].astype(int)
    grouped["avg_ticket"] = [safe_ratio(p, n) for p, n in zip(grouped["premium"], grouped["policies"])]
    grouped = _sorted(grouped, ["premium", "entity_code"], [False, True])
    return AnalysisResult.from_df("entity_breakdown", "Premium by Entity", grouped)


def advisor_breakdown(
    df: pd.DataFrame,
    advisors: Sequence[str],
    linked_entities: Mapping[str, int],
    allowed: frozenset[str] = frozenset(),
) -> AnalysisResult:
    """Per-advisor totals, seeded with a zero row for every listed advisor.

    *linked_entities* counts registry entities per advisor and drives the
    premium-per-entity ratio; *allowed* restricts the seeded advisors to the
    active advisor filter.
    """
    resolved = resolved_only(df)
    grouped = resolved.groupby("advisor", sort=True).agg(
        premium=("premium", "sum"),
        policies=("policy_number", "count"),
        active_entities=("entity_code", count_entities),
    )

    names = list(grouped.index)
    for name in advisors:
        if name not in grouped.index and (not allowed or name in allowed):
            names.append(name)
    grouped = grouped.reindex(names, fill_value=0)
    grouped.index.name = "advisor"
    grouped = grouped.reset_index()

    grouped["premium"] = grouped["premium"].astype(float).round(2)
    grouped["policies"] = grouped["policies"].astype(int)
    grouped["active_entities"] = grouped["active_entities"].astype(int)
    grouped["linked_entities"] = [int(linked_entities.get(a, 0)) for a in grouped["advisor"]]
    grouped["premium_per_entity"] = [
        safe_ratio(p, n) for p, n in zip(grouped["premium"], grouped["linked_entities"])
    ]
    grouped = _sorted(grouped, ["premium", "advisor"], [False, True])
    return AnalysisResult.from_df("advisor_breakdown", "Premium by Advisor", grouped)


def _premium_policies_entities(df: pd.DataFrame, key: str) -> pd.DataFrame:
    grouped = (
        df.groupby(key, sort=True)
        .agg(
            premium=("premium", "sum"),
            policies=("policy_number", "count"),
            entities=("entity_code", count_entities),
        )
        .reset_index()
    )
    grouped["premium"] = grouped["premium"].astype(float).round(2)
    return _sorted(grouped, ["premium", key], [False, True])


def product_breakdown(df: pd.DataFrame) -> AnalysisResult:
    grouped = _premium_policies_entities(df, "product")
    return AnalysisResult.from_df("product_breakdown", "Premium by Product", grouped)


def category_breakdown(df: pd.DataFrame) -> AnalysisResult:
    grouped = _premium_policies_entities(df, "category")
    total = float(grouped["premium"].sum())
    grouped["premium_pct"] = [safe_percentage(p, total) for p in grouped["premium"]]
    return AnalysisResult.from_df("category_breakdown", "Premium by Category", grouped)


def company_breakdown(df: pd.DataFrame) -> AnalysisResult:
    grouped = (
        df.groupby("company", sort=True)
        .agg(
            premium=("premium", "sum"),
            policies=("policy_number", "count"),
            entities=("entity_code", count_entities),
            advisors=("advisor", _count_advisors),
        )
        .reset_index()
    )
    grouped["premium"] = grouped["premium"].astype(float).round(2)
    grouped["avg_ticket"] = [safe_ratio(p, n) for p, n in zip(grouped["premium"], grouped["policies"])]
    grouped = _sorted(grouped, ["premium", "company"], [False, True])
    return AnalysisResult.from_df("company_breakdown", "Premium by Company", grouped)


def status_breakdown(df: pd.DataFrame) -> AnalysisResult:
    grouped = (
        df.groupby("status", sort=True)
        .agg(policies=("policy_number", "count"), premium=("premium", "sum"))
        .reset_index()
    )
    grouped["premium"] = grouped["premium"].astype(float).round(2)
    grouped = _sorted(grouped, ["policies", "status"], [False, True])
    return AnalysisResult.from_df("status_breakdown", "Policies by Status", grouped)


def cancellation_reasons(df: pd.DataFrame) -> AnalysisResult:
    """Histogram of reasons over cancelled (or cancellation-dated) policies."""
    has_date = df["cancellation_date"].map(lambda d: d is not None).astype(bool)
    mask = (df["cancellation_reason"] != "") & (df["is_cancelled"] | has_date)
    counts = df.loc[mask, "cancellation_reason"].value_counts()
    reasons = pd.DataFrame({"reason": counts.index.astype(object), "count": counts.to_numpy(dtype=int)})
    reasons = _sorted(reasons, ["count", "reason"], [False, True])
    return AnalysisResult.from_df(
        "cancellation_reasons",
        "Cancellation Reasons",
        reasons,
        metadata={"total": int(reasons["count"].sum())},
    )
