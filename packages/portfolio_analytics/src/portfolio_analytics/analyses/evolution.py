"""Monthly production series, stock counters and product mix for one entity or advisor."""

from __future__ import annotations

import math
import re
from datetime import date

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult, count_entities

_PRODUCT_PREFIX_RE = re.compile(r"^<[A-Z]>\s*")


def product_family(product: str) -> str:
    """Strip the "<X>" line prefix and any parenthesized suffix: "<A> Auto Plus (2024)" -> "Auto Plus"."""
    family = _PRODUCT_PREFIX_RE.sub("", product).split("(")[0].strip()
    return family or product


def retention_ratio(policies: int, cancelled: int) -> int:
    """Whole-percent share of policies not cancelled; 100 when there are none."""
    if policies == 0:
        return 100
    return int(math.floor((policies - cancelled) / policies * 100 + 0.5))


def _status_class(status: str, cancelled: bool) -> str:
    if cancelled:
        return "cancelled"
    lowered = status.lower()
    if "vigor" in lowered:
        return "in_force"
    if "suspensi" in lowered:
        return "suspended"
    return "other"


def _is_early(effective: object, cancelled_on: object, early_days: int) -> bool:
    if not isinstance(effective, date) or not isinstance(cancelled_on, date):
        return False
    return abs((cancelled_on - effective).days) < early_days


def _mix(df: pd.DataFrame, key: str, label: str) -> pd.DataFrame:
    grouped = (
        df.groupby(key, sort=True)
        .agg(premium=("premium", "sum"), policies=("policy_number", "count"))
        .reset_index()
        .rename(columns={key: label})
    )
    grouped["premium"] = grouped["premium"].astype(float).round(2)
    return grouped.sort_values(
        ["premium", label], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)


def compute_evolution(df: pd.DataFrame, subject: str, early_days: int = 180) -> AnalysisResult:
    """Build the monthly series for the policies in *df*.

    Policies without a numeric production period are left out of the series
    but still count in the stock counters and the mixes.
    """
    work = df.copy()
    work["status_class"] = [_status_class(s, c) for s, c in zip(work["status"], work["is_cancelled"])]
    work["early"] = [
        c and _is_early(e, d, early_days)
        for c, e, d in zip(work["is_cancelled"], work["effective_date"], work["cancellation_date"])
    ]
    work["product_family"] = work["product"].map(product_family)

    dated = work[work["production_year"].str.isdigit() & work["production_month"].str.isdigit()].copy()
    dated["year"] = dated["production_year"].astype(int)
    dated["month"] = dated["production_month"].astype(int)

    rows = []
    for (year, month), group in dated.groupby(["year", "month"], sort=True):
        policies = len(group)
        cancelled = int((group["status_class"] == "cancelled").sum())
        rows.append(
            {
                "period": f"{year}-{month:02d}",
                "year": int(year),
                "month": int(month),
                "premium": round(float(group["premium"].sum()), 2),
                "policies": policies,
                "entities": count_entities(group["entity_code"]),
                "cancelled": cancelled,
                "in_force": int((group["status_class"] == "in_force").sum()),
                "suspended": int((group["status_class"] == "suspended").sum()),
                "early_cancellations": int(group["early"].sum()),
                "retention_pct": retention_ratio(policies, cancelled),
            }
        )
    monthly = pd.DataFrame(
        rows,
        columns=[
            "period",
            "year",
            "month",
            "premium",
            "policies",
            "entities",
            "cancelled",
            "in_force",
            "suspended",
            "early_cancellations",
            "retention_pct",
        ],
    )

    stock = {
        "in_force": int((work["status_class"] == "in_force").sum()),
        "suspended": int((work["status_class"] == "suspended").sum()),
        "cancelled": int((work["status_class"] == "cancelled").sum()),
    }
    return AnalysisResult.from_df(
        "evolution",
        f"Monthly Evolution: {subject}",
        monthly,
        metadata={"subject": subject, "stock": stock, "policies": len(work)},
        extra={
            "products": _mix(work, "product_family", "product"),
            "categories": _mix(work, "category", "category"),
        },
    )
