"""Unordered cross-sell coverage: how many categories each entity holds."""

from __future__ import annotations

from collections import Counter
from itertools import combinations

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult, resolved_only, safe_percentage

COVERAGE_BUCKETS = ("1", "2", "3+")


def _bucket(n_categories: int) -> str:
    if n_categories >= 3:
        return "3+"
    return str(n_categories)


def entity_category_sets(df: pd.DataFrame) -> dict[str, frozenset[str]]:
    """Distinct categories held per resolved entity code."""
    resolved = resolved_only(df)
    return {
        code: frozenset(group)
        for code, group in resolved.groupby("entity_code", sort=True)["category"]
    }


def cross_sell_coverage(df: pd.DataFrame) -> AnalysisResult:
    holdings = entity_category_sets(df)
    n_entities = len(holdings)

    bucket_counts = Counter(_bucket(len(cats)) for cats in holdings.values())
    buckets = pd.DataFrame(
        {
            "bucket": list(COVERAGE_BUCKETS),
            "entities": [bucket_counts.get(b, 0) for b in COVERAGE_BUCKETS],
        }
    )
    buckets["pct"] = [safe_percentage(n, n_entities) for n in buckets["entities"]]

    pair_counts: Counter[tuple[str, str]] = Counter()
    for cats in holdings.values():
        pair_counts.update(combinations(sorted(cats), 2))
    pairs = pd.DataFrame(
        [(a, b, n) for (a, b), n in pair_counts.items()],
        columns=["category_a", "category_b", "entities"],
    )
    pairs = pairs.sort_values(
        ["entities", "category_a", "category_b"], ascending=[False, True, True], kind="mergesort"
    ).reset_index(drop=True)

    mono_share = safe_percentage(bucket_counts.get("1", 0), n_entities)
    return AnalysisResult.from_df(
        "cross_sell_coverage",
        "Category Coverage per Entity",
        buckets,
        metadata={"entities": n_entities, "mono_product_pct": mono_share},
        extra={"pairs": pairs},
    )
