"""Premium concentration across entities (Pareto curve)."""

from __future__ import annotations

import math

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult, resolved_only, safe_percentage


def pareto_concentration(df: pd.DataFrame, top_fraction: float = 0.2) -> AnalysisResult:
    """Entities ranked by premium with the cumulative share of total premium.

    Metadata carries the premium share held by the top *top_fraction* of
    entities (at least one entity).
    """
    resolved = resolved_only(df)
    ranked = (
        resolved.groupby("entity_code", sort=True)
        .agg(entity=("entity_name", "first"), premium=("premium", "sum"))
        .reset_index()
        .sort_values(["premium", "entity_code"], ascending=[False, True], kind="mergesort")
        .reset_index(drop=True)
    )
    total = float(ranked["premium"].sum())
    cumulative = ranked["premium"].cumsum()
    ranked["rank"] = range(1, len(ranked) + 1)
    ranked["cumulative_pct"] = [safe_percentage(c, total) for c in cumulative]
    ranked["premium"] = ranked["premium"].astype(float).round(2)

    n_entities = len(ranked)
    top_n = max(1, math.ceil(n_entities * top_fraction)) if n_entities else 0
    top_share = safe_percentage(float(ranked["premium"].head(top_n).sum()), total)

    return AnalysisResult.from_df(
        "pareto_concentration",
        "Premium Concentration by Entity",
        ranked,
        metadata={"entities": n_entities, "top_entities": top_n, "top_share_pct": top_share},
    )
