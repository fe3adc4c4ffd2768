"""Strategic recommendations derived from the aggregate metrics."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from portfolio_analytics.analyses.base import safe_percentage, safe_ratio
from portfolio_analytics.settings import InsightConfig


@dataclass(frozen=True)
class Insight:
    level: str  # "critical" | "warning" | "success" | "info"
    code: str
    title: str
    text: str


def churn_insight(churn_rate_pct: float, config: InsightConfig) -> Insight | None:
    if churn_rate_pct > config.churn_critical_pct:
        return Insight(
            "critical",
            "churn_critical",
            "Critical cancellation rate",
            f"{churn_rate_pct:.1f}% of policies are cancelled. Prioritise a retention plan.",
        )
    if churn_rate_pct > config.churn_moderate_pct:
        return Insight(
            "warning",
            "churn_moderate",
            "Moderate cancellation rate",
            f"{churn_rate_pct:.1f}% of policies are cancelled. Watch the most affected categories.",
        )
    return None


def mono_product_insight(mono_pct: float, entities: int, config: InsightConfig) -> Insight | None:
    if not entities:
        return None
    if mono_pct > config.mono_product_high_pct:
        return Insight(
            "warning",
            "expansion_opportunity",
            "Expansion opportunity",
            f"{mono_pct:.1f}% of entities hold a single category. Cross-selling has room to grow.",
        )
    if mono_pct < config.mono_product_low_pct:
        return Insight(
            "success",
            "well_attached",
            "Well-attached portfolio",
            f"Only {mono_pct:.1f}% of entities hold a single category.",
        )
    return None


def pareto_insight(top_share_pct: float, config: InsightConfig) -> Insight | None:
    if top_share_pct > config.pareto_concentrated_pct:
        top_pct = config.pareto_top_fraction * 100
        return Insight(
            "warning",
            "concentrated",
            "Concentrated premium",
            f"The top {top_pct:.0f}% of entities write {top_share_pct:.1f}% of premium.",
        )
    return None


def dominant_category_insight(categories: pd.DataFrame) -> Insight | None:
    """Largest category by premium; *categories* is sorted by premium desc."""
    total = float(categories["premium"].sum()) if len(categories) else 0.0
    if total <= 0:
        return None
    top = categories.iloc[0]
    share = safe_percentage(float(top["premium"]), total)
    return Insight(
        "info",
        "dominant_category",
        f"{top['category']} dominates",
        f"{top['category']} accounts for {share:.1f}% of total premium.",
    )


def low_ticket_insight(products: pd.DataFrame, config: InsightConfig) -> Insight | None:
    eligible = products[products["policies"] > config.min_ticket_policies].copy()
    if eligible.empty:
        return None
    eligible["ticket"] = [safe_ratio(p, n) for p, n in zip(eligible["premium"], eligible["policies"])]
    lowest = eligible.sort_values(["ticket", "product"], kind="mergesort").iloc[0]
    return Insight(
        "warning",
        "low_ticket",
        "Average ticket optimisation",
        f"{lowest['product']} sells many policies at a low average ticket ({lowest['ticket']:.2f}).",
    )


def diversification_insight(categories: pd.DataFrame, config: InsightConfig) -> Insight | None:
    carrying = int((categories["premium"] > 0).sum()) if len(categories) else 0
    if 0 < carrying < config.min_categories:
        return Insight(
            "critical",
            "diversification",
            "Concentration risk",
            f"Premium is spread over only {carrying} categories. Consider diversifying.",
        )
    return None


def generate_insights(
    totals: dict,
    coverage_meta: dict,
    pareto_meta: dict,
    categories: pd.DataFrame,
    products: pd.DataFrame,
    config: InsightConfig | None = None,
) -> list[Insight]:
    config = config or InsightConfig()
    if not totals.get("policies"):
        return []
    candidates = [
        churn_insight(totals["churn_rate_pct"], config),
        mono_product_insight(coverage_meta["mono_product_pct"], coverage_meta["entities"], config),
        pareto_insight(pareto_meta["top_share_pct"], config) if pareto_meta["entities"] else None,
        dominant_category_insight(categories),
        low_ticket_insight(products, config),
        diversification_insight(categories, config),
    ]
    return [insight for insight in candidates if insight is not None]
