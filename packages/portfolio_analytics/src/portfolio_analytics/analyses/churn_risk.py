"""Multiplicative cancellation-risk scoring for active policies.

score = baseline churn x dimension factors (category, company, tenure,
payment method) x pressure multipliers (contagion, renewal, loyalty,
premium pressure), capped at ``score_cap``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import numpy as np
import pandas as pd

from portfolio_analytics.analyses.base import resolved_only
from portfolio_analytics.parsing import months_between, next_anniversary
from portfolio_analytics.settings import ChurnConfig

DIMENSIONS = {
    "category": "category",
    "company": "company",
    "tenure": "tenure",
    "payment": "payment_method",
}
UNKNOWN_TENURE = "unknown"


@dataclass(frozen=True)
class ChurnRiskEntry:
    policy_number: str
    entity_code: str
    entity: str
    category: str
    company: str
    tenure: str
    payment_method: str
    premium: float
    score: float
    high_risk: bool
    factors: tuple[tuple[str, float], ...] = ()


@dataclass(frozen=True)
class ChurnResult:
    entries: list[ChurnRiskEntry] = field(default_factory=list)
    baseline: float = 0.0
    population: int = 0
    active: int = 0
    cancelled: int = 0

    @property
    def high_risk(self) -> int:
        return sum(1 for e in self.entries if e.high_risk)

    def to_frame(self) -> pd.DataFrame:
        columns = [
            "policy_number",
            "entity",
            "category",
            "company",
            "tenure",
            "payment_method",
            "premium",
            "score",
            "high_risk",
            "factors",
        ]
        rows = [
            {
                "policy_number": e.policy_number,
                "entity": e.entity,
                "category": e.category,
                "company": e.company,
                "tenure": e.tenure,
                "payment_method": e.payment_method,
                "premium": e.premium,
                "score": round(e.score, 4),
                "high_risk": e.high_risk,
                "factors": ", ".join(f"{name} x{impact:.2f}" for name, impact in e.factors),
            }
            for e in self.entries
        ]
        return pd.DataFrame(rows, columns=columns)


def tenure_bucket(
    effective: object,
    cancelled_on: object,
    cancelled: bool,
    as_of: date,
    days_per_month: float = 30.44,
) -> str:
    if not isinstance(effective, date):
        return UNKNOWN_TENURE
    end = cancelled_on if cancelled and isinstance(cancelled_on, date) else as_of
    months = months_between(effective, end, days_per_month)
    if months < 12:
        return "<1y"
    if months < 24:
        return "1-2y"
    if months < 60:
        return "2-5y"
    return "5y+"


def dimension_factors(
    population: pd.DataFrame,
    column: str,
    baseline: float,
    config: ChurnConfig,
) -> dict[str, float]:
    """Relative churn per dimension value; values with too little support stay neutral."""
    stats = population.groupby(column, sort=True).agg(
        total=("is_cancelled", "size"), cancelled=("is_cancelled", "sum")
    )
    denominator = baseline or config.baseline_epsilon
    factors: dict[str, float] = {}
    for value, total, cancelled in zip(stats.index, stats["total"], stats["cancelled"]):
        if total < config.min_dimension_support:
            factors[value] = 1.0
        else:
            factors[value] = (cancelled / total) / denominator
    return factors


def loyalty_factor(active_policies: int, config: ChurnConfig) -> float:
    if active_policies > 3:
        return config.loyalty_many_factor
    if active_policies >= 2:
        return config.loyalty_few_factor
    return config.loyalty_single_factor


def renewal_factor(effective: object, as_of: date, config: ChurnConfig) -> float:
    if not isinstance(effective, date) or effective > as_of:
        return 1.0
    days_left = (next_anniversary(effective, as_of) - as_of).days
    return config.renewal_factor if days_left <= config.renewal_window_days else 1.0


def attribute(factors: dict[str, float], config: ChurnConfig) -> tuple[tuple[str, float], ...]:
    """Factors pushing risk up, strongest first (ties by name)."""
    raised = [(name, impact) for name, impact in factors.items() if impact > config.attribution_threshold]
    raised.sort(key=lambda item: (-item[1], item[0]))
    return tuple((name, round(impact, 3)) for name, impact in raised[: config.max_factors])


def score_policies(df: pd.DataFrame, as_of: date, config: ChurnConfig | None = None) -> ChurnResult:
    """Score every active resolved policy in *df*.

    Policies that are neither cancelled nor active still count in the
    population behind every rate.
    """
    config = config or ChurnConfig()
    population = resolved_only(df).copy()
    if population.empty:
        return ChurnResult()

    population["tenure"] = [
        tenure_bucket(e, c, x, as_of, config.days_per_month)
        for e, c, x in zip(population["effective_date"], population["cancellation_date"], population["is_cancelled"])
    ]
    cancelled = population[population["is_cancelled"]]
    # Active tokens alone decide; a status matching both sets is scored too.
    active = population[population["is_active"]]
    baseline = len(cancelled) / len(population)

    factor_maps = {
        name: dimension_factors(population, column, baseline, config) for name, column in DIMENSIONS.items()
    }
    entities_with_cancellations = set(cancelled["entity_code"])
    active_per_entity = active["entity_code"].value_counts().to_dict()
    category_avg_premium = active.groupby("category")["premium"].mean().to_dict()

    entries: list[ChurnRiskEntry] = []
    for row in active.itertuples(index=False):
        factors = {name: factor_maps[name][getattr(row, column)] for name, column in DIMENSIONS.items()}
        factors["contagion"] = (
            config.contagion_factor if row.entity_code in entities_with_cancellations else config.no_contagion_factor
        )
        factors["renewal"] = renewal_factor(row.effective_date, as_of, config)
        factors["loyalty"] = loyalty_factor(active_per_entity.get(row.entity_code, 0), config)
        avg_premium = category_avg_premium.get(row.category, 0.0)
        factors["premium_pressure"] = (
            config.premium_pressure_factor
            if avg_premium > 0 and row.premium > config.premium_pressure_ratio * avg_premium
            else 1.0
        )

        score = min(config.score_cap, baseline * float(np.prod(list(factors.values()))))
        if score <= config.min_score:
            continue

        entries.append(
            ChurnRiskEntry(
                policy_number=row.policy_number,
                entity_code=row.entity_code,
                entity=row.entity_name,
                category=row.category,
                company=row.company,
                tenure=row.tenure,
                payment_method=row.payment_method,
                premium=round(float(row.premium), 2),
                score=score,
                high_risk=score > config.high_risk_multiplier * baseline,
                factors=attribute(factors, config),
            )
        )

    entries.sort(key=lambda e: (-e.score, e.policy_number))
    return ChurnResult(
        entries=entries,
        baseline=baseline,
        population=len(population),
        active=len(active),
        cancelled=len(cancelled),
    )
