"""Sequential cross-sell rule mining over per-entity category histories.

A rule A -> B says entities that bought category A tend to buy B later.
Each entity contributes at most once per ordered pair. Rules must beat
the lift and confidence floors and pass a 2x2 chi-square independence test.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date

import pandas as pd
from loguru import logger

from portfolio_analytics.analyses.base import resolved_only
from portfolio_analytics.settings import MiningConfig


@dataclass(frozen=True)
class AssociationRule:
    antecedent: str
    consequent: str
    support: float
    confidence: float
    lift: float
    chi_square: float
    antecedent_count: int
    consequent_count: int
    pair_count: int
    population: int
    target_count: int
    targets: tuple[str, ...] = ()


@dataclass(frozen=True)
class CrossSellResult:
    """Ranked rules plus the population they were mined from."""

    rules: list[AssociationRule] = field(default_factory=list)
    population: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        columns = [
            "antecedent",
            "consequent",
            "support",
            "confidence",
            "lift",
            "chi_square",
            "antecedent_count",
            "consequent_count",
            "pair_count",
            "target_count",
            "targets",
        ]
        rows = [
            {
                "antecedent": r.antecedent,
                "consequent": r.consequent,
                "support": round(r.support, 4),
                "confidence": round(r.confidence, 4),
                "lift": round(r.lift, 4),
                "chi_square": round(r.chi_square, 4),
                "antecedent_count": r.antecedent_count,
                "consequent_count": r.consequent_count,
                "pair_count": r.pair_count,
                "target_count": r.target_count,
                "targets": ", ".join(r.targets),
            }
            for r in self.rules
        ]
        return pd.DataFrame(rows, columns=columns)


def purchase_histories(df: pd.DataFrame) -> dict[str, list[tuple[date, str]]]:
    """(date, category) history per resolved entity, oldest first.

    Records without a parseable effective date are skipped. The sort is
    stable, so same-day purchases keep their input order.
    """
    histories: dict[str, list[tuple[date, str]]] = {}
    resolved = resolved_only(df)
    for code, effective, category in zip(
        resolved["entity_code"], resolved["effective_date"], resolved["category"]
    ):
        if isinstance(effective, date):
            histories.setdefault(code, []).append((effective, category))
    for history in histories.values():
        history.sort(key=lambda item: item[0])
    return histories


def ordered_pairs(history: list[tuple[date, str]]) -> set[tuple[str, str]]:
    """Distinct (earlier, later) category pairs in one history."""
    pairs: set[tuple[str, str]] = set()
    for i, (_, first) in enumerate(history):
        for _, later in history[i + 1 :]:
            if first != later:
                pairs.add((first, later))
    return pairs


def chi_square(a: int, b: int, c: int, d: int) -> float:
    """Pearson chi-square of a 2x2 table, no continuity correction; 0 on a degenerate table."""
    n = a + b + c + d
    denominator = (a + b) * (c + d) * (a + c) * (b + d)
    if denominator == 0:
        return 0.0
    return n * (a * d - b * c) ** 2 / denominator


def sequential_pair_counts(
    histories: dict[str, list[tuple[date, str]]],
) -> tuple[Counter[str], Counter[tuple[str, str]]]:
    """Entities holding each category, and entities showing each ordered pair."""
    category_counts: Counter[str] = Counter()
    pair_counts: Counter[tuple[str, str]] = Counter()
    for history in histories.values():
        category_counts.update({category for _, category in history})
        pair_counts.update(ordered_pairs(history))
    return category_counts, pair_counts


def mine_rules(df: pd.DataFrame, config: MiningConfig | None = None) -> CrossSellResult:
    """Mine significant A -> B rules from the policies in *df*."""
    config = config or MiningConfig()
    histories = purchase_histories(df)
    population = len(histories)
    category_counts, pair_counts = sequential_pair_counts(histories)

    holdings = {code: {category for _, category in history} for code, history in histories.items()}
    ordered_codes = sorted(holdings)

    rules: list[AssociationRule] = []
    for (antecedent, consequent), pair_count in sorted(pair_counts.items()):
        count_a = category_counts[antecedent]
        count_b = category_counts[consequent]
        if count_a < config.min_antecedent_count:
            continue

        confidence = pair_count / count_a
        support = pair_count / population
        expected = count_a * count_b / population
        lift = pair_count / expected if expected else 0.0

        a = pair_count
        b = count_a - a
        c = count_b - a
        d = population - a - b - c
        chi2 = chi_square(a, b, c, d)

        if lift <= config.min_lift or confidence <= config.min_confidence or chi2 <= config.chi_square_critical:
            continue

        targets = [
            code for code in ordered_codes if antecedent in holdings[code] and consequent not in holdings[code]
        ]
        rules.append(
            AssociationRule(
                antecedent=antecedent,
                consequent=consequent,
                support=support,
                confidence=confidence,
                lift=lift,
                chi_square=chi2,
                antecedent_count=count_a,
                consequent_count=count_b,
                pair_count=pair_count,
                population=population,
                target_count=len(targets),
                targets=tuple(targets[: config.max_targets]),
            )
        )

    rules.sort(key=lambda r: (-r.lift, -r.confidence, r.antecedent, r.consequent))
    logger.debug(
        "Mined {n} rules from {pairs} ordered pairs over {pop} entities",
        n=len(rules),
        pairs=len(pair_counts),
        pop=population,
    )
    return CrossSellResult(
        rules=rules[: config.max_rules],
        population=population,
        category_counts=dict(sorted(category_counts.items())),
    )
