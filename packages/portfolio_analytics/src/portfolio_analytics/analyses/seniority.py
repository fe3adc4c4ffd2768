"""Entity seniority cohorts, dated from each entity's first production year."""

from __future__ import annotations

from datetime import date

import pandas as pd

from portfolio_analytics.analyses.base import AnalysisResult, resolved_only, safe_ratio

COHORTS = ("Año 0 (Nuevo)", "Año 1", "Año 2", "Año 3+ (Senior)")
_MIN_YEAR = 1900


def cohort_label(years: int) -> str:
    if years <= 0:
        return COHORTS[0]
    if years == 1:
        return COHORTS[1]
    if years == 2:
        return COHORTS[2]
    return COHORTS[3]


def first_production_years(df: pd.DataFrame) -> dict[str, int]:
    """Earliest plausible production year per resolved entity."""
    first: dict[str, int] = {}
    resolved = resolved_only(df)
    for code, year in zip(resolved["entity_code"], resolved["production_year"]):
        if not year.isdigit() or int(year) <= _MIN_YEAR:
            continue
        if code not in first or int(year) < first[code]:
            first[code] = int(year)
    return first


def seniority_cohorts(full: pd.DataFrame, filtered: pd.DataFrame, as_of: date) -> AnalysisResult:
    """Premium and policy volume per cohort.

    Cohorts come from the full dataset so a filter on year does not make
    every entity look new.
    """
    first = first_production_years(full)
    resolved = resolved_only(filtered)
    labelled = resolved[resolved["entity_code"].isin(first)].copy()
    labelled["cohort"] = [cohort_label(as_of.year - first[c]) for c in labelled["entity_code"]]

    grouped = labelled.groupby("cohort").agg(
        premium=("premium", "sum"),
        policies=("policy_number", "count"),
        entities=("entity_code", "nunique"),
    )
    grouped = grouped.reindex(list(COHORTS), fill_value=0)
    grouped.index.name = "cohort"
    grouped = grouped.reset_index()
    grouped["premium"] = grouped["premium"].astype(float).round(2)
    grouped["policies"] = grouped["policies"].astype(int)
    grouped["entities"] = grouped["entities"].astype(int)
    grouped["premium_per_entity"] = [safe_ratio(p, n) for p, n in zip(grouped["premium"], grouped["entities"])]

    return AnalysisResult.from_df(
        "seniority_cohorts",
        "Production by Entity Seniority",
        grouped,
        metadata={"as_of_year": as_of.year},
    )
