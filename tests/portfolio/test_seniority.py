"""Tests for portfolio_analytics.analyses.seniority."""

from __future__ import annotations

from datetime import date

import pytest

from portfolio_analytics.analyses.seniority import (
    COHORTS,
    cohort_label,
    first_production_years,
    seniority_cohorts,
)
from portfolio_analytics.filters import FacetFilters, apply_filters


class TestCohortLabel:
    @pytest.mark.parametrize(
        "years,expected",
        [(-1, "Año 0 (Nuevo)"), (0, "Año 0 (Nuevo)"), (1, "Año 1"), (2, "Año 2"), (3, "Año 3+ (Senior)"), (9, "Año 3+ (Senior)")],
    )
    def test_labels(self, years, expected):
        assert cohort_label(years) == expected


class TestSeniorityCohorts:
    def test_first_years(self, prepared):
        assert first_production_years(prepared) == {"00231": 2022, "00400": 2024, "00500": 2024}

    def test_cohorts(self, prepared):
        df = seniority_cohorts(prepared, prepared, date(2024, 6, 30)).df.set_index("cohort")
        assert list(df.index) == list(COHORTS)
        assert df.loc["Año 0 (Nuevo)", "entities"] == 2
        assert df.loc["Año 0 (Nuevo)", "policies"] == 3
        assert df.loc["Año 0 (Nuevo)", "premium"] == pytest.approx(1374.56)
        assert df.loc["Año 2", "premium_per_entity"] == pytest.approx(670.5)
        assert df.loc["Año 1", "entities"] == 0

    def test_first_year_taken_from_full_dataset(self, prepared):
        filtered = apply_filters(prepared, FacetFilters.from_params(year=2023))
        df = seniority_cohorts(prepared, filtered, date(2024, 6, 30)).df.set_index("cohort")
        assert df.loc["Año 2", "policies"] == 2
        assert df.loc["Año 1", "policies"] == 0
