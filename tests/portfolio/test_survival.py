"""Tests for portfolio_analytics.analyses.survival."""

from __future__ import annotations

from portfolio_analytics.analyses.survival import survival_by_category


class TestSurvivalByCategory:
    def test_months_per_category(self, prepared):
        result = survival_by_category(prepared)
        by_category = result.df.set_index("category")["avg_months"].to_dict()
        # P3: produced 2022-01, cancelled 2022-06 -> 5; P4: 2024-02 -> 2024-04 -> 2
        assert by_category == {"AUTOS": 5.0, "DECESOS": 2.0}
        assert result.metadata["samples"] == 2
        assert result.metadata["avg_months"] == 3.5

    def test_unknown_period_skipped(self, frame_factory, policy_row):
        rows = [
            policy_row("X1", "A - 1", "Hogar", "MAP", "1", "01/01/2024", "Anulada", "", 1, cancelled_on="01/05/2024"),
            policy_row("X2", "A - 1", "Hogar", "MAP", "1", "01/01/2024", "Anulada", 2024, 1, cancelled_on="pronto"),
        ]
        result = survival_by_category(frame_factory(rows, []))
        assert result.df.empty
        assert result.metadata["avg_months"] == 0.0

    def test_unresolved_included(self, frame_factory, policy_row):
        rows = [
            policy_row("X1", "Nobody - 1", "Hogar", "MAP", "1", "01/01/2024", "Baja", 2024, 1, cancelled_on="01/04/2024")
        ]
        result = survival_by_category(frame_factory(rows, []))
        assert result.df["avg_months"].tolist() == [3.0]
