"""Tests for portfolio_analytics.analyses.breakdowns."""

from __future__ import annotations

from collections import Counter

import pytest

from portfolio_analytics.analyses.breakdowns import (
    advisor_breakdown,
    cancellation_reasons,
    category_breakdown,
    company_breakdown,
    compute_totals,
    entity_breakdown,
    product_breakdown,
    status_breakdown,
)


class TestTotals:
    def test_totals(self, prepared):
        totals = compute_totals(prepared)
        assert totals["policies"] == 7
        assert totals["premium"] == pytest.approx(2135.06)
        assert totals["cancelled"] == 2
        assert totals["entities"] == 3
        assert totals["churn_rate_pct"] == pytest.approx(28.57)
        assert totals["avg_ticket"] == pytest.approx(305.01)

    def test_empty(self, prepared):
        totals = compute_totals(prepared.iloc[0:0])
        assert totals["policies"] == 0
        assert totals["avg_ticket"] == 0.0
        assert totals["churn_rate_pct"] == 0.0


class TestEntityBreakdown:
    def test_sorted_by_premium(self, prepared):
        df = entity_breakdown(prepared).df
        assert df["entity_code"].tolist() == ["00400", "00231", "00500"]

    def test_values(self, prepared):
        df = entity_breakdown(prepared).df.set_index("entity_code")
        assert df.loc["00231", "premium"] == pytest.approx(670.5)
        assert df.loc["00231", "policies"] == 3
        assert df.loc["00231", "cancellations"] == 1
        assert df.loc["00231", "avg_ticket"] == pytest.approx(223.5)
        assert df.loc["00400", "advisor"] == "Ana"

    def test_unresolved_excluded(self, prepared):
        df = entity_breakdown(prepared).df
        assert df["policies"].sum() == 6

    def test_ties_broken_by_code(self, frame_factory, policy_row):
        rows = [
            policy_row("X1", "B - 2", "Hogar", "MAP", "10", "01/01/2024", "Vigor", 2024, 1),
            policy_row("X2", "A - 1", "Hogar", "MAP", "10", "01/01/2024", "Vigor", 2024, 1),
        ]
        links = [{"ASESOR": "Ana", "ENTE": "B - 2"}, {"ASESOR": "Ana", "ENTE": "A - 1"}]
        df = entity_breakdown(frame_factory(rows, links)).df
        assert df["entity_code"].tolist() == ["1", "2"]


class TestAdvisorBreakdown:
    def test_seeded_with_listed_advisors(self, prepared):
        df = advisor_breakdown(prepared, ["Ana", "Luis", "Marta"], Counter({"Ana": 2, "Luis": 1})).df
        assert df["advisor"].tolist() == ["Ana", "Luis", "Marta"]
        marta = df.set_index("advisor").loc["Marta"]
        assert marta["premium"] == 0.0
        assert marta["policies"] == 0

    def test_premium_per_linked_entity(self, prepared):
        df = advisor_breakdown(prepared, [], {"Ana": 2, "Luis": 1}).df.set_index("advisor")
        assert df.loc["Ana", "premium"] == pytest.approx(1985.06)
        assert df.loc["Ana", "premium_per_entity"] == pytest.approx(992.53)
        assert df.loc["Ana", "active_entities"] == 2

    def test_no_linked_entities_guarded(self, prepared):
        df = advisor_breakdown(prepared, [], {}).df
        assert (df["premium_per_entity"] == 0.0).all()

    def test_seed_respects_advisor_filter(self, prepared):
        df = advisor_breakdown(prepared.iloc[0:0], ["Ana", "Marta"], {}, allowed=frozenset({"Ana"})).df
        assert df["advisor"].tolist() == ["Ana"]


class TestGroupedBreakdowns:
    def test_product_distinct_entities(self, prepared):
        df = product_breakdown(prepared).df.set_index("product")
        assert df.loc["Hogar Basico", "entities"] == 0
        assert df.loc["Sanitas Salud", "premium"] == pytest.approx(1234.56)

    def test_category(self, prepared):
        df = category_breakdown(prepared).df.set_index("category")
        assert df.loc["AUTOS", "policies"] == 2
        assert df.loc["AUTOS", "entities"] == 1
        assert df.loc["HOGAR", "policies"] == 2
        assert df.loc["HOGAR", "entities"] == 1
        assert df["premium_pct"].sum() == pytest.approx(100.0, abs=0.05)

    def test_company(self, prepared):
        df = company_breakdown(prepared).df.set_index("company")
        assert df.loc["MAP", "policies"] == 4
        assert df.loc["MAP", "entities"] == 2
        # Unresolved P7 carries the sentinel advisor, which is not counted.
        assert df.loc["MAP", "advisors"] == 1
        assert df.loc["AXA", "advisors"] == 2
        assert df.loc["AXA", "avg_ticket"] == pytest.approx(113.33)

    def test_status_sorted_by_count(self, prepared):
        df = status_breakdown(prepared).df
        assert df["status"].tolist() == ["Vigor", "Anulada", "Pendiente"]
        assert df["policies"].tolist() == [4, 2, 1]


class TestCancellationReasons:
    def test_histogram(self, prepared):
        result = cancellation_reasons(prepared)
        assert result.df.to_dict("records") == [{"reason": "Impago", "count": 1}, {"reason": "Precio", "count": 1}]
        assert result.metadata["total"] == 2

    def test_reason_on_active_policy_ignored(self, frame_factory, policy_row):
        rows = [policy_row("X1", "A - 1", "Hogar", "MAP", "1", "01/01/2024", "Vigor", 2024, 1, reason="Precio")]
        result = cancellation_reasons(frame_factory(rows, []))
        assert result.df.empty

    def test_cancellation_date_counts_without_status(self, frame_factory, policy_row):
        rows = [
            policy_row(
                "X1", "A - 1", "Hogar", "MAP", "1", "01/01/2024", "Vigor", 2024, 1,
                cancelled_on="01/02/2024", reason="Traslado",
            )
        ]
        result = cancellation_reasons(frame_factory(rows, []))
        assert result.df["reason"].tolist() == ["Traslado"]
