"""Tests for portfolio_analytics.analyses.evolution."""

from __future__ import annotations

import pytest

from portfolio_analytics.analyses.evolution import compute_evolution, product_family, retention_ratio


class TestProductFamily:
    @pytest.mark.parametrize(
        "product,expected",
        [
            ("<A> Auto Plus", "Auto Plus"),
            ("<D> Comercio (2024)", "Comercio"),
            ("Hogar Total", "Hogar Total"),
            ("(sin nombre)", "(sin nombre)"),
        ],
    )
    def test_family(self, product, expected):
        assert product_family(product) == expected


class TestRetentionRatio:
    @pytest.mark.parametrize(
        "policies,cancelled,expected",
        [(0, 0, 100), (4, 1, 75), (3, 1, 67), (8, 1, 88), (1, 1, 0)],
    )
    def test_ratio(self, policies, cancelled, expected):
        assert retention_ratio(policies, cancelled) == expected


class TestComputeEvolution:
    @pytest.fixture()
    def acme(self, prepared):
        return compute_evolution(prepared[prepared["entity_code"] == "00231"], "Acme Corp - 00231")

    def test_monthly_series(self, acme):
        monthly = acme.df
        assert monthly["period"].tolist() == ["2022-01", "2023-01", "2023-03"]
        first = monthly.iloc[0]
        assert first["cancelled"] == 1
        assert first["early_cancellations"] == 1
        assert first["retention_pct"] == 0
        assert monthly["retention_pct"].tolist()[1:] == [100, 100]
        assert monthly["in_force"].sum() == 2

    def test_stock_counters(self, acme):
        assert acme.metadata["stock"] == {"in_force": 2, "suspended": 0, "cancelled": 1}
        assert acme.metadata["policies"] == 3

    def test_product_mix(self, acme):
        products = acme.data["products"]
        assert products["product"].tolist() == ["Auto Plus", "Auto Basico", "Hogar Total"]
        categories = acme.data["categories"]
        assert categories["category"].tolist() == ["AUTOS", "HOGAR"]
        assert categories["premium"].tolist() == [pytest.approx(550.0), pytest.approx(120.5)]

    def test_early_window(self, prepared):
        acme = prepared[prepared["entity_code"] == "00231"]
        # P3 lived 151 days.
        assert compute_evolution(acme, "Acme", early_days=151).df.iloc[0]["early_cancellations"] == 0
        assert compute_evolution(acme, "Acme", early_days=152).df.iloc[0]["early_cancellations"] == 1

    def test_suspended_status(self, frame_factory, policy_row):
        rows = [policy_row("S1", "A - 1", "Hogar", "MAP", "10", "01/01/2024", "Suspension de garantias", 2024, 1)]
        result = compute_evolution(frame_factory(rows, [{"ASESOR": "Ana", "ENTE": "A - 1"}]), "A")
        assert result.metadata["stock"] == {"in_force": 0, "suspended": 1, "cancelled": 0}

    def test_undated_rows_only_in_stock(self, frame_factory, policy_row):
        rows = [policy_row("S1", "A - 1", "Hogar", "MAP", "10", "01/01/2024", "Vigor", "", "")]
        result = compute_evolution(frame_factory(rows, [{"ASESOR": "Ana", "ENTE": "A - 1"}]), "A")
        assert result.df.empty
        assert result.metadata["stock"]["in_force"] == 1

    def test_empty(self, prepared):
        result = compute_evolution(prepared.iloc[0:0], "Nobody")
        assert result.df.empty
        assert result.metadata["policies"] == 0
