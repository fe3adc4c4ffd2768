"""Tests for portfolio_analytics.settings."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from portfolio_analytics.exceptions import ConfigError
from portfolio_analytics.settings import ChurnConfig, InsightConfig, MiningConfig, Settings

# -- Section configs -----------------------------------------------------------


class TestMiningConfig:
    def test_defaults(self):
        cfg = MiningConfig()
        assert cfg.min_antecedent_count == 5
        assert cfg.min_lift == 1.2
        assert cfg.min_confidence == 0.05
        assert cfg.chi_square_critical == 3.84

    def test_rejects_zero_support(self):
        with pytest.raises(Exception):
            MiningConfig(min_antecedent_count=0)


class TestChurnConfig:
    def test_defaults(self):
        cfg = ChurnConfig()
        assert cfg.score_cap == 0.99
        assert cfg.contagion_factor == 1.45
        assert cfg.renewal_window_days == 45


# -- Settings ------------------------------------------------------------------


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.data_dir is None
        assert s.datasets.policies == "listado_polizas.xlsx"
        assert s.early_cancellation_days == 180

    def test_data_dir_resolved(self, tmp_path: Path):
        s = Settings(data_dir=tmp_path)
        assert s.data_dir == tmp_path.resolve()

    def test_data_dir_not_found(self, tmp_path: Path):
        with pytest.raises(Exception, match="not found"):
            Settings(data_dir=tmp_path / "missing")

    def test_data_dir_is_file(self, tmp_path: Path):
        f = tmp_path / "a.csv"
        f.write_text("x")
        with pytest.raises(Exception, match="not a directory"):
            Settings(data_dir=f)

    def test_frozen(self):
        s = Settings()
        with pytest.raises(Exception):
            s.early_cancellation_days = 10  # type: ignore[misc]

    def test_extra_forbidden(self):
        with pytest.raises(Exception):
            Settings(bogus=1)

    def test_threshold_order(self):
        with pytest.raises(Exception, match="churn_moderate_pct"):
            Settings(insights=InsightConfig(churn_moderate_pct=20.0, churn_critical_pct=10.0))


class TestFromYaml:
    def test_loads_sections(self, tmp_path: Path):
        config = tmp_path / "config.yaml"
        config.write_text(
            yaml.dump(
                {
                    "data_dir": str(tmp_path),
                    "mining": {"min_lift": 1.5},
                    "churn": {"score_cap": 0.9},
                    "datasets": {"policies": "polizas.csv"},
                }
            )
        )
        s = Settings.from_yaml(config)
        assert s.data_dir == tmp_path.resolve()
        assert s.mining.min_lift == 1.5
        assert s.churn.score_cap == 0.9
        assert s.datasets.policies == "polizas.csv"

    def test_overrides_win(self, tmp_path: Path):
        config = tmp_path / "config.yaml"
        config.write_text(yaml.dump({"early_cancellation_days": 90}))
        other = tmp_path / "other"
        other.mkdir()
        s = Settings.from_yaml(config, data_dir=other, early_cancellation_days=None)
        assert s.data_dir == other.resolve()
        assert s.early_cancellation_days == 90

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        s = Settings.from_yaml(tmp_path / "nope.yaml")
        assert s.mining.max_rules == 50

    def test_empty_file(self, tmp_path: Path):
        config = tmp_path / "config.yaml"
        config.write_text("")
        assert Settings.from_yaml(config).data_dir is None

    def test_invalid_raises_config_error(self, tmp_path: Path):
        config = tmp_path / "config.yaml"
        config.write_text(yaml.dump({"mining": {"max_rules": 0}}))
        with pytest.raises(ConfigError, match="Configuration error"):
            Settings.from_yaml(config)


class TestFromArgs:
    def test_from_args(self, tmp_path: Path):
        s = Settings.from_args(data_dir=tmp_path)
        assert s.data_dir == tmp_path.resolve()

    def test_bad_data_dir(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            Settings.from_args(data_dir=tmp_path / "missing")
