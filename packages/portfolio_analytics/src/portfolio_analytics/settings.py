"""Pydantic configuration for portfolio_analytics."""

from __future__ import annotations

from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator

from portfolio_analytics.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("config.yaml")


class DatasetConfig(BaseModel):
    """Record store dataset identifiers (workbook names of the source system)."""

    policies: str = "listado_polizas.xlsx"
    links: str = "entes_registrados_asesor.xlsx"
    advisors: str = "lista_asesores.xlsx"


class MiningConfig(BaseModel):
    """Sequential cross-sell rule thresholds."""

    min_antecedent_count: int = Field(default=5, ge=1)
    min_lift: float = 1.2
    min_confidence: float = 0.05
    # One degree of freedom, no continuity correction, p < 0.05.
    chi_square_critical: float = 3.84
    max_rules: int = Field(default=50, ge=1)
    max_targets: int = Field(default=5, ge=0)


class ChurnConfig(BaseModel):
    """Churn scoring factors and cut-offs."""

    min_dimension_support: int = Field(default=3, ge=1)
    baseline_epsilon: float = 0.01
    days_per_month: float = 30.44
    contagion_factor: float = 1.45
    no_contagion_factor: float = 0.9
    renewal_window_days: int = Field(default=45, ge=0)
    renewal_factor: float = 1.4
    loyalty_many_factor: float = 0.6
    loyalty_few_factor: float = 0.8
    loyalty_single_factor: float = 1.35
    premium_pressure_ratio: float = 1.6
    premium_pressure_factor: float = 1.4
    score_cap: float = 0.99
    min_score: float = 0.005
    high_risk_multiplier: float = 1.5
    attribution_threshold: float = 1.05
    max_factors: int = Field(default=3, ge=1)


class InsightConfig(BaseModel):
    """Thresholds (percentages) behind the strategic recommendations."""

    churn_critical_pct: float = 15.0
    churn_moderate_pct: float = 5.0
    mono_product_high_pct: float = 60.0
    mono_product_low_pct: float = 40.0
    pareto_concentrated_pct: float = 75.0
    pareto_top_fraction: float = Field(default=0.2, gt=0, le=1)
    min_ticket_policies: int = 5
    min_categories: int = 3


class Settings(BaseModel):
    """Application configuration -- immutable after creation."""

    model_config = {"frozen": True, "extra": "forbid"}

    data_dir: Path | None = None
    log_dir: Path | None = None
    datasets: DatasetConfig = DatasetConfig()
    mining: MiningConfig = MiningConfig()
    churn: ChurnConfig = ChurnConfig()
    insights: InsightConfig = InsightConfig()
    early_cancellation_days: int = Field(default=180, ge=0)

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_and_validate_data_dir(cls, v: str | Path | None) -> Path | None:
        if v is None:
            return None
        p = Path(v).expanduser().resolve()
        if not p.exists():
            raise ValueError(f"Data directory not found: {p}")
        if not p.is_dir():
            raise ValueError(f"data_dir is not a directory: {p}")
        return p

    @field_validator("log_dir", mode="before")
    @classmethod
    def expand_log_dir(cls, v: str | Path | None) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    @model_validator(mode="after")
    def check_threshold_order(self) -> Settings:
        ins = self.insights
        if ins.churn_moderate_pct > ins.churn_critical_pct:
            raise ValueError("churn_moderate_pct must not exceed churn_critical_pct")
        if ins.mono_product_low_pct > ins.mono_product_high_pct:
            raise ValueError("mono_product_low_pct must not exceed mono_product_high_pct")
        return self

    @classmethod
    def from_yaml(cls, config_path: Path = DEFAULT_CONFIG_PATH, **cli_overrides) -> Settings:
        """Load from YAML, merge CLI overrides (highest priority)."""
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.debug("No config file at {path}, using defaults", path=config_path)
            data = {}
        data.update({k: v for k, v in cli_overrides.items() if v is not None})
        try:
            return cls(**data)
        except Exception as e:
            raise ConfigError(f"Configuration error: {e}") from e

    @classmethod
    def from_args(cls, **kwargs) -> Settings:
        """Create settings directly from arguments (no YAML needed)."""
        try:
            return cls(**kwargs)
        except Exception as e:
            raise ConfigError(f"Configuration error: {e}") from e
