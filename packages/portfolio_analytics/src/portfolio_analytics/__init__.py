"""Insurance portfolio analytics: entity resolution, faceted metrics, cross-sell mining and churn scoring."""

from __future__ import annotations

from pathlib import Path

__version__ = "1.0.0"


def open_portfolio(data_dir: str | Path, **kwargs):
    """Convenience entry-point for Jupyter / REPL usage.

    Usage::

        from portfolio_analytics import open_portfolio
        engine = open_portfolio("data/")
        metrics = engine.compute_metrics()
    """
    from portfolio_analytics.data_loader import FileRecordStore
    from portfolio_analytics.engine import PortfolioEngine
    from portfolio_analytics.settings import Settings

    settings = Settings.from_args(data_dir=Path(data_dir), **kwargs)
    return PortfolioEngine(FileRecordStore(settings.data_dir), settings)
