"""Exception hierarchy for portfolio_analytics."""

from __future__ import annotations

from typing import Any


class PortfolioError(Exception):
    """Base exception for all portfolio_analytics errors."""

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}

    def __repr__(self) -> str:
        if self.detail:
            return f"{type(self).__name__}({self!s}, detail={self.detail})"
        return f"{type(self).__name__}({self!s})"


class ConfigError(PortfolioError):
    """Invalid or missing configuration."""


class DataLoadError(PortfolioError):
    """Failed to fetch or parse a dataset from the record store."""


class ColumnMismatchError(DataLoadError):
    """Required columns missing from a dataset."""

    def __init__(self, dataset: str, missing: set[str], available: set[str]) -> None:
        self.dataset = dataset
        self.missing = missing
        self.available = available
        super().__init__(
            f"Dataset '{dataset}' is missing required columns: {sorted(missing)}",
            detail={"available": sorted(available)},
        )


class QueryError(PortfolioError):
    """A query was called with invalid parameters."""


class AnalysisError(PortfolioError):
    """A query failed while computing; no partial result is returned."""

    def __init__(self, analysis_name: str, cause: Exception) -> None:
        self.analysis_name = analysis_name
        self.cause = cause
        super().__init__(f"Analysis '{analysis_name}' failed: {cause}")
